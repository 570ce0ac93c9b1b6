"""
Authentication service: registration, login and caller resolution.
"""
import logging
from datetime import datetime
from typing import Dict, Tuple
from sqlalchemy.orm import Session, joinedload
from paygate.core import security
from paygate.core.exceptions import AppError, ConflictError, ForbiddenError, UnauthorizedError
from paygate.core.permissions import DEFAULT_ROLE
from paygate.core.rbac import AuthenticatedCaller
from paygate.models.role import Role
from paygate.models.user import User
from paygate.schemas.user import UserCreate
from paygate.services import token_service

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def register(user_data: UserCreate, db: Session) -> Tuple[User, Dict[str, str]]:
    """Register a new user with the default role and log them in."""
    email = normalize_email(user_data.email)
    if db.query(User).filter(User.email == email).first():
        raise ConflictError(
            "Email already registered",
            errors=[{"field": "email", "message": "This email is already registered"}]
        )

    role = db.query(Role).filter(Role.name == DEFAULT_ROLE).first()
    if not role:
        logger.error(f"Default role '{DEFAULT_ROLE}' is missing; roles were not seeded")
        raise AppError("Default user role not found. Please run database seeding.")

    user = User(
        email=email,
        hashed_password=security.get_password_hash(user_data.password),
        first_name=user_data.first_name.strip(),
        last_name=user_data.last_name.strip(),
        role_id=role.id
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Registered user {user.id}")

    return user, token_service.issue_token_pair(user, db)


def login(email: str, password: str, db: Session) -> Tuple[User, Dict[str, str]]:
    """Check credentials, stamp last_login and issue a token pair."""
    user = db.query(User).options(joinedload(User.role)).filter(
        User.email == normalize_email(email)
    ).first()

    if not user:
        logger.warning("Login failed: unknown email")
        raise UnauthorizedError("Invalid email or password")

    if not user.is_active:
        raise ForbiddenError("Account is inactive. Please contact support.")

    if not security.verify_password(password, user.hashed_password):
        logger.warning(f"Login failed: bad password for user {user.id}")
        raise UnauthorizedError("Invalid email or password")

    user.last_login = datetime.utcnow()
    db.commit()
    db.refresh(user)

    return user, token_service.issue_token_pair(user, db)


def build_caller(user: User) -> AuthenticatedCaller:
    """Snapshot the user's identity and role permissions."""
    role = user.role
    return AuthenticatedCaller(
        user_id=user.id,
        email=user.email,
        role_id=user.role_id,
        role_name=role.name if role else "",
        permissions=frozenset(role.permissions or []) if role else frozenset(),
    )


def authenticate(access_token: str, db: Session) -> Tuple[User, AuthenticatedCaller]:
    """Resolve an access token into the user and their permission snapshot."""
    claims = token_service.verify(access_token, security.ACCESS)

    try:
        user_id = int(claims["sub"])
    except (TypeError, ValueError):
        raise UnauthorizedError("Invalid token")

    user = db.query(User).options(joinedload(User.role)).filter(User.id == user_id).first()
    if not user:
        raise UnauthorizedError("User not found")
    if not user.is_active:
        raise ForbiddenError("Account is inactive")

    return user, build_caller(user)
