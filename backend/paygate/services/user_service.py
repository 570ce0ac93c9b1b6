"""
User management service.

Self-protection rules (no self-delete, no self role change) are checked
before any permission evaluation.
"""
import logging
from typing import List, Optional, Tuple
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload
from paygate.core import permissions as perms
from paygate.core.exceptions import ConflictError, ForbiddenError, InvalidStateError, NotFoundError
from paygate.core.rbac import AuthenticatedCaller, require_any, require_owner_or_permission
from paygate.models.payment import Payment
from paygate.models.role import Role
from paygate.models.user import User
from paygate.schemas.user import UserUpdate
from paygate.services.auth_service import normalize_email

logger = logging.getLogger(__name__)


def _get_user_or_404(user_id: int, db: Session) -> User:
    user = db.query(User).options(joinedload(User.role)).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def list_users(
    caller: AuthenticatedCaller,
    db: Session,
    search: Optional[str] = None,
    role_id: Optional[int] = None,
    is_active: Optional[bool] = None,
    page: int = 1,
    limit: int = 10
) -> Tuple[List[User], int]:
    """List users with optional search and filters, newest first."""
    require_any(caller, perms.USERS_READ)

    query = db.query(User)
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(or_(
            User.email.ilike(pattern),
            User.first_name.ilike(pattern),
            User.last_name.ilike(pattern),
        ))
    if role_id is not None:
        query = query.filter(User.role_id == role_id)
    if is_active is not None:
        query = query.filter(User.is_active == is_active)

    total = query.count()
    users = query.options(joinedload(User.role)).order_by(
        User.created_at.desc(), User.id.desc()
    ).offset((page - 1) * limit).limit(limit).all()
    return users, total


def get_user(user_id: int, caller: AuthenticatedCaller, db: Session) -> User:
    """Get a user; callers may always read themselves."""
    require_owner_or_permission(
        caller, user_id, perms.USERS_READ,
        message="You do not have permission to view this user"
    )
    return _get_user_or_404(user_id, db)


def update_user(user_id: int, user_data: UserUpdate, caller: AuthenticatedCaller, db: Session) -> User:
    """Update profile fields; only users:write holders may toggle is_active."""
    require_owner_or_permission(
        caller, user_id, perms.USERS_WRITE,
        message="You do not have permission to update this user"
    )

    if caller.is_self(user_id) and user_data.is_active is not None:
        raise ForbiddenError("You cannot change your own active status")

    user = _get_user_or_404(user_id, db)

    if user_data.email is not None:
        email = normalize_email(user_data.email)
        if email != user.email:
            taken = db.query(User).filter(User.email == email, User.id != user.id).first()
            if taken:
                raise ConflictError(
                    "Email already registered",
                    errors=[{"field": "email", "message": "This email is already registered"}]
                )
            user.email = email
    if user_data.first_name:
        user.first_name = user_data.first_name.strip()
    if user_data.last_name:
        user.last_name = user_data.last_name.strip()
    if user_data.is_active is not None and caller.can(perms.USERS_WRITE):
        user.is_active = user_data.is_active

    db.commit()
    db.refresh(user)
    return user


def delete_user(user_id: int, caller: AuthenticatedCaller, db: Session) -> None:
    """
    Delete a user. Nobody may delete their own account.

    Users who own payments are kept; approver and processor references on
    other payments are cleared by the database.
    """
    if caller.is_self(user_id):
        raise ForbiddenError("You cannot delete your own account")
    require_any(caller, perms.USERS_DELETE)

    user = _get_user_or_404(user_id, db)
    owned = db.query(Payment).filter(Payment.user_id == user.id).count()
    if owned > 0:
        raise InvalidStateError(f"Cannot delete user. {owned} payment(s) belong to this user.")

    db.delete(user)
    db.commit()
    logger.info(f"User {user_id} deleted by user {caller.user_id}")


def change_role(user_id: int, role_id: int, caller: AuthenticatedCaller, db: Session) -> User:
    """Reassign a user's role. Nobody may change their own role."""
    if caller.is_self(user_id):
        raise ForbiddenError("You cannot change your own role")
    require_any(caller, perms.USERS_WRITE)

    user = _get_user_or_404(user_id, db)
    role = db.query(Role).filter(Role.id == role_id).first()
    if not role:
        raise NotFoundError("Role not found")

    user.role_id = role.id
    db.commit()
    db.refresh(user)
    logger.info(f"User {user_id} moved to role '{role.name}' by user {caller.user_id}")
    return user
