"""
Request dependencies: bearer authentication and permission gates.
"""
from typing import Callable, Optional
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session
from paygate.core.exceptions import UnauthorizedError
from paygate.core.rbac import AuthenticatedCaller, require_all, require_any
from paygate.db.session import get_db
from paygate.models.user import User
from paygate.services import auth_service

bearer_scheme = HTTPBearer(auto_error=False)


def _resolve(credentials: Optional[HTTPAuthorizationCredentials], db: Session):
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Access token is required")
    return auth_service.authenticate(credentials.credentials, db)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> User:
    """Get the user behind the bearer access token."""
    user, _ = _resolve(credentials, db)
    return user


def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> AuthenticatedCaller:
    """Get the identity and permission snapshot for this request."""
    _, caller = _resolve(credentials, db)
    return caller


def require_permissions(*required: str) -> Callable[..., AuthenticatedCaller]:
    """Dependency factory: caller needs at least one of ``required``."""
    def dependency(caller: AuthenticatedCaller = Depends(get_current_caller)) -> AuthenticatedCaller:
        require_any(caller, *required)
        return caller
    return dependency


def require_all_permissions(*required: str) -> Callable[..., AuthenticatedCaller]:
    """Dependency factory: caller needs every one of ``required``."""
    def dependency(caller: AuthenticatedCaller = Depends(get_current_caller)) -> AuthenticatedCaller:
        require_all(caller, *required)
        return caller
    return dependency
