"""
User management routes.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from paygate.db.session import get_db
from paygate.schemas.user import UserResponse, UserUpdate, UserRoleChange
from paygate.core import permissions as perms
from paygate.core.rbac import AuthenticatedCaller
from paygate.core.utils import format_response, paginate
from paygate.api.dependencies import get_current_caller, require_permissions
from paygate.services import user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("")
def list_users(
    search: Optional[str] = Query(None, max_length=100),
    role_id: Optional[int] = Query(None, gt=0),
    is_active: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    caller: AuthenticatedCaller = Depends(require_permissions(perms.USERS_READ)),
    db: Session = Depends(get_db)
):
    """List users with search, filters and pagination."""
    users, total = user_service.list_users(
        caller, db, search=search, role_id=role_id, is_active=is_active, page=page, limit=limit
    )
    return format_response(
        {
            "users": [UserResponse.model_validate(u) for u in users],
            "pagination": paginate(total, page, limit),
        },
        "Users retrieved successfully"
    )


@router.get("/{user_id}")
def get_user(
    user_id: int,
    caller: AuthenticatedCaller = Depends(get_current_caller),
    db: Session = Depends(get_db)
):
    """Get user by ID (own profile or users:read)."""
    user = user_service.get_user(user_id, caller, db)
    return format_response({"user": UserResponse.model_validate(user)}, "User retrieved successfully")


@router.put("/{user_id}")
def update_user(
    user_id: int,
    user_data: UserUpdate,
    caller: AuthenticatedCaller = Depends(get_current_caller),
    db: Session = Depends(get_db)
):
    """Update user (own profile or users:write)."""
    user = user_service.update_user(user_id, user_data, caller, db)
    return format_response({"user": UserResponse.model_validate(user)}, "User updated successfully")


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    caller: AuthenticatedCaller = Depends(get_current_caller),
    db: Session = Depends(get_db)
):
    """Delete user (users:delete, never yourself)."""
    user_service.delete_user(user_id, caller, db)
    return format_response(None, "User deleted successfully")


@router.put("/{user_id}/role")
def change_user_role(
    user_id: int,
    role_data: UserRoleChange,
    caller: AuthenticatedCaller = Depends(get_current_caller),
    db: Session = Depends(get_db)
):
    """Change user role (users:write, never your own)."""
    user = user_service.change_role(user_id, role_data.role_id, caller, db)
    return format_response({"user": UserResponse.model_validate(user)}, "User role updated successfully")
