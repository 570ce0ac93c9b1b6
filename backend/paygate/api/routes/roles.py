"""
Role management routes. Every endpoint requires roles:manage.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from paygate.db.session import get_db
from paygate.schemas.role import RoleCreate, RoleResponse, RoleUpdate
from paygate.core import permissions as perms
from paygate.core.rbac import AuthenticatedCaller
from paygate.core.utils import format_response
from paygate.api.dependencies import require_permissions
from paygate.services import role_service

router = APIRouter(prefix="/roles", tags=["roles"])

can_manage_roles = require_permissions(perms.ROLES_MANAGE)


@router.get("")
def list_roles(
    caller: AuthenticatedCaller = Depends(can_manage_roles),
    db: Session = Depends(get_db)
):
    """List all roles."""
    roles = role_service.list_roles(caller, db)
    return format_response(
        {"roles": [RoleResponse.model_validate(r) for r in roles]},
        "Roles retrieved successfully"
    )


@router.get("/{role_id}")
def get_role(
    role_id: int,
    caller: AuthenticatedCaller = Depends(can_manage_roles),
    db: Session = Depends(get_db)
):
    """Get role by ID with the number of users assigned to it."""
    role, user_count = role_service.get_role(role_id, caller, db)
    return format_response(
        {"role": RoleResponse.model_validate(role), "user_count": user_count},
        "Role retrieved successfully"
    )


@router.post("", status_code=status.HTTP_201_CREATED)
def create_role(
    role_data: RoleCreate,
    caller: AuthenticatedCaller = Depends(can_manage_roles),
    db: Session = Depends(get_db)
):
    """Create a new role."""
    role = role_service.create_role(role_data, caller, db)
    return format_response({"role": RoleResponse.model_validate(role)}, "Role created successfully")


@router.put("/{role_id}")
def update_role(
    role_id: int,
    role_data: RoleUpdate,
    caller: AuthenticatedCaller = Depends(can_manage_roles),
    db: Session = Depends(get_db)
):
    """Replace role permissions and/or description."""
    role = role_service.update_role(role_id, role_data, caller, db)
    return format_response({"role": RoleResponse.model_validate(role)}, "Role updated successfully")


@router.delete("/{role_id}")
def delete_role(
    role_id: int,
    caller: AuthenticatedCaller = Depends(can_manage_roles),
    db: Session = Depends(get_db)
):
    """Delete a role no user is assigned to."""
    role_service.delete_role(role_id, caller, db)
    return format_response(None, "Role deleted successfully")
