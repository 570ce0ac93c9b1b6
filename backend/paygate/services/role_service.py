"""
Role management service and default role bootstrap.
"""
import logging
from typing import List, Tuple
from sqlalchemy.orm import Session
from paygate.core import permissions as perms
from paygate.core.exceptions import ConflictError, InvalidStateError, NotFoundError
from paygate.core.rbac import AuthenticatedCaller, require_any
from paygate.models.role import Role
from paygate.models.user import User
from paygate.schemas.role import RoleCreate, RoleUpdate

logger = logging.getLogger(__name__)


def seed_default_roles(db: Session) -> List[Role]:
    """Create any of the default roles that do not exist yet."""
    created = []
    for name, permissions in perms.ROLE_PERMISSIONS.items():
        if db.query(Role).filter(Role.name == name).first():
            continue
        role = Role(
            name=name,
            permissions=sorted(permissions),
            description=perms.ROLE_DESCRIPTIONS.get(name, "")
        )
        db.add(role)
        created.append(role)
    if created:
        db.commit()
        logger.info(f"Seeded default roles: {', '.join(r.name for r in created)}")
    return created


def count_users_with_role(role_id: int, db: Session) -> int:
    return db.query(User).filter(User.role_id == role_id).count()


def _get_role_or_404(role_id: int, db: Session) -> Role:
    role = db.query(Role).filter(Role.id == role_id).first()
    if not role:
        raise NotFoundError("Role not found")
    return role


def list_roles(caller: AuthenticatedCaller, db: Session) -> List[Role]:
    """List all roles sorted by name."""
    require_any(caller, perms.ROLES_MANAGE)
    return db.query(Role).order_by(Role.name.asc()).all()


def get_role(role_id: int, caller: AuthenticatedCaller, db: Session) -> Tuple[Role, int]:
    """Get a role together with the number of users holding it."""
    require_any(caller, perms.ROLES_MANAGE)
    role = _get_role_or_404(role_id, db)
    return role, count_users_with_role(role.id, db)


def create_role(role_data: RoleCreate, caller: AuthenticatedCaller, db: Session) -> Role:
    """Create a new role."""
    require_any(caller, perms.ROLES_MANAGE)

    if db.query(Role).filter(Role.name == role_data.name).first():
        raise ConflictError(
            "Role with this name already exists",
            errors=[{"field": "name", "message": "This role name is already taken"}]
        )

    role = Role(
        name=role_data.name,
        permissions=list(role_data.permissions),
        description=role_data.description or ""
    )
    db.add(role)
    db.commit()
    db.refresh(role)
    logger.info(f"Role '{role.name}' created by user {caller.user_id}")
    return role


def update_role(role_id: int, role_data: RoleUpdate, caller: AuthenticatedCaller, db: Session) -> Role:
    """Replace a role's permission set and/or description."""
    require_any(caller, perms.ROLES_MANAGE)
    role = _get_role_or_404(role_id, db)

    if role_data.permissions is not None:
        role.permissions = list(role_data.permissions)
    if role_data.description is not None:
        role.description = role_data.description

    db.commit()
    db.refresh(role)
    return role


def delete_role(role_id: int, caller: AuthenticatedCaller, db: Session) -> None:
    """Delete a role that no user references."""
    require_any(caller, perms.ROLES_MANAGE)
    role = _get_role_or_404(role_id, db)

    user_count = count_users_with_role(role.id, db)
    if user_count > 0:
        raise InvalidStateError(f"Cannot delete role. {user_count} user(s) are assigned to this role.")

    db.delete(role)
    db.commit()
    logger.info(f"Role '{role.name}' deleted by user {caller.user_id}")
