"""
Role-based access control evaluation.

Permissions come from the caller's role and are resolved once per request
into an ``AuthenticatedCaller``. Everything here is a pure predicate over
that snapshot; the ``require_*`` helpers turn a failed predicate into a
ForbiddenError that names the required and held permissions.
"""
from dataclasses import dataclass, field
from typing import Any, FrozenSet, Iterable
from paygate.core.exceptions import ForbiddenError


@dataclass(frozen=True)
class AuthenticatedCaller:
    """Identity and permission snapshot of the user making a request."""
    user_id: int
    email: str
    role_id: int
    role_name: str
    permissions: FrozenSet[str] = field(default_factory=frozenset)

    def can(self, permission: str) -> bool:
        return permission in self.permissions

    def is_self(self, user_id: Any) -> bool:
        return self.user_id == user_id


def _required_list(required: Iterable[str]) -> list:
    required = list(required)
    if not required:
        raise ValueError("At least one permission must be required")
    return required


def has_any(caller_permissions: Iterable[str], required: Iterable[str]) -> bool:
    """True if the caller holds at least one of the required permissions."""
    held = frozenset(caller_permissions)
    return any(permission in held for permission in _required_list(required))


def has_all(caller_permissions: Iterable[str], required: Iterable[str]) -> bool:
    """True if the caller holds every required permission."""
    held = frozenset(caller_permissions)
    return all(permission in held for permission in _required_list(required))


def is_owner_or_permitted(
    resource_owner_id: Any,
    caller_id: Any,
    caller_permissions: Iterable[str],
    required_permission: str,
) -> bool:
    """
    Owners always pass; everyone else needs the permission.

    A missing owner id never matches, so orphaned records fall back to the
    permission check.
    """
    if resource_owner_id is not None and resource_owner_id == caller_id:
        return True
    return required_permission in frozenset(caller_permissions)


def require_any(caller: AuthenticatedCaller, *required: str) -> None:
    """Raise ForbiddenError unless the caller holds one of ``required``."""
    if not has_any(caller.permissions, required):
        raise ForbiddenError(
            "You do not have permission to perform this action",
            errors=[{
                "message": f"Required permissions: {' OR '.join(required)}",
                "user_permissions": sorted(caller.permissions),
            }],
        )


def require_all(caller: AuthenticatedCaller, *required: str) -> None:
    """Raise ForbiddenError unless the caller holds all of ``required``."""
    if not has_all(caller.permissions, required):
        missing = [p for p in required if p not in caller.permissions]
        raise ForbiddenError(
            "You do not have permission to perform this action",
            errors=[{
                "message": f"Missing permissions: {', '.join(missing)}",
                "user_permissions": sorted(caller.permissions),
            }],
        )


def require_owner_or_permission(
    caller: AuthenticatedCaller,
    resource_owner_id: Any,
    required_permission: str,
    message: str = "You do not have permission to access this resource",
) -> None:
    """Raise ForbiddenError unless the caller owns the resource or holds the permission."""
    if not is_owner_or_permitted(resource_owner_id, caller.user_id, caller.permissions, required_permission):
        raise ForbiddenError(message)
