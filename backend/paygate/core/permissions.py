"""
Permission registry: permission strings and the default role bundles.

Permissions have the shape ``resource:action``. Roles stored in the database
carry their own permission lists; the mapping here is what the three
default roles are seeded with.
"""
from typing import Dict, FrozenSet


# Users
USERS_READ = "users:read"
USERS_WRITE = "users:write"
USERS_DELETE = "users:delete"

# Roles
ROLES_MANAGE = "roles:manage"

# Payments
PAYMENTS_CREATE = "payments:create"
PAYMENTS_READ = "payments:read"
PAYMENTS_READ_ALL = "payments:read_all"  # read other users' payments
PAYMENTS_APPROVE = "payments:approve"
PAYMENTS_PROCESS = "payments:process"
PAYMENTS_DELETE = "payments:delete"

ALL_PERMISSIONS: FrozenSet[str] = frozenset({
    USERS_READ,
    USERS_WRITE,
    USERS_DELETE,
    ROLES_MANAGE,
    PAYMENTS_CREATE,
    PAYMENTS_READ,
    PAYMENTS_READ_ALL,
    PAYMENTS_APPROVE,
    PAYMENTS_PROCESS,
    PAYMENTS_DELETE,
})

ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_USER = "user"

DEFAULT_ROLE = ROLE_USER

ROLE_PERMISSIONS: Dict[str, FrozenSet[str]] = {
    ROLE_ADMIN: ALL_PERMISSIONS,
    ROLE_MANAGER: frozenset({
        USERS_READ,
        PAYMENTS_READ,
        PAYMENTS_READ_ALL,
        PAYMENTS_APPROVE,
        PAYMENTS_PROCESS,
    }),
    ROLE_USER: frozenset({
        PAYMENTS_CREATE,
        PAYMENTS_READ,
    }),
}

ROLE_DESCRIPTIONS: Dict[str, str] = {
    ROLE_ADMIN: "Administrator with full system access",
    ROLE_MANAGER: "Manager with payment approval and processing capabilities",
    ROLE_USER: "Regular user with basic payment creation capabilities",
}
