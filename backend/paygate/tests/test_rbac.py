"""
Tests for permission evaluation.
"""
from dataclasses import FrozenInstanceError
import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from paygate.api.dependencies import require_all_permissions
from paygate.core import permissions as perms
from paygate.core.exceptions import AppError, ForbiddenError
from paygate.core.rbac import (
    AuthenticatedCaller, has_all, has_any, is_owner_or_permitted,
    require_all, require_any, require_owner_or_permission
)
from paygate.main import app, app_error_handler


def make_caller(user_id=1, permissions=()):
    return AuthenticatedCaller(
        user_id=user_id,
        email=f"u{user_id}@example.com",
        role_id=1,
        role_name="custom",
        permissions=frozenset(permissions),
    )


def test_has_any_is_or():
    """One matching permission is enough."""
    held = {perms.PAYMENTS_READ}
    assert has_any(held, [perms.PAYMENTS_READ, perms.PAYMENTS_APPROVE])
    assert not has_any(held, [perms.PAYMENTS_APPROVE, perms.PAYMENTS_PROCESS])


def test_has_all_is_and():
    """Every required permission must be held."""
    held = {perms.PAYMENTS_READ, perms.PAYMENTS_APPROVE}
    assert has_all(held, [perms.PAYMENTS_READ, perms.PAYMENTS_APPROVE])
    assert not has_all(held, [perms.PAYMENTS_READ, perms.PAYMENTS_PROCESS])


def test_empty_requirement_is_rejected():
    """Callers must always name at least one permission."""
    with pytest.raises(ValueError):
        has_any({perms.PAYMENTS_READ}, [])
    with pytest.raises(ValueError):
        has_all({perms.PAYMENTS_READ}, [])


@pytest.mark.parametrize("role_name", sorted(perms.ROLE_PERMISSIONS))
def test_default_roles_gate_matches_permission_set(role_name):
    """A role passes a gate exactly when its permissions intersect / contain the requirement."""
    held = perms.ROLE_PERMISSIONS[role_name]
    for permission in perms.ALL_PERMISSIONS:
        assert has_any(held, [permission]) == (permission in held)
    approve_and_process = [perms.PAYMENTS_APPROVE, perms.PAYMENTS_PROCESS]
    assert has_all(held, approve_and_process) == set(approve_and_process).issubset(held)


def test_owner_override():
    """Owners pass without the permission; others need it."""
    assert is_owner_or_permitted(5, 5, set(), perms.PAYMENTS_READ_ALL)
    assert not is_owner_or_permitted(5, 6, set(), perms.PAYMENTS_READ_ALL)
    assert is_owner_or_permitted(5, 6, {perms.PAYMENTS_READ_ALL}, perms.PAYMENTS_READ_ALL)


def test_owner_override_ignores_missing_owner():
    """A resource without an owner never matches by identity."""
    assert not is_owner_or_permitted(None, None, set(), perms.USERS_READ)


def test_require_any_reports_required_and_held():
    """Forbidden errors list what was needed and what the caller has."""
    caller = make_caller(permissions={perms.PAYMENTS_CREATE})
    with pytest.raises(ForbiddenError) as exc_info:
        require_any(caller, perms.PAYMENTS_APPROVE, perms.PAYMENTS_PROCESS)
    detail = exc_info.value.errors[0]
    assert "payments:approve OR payments:process" in detail["message"]
    assert detail["user_permissions"] == [perms.PAYMENTS_CREATE]


def test_require_all_reports_missing():
    """Only the missing permissions are named."""
    caller = make_caller(permissions={perms.PAYMENTS_APPROVE})
    with pytest.raises(ForbiddenError) as exc_info:
        require_all(caller, perms.PAYMENTS_APPROVE, perms.PAYMENTS_PROCESS)
    assert exc_info.value.errors[0]["message"] == "Missing permissions: payments:process"
    require_all(make_caller(permissions={perms.PAYMENTS_APPROVE, perms.PAYMENTS_PROCESS}),
                perms.PAYMENTS_APPROVE, perms.PAYMENTS_PROCESS)


def test_require_owner_or_permission():
    caller = make_caller(user_id=3)
    require_owner_or_permission(caller, 3, perms.USERS_READ)
    with pytest.raises(ForbiddenError):
        require_owner_or_permission(caller, 4, perms.USERS_READ)


def test_caller_snapshot_is_immutable():
    caller = make_caller(permissions={perms.USERS_READ})
    with pytest.raises(FrozenInstanceError):
        caller.permissions = frozenset()
    assert caller.can(perms.USERS_READ)
    assert caller.is_self(1)


def test_require_all_permissions_dependency(client, admin, manager, user):
    """The AND gate admits only callers holding every listed permission."""
    gated = FastAPI()
    gated.dependency_overrides.update(app.dependency_overrides)
    gated.add_exception_handler(AppError, app_error_handler)

    @gated.get("/gated")
    def gated_route(
        caller: AuthenticatedCaller = Depends(
            require_all_permissions(perms.PAYMENTS_APPROVE, perms.PAYMENTS_PROCESS)
        )
    ):
        return {"user_id": caller.user_id}

    gated_client = TestClient(gated)

    response = gated_client.get("/gated", headers=manager["headers"])
    assert response.status_code == 200
    assert response.json() == {"user_id": manager["id"]}
    assert gated_client.get("/gated", headers=admin["headers"]).status_code == 200

    response = gated_client.get("/gated", headers=user["headers"])
    assert response.status_code == 403
    assert response.json()["errors"][0]["message"] == "Missing permissions: payments:approve, payments:process"

    assert gated_client.get("/gated").status_code == 401
