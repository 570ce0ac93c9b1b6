"""
Shared fixtures: an in-memory database, a test client and users of each role.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import paygate.models  # noqa: F401
from paygate.core.permissions import ROLE_ADMIN, ROLE_MANAGER, ROLE_USER
from paygate.core.rbac import AuthenticatedCaller
from paygate.db.base import Base
from paygate.db.session import get_db
from paygate.main import app
from paygate.models.role import Role
from paygate.models.user import User
from paygate.services.auth_service import build_caller
from paygate.services.role_service import seed_default_roles

PASSWORD = "secret123"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    seed_default_roles(session)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db, session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def set_role(db, user_id: int, role_name: str) -> None:
    role = db.query(Role).filter(Role.name == role_name).one()
    user = db.query(User).filter(User.id == user_id).one()
    user.role_id = role.id
    db.commit()


@pytest.fixture
def register(client, db):
    """Register a user through the API, optionally moving them to another role."""
    def _register(email: str, role_name: str = ROLE_USER, first_name: str = "Test", last_name: str = "User"):
        response = client.post(
            "/api/auth/register",
            json={
                "email": email,
                "password": PASSWORD,
                "first_name": first_name,
                "last_name": last_name,
            }
        )
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        user_id = data["user"]["id"]
        if role_name != ROLE_USER:
            set_role(db, user_id, role_name)
        return {
            "id": user_id,
            "email": email,
            "tokens": data["tokens"],
            "headers": {"Authorization": f"Bearer {data['tokens']['access_token']}"},
        }
    return _register


@pytest.fixture
def admin(register):
    return register("admin@example.com", ROLE_ADMIN, "Admin", "User")


@pytest.fixture
def manager(register):
    return register("manager@example.com", ROLE_MANAGER, "Manager", "User")


@pytest.fixture
def user(register):
    return register("user@example.com", ROLE_USER, "Regular", "User")


@pytest.fixture
def other_user(register):
    return register("jane.smith@example.com", ROLE_USER, "Jane", "Smith")


@pytest.fixture
def caller_for(db):
    """Build an AuthenticatedCaller for a registered user id."""
    def _caller(user_id: int) -> AuthenticatedCaller:
        db.expire_all()
        return build_caller(db.query(User).filter(User.id == user_id).one())
    return _caller
