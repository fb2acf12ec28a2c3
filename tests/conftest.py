"""
Front desk backend - test configuration and fixtures
"""
import os

os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-for-testing"
os.environ["BACKUP_AUTO_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient

from frontdesk.core.security import create_access_token, hash_password
from frontdesk.db.base import Base
from frontdesk.db.models import User, UserRole
from frontdesk.db.session import SessionLocal, engine, get_db
from frontdesk.main import fastapi_app
from frontdesk.schemas.visitor import VisitorCheckIn

TEST_PASSWORD = "Password123!"


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    fastapi_app.dependency_overrides[get_db] = override_get_db
    with TestClient(fastapi_app) as test_client:
        yield test_client
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make_user(role: UserRole, username: str | None = None, is_active: bool = True) -> User:
        username = username or role.value.replace("-", "")
        user = User(
            username=username,
            email=f"{username}@visitors.nazarethhospital.org",
            first_name=username.title(),
            last_name="Tester",
            password_hash=hash_password(TEST_PASSWORD),
            role=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


def auth_headers_for(user: User) -> dict:
    token = create_access_token(user.id, user.role.value, user.username)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def front_desk_user(make_user) -> User:
    return make_user(UserRole.front_desk)


@pytest.fixture
def admin_user(make_user) -> User:
    return make_user(UserRole.admin)


@pytest.fixture
def super_admin_user(make_user) -> User:
    return make_user(UserRole.super_admin)


@pytest.fixture
def hierarchy_user(make_user) -> User:
    return make_user(UserRole.hierarchy_person)


@pytest.fixture
def front_desk_headers(front_desk_user) -> dict:
    return auth_headers_for(front_desk_user)


@pytest.fixture
def admin_headers(admin_user) -> dict:
    return auth_headers_for(admin_user)


@pytest.fixture
def hierarchy_headers(hierarchy_user) -> dict:
    return auth_headers_for(hierarchy_user)


def check_in_payload(**overrides) -> VisitorCheckIn:
    data = {
        "fullName": "Jane Doe",
        "firstName": "Jane",
        "lastName": "Doe",
        "phoneNumber": "5551234567",
        "relationship": "daughter",
        "residentName": "Mary Doe",
        "roomNumber": "12B",
        "visitPurpose": "family visit",
        "emergencyContact": "John Doe",
        "emergencyPhone": "5559876543",
    }
    data.update(overrides)
    return VisitorCheckIn(**data)
