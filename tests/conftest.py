import os

# Settings are read at import time, so the environment must be ready first
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"
os.environ["RATE_LIMIT_ENABLED"] = "0"
os.environ.setdefault("JWT_SECRET", "test-access-secret")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from clinicbook.main import app
from clinicbook.core.database import get_db, Base
from clinicbook.models import User
from clinicbook.schemas.auth import UserRegister
from clinicbook.services.auth_service import AuthService

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db

# Registration payloads per role
DOCTOR_DATA = {
    "first_name": "Gregory",
    "last_name": "House",
    "email": "house@example.com",
    "password": "TestPassword123",
    "role": "doctor",
    "specialization": "Medicine",
    "bio": "Diagnostics",
}

PATIENT_DATA = {
    "first_name": "Test",
    "last_name": "Patient",
    "email": "patient@example.com",
    "password": "TestPassword123",
    "role": "patient",
    "gender": "female",
    "date_of_birth": "1990-04-12",
}

ADMIN_DATA = {
    "first_name": "Ada",
    "last_name": "Admin",
    "email": "admin@example.com",
    "password": "TestPassword123",
    "role": "admin",
}

@pytest.fixture(scope="function")
def test_db():
    # Create tables
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def db(test_db):
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture
def client(test_db):
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client

@pytest.fixture
def make_user(db):
    """Register a user through AuthService and return the stored row."""
    def _make_user(data: dict, **overrides) -> User:
        payload = {**data, **overrides}
        tokens = AuthService(db).register_user(UserRegister(**payload))
        return db.get(User, tokens.user.id)
    return _make_user

def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}

def register(client, data: dict, **overrides) -> dict:
    response = client.post("/api/v1/auth/register", json={**data, **overrides})
    assert response.status_code == 201, response.text
    return response.json()
