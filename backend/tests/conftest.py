"""
Pytest configuration and fixtures for backend tests.

This module is automatically loaded by pytest and provides:
- TESTING environment flag to disable .env loading
- Shared fixtures for database sessions, the mock identity provider and
  test clients
"""

import os

# Set TESTING flag BEFORE any app imports
# This prevents loading .env file during tests, ensuring test isolation
os.environ["TESTING"] = "1"

# Use the in-memory mock identity provider for tests
os.environ["IDENTITY_PROVIDER_URL"] = "mock"

# Set a test encryption key for the session cookie
from cryptography.fernet import Fernet
os.environ["SESSION_ENCRYPTION_KEY"] = Fernet.generate_key().decode()

# REST API server (requests to it are patched in tests)
os.environ["REST_API_URL"] = "http://rest-api.test"

# Frontend host for CORS
os.environ["FRONTEND_HOST"] = "http://localhost:8080"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from rentcalc.main import app
from rentcalc.api.deps import get_db
from rentcalc.models import AppUser
from rentcalc.services.identity import MockIdentityProvider, get_identity_provider


@pytest.fixture(name="session")
def session_fixture():
    """Create a new in-memory database session for each test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture(name="identity_provider")
def identity_provider_fixture() -> MockIdentityProvider:
    """Fresh mock identity provider, shared by routes and the route guard."""
    get_identity_provider.cache_clear()
    provider = get_identity_provider()
    yield provider
    get_identity_provider.cache_clear()


@pytest.fixture(name="client")
def client_fixture(session: Session, identity_provider: MockIdentityProvider):
    """Create a test client with database session override."""

    def get_session_override():
        return session

    app.dependency_overrides[get_db] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="sign_in")
def sign_in_fixture(client: TestClient):
    """
    Run the server-driven sign-in against the mock provider.

    Calling the fixture value returns the location the callback redirected to.
    """

    def _sign_in() -> str:
        start = client.get("/auth/sign-in", follow_redirects=False)
        assert start.status_code == 302
        callback = client.get(start.headers["location"], follow_redirects=False)
        assert callback.status_code == 302
        return callback.headers["location"]

    return _sign_in


@pytest.fixture(name="provision")
def provision_fixture(session: Session):
    """Insert an app_user row as the REST API would after role selection."""

    def _provision(user_type: str, user_id: str = "mock-user-1") -> AppUser:
        app_user = AppUser(user_id=user_id, user_type=user_type, email=f"{user_id}@example.com")
        session.add(app_user)
        session.commit()
        return app_user

    return _provision
