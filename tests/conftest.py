"""
Peroxide - Test Configuration

Pytest fixtures for authentication testing.
Provides settings, keyring, test database, client, and user fixtures.
"""

from typing import Generator, Optional

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from peroxide.app import create_app
from peroxide.config import Settings
from peroxide.auth.database import get_engine, init_db, get_session_factory
from peroxide.auth.keyring import SecretKeyring
from peroxide.auth.models import User, Rank
from peroxide.auth.provisioning import create_credential


TEST_SECRET = "test-signing-secret-not-for-production"

# In-memory SQLite, one shared connection per engine
TEST_DATABASE_URL = "sqlite://"

USER_PASSWORD = "correct horse"
ADMIN_PASSWORD = "battery staple"


@pytest.fixture(scope="function")
def test_settings() -> Settings:
    return Settings(
        JWT_SECRET=TEST_SECRET,
        DATABASE_URL=TEST_DATABASE_URL,
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture(scope="function")
def keyring(test_settings) -> SecretKeyring:
    return SecretKeyring.from_settings(test_settings)


@pytest.fixture(scope="function")
def test_engine(test_settings):
    """Create a fresh test database engine for each test."""
    engine = get_engine(test_settings)
    init_db(engine)

    yield engine

    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    """Create a database session for testing."""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(scope="function")
def client(test_settings, test_engine) -> Generator[TestClient, None, None]:
    """Create a test client bound to the test database."""
    app = create_app(test_settings)

    with TestClient(app) as c:
        # Lifespan built its own engine; point handlers at the shared test one
        app.state.db_engine = test_engine
        app.state.db_session_factory = get_session_factory(test_engine)
        yield c


@pytest.fixture(scope="function")
def test_user(db_session) -> User:
    """Create a User-rank account."""
    return create_credential(
        db_session,
        name="Ann",
        username="ann",
        password=USER_PASSWORD,
        email="a@x.com",
        rank=Rank.USER,
    )


@pytest.fixture(scope="function")
def test_admin(db_session) -> User:
    """Create an Admin-rank account."""
    return create_credential(
        db_session,
        name="Root",
        username="root",
        password=ADMIN_PASSWORD,
        email="root@x.com",
        rank=Rank.ADMIN,
    )


def session_headers(token: str, cookie_name: str = "jwt-token") -> dict:
    """Cookie header presenting a session token."""
    return {"Cookie": f"{cookie_name}={token}"}


def session_cookie(response) -> Optional[str]:
    """Session token set by a response, if any."""
    return response.cookies.get("jwt-token")


def sign_in_user(client: TestClient, username: str, password: str) -> Optional[str]:
    """Helper function to sign in and return the session token."""
    response = client.post(
        "/api/sign_in",
        json={"username": username, "password": password},
    )
    return session_cookie(response) if response.status_code == 200 else None
