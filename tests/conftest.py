"""Pytest configuration and fixtures."""

import os
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from src.api.dependencies import get_auth_client, get_recovery_executor
from src.database import Base, engine_options, get_db
from src.main import app
from src.services.auth import AuthProviderError
from src.services.recovery import CircuitBreaker, RecoveryExecutor


class AuthHeaders(dict):
    """Dict subclass that also stores the user's id and email."""

    def __init__(self, *args, user_id: str | None = None, email: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id = user_id
        self.email = email


class FakeAuthClient:
    """In-memory stand-in for the Supabase auth server."""

    def __init__(self) -> None:
        self.tokens: dict[str, dict[str, Any]] = {}
        self.accounts: dict[str, tuple[str, dict[str, Any]]] = {}
        self.get_user_calls = 0
        self.signed_out: list[str] = []

    def add_user(self, token: str, user_id: str, email: str, password: str = "hunter22") -> dict:
        user = {"id": user_id, "email": email}
        self.tokens[token] = user
        self.accounts[email] = (password, user)
        return user

    def get_user(self, access_token: str) -> dict[str, Any]:
        self.get_user_calls += 1
        if access_token not in self.tokens:
            raise AuthProviderError(401, "invalid JWT: unable to parse or verify signature")
        return self.tokens[access_token]

    def sign_in_with_password(self, email: str, password: str) -> dict[str, Any]:
        account = self.accounts.get(email)
        if account is None or account[0] != password:
            raise AuthProviderError(400, "Invalid login credentials")
        token = f"token-{email}"
        self.tokens[token] = account[1]
        return {
            "access_token": token,
            "token_type": "bearer",
            "expires_in": 3600,
            "user": account[1],
        }

    def sign_up(
        self, email: str, password: str, data: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        if email in self.accounts:
            raise AuthProviderError(422, "User already registered")
        user = {"id": f"user-{len(self.accounts) + 1}", "email": email, "user_metadata": data or {}}
        self.accounts[email] = (password, user)
        token = f"token-{email}"
        self.tokens[token] = user
        return {"access_token": token, "token_type": "bearer", "expires_in": 3600, "user": user}

    def sign_out(self, access_token: str) -> None:
        if access_token not in self.tokens:
            raise AuthProviderError(401, "invalid JWT")
        self.signed_out.append(access_token)
        del self.tokens[access_token]


# Use test database - PostgreSQL in Docker, SQLite locally
if os.getenv("DATABASE_URL"):
    # Running in Docker - use PostgreSQL test database
    SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL").replace("/grimoire", "/grimoire_test")
else:
    # Running locally - use SQLite
    SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(SQLALCHEMY_DATABASE_URL, **engine_options(SQLALCHEMY_DATABASE_URL))
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    if "postgresql" in SQLALCHEMY_DATABASE_URL:
        from sqlalchemy_utils import create_database, database_exists

        if not database_exists(SQLALCHEMY_DATABASE_URL):
            create_database(SQLALCHEMY_DATABASE_URL)

    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture
def fake_auth():
    """Auth provider stand-in shared by the client and the test."""
    return FakeAuthClient()


@pytest.fixture
def executor():
    """Executor with the default retry budget and no real sleeping."""
    sleeps: list[float] = []
    recovery = RecoveryExecutor(
        CircuitBreaker(failure_threshold=5, cooldown_seconds=30.0),
        max_retries=3,
        backoff_seconds=0.25,
        backoff_max_seconds=2.0,
        sleep=sleeps.append,
    )
    recovery.sleeps = sleeps
    return recovery


@pytest.fixture(scope="function")
def client(db, fake_auth, executor):
    """Create a test client with database, auth and executor overrides."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_auth_client] = lambda: fake_auth
    app.dependency_overrides[get_recovery_executor] = lambda: executor
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(fake_auth):
    """Auth headers for the primary test user."""
    user = fake_auth.add_user("token-aranea", "user-aranea", "aranea@example.com")
    return AuthHeaders(
        {"Authorization": "Bearer token-aranea"}, user_id=user["id"], email=user["email"]
    )


@pytest.fixture
def other_auth_headers(fake_auth):
    """Auth headers for a second, unrelated user."""
    user = fake_auth.add_user("token-borin", "user-borin", "borin@example.com")
    return AuthHeaders(
        {"Authorization": "Bearer token-borin"}, user_id=user["id"], email=user["email"]
    )


@pytest.fixture
def character(client, auth_headers):
    """A character owned by the primary test user."""
    response = client.post(
        "/api/v1/characters",
        headers=auth_headers,
        json={
            "name": "Aranea",
            "class_name": "Wizard",
            "level": 3,
            "hp_current": 14,
            "hp_max": 18,
            "spell_slots": {"1": [4, 4], "2": [1, 2]},
            "spells_known": [{"name": "Magic Missile", "level": 1}],
            "character_data": {
                "race": "Elf",
                "background": "Sage",
                "alignment": "Neutral Good",
                "ability_scores": {"intelligence": 16, "dexterity": 14},
            },
        },
    )
    assert response.status_code == 201
    return response.json()
