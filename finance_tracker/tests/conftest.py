# finance_tracker/tests/conftest.py
# Test configuration and fixtures for pytest

import os

# Settings are read once at import time, so point them at throwaway services first
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.pop("REDIS_URL", None)
os.environ.pop("MISTRAL_API_KEY", None)

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from finance_tracker import models
from finance_tracker.auth import token_blacklist
from finance_tracker.dependencies import (
    get_chat_client, get_db, get_email_service, get_llm_client, get_redis
)
from finance_tracker.email_service import EmailService
from finance_tracker.llm import LLMClient
from finance_tracker.main import app

# --- Test Database Setup ---
# A single in-memory SQLite connection shared by every session in a test.
SQLALCHEMY_DATABASE_URL = "sqlite://"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEST_PASSWORD = "Password123"


# --- Pytest Fixtures ---

@pytest.fixture(scope="function")
def db_session():
    """
    Create all tables, yield a session for the test, then drop everything
    so the next test starts clean.
    """
    models.Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        models.Base.metadata.drop_all(bind=engine)


@pytest.fixture
def llm_client():
    """Configured LLM client that never leaves the process."""
    client = MagicMock(spec=LLMClient)
    client.is_configured = True
    client.complete.return_value = "[]"
    return client


@pytest.fixture
def email_service():
    service = MagicMock(spec=EmailService)
    service.send_otp.return_value = True
    service.send_password_reset.return_value = True
    return service


@pytest.fixture(scope="function")
def client(db_session, llm_client, email_service):
    """
    TestClient wired to the in-memory database, with Redis disabled
    and the LLM and SMTP services replaced by mocks.
    """

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: None
    app.dependency_overrides[get_llm_client] = lambda: llm_client
    app.dependency_overrides[get_chat_client] = lambda: llm_client
    app.dependency_overrides[get_email_service] = lambda: email_service

    yield TestClient(app)

    app.dependency_overrides.clear()
    token_blacklist.clear()


def register_user(client: TestClient, email: str = "user@example.com", password: str = TEST_PASSWORD) -> dict:
    response = client.post(
        "/auth/register",
        json={"email": email, "password": password, "confirm_password": password},
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def register(client):
    """Helper that registers an account through the API and returns its tokens."""
    return lambda email="user@example.com", password=TEST_PASSWORD: register_user(client, email, password)


@pytest.fixture
def auth_headers(client):
    """Bearer headers for a freshly registered user."""
    tokens = register_user(client)
    return {"Authorization": f"Bearer {tokens['access_token']}"}


@pytest.fixture
def other_headers(client):
    """Bearer headers for a second, unrelated user."""
    tokens = register_user(client, email="other@example.com")
    return {"Authorization": f"Bearer {tokens['access_token']}"}


@pytest.fixture
def category_id(client, auth_headers):
    """Id of one of the default expense categories."""
    response = client.get("/categories/?type=expense", headers=auth_headers)
    return next(c["id"] for c in response.json() if c["name"] == "Food & Dining")


@pytest.fixture
def income_category_id(client, auth_headers):
    response = client.get("/categories/?type=income", headers=auth_headers)
    return next(c["id"] for c in response.json() if c["name"] == "Salary")
