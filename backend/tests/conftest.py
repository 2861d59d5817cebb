"""Pytest configuration and fixtures."""

import os

# Must be set before the application modules read settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ADMIN_EMAIL"] = "admin@example.com"
os.environ["ADMIN_PASSWORD"] = "s3cret-pass"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ.pop("GEMINI_API_KEY", None)
os.environ.pop("OPENROUTER_API_KEY", None)

import pytest
from fastapi.testclient import TestClient

from pragma_score.db import Base, SessionLocal, engine
from pragma_score.main import app


@pytest.fixture(autouse=True)
def fresh_schema():
    """Give every test an empty database."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_client(client):
    response = client.post(
        "/admin/auth", json={"email": "admin@example.com", "password": "s3cret-pass"}
    )
    assert response.status_code == 200
    return client


@pytest.fixture
def baseline_responses():
    """A mid-tier answer for every scored question."""
    return {
        "control-2": 3,
        "control-3": "1-3 months",
        "control-4": 3,
        "clarity-1": "I'd need to check",
        "clarity-3": 3,
        "clarity-4": 3,
        "leverage-1": 3,
        "leverage-3": 3,
        "friction-2": 3,
        "friction-3": "1 month",
        "friction-5": "3-5 hours",
        "change-1": "6-12 months ago",
        "change-3": 3,
        "change-4": "We'd need to hire someone",
        "change-6": "Within a quarter",
        "ai-invest-1": "$100-$500/month",
        "ai-invest-2": 3,
        "ai-invest-3": "Considering it",
    }
