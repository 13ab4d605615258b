"""
Pytest configuration and fixtures for AI Counsellor tests
"""

import os

# Must be set before any project module reads settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["OPENROUTER_API_KEY"] = ""
os.environ["GEMINI_API_KEY"] = ""
os.environ["PROVIDER_BACKOFF_SECONDS"] = "0"

import pytest
from fastapi.testclient import TestClient

from database import engine
from errors import ProviderUnavailable
from fallback import FallbackExecutor, get_executor
from main import app
from models import Base


class FakeBackend:
    """
    Scripted completion backend.

    `replies` maps model name -> reply text or exception; `default` covers
    every other model. A missing reply raises ProviderUnavailable.
    """

    def __init__(self, default=None, replies=None):
        self.default = default
        self.replies = dict(replies or {})
        self.calls = []

    async def complete(self, messages, model, timeout):
        self.calls.append({"messages": messages, "model": model, "timeout": timeout})
        reply = self.replies.get(model, self.default)
        if reply is None:
            raise ProviderUnavailable("no scripted reply")
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture(autouse=True)
def reset_database():
    """Fresh schema for every test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def llm():
    """OpenRouter stand-in; tests set `llm.default` to script the reply"""
    return FakeBackend(default="Focus on strong Target universities that fit your budget.")


@pytest.fixture
def executor(llm):
    return FallbackExecutor(
        backends={"openrouter": llm, "gemini": FakeBackend()},
        backoff_seconds=0,
    )


@pytest.fixture
def client(executor):
    app.dependency_overrides[get_executor] = lambda: executor
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client, email="a@b.com", password="secret123", full_name="Ada Student"):
    """Register a user and return bearer headers"""
    response = client.post(
        "/auth/register",
        json={"fullName": full_name, "email": email, "password": password},
    )
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


PROFILE_PAYLOAD = {
    "currentEducationLevel": "Bachelor",
    "degree": "B.Tech",
    "major": "Computer Science",
    "graduationYear": 2024,
    "gpa": 3.6,
    "intendedDegree": "Master",
    "fieldOfStudy": "Computer Science",
    "targetIntakeYear": 2026,
    "preferredCountries": ["USA", "Canada"],
    "budgetPerYear": {"min": 20000, "max": 50000},
    "fundingPlan": "Self-funded",
    "ielts": {"status": "Completed", "score": 7.5},
    "gre": {"status": "Preparing"},
    "sopStatus": "Draft",
}


def create_profile(client, headers, **overrides):
    payload = {**PROFILE_PAYLOAD, **overrides}
    response = client.post("/profile", json=payload, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
def auth_headers(client):
    return register(client)
