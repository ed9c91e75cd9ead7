import pytest
from fastapi.testclient import TestClient

from course_catalog.api import create_app
from course_catalog.store import InMemoryStore
from course_catalog.tokens import TokenService


@pytest.fixture
def store():
    """Provide a freshly seeded in-memory store for each test."""
    store = InMemoryStore()
    store.init()
    return store


@pytest.fixture
def tokens():
    return TokenService(secret="test-secret")


@pytest.fixture
def client(store, tokens):
    return TestClient(create_app(store=store, tokens=tokens))


@pytest.fixture
def auth_headers(client):
    resp = client.post("/api/auth/login", json={"username": "user", "password": "user123"})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['data']['token']}"}


@pytest.fixture
def course_payload():
    return {
        "title": "T",
        "description": "D",
        "category": "C",
        "level": "beginner",
        "duration": 5,
        "published": False,
    }
