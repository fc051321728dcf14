"""Pytest fixtures: a throwaway database and helpers for authenticated calls."""

import pytest
from fastapi.testclient import TestClient

from campus_hub_api.app.core.config import settings
from campus_hub_api.app.core.db import init_db
from campus_hub_api.app.main import app

API = "/api/v1"
PASSWORD = "correct-horse-battery"


@pytest.fixture(autouse=True)
def database(tmp_path, monkeypatch):
    """Point the application at a fresh SQLite file for every test."""
    db_path = tmp_path / "campus_hub_test.db"
    monkeypatch.setattr(settings, "database_url", str(db_path))
    init_db()
    return db_path


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user(client):
    """Register a user with the given role and return ``(headers, user_id)``."""
    counter = {"n": 0}

    def _make(role: str = "user", email: str = None, full_name: str = None):
        counter["n"] += 1
        email = email or f"{role}{counter['n']}@campus.edu"
        resp = client.post(
            f"{API}/users/",
            json={"email": email, "password": PASSWORD, "full_name": full_name or email.split("@")[0], "role": role},
        )
        assert resp.status_code == 201, resp.text
        user_id = resp.json()["id"]
        resp = client.post(f"{API}/users/login", json={"email": email, "password": PASSWORD})
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}, user_id

    return _make


@pytest.fixture
def admin(make_user):
    return make_user("admin")


@pytest.fixture
def organizer(make_user):
    return make_user("organizer")


@pytest.fixture
def student(make_user):
    return make_user("user")
