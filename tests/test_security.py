from campus_hub_api.app.core.db import get_connection
from campus_hub_api.app.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)

from tests.conftest import API


def test_password_hash_roundtrip():
    hashed = hash_password("s3cret-pass")
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("s3cret-pass", None)
    assert not verify_password("s3cret-pass", "garbage")


def test_token_decoding():
    token = create_access_token({"sub": "42"})
    assert decode_access_token(token)["sub"] == "42"
    assert decode_access_token(token + "x") is None
    assert decode_access_token("not.a.token") is None
    assert decode_access_token(create_access_token({"sub": "1"}, expires_delta=-10)) is None


def test_missing_token_is_401(client):
    resp = client.get(f"{API}/users/me")
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Bearer"


def test_invalid_token_is_401(client):
    resp = client.get(f"{API}/users/me", headers={"Authorization": "Bearer nonsense"})
    assert resp.status_code == 401


def test_forbidden_carries_current_role(client, student):
    headers, _ = student
    resp = client.post(f"{API}/events/", headers=headers, json={
        "title": "Nope", "start_date": "2030-01-01T10:00:00Z", "end_date": "2030-01-01T12:00:00Z", "location": "Hall",
    })
    assert resp.status_code == 403
    detail = resp.json()["detail"]
    assert detail["current_role"] == "user"
    assert "organizers" in detail["message"].lower()


def test_role_is_read_from_storage_on_each_request(client, make_user):
    headers, user_id = make_user("organizer")
    assert client.get(f"{API}/users/me", headers=headers).json()["can_manage_content"] is True
    conn = get_connection()
    try:
        conn.execute("UPDATE users SET role = 'user' WHERE id = ?", (user_id,))
        conn.commit()
    finally:
        conn.close()
    me = client.get(f"{API}/users/me", headers=headers).json()
    assert me["role"] == "user"
    assert me["can_manage_content"] is False


def test_disabled_account_is_rejected(client, student):
    headers, user_id = student
    conn = get_connection()
    try:
        conn.execute("UPDATE users SET disabled = 1 WHERE id = ?", (user_id,))
        conn.commit()
    finally:
        conn.close()
    assert client.get(f"{API}/users/me", headers=headers).status_code == 401


def test_storage_failure_during_role_lookup_is_500(client, student, monkeypatch):
    import sqlite3

    from campus_hub_api.app.core import security

    headers, _ = student

    def broken_connection():
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(security, "get_connection", broken_connection)
    resp = client.get(f"{API}/users/me", headers=headers)
    assert resp.status_code == 500
    assert resp.json()["detail"] == "Failed to fetch user profile"


def test_token_for_unknown_user_is_401(client):
    headers = {"Authorization": f"Bearer {create_access_token({'sub': '999'})}"}
    resp = client.get(f"{API}/users/me", headers=headers)
    assert resp.status_code == 401
    assert resp.json()["detail"] == "User no longer exists"
