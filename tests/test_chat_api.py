import json

import pytest
import requests

from campus_hub_api.app.core.config import settings

from tests.conftest import API

BODY = {"messages": [{"role": "user", "content": "What's on this week?"}]}


class FakeResponse:
    def __init__(self, lines=(), status_code=200, text=""):
        self._lines = list(lines)
        self.status_code = status_code
        self.ok = status_code < 400
        self.reason = "Too Many Requests" if status_code == 429 else "OK"
        self.text = text
        self.closed = False

    def iter_lines(self, decode_unicode=False):
        yield from self._lines

    def close(self):
        self.closed = True


def _sse(content):
    return "data: " + json.dumps({"choices": [{"delta": {"content": content}}]})


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setattr(settings, "openrouter_api_key", "test-key")


def test_stream_relays_text_deltas(client, api_key, organizer, monkeypatch):
    client.post(f"{API}/communities/", headers=organizer[0], json={"name": "Chess Club", "description": "Weekly games"})
    captured = {}
    upstream = FakeResponse([_sse("Hello"), "", ": keep-alive", "data: {broken", _sse(" there"), "data: [DONE]"])

    def fake_post(url, **kwargs):
        captured["url"] = url
        captured.update(kwargs)
        return upstream

    monkeypatch.setattr(requests, "post", fake_post)
    resp = client.post(f"{API}/chat/", json=BODY)
    assert resp.status_code == 200
    assert resp.text == "Hello there"
    assert upstream.closed

    assert captured["url"] == settings.openrouter_url
    assert captured["stream"] is True
    assert captured["headers"]["Authorization"] == "Bearer test-key"
    messages = captured["json"]["messages"]
    assert messages[0]["role"] == "system"
    assert "Chess Club: Weekly games" in messages[0]["content"]
    assert messages[1:] == BODY["messages"]


def test_missing_api_key_is_500(client, monkeypatch):
    monkeypatch.setattr(settings, "openrouter_api_key", "")
    resp = client.post(f"{API}/chat/", json=BODY)
    assert resp.status_code == 500
    assert resp.json()["detail"]["message"] == "Missing OpenRouter API Key"


def test_upstream_status_is_passed_through(client, api_key, monkeypatch):
    monkeypatch.setattr(requests, "post", lambda url, **kwargs: FakeResponse(status_code=429, text="slow down"))
    resp = client.post(f"{API}/chat/", json=BODY)
    assert resp.status_code == 429
    assert resp.json()["detail"]["details"] == "slow down"


def test_unreachable_upstream_is_502(client, api_key, monkeypatch):
    def fail(url, **kwargs):
        raise requests.ConnectionError("no route to host")

    monkeypatch.setattr(requests, "post", fail)
    assert client.post(f"{API}/chat/", json=BODY).status_code == 502


def test_empty_conversation_is_rejected(client):
    assert client.post(f"{API}/chat/", json={"messages": []}).status_code == 422
