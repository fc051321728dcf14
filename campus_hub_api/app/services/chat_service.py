"""
Campus assistant backed by an OpenAI-compatible chat completions API.

The request is forwarded with ``stream=True``; the upstream answers
with server-sent events (``data: {...}`` lines) and only the text
deltas are relayed to the client.  A short summary of current
communities and events is prepended as a system message so the
assistant can answer questions about them.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterator, List, Optional

import requests

from campus_hub_api.app.core.config import settings
from campus_hub_api.app.core.db import get_connection

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are the AI Assistant for Campus Hub (Unified Campus Resource & Event Manager). "
    "Your purpose is to help students and staff streamline campus activities, book resources, "
    "and collaborate.\n\n"
    "Features you know about:\n"
    "- **Communities**: Students can join and create communities for interests/clubs "
    "(Dashboard > Communities).\n"
    "- **General Chat**: A campus-wide chatroom for everyone.\n"
    "- **Events**: Users can track and join campus events.\n"
    "- **Resources**: Booking system for campus resources.\n"
    "{context}\n\n"
    "Be helpful, friendly, and concise. If you don't know something, suggest checking the Dashboard."
)


class ChatError(Exception):
    """Raised when the assistant cannot be reached; carries the HTTP status to answer with."""

    def __init__(self, status_code: int, message: str, details: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.details = details


def site_context() -> str:
    """Summarise up to ten communities and five events for the prompt."""
    conn = get_connection()
    try:
        communities = conn.execute("SELECT name, description FROM communities ORDER BY id LIMIT 10").fetchall()
        events = conn.execute(
            "SELECT title, start_date, location FROM events ORDER BY start_date LIMIT 5"
        ).fetchall()
    finally:
        conn.close()
    lines = ["", "**CURRENT SITE DATA:**"]
    if communities:
        lines.append("Active Communities:")
        lines.extend(f"- {c['name']}: {c['description'] or 'No description'}" for c in communities)
    else:
        lines.append("Active Communities: None currently created.")
    if events:
        lines.append("")
        lines.append("Upcoming Events:")
        lines.extend(f"- {e['title']} ({e['start_date']}) at {e['location']}" for e in events)
    return "\n".join(lines)


def open_stream(messages: List[Dict[str, Any]]) -> requests.Response:
    """Start a streaming completion.

    Raises :class:`ChatError` with 500 when no API key is configured,
    the upstream status when it refuses the request and 502 when it
    cannot be reached.
    """
    if not settings.openrouter_api_key:
        raise ChatError(500, "Missing OpenRouter API Key")
    payload = {
        "model": settings.openrouter_model,
        "messages": [{"role": "system", "content": SYSTEM_PROMPT.format(context=site_context())}, *messages],
        "stream": True,
    }
    headers = {
        "Authorization": f"Bearer {settings.openrouter_api_key}",
        "Content-Type": "application/json",
        "X-Title": settings.project_name,
    }
    try:
        response = requests.post(
            settings.openrouter_url,
            json=payload,
            headers=headers,
            stream=True,
            timeout=settings.chat_timeout,
        )
    except requests.RequestException as exc:
        logger.error("Chat upstream request failed: %s", exc)
        raise ChatError(502, "Chat service unavailable") from exc
    if not response.ok:
        details = response.text
        logger.error("Chat upstream error %s: %s", response.status_code, details)
        response.close()
        raise ChatError(response.status_code, f"OpenRouter API Error: {response.reason}", details)
    return response


def iter_deltas(response: requests.Response) -> Iterator[str]:
    """Yield the text deltas of an SSE completion stream."""
    try:
        for line in response.iter_lines(decode_unicode=True):
            if not line or not line.startswith("data: ") or line == "data: [DONE]":
                continue
            try:
                data = json.loads(line[len("data: "):])
                content = (data.get("choices") or [{}])[0].get("delta", {}).get("content")
            except (ValueError, AttributeError, IndexError):
                # Partial or non-JSON keep-alive lines.
                continue
            if content:
                yield content
    except requests.RequestException as exc:
        logger.error("Chat stream interrupted: %s", exc)
    finally:
        response.close()
