"""
Notification feed.

The feed is assembled from four independent read-only sources: events
the user attends that start within a day, the user's bookings starting
within a day, pending resource approvals (administrators only) and
recent messages from other members in the user's communities.  The
sources do not depend on each other, so they are queried concurrently
with ``asyncio.gather``; each branch runs its SQLite work in a worker
thread with its own connection.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from campus_hub_api.app.core.db import get_connection, parse_db_timestamp, to_db_timestamp, utcnow
from campus_hub_api.app.core.roles import Role, RoleLike, parse_role
from campus_hub_api.app.schemas.notification import Notification, NotificationFeed

logger = logging.getLogger(__name__)

LOOKAHEAD = timedelta(hours=24)
BRANCH_LIMIT = 5
FEED_LIMIT = 10
PREVIEW_LENGTH = 50


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def _hours_until(start: Optional[datetime], now: datetime) -> int:
    if start is None:
        return 0
    return round((start - now).total_seconds() / 3600)


def _upcoming_events(user_id: int, now: datetime) -> List[Notification]:
    conn = get_connection()
    try:
        rows = conn.execute(
            """
            SELECT e.id, e.title, e.start_date
            FROM events e
            JOIN event_attendees a ON a.event_id = e.id
            WHERE a.user_id = ? AND e.start_date >= ? AND e.start_date <= ?
            ORDER BY e.start_date ASC
            LIMIT ?
            """,
            (user_id, to_db_timestamp(now), to_db_timestamp(now + LOOKAHEAD), BRANCH_LIMIT),
        ).fetchall()
    finally:
        conn.close()
    notifications = []
    for row in rows:
        start = parse_db_timestamp(row["start_date"])
        hours = _hours_until(start, now)
        notifications.append(
            Notification(
                id=f"event-{row['id']}",
                type="event",
                title="Upcoming Event",
                message=f"{row['title']} starts in {_plural(hours, 'hour')}",
                link=f"/dashboard/events/{row['id']}",
                time=start or now,
            )
        )
    return notifications


def _upcoming_bookings(user_id: int, now: datetime) -> List[Notification]:
    conn = get_connection()
    try:
        rows = conn.execute(
            """
            SELECT b.id, b.start_time, r.id AS resource_id, r.name AS resource_name
            FROM bookings b
            JOIN resources r ON r.id = b.resource_id
            WHERE b.user_id = ? AND b.status IN ('confirmed', 'pending')
              AND b.start_time >= ? AND b.start_time <= ?
            ORDER BY b.start_time ASC
            LIMIT ?
            """,
            (user_id, to_db_timestamp(now), to_db_timestamp(now + LOOKAHEAD), BRANCH_LIMIT),
        ).fetchall()
    finally:
        conn.close()
    notifications = []
    for row in rows:
        start = parse_db_timestamp(row["start_time"])
        hours = _hours_until(start, now)
        notifications.append(
            Notification(
                id=f"booking-{row['id']}",
                type="booking",
                title="Upcoming Booking",
                message=f"Your booking for {row['resource_name']} starts in {_plural(hours, 'hour')}",
                link=f"/dashboard/resources/{row['resource_id']}",
                time=start or now,
            )
        )
    return notifications


def _pending_approvals(role: RoleLike, now: datetime) -> List[Notification]:
    if parse_role(role) is not Role.ADMIN:
        return []
    conn = get_connection()
    try:
        pending = conn.execute("SELECT COUNT(*) FROM resources WHERE status = 'pending'").fetchone()[0]
    finally:
        conn.close()
    if not pending:
        return []
    return [
        Notification(
            id="pending-approvals",
            type="approval",
            title="Resource Approvals",
            message=f"{_plural(pending, 'resource')} pending approval",
            link="/dashboard/resources/approvals",
            time=now,
        )
    ]


def _recent_messages(user_id: int, now: datetime) -> List[Notification]:
    conn = get_connection()
    try:
        rows = conn.execute(
            """
            SELECT cm.id, cm.message, cm.created_at, c.id AS community_id, c.name AS community_name,
                   u.full_name AS sender
            FROM community_messages cm
            JOIN communities c ON c.id = cm.community_id
            JOIN users u ON u.id = cm.user_id
            WHERE cm.community_id IN (SELECT community_id FROM community_members WHERE user_id = ?)
              AND cm.user_id != ? AND cm.created_at >= ?
            ORDER BY cm.created_at DESC
            LIMIT ?
            """,
            (user_id, user_id, to_db_timestamp(now - LOOKAHEAD), BRANCH_LIMIT),
        ).fetchall()
    finally:
        conn.close()
    notifications = []
    for row in rows:
        text = row["message"]
        if len(text) > PREVIEW_LENGTH:
            text = text[:PREVIEW_LENGTH] + "..."
        notifications.append(
            Notification(
                id=f"message-{row['id']}",
                type="message",
                title=f"New message in {row['community_name']}",
                message=f"{row['sender']}: {text}",
                link=f"/dashboard/communities/{row['community_id']}",
                time=parse_db_timestamp(row["created_at"]) or now,
            )
        )
    return notifications


class NotificationService:
    """Builds the per-user notification feed."""

    @classmethod
    async def feed(cls, user_id: int, role: RoleLike, now: Optional[datetime] = None) -> NotificationFeed:
        """Merge all sources, newest first, keeping the ten most recent."""
        now = now or utcnow()
        branches = await asyncio.gather(
            asyncio.to_thread(_upcoming_events, user_id, now),
            asyncio.to_thread(_upcoming_bookings, user_id, now),
            asyncio.to_thread(_pending_approvals, role, now),
            asyncio.to_thread(_recent_messages, user_id, now),
        )
        notifications = [item for branch in branches for item in branch]
        notifications.sort(key=lambda n: n.time, reverse=True)
        logger.debug("Built %d notification(s) for user %s", len(notifications), user_id)
        return NotificationFeed(
            notifications=notifications[:FEED_LIMIT],
            unread_count=sum(1 for n in notifications if n.unread),
        )
