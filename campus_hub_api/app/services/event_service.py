"""
Business logic for events and event registration.

``events.attendee_count`` is a denormalised counter kept for list
views.  It is never computed in Python and written back: every
registration change refreshes it with a single ``UPDATE ... SET
attendee_count = (SELECT COUNT(*) ...)`` in the same transaction as
the insert or delete, and duplicate registrations are rejected by the
``UNIQUE(event_id, user_id)`` constraint.
"""

import logging
import sqlite3
from typing import List

from campus_hub_api.app.core.db import get_connection, now_timestamp, parse_db_timestamp, to_db_timestamp
from campus_hub_api.app.core.roles import is_admin
from campus_hub_api.app.schemas.event import AttendeeRead, EventCreate, EventDetail, EventRead
from campus_hub_api.app.schemas.user import UserSummary
from campus_hub_api.app.services.audit_service import AuditService

logger = logging.getLogger(__name__)

EVENT_COLUMNS = (
    "id, title, description, start_date, end_date, location, image_url, status, "
    "organizer_id, attendee_count, created_at"
)

REFRESH_ATTENDEE_COUNT = (
    "UPDATE events SET attendee_count = "
    "(SELECT COUNT(*) FROM event_attendees WHERE event_id = ?) WHERE id = ?"
)


def _to_event(row: sqlite3.Row) -> EventRead:
    return EventRead(**dict(row))


def _check_merged(row: sqlite3.Row, values: dict) -> None:
    """Validate the stored event with ``values`` applied on top."""
    merged = {**dict(row), **values}
    for key in ("title", "location"):
        if not (merged[key] or "").strip():
            raise ValueError(f"{key} must not be empty")
    start = parse_db_timestamp(merged["start_date"])
    end = parse_db_timestamp(merged["end_date"])
    if start and end and end < start:
        raise ValueError("end_date must not be before start_date")


def _ensure_can_edit(row: sqlite3.Row, current_user: dict) -> None:
    if is_admin(current_user.get("role")):
        return
    if row["organizer_id"] != current_user.get("user_id"):
        raise PermissionError("Only the event organizer or an admin can modify this event")


class EventService:
    """Service for managing events and their attendees."""

    @classmethod
    async def list_events(cls) -> List[EventRead]:
        """All events, most recently created first."""
        conn = get_connection()
        try:
            rows = conn.execute(f"SELECT {EVENT_COLUMNS} FROM events ORDER BY created_at DESC, id DESC").fetchall()
            return [_to_event(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def get_event(cls, event_id: int) -> EventDetail:
        """Event with its organizer and a live attendee count.

        Raises ``LookupError`` if the event does not exist.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(f"SELECT {EVENT_COLUMNS} FROM events WHERE id = ?", (event_id,)).fetchone()
            if not row:
                raise LookupError(f"Event {event_id} not found")
            organizer = None
            if row["organizer_id"] is not None:
                org_row = cursor.execute(
                    "SELECT id, full_name, email, avatar_url FROM users WHERE id = ?",
                    (row["organizer_id"],),
                ).fetchone()
                if org_row:
                    organizer = UserSummary(**dict(org_row))
            count = cursor.execute(
                "SELECT COUNT(*) FROM event_attendees WHERE event_id = ?", (event_id,)
            ).fetchone()[0]
        finally:
            conn.close()
        data = dict(row)
        data["attendee_count"] = count
        return EventDetail(**data, organizer=organizer)

    @classmethod
    async def create_event(cls, data: EventCreate, current_user: dict) -> EventRead:
        """Create an active event organised by the caller."""
        user_id = current_user.get("user_id")
        logger.info("User %s is creating event '%s'", user_id, data.title)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO events (title, description, start_date, end_date, location, image_url,
                    status, organizer_id, attendee_count, created_at)
                VALUES (?, ?, ?, ?, ?, ?, 'active', ?, 0, ?)
                """,
                (
                    data.title,
                    data.description,
                    to_db_timestamp(data.start_date),
                    to_db_timestamp(data.end_date),
                    data.location,
                    data.image_url,
                    user_id,
                    now_timestamp(),
                ),
            )
            event_id = cursor.lastrowid
            conn.commit()
            row = cursor.execute(f"SELECT {EVENT_COLUMNS} FROM events WHERE id = ?", (event_id,)).fetchone()
        finally:
            conn.close()
        await AuditService.record(
            user_id=user_id, action="create", object_type="event", object_id=event_id, details={"title": data.title}
        )
        return _to_event(row)

    @classmethod
    async def update_event(cls, event_id: int, updates: dict, current_user: dict) -> EventRead:
        """Apply a partial update.

        Raises ``LookupError`` if the event does not exist,
        ``PermissionError`` if the caller neither organises it nor is an
        administrator and ``ValueError`` if the merged event would end
        before it starts or lose its title or location.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(f"SELECT {EVENT_COLUMNS} FROM events WHERE id = ?", (event_id,)).fetchone()
            if not row:
                raise LookupError(f"Event {event_id} not found")
            _ensure_can_edit(row, current_user)
            values = {}
            for key, value in updates.items():
                if key in ("start_date", "end_date") and value is not None:
                    value = to_db_timestamp(value)
                values[key] = value
            _check_merged(row, values)
            if values:
                assignments = ", ".join(f"{key} = ?" for key in values)
                cursor.execute(
                    f"UPDATE events SET {assignments} WHERE id = ?",
                    (*values.values(), event_id),
                )
                conn.commit()
            row = cursor.execute(f"SELECT {EVENT_COLUMNS} FROM events WHERE id = ?", (event_id,)).fetchone()
        finally:
            conn.close()
        await AuditService.record(
            user_id=current_user.get("user_id"),
            action="update",
            object_type="event",
            object_id=event_id,
            details=values,
        )
        return _to_event(row)

    @classmethod
    async def delete_event(cls, event_id: int, current_user: dict) -> None:
        """Delete an event; attendee rows go with it (``ON DELETE CASCADE``)."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute("SELECT id, organizer_id FROM events WHERE id = ?", (event_id,)).fetchone()
            if not row:
                raise LookupError(f"Event {event_id} not found")
            _ensure_can_edit(row, current_user)
            cursor.execute("DELETE FROM events WHERE id = ?", (event_id,))
            conn.commit()
        finally:
            conn.close()
        await AuditService.record(
            user_id=current_user.get("user_id"), action="delete", object_type="event", object_id=event_id
        )

    @classmethod
    async def list_attendees(cls, event_id: int) -> List[AttendeeRead]:
        """Attendees of an event, latest registration first."""
        conn = get_connection()
        try:
            rows = conn.execute(
                """
                SELECT a.id, a.event_id, a.user_id, a.registered_at,
                       u.full_name, u.email, u.avatar_url
                FROM event_attendees a
                LEFT JOIN users u ON u.id = a.user_id
                WHERE a.event_id = ?
                ORDER BY a.registered_at DESC, a.id DESC
                """,
                (event_id,),
            ).fetchall()
        finally:
            conn.close()
        return [
            AttendeeRead(
                id=row["id"],
                event_id=row["event_id"],
                user_id=row["user_id"],
                registered_at=row["registered_at"],
                user=UserSummary(
                    id=row["user_id"], full_name=row["full_name"], email=row["email"], avatar_url=row["avatar_url"]
                ),
            )
            for row in rows
        ]

    @classmethod
    async def register(cls, event_id: int, user_id: int) -> AttendeeRead:
        """Register a user for an active event.

        Raises ``LookupError`` if the event does not exist and
        ``ValueError`` if it is not accepting registrations or the user
        is already registered.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            event = cursor.execute("SELECT id, status FROM events WHERE id = ?", (event_id,)).fetchone()
            if not event:
                raise LookupError(f"Event {event_id} not found")
            if event["status"] != "active":
                raise ValueError("This event is not currently accepting registrations")
            try:
                cursor.execute(
                    "INSERT INTO event_attendees (event_id, user_id, registered_at) VALUES (?, ?, ?)",
                    (event_id, user_id, now_timestamp()),
                )
            except sqlite3.IntegrityError:
                raise ValueError("You are already registered for this event")
            attendee_id = cursor.lastrowid
            cursor.execute(REFRESH_ATTENDEE_COUNT, (event_id, event_id))
            conn.commit()
        finally:
            conn.close()
        logger.info("User %s registered for event %s", user_id, event_id)
        await AuditService.record(
            user_id=user_id, action="register", object_type="event", object_id=event_id
        )
        attendees = await cls.list_attendees(event_id)
        return next(a for a in attendees if a.id == attendee_id)

    @classmethod
    async def unregister(cls, event_id: int, user_id: int) -> None:
        """Remove a user's registration.  Raises ``ValueError`` if there is none."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM event_attendees WHERE event_id = ? AND user_id = ?",
                (event_id, user_id),
            )
            if cursor.rowcount == 0:
                raise ValueError("You are not registered for this event")
            cursor.execute(REFRESH_ATTENDEE_COUNT, (event_id, event_id))
            conn.commit()
        finally:
            conn.close()
        logger.info("User %s unregistered from event %s", user_id, event_id)
        await AuditService.record(
            user_id=user_id, action="unregister", object_type="event", object_id=event_id
        )

    @classmethod
    async def recount_attendees(cls) -> int:
        """Refresh every stored attendee count.  Returns the number of events."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE events SET attendee_count = "
                "(SELECT COUNT(*) FROM event_attendees a WHERE a.event_id = events.id)"
            )
            updated = cursor.rowcount
            conn.commit()
        finally:
            conn.close()
        return updated
