"""
Service layer for the personal dashboard and campus analytics.

All queries are read-only.  The dashboard is scoped to the caller;
analytics aggregate the whole campus.  Grouping by month is done in
Python over parsed timestamps, which keeps the SQL independent of how
SQLite's date functions treat the stored offset suffix.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from campus_hub_api.app.core.db import get_connection, parse_db_timestamp, to_db_timestamp, utcnow
from campus_hub_api.app.schemas.notification import (
    Analytics,
    AnalyticsChanges,
    AnalyticsTotals,
    DashboardCounters,
    DashboardStats,
    MonthlyActivity,
    ResourceShare,
)

logger = logging.getLogger(__name__)

ACTIVE_BOOKING_STATUSES = ("confirmed", "pending")
COUNTED_BOOKING_STATUSES = ("confirmed", "pending", "completed")
COUNTED_EVENT_STATUSES = ("active", "past")
ANALYTICS_MONTHS = 6


def shift_months(moment: datetime, months: int) -> datetime:
    """Move ``moment`` by whole calendar months, clamping the day."""
    month_index = moment.year * 12 + (moment.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    for day in (moment.day, 30, 29, 28):
        try:
            return moment.replace(year=year, month=month, day=day)
        except ValueError:
            continue
    raise ValueError(f"Cannot shift {moment!r} by {months} months")


def percent_change(current: int, previous: int) -> int:
    """Rounded percentage change; 0 when there is no previous value."""
    if not previous:
        return 0
    return round((current - previous) / previous * 100)


def resource_label(resource_type: str) -> str:
    label = resource_type.replace("_", " ", 1)
    return label[:1].upper() + label[1:]


def _placeholders(values: tuple) -> str:
    return ", ".join("?" for _ in values)


class StatisticsService:
    """Aggregated figures for the dashboard and the analytics page."""

    @classmethod
    async def dashboard(cls, user_id: int, now: Optional[datetime] = None) -> DashboardStats:
        """Counters and short lists for the caller's dashboard.

        ``resource_usage`` is the share of approved resources covered by
        active (pending or confirmed, not yet ended) bookings, as a
        percentage string.
        """
        now_ts = to_db_timestamp(now or utcnow())
        active = ACTIVE_BOOKING_STATUSES
        conn = get_connection()
        try:
            cursor = conn.cursor()
            upcoming_events = cursor.execute(
                "SELECT COUNT(*) FROM events WHERE start_date >= ? AND status = 'active'", (now_ts,)
            ).fetchone()[0]
            booked_resources = cursor.execute(
                f"SELECT COUNT(*) FROM bookings WHERE user_id = ? AND end_time >= ? "
                f"AND status IN ({_placeholders(active)})",
                (user_id, now_ts, *active),
            ).fetchone()[0]
            communities_joined = cursor.execute(
                "SELECT COUNT(*) FROM community_members WHERE user_id = ?", (user_id,)
            ).fetchone()[0]
            total_resources = cursor.execute(
                "SELECT COUNT(*) FROM resources WHERE status = 'approved'"
            ).fetchone()[0]
            active_bookings = cursor.execute(
                f"SELECT COUNT(*) FROM bookings WHERE end_time >= ? AND status IN ({_placeholders(active)})",
                (now_ts, *active),
            ).fetchone()[0]
            event_rows = cursor.execute(
                """
                SELECT e.id, e.title, e.start_date, e.location, e.status,
                       EXISTS (SELECT 1 FROM event_attendees a
                               WHERE a.event_id = e.id AND a.user_id = ?) AS is_attending
                FROM events e
                WHERE e.start_date >= ? AND e.status = 'active'
                ORDER BY e.start_date ASC
                LIMIT 3
                """,
                (user_id, now_ts),
            ).fetchall()
            booking_rows = cursor.execute(
                f"""
                SELECT b.id, b.resource_id, b.start_time, b.end_time, b.purpose, b.status,
                       r.name AS resource_name, r.resource_type
                FROM bookings b
                JOIN resources r ON r.id = b.resource_id
                WHERE b.user_id = ? AND b.end_time >= ? AND b.status IN ({_placeholders(active)})
                ORDER BY b.start_time ASC
                LIMIT 3
                """,
                (user_id, now_ts, *active),
            ).fetchall()
        finally:
            conn.close()

        usage = round(active_bookings / total_resources * 100) if total_resources else 0
        recent_events: List[Dict[str, Any]] = []
        for row in event_rows:
            item = dict(row)
            item["is_attending"] = bool(item["is_attending"])
            recent_events.append(item)
        user_bookings: List[Dict[str, Any]] = []
        for row in booking_rows:
            item = dict(row)
            item["resource"] = {
                "id": item["resource_id"],
                "name": item.pop("resource_name"),
                "type": item.pop("resource_type"),
            }
            user_bookings.append(item)
        return DashboardStats(
            stats=DashboardCounters(
                upcoming_events=upcoming_events,
                booked_resources=booked_resources,
                communities_joined=communities_joined,
                resource_usage=f"{usage}%",
            ),
            recent_events=recent_events,
            user_bookings=user_bookings,
        )

    @classmethod
    async def analytics(cls, now: Optional[datetime] = None) -> Analytics:
        """Campus-wide totals, monthly activity and resource mix.

        ``event_data`` covers the current month and the five before it,
        oldest first.  ``changes`` compares the last month with the one
        before it.
        """
        now = now or utcnow()
        one_month_ago = to_db_timestamp(shift_months(now, -1))
        two_months_ago = to_db_timestamp(shift_months(now, -2))
        window_start = to_db_timestamp(shift_months(now, -ANALYTICS_MONTHS))
        events_in = _placeholders(COUNTED_EVENT_STATUSES)
        bookings_in = _placeholders(COUNTED_BOOKING_STATUSES)

        conn = get_connection()
        try:
            cursor = conn.cursor()
            total_events = cursor.execute(
                f"SELECT COUNT(*) FROM events WHERE status IN ({events_in})", COUNTED_EVENT_STATUSES
            ).fetchone()[0]
            total_attendees = cursor.execute("SELECT COUNT(*) FROM event_attendees").fetchone()[0]
            total_bookings = cursor.execute(
                f"SELECT COUNT(*) FROM bookings WHERE status IN ({bookings_in})", COUNTED_BOOKING_STATUSES
            ).fetchone()[0]
            event_rows = cursor.execute(
                f"SELECT start_date, attendee_count FROM events "
                f"WHERE start_date >= ? AND status IN ({events_in}) ORDER BY start_date ASC",
                (window_start, *COUNTED_EVENT_STATUSES),
            ).fetchall()
            type_rows = cursor.execute(
                "SELECT resource_type, COUNT(*) AS count FROM resources "
                "WHERE status = 'approved' GROUP BY resource_type ORDER BY resource_type"
            ).fetchall()

            def _window_counts(table: str, column: str, extra: str = "", params: tuple = ()) -> tuple[int, int]:
                current = cursor.execute(
                    f"SELECT COUNT(*) FROM {table} WHERE {column} >= ?{extra}", (one_month_ago, *params)
                ).fetchone()[0]
                previous = cursor.execute(
                    f"SELECT COUNT(*) FROM {table} WHERE {column} >= ? AND {column} < ?{extra}",
                    (two_months_ago, one_month_ago, *params),
                ).fetchone()[0]
                return current, previous

            events_window = _window_counts(
                "events", "start_date", f" AND status IN ({events_in})", COUNTED_EVENT_STATUSES
            )
            attendees_window = _window_counts("event_attendees", "registered_at")
            bookings_window = _window_counts(
                "bookings", "created_at", f" AND status IN ({bookings_in})", COUNTED_BOOKING_STATUSES
            )
        finally:
            conn.close()

        monthly: Dict[tuple, Dict[str, int]] = {}
        for row in event_rows:
            start = parse_db_timestamp(row["start_date"])
            if start is None:
                continue
            bucket = monthly.setdefault((start.year, start.month), {"events": 0, "attendees": 0})
            bucket["events"] += 1
            bucket["attendees"] += row["attendee_count"] or 0

        event_data = []
        for offset in range(ANALYTICS_MONTHS - 1, -1, -1):
            month = shift_months(now, -offset)
            bucket = monthly.get((month.year, month.month), {"events": 0, "attendees": 0})
            event_data.append(MonthlyActivity(month=month.strftime("%b"), **bucket))

        total_resources = sum(row["count"] for row in type_rows)
        resource_data = [
            ResourceShare(
                name=resource_label(row["resource_type"]),
                value=round(row["count"] / total_resources * 100) if total_resources else 0,
            )
            for row in type_rows
        ]

        return Analytics(
            stats=AnalyticsTotals(
                total_events=total_events,
                total_attendees=total_attendees,
                total_bookings=total_bookings,
            ),
            changes=AnalyticsChanges(
                events=percent_change(*events_window),
                attendees=percent_change(*attendees_window),
                bookings=percent_change(*bookings_window),
            ),
            event_data=event_data,
            resource_data=resource_data,
        )
