"""
Occupancy and availability of a resource derived from its bookings.

Nothing here touches the database.  The functions take a snapshot of
bookings (``BookingRead`` models, ``sqlite3.Row`` objects or plain
dicts with ``start_time``, ``end_time`` and ``status``) and the
current instant, and compute the view shown next to a resource:

* whether the resource is occupied right now,
* until when it stays booked or available,
* which bookings overlap each other.

Cancelled bookings are ignored everywhere.  A booking whose
timestamps cannot be parsed is skipped rather than failing the whole
computation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Tuple

from campus_hub_api.app.core.db import parse_db_timestamp

logger = logging.getLogger(__name__)

CANCELLED = "cancelled"


@dataclass(frozen=True)
class BookingWindow:
    """A parsed, non-cancelled booking."""

    booking_id: Optional[int]
    resource_id: Optional[int]
    start: datetime
    end: datetime
    status: str


@dataclass(frozen=True)
class Availability:
    status: str  # "booked" or "available"
    message: str
    until: Optional[datetime] = None
    available_after: Optional[datetime] = None
    current_booking_id: Optional[int] = None


def _field(booking: Any, name: str) -> Any:
    if isinstance(booking, dict):
        return booking.get(name)
    try:
        return booking[name]
    except (KeyError, IndexError, TypeError):
        return getattr(booking, name, None)


def _as_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, str):
        return parse_db_timestamp(value)
    return None


def _normalise_now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    return _as_datetime(now)


def booking_windows(bookings: Iterable[Any], resource_id: Optional[int] = None) -> List[BookingWindow]:
    """Parse a booking snapshot, dropping cancelled and malformed entries.

    Input order is preserved.  When ``resource_id`` is given, bookings
    of other resources are dropped as well.
    """
    windows: List[BookingWindow] = []
    for booking in bookings:
        status = (_field(booking, "status") or "").lower()
        if status == CANCELLED:
            continue
        booked_resource = _field(booking, "resource_id")
        if resource_id is not None and booked_resource != resource_id:
            continue
        start = _as_datetime(_field(booking, "start_time"))
        end = _as_datetime(_field(booking, "end_time"))
        if start is None or end is None:
            logger.debug("Skipping booking %s with unparseable times", _field(booking, "id"))
            continue
        windows.append(
            BookingWindow(
                booking_id=_field(booking, "id"),
                resource_id=booked_resource,
                start=start,
                end=end,
                status=status,
            )
        )
    return windows


def current_booking(windows: Iterable[BookingWindow], now: Optional[datetime] = None) -> Optional[BookingWindow]:
    """First window containing ``now`` (both ends inclusive).

    With overlapping bookings several windows may match; only the
    first one in input order is reported.
    """
    instant = _normalise_now(now)
    for window in windows:
        if window.start <= instant <= window.end:
            return window
    return None


def _format_instant(value: datetime) -> str:
    return f"{value:%b} {value.day} at {value:%H:%M}"


def resolve_availability(
    bookings: Iterable[Any],
    now: Optional[datetime] = None,
    resource_id: Optional[int] = None,
) -> Availability:
    """Compute the availability of a resource at ``now``.

    Parameters
    ----------
    bookings : Iterable
        Booking snapshot for the resource (cancelled entries allowed).
    now : Optional[datetime]
        Instant to evaluate.  Naive values are taken as UTC.  Defaults
        to the current time.
    resource_id : Optional[int]
        Restrict the snapshot to one resource.

    Returns
    -------
    Availability
        ``booked`` while a booking is active, otherwise ``available``
        with the boundary of the current free slot when there is one.
    """
    instant = _normalise_now(now)
    windows = booking_windows(bookings, resource_id=resource_id)

    active = current_booking(windows, instant)
    if active is not None:
        return Availability(
            status="booked",
            message=f"Booked until {_format_instant(active.end)}",
            until=active.end,
            available_after=active.end,
            current_booking_id=active.booking_id,
        )

    upcoming = sorted((w for w in windows if w.end > instant), key=lambda w: w.start)
    if not upcoming:
        return Availability(status="available", message="Available now")

    nearest = upcoming[0]
    if instant < nearest.start:
        return Availability(
            status="available",
            message=f"Available until {_format_instant(nearest.start)}",
            until=nearest.start,
        )

    # Unreachable for well-formed windows (start <= now < end would have
    # been active); kept so inconsistent data still yields an answer.
    last_end = upcoming[-1].end
    return Availability(
        status="available",
        message=f"Available after {_format_instant(last_end)}",
        available_after=last_end,
    )


def is_booked(bookings: Iterable[Any], now: Optional[datetime] = None) -> bool:
    return current_booking(booking_windows(bookings), now) is not None


def find_overlaps(bookings: Iterable[Any]) -> List[Tuple[BookingWindow, BookingWindow]]:
    """Pairs of non-cancelled bookings of the same resource whose windows intersect.

    Windows that merely touch (one ends exactly when the next starts)
    do not count as overlapping.
    """
    windows = sorted(booking_windows(bookings), key=lambda w: (w.start, w.end))
    overlaps: List[Tuple[BookingWindow, BookingWindow]] = []
    for index, first in enumerate(windows):
        for second in windows[index + 1:]:
            if second.start >= first.end:
                break
            if first.resource_id == second.resource_id:
                overlaps.append((first, second))
    return overlaps
