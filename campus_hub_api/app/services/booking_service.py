"""
Business logic for resource bookings.

The service stores bookings and returns snapshots of them; it does not
refuse a booking because another booking already covers the same
window.  Whether double booking should be prevented is a product
decision that has not been taken, so overlaps are reported by the
availability view instead (see ``services.availability``).
"""

import logging
import sqlite3
from typing import List, Optional

from campus_hub_api.app.core.db import get_connection, now_timestamp, to_db_timestamp
from campus_hub_api.app.core.roles import Role, parse_role
from campus_hub_api.app.schemas.booking import BookingCreate, BookingDetail, BookingRead, ResourceSummary
from campus_hub_api.app.schemas.user import UserSummary
from campus_hub_api.app.services.audit_service import AuditService

logger = logging.getLogger(__name__)

BOOKING_COLUMNS = "b.id, b.resource_id, b.user_id, b.start_time, b.end_time, b.purpose, b.status, b.created_at"


def _to_booking(row: sqlite3.Row) -> BookingRead:
    return BookingRead(
        id=row["id"],
        resource_id=row["resource_id"],
        user_id=row["user_id"],
        start_time=row["start_time"],
        end_time=row["end_time"],
        purpose=row["purpose"],
        status=row["status"],
        created_at=row["created_at"],
    )


class BookingService:
    """Service for creating, listing and cancelling bookings."""

    @classmethod
    async def get_booking(cls, booking_id: int) -> BookingRead:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {BOOKING_COLUMNS} FROM bookings b WHERE b.id = ?", (booking_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise ValueError(f"Booking {booking_id} not found")
        return _to_booking(row)

    @classmethod
    async def list_user_bookings(cls, user_id: int) -> List[BookingRead]:
        """The caller's bookings, latest start first."""
        conn = get_connection()
        try:
            rows = conn.execute(
                f"SELECT {BOOKING_COLUMNS} FROM bookings b WHERE b.user_id = ? ORDER BY b.start_time DESC",
                (user_id,),
            ).fetchall()
            return [_to_booking(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def list_resource_bookings(cls, resource_id: Optional[int] = None) -> List[BookingDetail]:
        """Bookings with resource and user names, earliest start first.

        This is the snapshot the availability view is computed from.
        Cancelled bookings are included; consumers filter them.
        """
        query = (
            f"SELECT {BOOKING_COLUMNS}, r.name AS resource_name, r.resource_type, "
            "u.full_name AS user_full_name "
            "FROM bookings b "
            "JOIN resources r ON r.id = b.resource_id "
            "LEFT JOIN users u ON u.id = b.user_id"
        )
        params: tuple = ()
        if resource_id is not None:
            query += " WHERE b.resource_id = ?"
            params = (resource_id,)
        query += " ORDER BY b.start_time ASC, b.id ASC"
        conn = get_connection()
        try:
            rows = conn.execute(query, params).fetchall()
        finally:
            conn.close()
        return [
            BookingDetail(
                **_to_booking(row).model_dump(),
                resource=ResourceSummary(
                    id=row["resource_id"], name=row["resource_name"], resource_type=row["resource_type"]
                ),
                user=UserSummary(id=row["user_id"], full_name=row["user_full_name"]),
            )
            for row in rows
        ]

    @classmethod
    async def create_booking(cls, data: BookingCreate, user_id: int) -> BookingRead:
        """Reserve a resource for the caller.

        The booking starts out ``pending``.  Raises ``ValueError`` if the
        resource does not exist.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            resource = cursor.execute("SELECT id, status FROM resources WHERE id = ?", (data.resource_id,)).fetchone()
            if not resource:
                raise ValueError(f"Resource {data.resource_id} not found")
            if resource["status"] != "approved":
                logger.info("Booking resource %s which is %s", data.resource_id, resource["status"])
            cursor.execute(
                """
                INSERT INTO bookings (resource_id, user_id, start_time, end_time, purpose, status, created_at)
                VALUES (?, ?, ?, ?, ?, 'pending', ?)
                """,
                (
                    data.resource_id,
                    user_id,
                    to_db_timestamp(data.start_time),
                    to_db_timestamp(data.end_time),
                    data.purpose,
                    now_timestamp(),
                ),
            )
            booking_id = cursor.lastrowid
            conn.commit()
        finally:
            conn.close()
        logger.info("User %s booked resource %s (booking %s)", user_id, data.resource_id, booking_id)
        await AuditService.record(
            user_id=user_id,
            action="create",
            object_type="booking",
            object_id=booking_id,
            details={
                "resource_id": data.resource_id,
                "start_time": to_db_timestamp(data.start_time),
                "end_time": to_db_timestamp(data.end_time),
            },
        )
        return await cls.get_booking(booking_id)

    @classmethod
    async def cancel_booking(cls, booking_id: int, current_user: dict) -> BookingRead:
        """Cancel a booking owned by the caller (administrators may cancel any).

        Raises ``ValueError`` if the booking does not exist and
        ``PermissionError`` if the caller may not cancel it.
        """
        booking = await cls.get_booking(booking_id)
        user_id = current_user.get("user_id")
        if booking.user_id != user_id and parse_role(current_user.get("role")) is not Role.ADMIN:
            raise PermissionError("You can only cancel your own bookings")
        if booking.status == "cancelled":
            return booking
        conn = get_connection()
        try:
            conn.execute("UPDATE bookings SET status = 'cancelled' WHERE id = ?", (booking_id,))
            conn.commit()
        finally:
            conn.close()
        await AuditService.record(user_id=user_id, action="cancel", object_type="booking", object_id=booking_id)
        return await cls.get_booking(booking_id)
