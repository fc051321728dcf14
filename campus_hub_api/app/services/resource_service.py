"""
Business logic for bookable resources.

Visibility depends on the caller: regular users (and anonymous
visitors) only see approved resources, organizers and administrators
see every resource including pending and rejected ones.
"""

import logging
import sqlite3
from datetime import datetime
from typing import List, Optional

from campus_hub_api.app.core.db import get_connection, now_timestamp, utcnow
from campus_hub_api.app.core.roles import Role, RoleLike, can_manage_content, parse_role
from campus_hub_api.app.schemas.booking import BookingRead
from campus_hub_api.app.schemas.resource import AvailabilityRead, BookingOverlap, ResourceCreate, ResourceRead
from campus_hub_api.app.services.audit_service import AuditService
from campus_hub_api.app.services.availability import find_overlaps, resolve_availability

logger = logging.getLogger(__name__)

RESOURCE_COLUMNS = (
    "id, name, description, resource_type, location, capacity, availability_start, "
    "availability_end, image_url, status, created_by, approved_by, approved_at, created_at"
)


def _to_resource(row: sqlite3.Row) -> ResourceRead:
    return ResourceRead(**dict(row))


class ResourceService:
    """Service for resources and their approval lifecycle."""

    @classmethod
    async def list_resources(cls, viewer_role: RoleLike = None, status: Optional[str] = None) -> List[ResourceRead]:
        """Resources visible to ``viewer_role``, newest first.

        ``status`` narrows the list further (the approvals page asks for
        ``pending``); it cannot widen what a regular user may see.
        """
        query = f"SELECT {RESOURCE_COLUMNS} FROM resources"
        where: List[str] = []
        params: List = []
        if not can_manage_content(viewer_role):
            where.append("status = 'approved'")
        if status:
            where.append("status = ?")
            params.append(status)
        if where:
            query += " WHERE " + " AND ".join(where)
        query += " ORDER BY created_at DESC, id DESC"
        conn = get_connection()
        try:
            return [_to_resource(row) for row in conn.execute(query, tuple(params)).fetchall()]
        finally:
            conn.close()

    @classmethod
    async def get_resource(cls, resource_id: int) -> ResourceRead:
        """Return a resource.  Raises ``ValueError`` if it does not exist."""
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {RESOURCE_COLUMNS} FROM resources WHERE id = ?", (resource_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise ValueError(f"Resource {resource_id} not found")
        return _to_resource(row)

    @classmethod
    async def create_resource(cls, data: ResourceCreate, current_user: dict) -> ResourceRead:
        """Create a resource on behalf of an organizer or administrator.

        Organizers' resources wait for approval; administrators'
        resources are approved immediately and stamped with the
        approver.
        """
        user_id = current_user.get("user_id")
        is_admin = parse_role(current_user.get("role")) is Role.ADMIN
        status = "approved" if is_admin else "pending"
        now = now_timestamp()
        logger.info("User %s is creating resource '%s' as %s", user_id, data.name, status)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO resources (name, description, resource_type, location, capacity,
                    availability_start, availability_end, image_url, status, created_by,
                    approved_by, approved_at, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data.name,
                    data.description,
                    data.resource_type,
                    data.location,
                    data.capacity,
                    data.availability_start.isoformat() if data.availability_start else None,
                    data.availability_end.isoformat() if data.availability_end else None,
                    data.image_url,
                    status,
                    user_id,
                    user_id if is_admin else None,
                    now if is_admin else None,
                    now,
                ),
            )
            resource_id = cursor.lastrowid
            conn.commit()
        finally:
            conn.close()
        await AuditService.record(
            user_id=user_id,
            action="create",
            object_type="resource",
            object_id=resource_id,
            details={"name": data.name, "status": status},
        )
        return await cls.get_resource(resource_id)

    @classmethod
    async def decide(cls, resource_id: int, status: str, admin_id: int) -> ResourceRead:
        """Approve or reject a resource.  Raises ``ValueError`` if it does not exist."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE resources SET status = ?, approved_by = ?, approved_at = ? WHERE id = ?",
                (status, admin_id, now_timestamp(), resource_id),
            )
            if cursor.rowcount == 0:
                raise ValueError(f"Resource {resource_id} not found")
            conn.commit()
        finally:
            conn.close()
        logger.info("Resource %s %s by user %s", resource_id, status, admin_id)
        await AuditService.record(
            user_id=admin_id, action=status, object_type="resource", object_id=resource_id
        )
        return await cls.get_resource(resource_id)

    @classmethod
    async def availability(
        cls,
        resource_id: int,
        bookings: List[BookingRead],
        now: Optional[datetime] = None,
    ) -> AvailabilityRead:
        """Availability view of one resource from its booking snapshot."""
        result = resolve_availability(bookings, now=now, resource_id=resource_id)
        overlaps = [
            BookingOverlap(
                first_booking_id=first.booking_id,
                second_booking_id=second.booking_id,
                start=max(first.start, second.start),
                end=min(first.end, second.end),
            )
            for first, second in find_overlaps(bookings)
        ]
        if overlaps:
            logger.warning("Resource %s has %d overlapping booking pair(s)", resource_id, len(overlaps))
        return AvailabilityRead(
            resource_id=resource_id,
            status=result.status,
            message=result.message,
            until=result.until,
            available_after=result.available_after,
            current_booking_id=result.current_booking_id,
            checked_at=now or utcnow(),
            overlaps=overlaps,
        )
