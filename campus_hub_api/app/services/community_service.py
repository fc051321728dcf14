"""
Business logic for communities, membership and community chat.

Member counts are not stored: listings aggregate ``community_members``
with ``LEFT JOIN ... COUNT`` at read time, so concurrent joins and
leaves cannot leave a stale counter behind.  Reading and posting
messages is limited to members.
"""

import logging
import sqlite3
from typing import List, Optional

from campus_hub_api.app.core.db import get_connection, now_timestamp
from campus_hub_api.app.schemas.community import CommunityCreate, CommunityRead, MemberRead, MessageRead
from campus_hub_api.app.schemas.user import UserSummary
from campus_hub_api.app.services.audit_service import AuditService

logger = logging.getLogger(__name__)

GENERAL_COMMUNITY = "General"
GENERAL_DESCRIPTION = "A general chatroom for all campus members to connect and communicate"

COMMUNITY_QUERY = (
    "SELECT c.id, c.name, c.description, c.created_by, c.created_at, "
    "COUNT(m.id) AS member_count "
    "FROM communities c LEFT JOIN community_members m ON m.community_id = c.id"
)


def _to_community(row: sqlite3.Row) -> CommunityRead:
    return CommunityRead(**dict(row))


def _ensure_exists(cursor: sqlite3.Cursor, community_id: int) -> None:
    if not cursor.execute("SELECT 1 FROM communities WHERE id = ?", (community_id,)).fetchone():
        raise LookupError(f"Community {community_id} not found")


def _is_member(cursor: sqlite3.Cursor, community_id: int, user_id: int) -> bool:
    return cursor.execute(
        "SELECT 1 FROM community_members WHERE community_id = ? AND user_id = ?",
        (community_id, user_id),
    ).fetchone() is not None


class CommunityService:
    """Service for communities and their chat rooms."""

    @classmethod
    async def list_communities(cls) -> List[CommunityRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                f"{COMMUNITY_QUERY} GROUP BY c.id ORDER BY c.created_at DESC, c.id DESC"
            ).fetchall()
            return [_to_community(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def get_community(cls, community_id: int) -> CommunityRead:
        """Return a community.  Raises ``ValueError`` if it does not exist."""
        conn = get_connection()
        try:
            row = conn.execute(f"{COMMUNITY_QUERY} WHERE c.id = ? GROUP BY c.id", (community_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise ValueError(f"Community {community_id} not found")
        return _to_community(row)

    @classmethod
    async def create_community(cls, data: CommunityCreate, user_id: int) -> CommunityRead:
        """Create a community; the creator joins it as ``organizer``."""
        now = now_timestamp()
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO communities (name, description, created_by, created_at) VALUES (?, ?, ?, ?)",
                (data.name, data.description, user_id, now),
            )
            community_id = cursor.lastrowid
            cursor.execute(
                "INSERT INTO community_members (community_id, user_id, role, joined_at) VALUES (?, ?, 'organizer', ?)",
                (community_id, user_id, now),
            )
            conn.commit()
        finally:
            conn.close()
        logger.info("User %s created community %s '%s'", user_id, community_id, data.name)
        await AuditService.record(
            user_id=user_id, action="create", object_type="community", object_id=community_id,
            details={"name": data.name},
        )
        return await cls.get_community(community_id)

    @classmethod
    async def find_by_name(cls, name: str) -> Optional[CommunityRead]:
        conn = get_connection()
        try:
            row = conn.execute(
                f"{COMMUNITY_QUERY} WHERE c.name = ? GROUP BY c.id ORDER BY c.id LIMIT 1", (name,)
            ).fetchone()
        finally:
            conn.close()
        return _to_community(row) if row else None

    @classmethod
    async def ensure_general(cls, user_id: int) -> tuple[CommunityRead, bool]:
        """Return the campus-wide "General" community, creating it if needed.

        The second element tells whether it was created by this call.
        """
        existing = await cls.find_by_name(GENERAL_COMMUNITY)
        if existing:
            return existing, False
        created = await cls.create_community(
            CommunityCreate(name=GENERAL_COMMUNITY, description=GENERAL_DESCRIPTION), user_id
        )
        return created, True

    @classmethod
    async def list_memberships(cls, user_id: int) -> List[int]:
        """Ids of the communities the user belongs to."""
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT community_id FROM community_members WHERE user_id = ? ORDER BY community_id",
                (user_id,),
            ).fetchall()
            return [row["community_id"] for row in rows]
        finally:
            conn.close()

    @classmethod
    async def list_members(cls, community_id: int) -> List[MemberRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                """
                SELECT m.id, m.community_id, m.user_id, m.role, m.joined_at,
                       u.full_name, u.avatar_url
                FROM community_members m
                LEFT JOIN users u ON u.id = m.user_id
                WHERE m.community_id = ?
                ORDER BY m.joined_at DESC, m.id DESC
                """,
                (community_id,),
            ).fetchall()
        finally:
            conn.close()
        return [
            MemberRead(
                id=row["id"],
                community_id=row["community_id"],
                user_id=row["user_id"],
                role=row["role"],
                joined_at=row["joined_at"],
                user=UserSummary(id=row["user_id"], full_name=row["full_name"], avatar_url=row["avatar_url"]),
            )
            for row in rows
        ]

    @classmethod
    async def join(cls, community_id: int, user_id: int) -> MemberRead:
        """Add the user as a regular member.

        Raises ``LookupError`` for an unknown community and
        ``ValueError`` if the user already belongs to it.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            _ensure_exists(cursor, community_id)
            try:
                cursor.execute(
                    "INSERT INTO community_members (community_id, user_id, role, joined_at) VALUES (?, ?, 'user', ?)",
                    (community_id, user_id, now_timestamp()),
                )
            except sqlite3.IntegrityError:
                raise ValueError("Already a member")
            member_id = cursor.lastrowid
            conn.commit()
        finally:
            conn.close()
        logger.info("User %s joined community %s", user_id, community_id)
        members = await cls.list_members(community_id)
        return next(m for m in members if m.id == member_id)

    @classmethod
    async def leave(cls, community_id: int, user_id: int) -> None:
        """Remove the user's membership.  Leaving a community one is not in is a no-op."""
        conn = get_connection()
        try:
            conn.execute(
                "DELETE FROM community_members WHERE community_id = ? AND user_id = ?",
                (community_id, user_id),
            )
            conn.commit()
        finally:
            conn.close()
        logger.info("User %s left community %s", user_id, community_id)

    @classmethod
    async def list_messages(cls, community_id: int, user_id: int) -> List[MessageRead]:
        """Messages in chronological order.

        Raises ``LookupError`` for an unknown community and
        ``PermissionError`` for non-members.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            _ensure_exists(cursor, community_id)
            if not _is_member(cursor, community_id, user_id):
                raise PermissionError("You must be a member to view messages")
            rows = cursor.execute(
                """
                SELECT cm.id, cm.community_id, cm.user_id, cm.message, cm.created_at,
                       u.full_name, u.avatar_url
                FROM community_messages cm
                LEFT JOIN users u ON u.id = cm.user_id
                WHERE cm.community_id = ?
                ORDER BY cm.created_at ASC, cm.id ASC
                """,
                (community_id,),
            ).fetchall()
        finally:
            conn.close()
        return [
            MessageRead(
                id=row["id"],
                community_id=row["community_id"],
                user_id=row["user_id"],
                message=row["message"],
                created_at=row["created_at"],
                user=UserSummary(id=row["user_id"], full_name=row["full_name"], avatar_url=row["avatar_url"]),
            )
            for row in rows
        ]

    @classmethod
    async def post_message(cls, community_id: int, user_id: int, message: str) -> MessageRead:
        """Post a message.

        Raises ``LookupError`` for an unknown community and
        ``PermissionError`` for non-members.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            _ensure_exists(cursor, community_id)
            if not _is_member(cursor, community_id, user_id):
                raise PermissionError("You must be a member to send messages")
            cursor.execute(
                "INSERT INTO community_messages (community_id, user_id, message, created_at) VALUES (?, ?, ?, ?)",
                (community_id, user_id, message, now_timestamp()),
            )
            message_id = cursor.lastrowid
            conn.commit()
            row = cursor.execute(
                """
                SELECT cm.id, cm.community_id, cm.user_id, cm.message, cm.created_at,
                       u.full_name, u.avatar_url
                FROM community_messages cm
                LEFT JOIN users u ON u.id = cm.user_id
                WHERE cm.id = ?
                """,
                (message_id,),
            ).fetchone()
        finally:
            conn.close()
        return MessageRead(
            id=row["id"],
            community_id=row["community_id"],
            user_id=row["user_id"],
            message=row["message"],
            created_at=row["created_at"],
            user=UserSummary(id=row["user_id"], full_name=row["full_name"], avatar_url=row["avatar_url"]),
        )

    @classmethod
    async def delete_message(cls, community_id: int, message_id: int, admin_id: int) -> None:
        """Moderation: remove a message.  Raises ``ValueError`` if it does not exist."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM community_messages WHERE id = ? AND community_id = ?",
                (message_id, community_id),
            )
            if cursor.rowcount == 0:
                raise ValueError(f"Message {message_id} not found")
            conn.commit()
        finally:
            conn.close()
        await AuditService.record(
            user_id=admin_id, action="delete", object_type="community_message", object_id=message_id,
            details={"community_id": community_id},
        )
