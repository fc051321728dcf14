"""
Business logic for users.

Besides registration and login this service owns the two operations
that can change a user's role:

* ``sync_role`` copies the role recorded at signup (``signup_role``)
  into the effective ``role``;
* ``assign_role`` lets an administrator set a role.  It rewrites
  ``signup_role`` as well, so a later sync cannot revert the
  assignment to stale signup data.
"""

import logging
import sqlite3
from typing import List, Optional

from campus_hub_api.app.core.db import get_connection, now_timestamp
from campus_hub_api.app.core.roles import Role, parse_role, permission_flags
from campus_hub_api.app.core.security import hash_password, verify_password
from campus_hub_api.app.schemas.user import UserCreate, UserProfile, UserRead
from campus_hub_api.app.services.audit_service import AuditService

logger = logging.getLogger(__name__)

USER_COLUMNS = "id, email, full_name, role, signup_role, avatar_url, disabled, created_at"


def _to_user(row: sqlite3.Row) -> UserRead:
    return UserRead(
        id=row["id"],
        email=row["email"],
        full_name=row["full_name"],
        role=parse_role(row["role"]) or Role.USER,
        avatar_url=row["avatar_url"],
        disabled=bool(row["disabled"]),
        created_at=row["created_at"],
    )


def _to_profile(row: sqlite3.Row) -> UserProfile:
    user = _to_user(row)
    return UserProfile(
        **user.model_dump(),
        signup_role=parse_role(row["signup_role"]) or Role.USER,
        **permission_flags(row["role"]),
    )


class UserService:
    """Service for user accounts and role changes."""

    @classmethod
    async def create_user(cls, data: UserCreate) -> UserRead:
        """Register a new account.

        The requested role becomes both the effective role and the
        signup record.  Raises ``ValueError`` if the email is taken.
        """
        email = data.email.strip().lower()
        logger.info("Registering user %s with role %s", email, data.role.value)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if cursor.execute("SELECT 1 FROM users WHERE email = ?", (email,)).fetchone():
                raise ValueError(f"User {email} already exists")
            now = now_timestamp()
            cursor.execute(
                """
                INSERT INTO users (email, full_name, password, role, signup_role, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    email,
                    data.full_name or email.split("@")[0],
                    hash_password(data.password),
                    data.role.value,
                    data.role.value,
                    now,
                    now,
                ),
            )
            user_id = cursor.lastrowid
            conn.commit()
            row = cursor.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
        finally:
            conn.close()
        await AuditService.record(
            user_id=user_id,
            action="create",
            object_type="user",
            object_id=user_id,
            details={"email": email, "role": data.role.value},
        )
        return _to_user(row)

    @classmethod
    async def authenticate(cls, email: str, password: str) -> Optional[UserRead]:
        """Return the user if the credentials match an enabled account."""
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {USER_COLUMNS}, password FROM users WHERE email = ?",
                (email.strip().lower(),),
            ).fetchone()
        finally:
            conn.close()
        if not row or row["disabled"]:
            return None
        if not verify_password(password, row["password"]):
            return None
        return _to_user(row)

    @classmethod
    async def list_users(cls) -> List[UserRead]:
        conn = get_connection()
        try:
            rows = conn.execute(f"SELECT {USER_COLUMNS} FROM users ORDER BY id").fetchall()
            return [_to_user(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def get_user(cls, user_id: int) -> UserRead:
        """Return a user.  Raises ``ValueError`` if it does not exist."""
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise ValueError(f"User {user_id} not found")
        return _to_user(row)

    @classmethod
    async def get_profile(cls, user_id: int) -> UserProfile:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise ValueError(f"User {user_id} not found")
        return _to_profile(row)

    @classmethod
    async def update_profile(
        cls,
        user_id: int,
        full_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> UserProfile:
        """Change the caller's display name and/or email.

        Raises ``ValueError`` when neither field is given or the new
        email belongs to another account.
        """
        if not full_name and not email:
            raise ValueError("At least one field (full_name or email) is required")
        updates: dict = {}
        if full_name:
            updates["full_name"] = full_name
        if email:
            updates["email"] = email.strip().lower()
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if "email" in updates:
                clash = cursor.execute(
                    "SELECT id FROM users WHERE email = ? AND id != ?",
                    (updates["email"], user_id),
                ).fetchone()
                if clash:
                    raise ValueError(f"Email {updates['email']} is already in use")
            assignments = ", ".join(f"{key} = ?" for key in updates)
            cursor.execute(
                f"UPDATE users SET {assignments}, updated_at = ? WHERE id = ?",
                (*updates.values(), now_timestamp(), user_id),
            )
            conn.commit()
        finally:
            conn.close()
        await AuditService.record(
            user_id=user_id, action="update", object_type="user", object_id=user_id, details=updates
        )
        return await cls.get_profile(user_id)

    @classmethod
    async def sync_role(cls, user_id: int) -> UserProfile:
        """Set the effective role back to the role recorded at signup."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute("SELECT role, signup_role FROM users WHERE id = ?", (user_id,)).fetchone()
            if not row:
                raise ValueError(f"User {user_id} not found")
            target = parse_role(row["signup_role"]) or Role.USER
            if row["role"] != target.value:
                logger.warning(
                    "Syncing role of user %s from %s to signup role %s", user_id, row["role"], target.value
                )
                cursor.execute(
                    "UPDATE users SET role = ?, updated_at = ? WHERE id = ?",
                    (target.value, now_timestamp(), user_id),
                )
                conn.commit()
            previous = row["role"]
        finally:
            conn.close()
        if previous != target.value:
            await AuditService.record(
                user_id=user_id,
                action="sync_role",
                object_type="user",
                object_id=user_id,
                details={"from": previous, "to": target.value},
            )
        return await cls.get_profile(user_id)

    @classmethod
    async def assign_role(cls, user_id: int, role: Role, assigned_by: Optional[int] = None) -> UserRead:
        """Assign ``role`` to a user (administrators only, checked by the endpoint)."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if not cursor.execute("SELECT id FROM users WHERE id = ?", (user_id,)).fetchone():
                raise ValueError(f"User {user_id} not found")
            cursor.execute(
                "UPDATE users SET role = ?, signup_role = ?, updated_at = ? WHERE id = ?",
                (role.value, role.value, now_timestamp(), user_id),
            )
            conn.commit()
        finally:
            conn.close()
        logger.info("User %s assigned role %s to user %s", assigned_by, role.value, user_id)
        await AuditService.record(
            user_id=assigned_by,
            action="assign_role",
            object_type="user",
            object_id=user_id,
            details={"role": role.value},
        )
        return await cls.get_user(user_id)

    @classmethod
    async def set_password(cls, email: str, password: str) -> None:
        """Replace a user's password hash.  Raises ``ValueError`` for unknown emails."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE users SET password = ?, updated_at = ? WHERE email = ?",
                (hash_password(password), now_timestamp(), email.strip().lower()),
            )
            if cursor.rowcount == 0:
                raise ValueError(f"User {email} not found")
            conn.commit()
        finally:
            conn.close()
