"""
Audit service for recording and querying mutations.

Services call ``AuditService.record`` after a successful create,
update or delete.  A failed audit write is logged but never undoes or
blocks the operation it describes.  Only administrators can read the
audit log.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any, Dict, List, Optional

from campus_hub_api.app.core.db import get_connection, now_timestamp

logger = logging.getLogger(__name__)


class AuditService:
    """Service class for writing and retrieving audit logs."""

    @classmethod
    async def log(
        cls,
        user_id: Optional[int],
        action: str,
        object_type: str,
        object_id: Optional[int] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Insert a new audit record.

        Parameters
        ----------
        user_id : Optional[int]
            ID of the user performing the action.  ``None`` for
            system-initiated actions.
        action : str
            Short verb, e.g. ``"create"``, ``"approve"``, ``"cancel"``.
        object_type : str
            Type of object affected (``"resource"``, ``"booking"``, ...).
        object_id : Optional[int]
            Primary key of the affected object, if applicable.
        details : Optional[dict]
            Additional structured data, stored as JSON.
        """
        conn = get_connection()
        try:
            conn.execute(
                """
                INSERT INTO audit_logs (user_id, action, object_type, object_id, timestamp, details)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    action,
                    object_type,
                    object_id,
                    now_timestamp(),
                    json.dumps(details, default=str) if details else None,
                ),
            )
            conn.commit()
        finally:
            conn.close()

    @classmethod
    async def record(cls, *args: Any, **kwargs: Any) -> None:
        """``log`` for use after a committed mutation: storage errors are logged, not raised."""
        try:
            await cls.log(*args, **kwargs)
        except sqlite3.Error:
            logger.exception("Failed to write audit record %s %s", args, kwargs)

    @classmethod
    async def list_logs(
        cls,
        user_id: Optional[int] = None,
        object_type: Optional[str] = None,
        action: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Retrieve audit records, newest first, with optional filters."""
        conn = get_connection()
        try:
            where_clauses: List[str] = []
            params: List[Any] = []
            if user_id is not None:
                where_clauses.append("user_id = ?")
                params.append(user_id)
            if object_type:
                where_clauses.append("object_type = ?")
                params.append(object_type)
            if action:
                where_clauses.append("action = ?")
                params.append(action)
            query = "SELECT id, user_id, action, object_type, object_id, timestamp, details FROM audit_logs"
            if where_clauses:
                query += " WHERE " + " AND ".join(where_clauses)
            query += " ORDER BY id DESC LIMIT ? OFFSET ?"
            params.extend([limit, offset])
            logs = []
            for row in conn.execute(query, tuple(params)).fetchall():
                entry = dict(row)
                if entry["details"]:
                    try:
                        entry["details"] = json.loads(entry["details"])
                    except json.JSONDecodeError:
                        pass
                logs.append(entry)
            return logs
        finally:
            conn.close()
