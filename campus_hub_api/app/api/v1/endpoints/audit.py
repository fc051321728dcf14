"""
Audit log endpoints for API v1.

Mutations across the system (registrations, role changes, resource
approvals, bookings, events, communities) are recorded in
``audit_logs``.  Only administrators may read them.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from campus_hub_api.app.core.roles import is_admin
from campus_hub_api.app.core.security import require_permission
from campus_hub_api.app.services.audit_service import AuditService

router = APIRouter()


@router.get("/")
async def list_audit_logs(
    user_id: Optional[int] = Query(None, description="Filter by acting user ID"),
    object_type: Optional[str] = Query(None, description="Filter by object type (event, booking, resource, etc.)"),
    action: Optional[str] = Query(None, description="Filter by action (create, update, delete, ...)"),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of logs to return"),
    offset: int = Query(0, ge=0, description="Number of logs to skip"),
    current_user: dict = Depends(require_permission(is_admin, "Only admins can view audit logs")),
) -> List[dict]:
    """Audit records ordered newest first."""
    return await AuditService.list_logs(
        user_id=user_id,
        object_type=object_type,
        action=action,
        limit=limit,
        offset=offset,
    )
