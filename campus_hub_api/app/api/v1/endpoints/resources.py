"""
Resource endpoints for API v1.

Listing is public but role-aware: anonymous callers and regular users
see approved resources only.  Creating resources requires the
organizer role, approving them the administrator role.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from campus_hub_api.app.core.roles import can_approve_resources, can_manage_content
from campus_hub_api.app.core.security import get_optional_user, require_permission
from campus_hub_api.app.schemas.booking import BookingDetail
from campus_hub_api.app.schemas.resource import (
    AvailabilityRead,
    ResourceCreate,
    ResourceDecision,
    ResourceRead,
    ResourceStatus,
)
from campus_hub_api.app.services.booking_service import BookingService
from campus_hub_api.app.services.resource_service import ResourceService

router = APIRouter()


@router.get("/", response_model=List[ResourceRead])
async def list_resources(
    status_filter: Optional[ResourceStatus] = Query(None, alias="status"),
    current_user: Optional[dict] = Depends(get_optional_user),
) -> List[ResourceRead]:
    """List resources visible to the caller, newest first."""
    role = current_user.get("role") if current_user else None
    return await ResourceService.list_resources(viewer_role=role, status=status_filter)


@router.post("/", response_model=ResourceRead, status_code=status.HTTP_201_CREATED)
async def create_resource(
    resource: ResourceCreate,
    current_user: dict = Depends(
        require_permission(can_manage_content, "Only organizers and admins can create resources")
    ),
) -> ResourceRead:
    """Create a resource.  Administrators' resources skip the approval queue."""
    return await ResourceService.create_resource(resource, current_user)


# Declared before "/{resource_id}" so "bookings" is not parsed as an id.
@router.get("/bookings", response_model=List[BookingDetail])
async def list_resource_bookings(resource_id: Optional[int] = Query(None)) -> List[BookingDetail]:
    """Bookings with resource and user names, earliest start first."""
    return await BookingService.list_resource_bookings(resource_id)


@router.get("/{resource_id}", response_model=ResourceRead)
async def get_resource(resource_id: int) -> ResourceRead:
    try:
        return await ResourceService.get_resource(resource_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.get("/{resource_id}/availability", response_model=AvailabilityRead)
async def get_availability(
    resource_id: int,
    at: Optional[datetime] = Query(None, description="Instant to evaluate (defaults to now)"),
) -> AvailabilityRead:
    """Whether the resource is booked at ``at`` and when that changes."""
    try:
        await ResourceService.get_resource(resource_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    bookings = await BookingService.list_resource_bookings(resource_id)
    return await ResourceService.availability(resource_id, bookings, now=at)


@router.patch("/{resource_id}/approve", response_model=ResourceRead)
async def decide_resource(
    resource_id: int,
    decision: ResourceDecision,
    current_user: dict = Depends(
        require_permission(can_approve_resources, "Only admins can approve resources")
    ),
) -> ResourceRead:
    try:
        return await ResourceService.decide(resource_id, decision.status, current_user["user_id"])
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
