"""
Booking endpoints for API v1.

Users list and cancel their own bookings; creating a booking requires
the organizer role.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from campus_hub_api.app.core.roles import can_manage_content
from campus_hub_api.app.core.security import get_current_user, require_permission
from campus_hub_api.app.schemas.booking import BookingCreate, BookingRead
from campus_hub_api.app.services.booking_service import BookingService

router = APIRouter()


@router.get("/", response_model=List[BookingRead])
async def list_my_bookings(current_user: dict = Depends(get_current_user)) -> List[BookingRead]:
    return await BookingService.list_user_bookings(current_user["user_id"])


@router.post("/", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking: BookingCreate,
    current_user: dict = Depends(
        require_permission(can_manage_content, "Only organizers and admins can book resources")
    ),
) -> BookingRead:
    """Book a resource.  The booking starts out pending."""
    try:
        return await BookingService.create_booking(booking, current_user["user_id"])
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.post("/{booking_id}/cancel", response_model=BookingRead)
async def cancel_booking(booking_id: int, current_user: dict = Depends(get_current_user)) -> BookingRead:
    try:
        return await BookingService.cancel_booking(booking_id, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e
