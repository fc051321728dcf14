"""
Pydantic models for bookable resources.

A resource goes through a small approval lifecycle: organizers create
it as ``pending`` and an administrator moves it to ``approved`` or
``rejected``.  Resources created by an administrator start out
approved.
"""

from datetime import datetime, time
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

ResourceStatus = Literal["pending", "approved", "rejected"]


class ResourceBase(BaseModel):
    name: str = Field(..., min_length=1, json_schema_extra={"example": "Lecture Hall B"})
    description: Optional[str] = None
    resource_type: str = Field(..., min_length=1, json_schema_extra={"example": "room"})
    location: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=0)
    # Optional daily opening window (time of day).
    availability_start: Optional[time] = None
    availability_end: Optional[time] = None
    image_url: Optional[str] = None


class ResourceCreate(ResourceBase):
    """Schema for creating a resource."""
    pass


class ResourceRead(ResourceBase):
    id: int
    status: ResourceStatus
    created_by: Optional[int] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }


class ResourceDecision(BaseModel):
    """Body of ``PATCH /resources/{id}/approve``."""

    status: Literal["approved", "rejected"]


class BookingOverlap(BaseModel):
    first_booking_id: Optional[int] = None
    second_booking_id: Optional[int] = None
    start: datetime
    end: datetime


class AvailabilityRead(BaseModel):
    resource_id: int
    status: Literal["booked", "available"]
    message: str
    until: Optional[datetime] = None
    available_after: Optional[datetime] = None
    current_booking_id: Optional[int] = None
    checked_at: datetime
    overlaps: List[BookingOverlap] = []
