"""
Pydantic models for resource bookings.

A booking reserves one resource for a time window.  New bookings are
created ``pending``; they can later be ``confirmed``, ``completed`` or
``cancelled``.  Cancelled bookings never count towards occupancy.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from campus_hub_api.app.schemas.user import UserSummary

BookingStatus = Literal["pending", "confirmed", "completed", "cancelled"]


class BookingCreate(BaseModel):
    """Schema for creating a booking."""

    resource_id: int
    start_time: datetime = Field(..., json_schema_extra={"example": "2025-09-01T10:00:00Z"})
    end_time: datetime = Field(..., json_schema_extra={"example": "2025-09-01T11:00:00Z"})
    purpose: Optional[str] = None

    @model_validator(mode="after")
    def check_window(self) -> "BookingCreate":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ResourceSummary(BaseModel):
    id: int
    name: str
    resource_type: Optional[str] = None


class BookingRead(BaseModel):
    id: int
    resource_id: int
    user_id: int
    start_time: datetime
    end_time: datetime
    purpose: Optional[str] = None
    status: BookingStatus
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }


class BookingDetail(BookingRead):
    """Booking with the names needed to render a resource calendar."""

    resource: Optional[ResourceSummary] = None
    user: Optional[UserSummary] = None
