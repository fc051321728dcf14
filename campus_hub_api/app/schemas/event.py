"""
Pydantic models for campus events and their attendees.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from campus_hub_api.app.schemas.user import UserSummary

EventStatus = Literal["active", "cancelled", "past"]


class EventBase(BaseModel):
    title: str = Field(..., min_length=1, json_schema_extra={"example": "Hackathon Kick-off"})
    description: Optional[str] = None
    start_date: datetime = Field(..., json_schema_extra={"example": "2025-09-01T10:00:00Z"})
    end_date: datetime = Field(..., json_schema_extra={"example": "2025-09-01T18:00:00Z"})
    location: str = Field(..., min_length=1)
    image_url: Optional[str] = None


class EventCreate(EventBase):
    """Schema for creating an event."""

    @model_validator(mode="after")
    def check_dates(self) -> "EventCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class EventUpdate(BaseModel):
    """Partial update; only provided fields are changed.

    When only one of the dates is sent the window is checked against
    the stored event by ``EventService.update_event``.
    """

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: Optional[str] = Field(None, min_length=1)
    image_url: Optional[str] = None
    status: Optional[EventStatus] = None

    @model_validator(mode="after")
    def check_dates(self) -> "EventUpdate":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class EventRead(EventBase):
    id: int
    status: EventStatus
    organizer_id: Optional[int] = None
    attendee_count: int = 0
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }


class EventDetail(EventRead):
    organizer: Optional[UserSummary] = None


class AttendeeRead(BaseModel):
    id: int
    event_id: int
    user_id: int
    registered_at: Optional[datetime] = None
    user: Optional[UserSummary] = None
