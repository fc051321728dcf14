"""
Event endpoints for API v1.

Anyone may browse events.  Creating, editing and deleting require the
organizer role; editing and deleting are further limited to the
event's own organizer unless the caller is an administrator.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from campus_hub_api.app.core.roles import can_join_rooms, can_manage_content
from campus_hub_api.app.core.security import get_current_user, require_permission
from campus_hub_api.app.schemas.event import AttendeeRead, EventCreate, EventDetail, EventRead, EventUpdate
from campus_hub_api.app.services.event_service import EventService

router = APIRouter()

organizers_only = require_permission(can_manage_content, "Only organizers and admins can manage events")


@router.get("/", response_model=List[EventRead])
async def list_events() -> List[EventRead]:
    return await EventService.list_events()


@router.post("/", response_model=EventRead, status_code=status.HTTP_201_CREATED)
async def create_event(event: EventCreate, current_user: dict = Depends(organizers_only)) -> EventRead:
    return await EventService.create_event(event, current_user)


@router.get("/{event_id}", response_model=EventDetail)
async def get_event(event_id: int) -> EventDetail:
    """Retrieve an event with its organizer.  Raises 404 if it is not found."""
    try:
        return await EventService.get_event(event_id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.put("/{event_id}", response_model=EventRead)
async def update_event(
    event_id: int,
    updates: EventUpdate,
    current_user: dict = Depends(organizers_only),
) -> EventRead:
    """Partial update; fields left out of the body remain unchanged."""
    update_dict = updates.model_dump(exclude_unset=True, exclude_none=True)
    try:
        return await EventService.update_event(event_id, update_dict, current_user)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(event_id: int, current_user: dict = Depends(organizers_only)) -> None:
    try:
        await EventService.delete_event(event_id, current_user)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e
    return None


@router.get("/{event_id}/attendees", response_model=List[AttendeeRead])
async def list_attendees(event_id: int) -> List[AttendeeRead]:
    return await EventService.list_attendees(event_id)


@router.post("/{event_id}/attendees", response_model=AttendeeRead, status_code=status.HTTP_201_CREATED)
async def register_for_event(
    event_id: int,
    current_user: dict = Depends(require_permission(can_join_rooms, "You cannot register for events")),
) -> AttendeeRead:
    """Register the caller for an active event."""
    try:
        return await EventService.register(event_id, current_user["user_id"])
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


@router.delete("/{event_id}/attendees", status_code=status.HTTP_204_NO_CONTENT)
async def unregister_from_event(event_id: int, current_user: dict = Depends(get_current_user)) -> None:
    try:
        await EventService.unregister(event_id, current_user["user_id"])
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return None
