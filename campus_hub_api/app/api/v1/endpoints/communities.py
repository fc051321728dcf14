"""
Community endpoints for API v1.

Communities are public to browse.  Joining requires an account,
creating one the organizer role, and a community's chat is only open to
its members.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status

from campus_hub_api.app.core.roles import can_join_rooms, can_manage_content, is_admin
from campus_hub_api.app.core.security import get_current_user, require_permission
from campus_hub_api.app.schemas.community import (
    CommunityCreate,
    CommunityRead,
    MemberRead,
    Memberships,
    MessageCreate,
    MessageRead,
)
from campus_hub_api.app.services.community_service import CommunityService

router = APIRouter()

organizers_only = require_permission(can_manage_content, "Only organizers and admins can create communities")


@router.get("/", response_model=List[CommunityRead])
async def list_communities() -> List[CommunityRead]:
    return await CommunityService.list_communities()


@router.post("/", response_model=CommunityRead, status_code=status.HTTP_201_CREATED)
async def create_community(
    community: CommunityCreate,
    current_user: dict = Depends(organizers_only),
) -> CommunityRead:
    """Create a community; the creator becomes its organizer."""
    return await CommunityService.create_community(community, current_user["user_id"])


@router.post("/init", response_model=CommunityRead)
async def init_general(response: Response, current_user: dict = Depends(organizers_only)) -> CommunityRead:
    """Create the campus-wide "General" community unless it already exists."""
    community, created = await CommunityService.ensure_general(current_user["user_id"])
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return community


@router.get("/memberships", response_model=Memberships)
async def my_memberships(current_user: dict = Depends(get_current_user)) -> Memberships:
    return Memberships(memberships=await CommunityService.list_memberships(current_user["user_id"]))


@router.get("/{community_id}", response_model=CommunityRead)
async def get_community(community_id: int) -> CommunityRead:
    try:
        return await CommunityService.get_community(community_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.get("/{community_id}/members", response_model=List[MemberRead])
async def list_members(community_id: int) -> List[MemberRead]:
    """Members of a community, most recent join first."""
    return await CommunityService.list_members(community_id)


@router.post("/{community_id}/join", response_model=MemberRead, status_code=status.HTTP_201_CREATED)
async def join_community(
    community_id: int,
    current_user: dict = Depends(require_permission(can_join_rooms, "You cannot join communities")),
) -> MemberRead:
    try:
        return await CommunityService.join(community_id, current_user["user_id"])
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


@router.delete("/{community_id}/join", status_code=status.HTTP_204_NO_CONTENT)
async def leave_community(community_id: int, current_user: dict = Depends(get_current_user)) -> None:
    await CommunityService.leave(community_id, current_user["user_id"])
    return None


@router.get("/{community_id}/messages", response_model=List[MessageRead])
async def list_messages(community_id: int, current_user: dict = Depends(get_current_user)) -> List[MessageRead]:
    try:
        return await CommunityService.list_messages(community_id, current_user["user_id"])
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e


@router.post("/{community_id}/messages", response_model=MessageRead, status_code=status.HTTP_201_CREATED)
async def post_message(
    community_id: int,
    message: MessageCreate,
    current_user: dict = Depends(get_current_user),
) -> MessageRead:
    try:
        return await CommunityService.post_message(community_id, current_user["user_id"], message.message)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e


@router.delete("/{community_id}/messages/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(
    community_id: int,
    message_id: int,
    current_user: dict = Depends(require_permission(is_admin, "Only admins can delete messages")),
) -> None:
    """Moderation: remove a message from a community chat."""
    try:
        await CommunityService.delete_message(community_id, message_id, current_user["user_id"])
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return None
