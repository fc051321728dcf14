"""
Notification feed endpoint for API v1.
"""

from fastapi import APIRouter, Depends

from campus_hub_api.app.core.security import get_current_user
from campus_hub_api.app.schemas.notification import NotificationFeed
from campus_hub_api.app.services.notification_service import NotificationService

router = APIRouter()


@router.get("/", response_model=NotificationFeed)
async def list_notifications(current_user: dict = Depends(get_current_user)) -> NotificationFeed:
    """The ten most recent notifications for the caller, newest first."""
    return await NotificationService.feed(current_user["user_id"], current_user.get("role"))
