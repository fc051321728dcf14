"""
Dashboard and analytics endpoints for API v1.

``/dashboard/stats`` is personal to the caller; ``/analytics/``
aggregates campus-wide activity.  Both routers live here and are
mounted under their own prefixes in ``router.py``.
"""

from fastapi import APIRouter, Depends

from campus_hub_api.app.core.roles import can_view_analytics
from campus_hub_api.app.core.security import get_current_user, require_permission
from campus_hub_api.app.schemas.notification import Analytics, DashboardStats
from campus_hub_api.app.services.statistics_service import StatisticsService

dashboard_router = APIRouter()
analytics_router = APIRouter()


@dashboard_router.get("/stats", response_model=DashboardStats)
async def dashboard_stats(current_user: dict = Depends(get_current_user)) -> DashboardStats:
    """Counters, upcoming events and active bookings for the caller."""
    return await StatisticsService.dashboard(current_user["user_id"])


@analytics_router.get("/", response_model=Analytics)
async def analytics(
    current_user: dict = Depends(require_permission(can_view_analytics, "You cannot view analytics")),
) -> Analytics:
    """Monthly events and attendees, resource mix and month-over-month change."""
    return await StatisticsService.analytics()
