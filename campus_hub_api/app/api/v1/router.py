"""
Top-level router for version 1 of the API.

Aggregates the domain routers under their prefixes.  When a new domain
is added, include its router here.
"""

from fastapi import APIRouter

from .endpoints import (
    audit,
    bookings,
    chat,
    communities,
    events,
    notifications,
    resources,
    statistics,
    users,
)

router = APIRouter()

router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(resources.router, prefix="/resources", tags=["resources"])
router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
router.include_router(events.router, prefix="/events", tags=["events"])
router.include_router(communities.router, prefix="/communities", tags=["communities"])
router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
# statistics.py serves two prefixes.
router.include_router(statistics.dashboard_router, prefix="/dashboard", tags=["dashboard"])
router.include_router(statistics.analytics_router, prefix="/analytics", tags=["analytics"])
router.include_router(chat.router, prefix="/chat", tags=["chat"])
router.include_router(audit.router, prefix="/audit", tags=["audit"])
