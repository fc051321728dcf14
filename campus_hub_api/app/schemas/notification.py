"""
Pydantic models for the notification feed, the dashboard and analytics.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal

from pydantic import BaseModel


class Notification(BaseModel):
    id: str
    type: Literal["event", "booking", "approval", "message"]
    title: str
    message: str
    link: str
    time: datetime
    unread: bool = True


class DashboardCounters(BaseModel):
    upcoming_events: int
    booked_resources: int
    communities_joined: int
    resource_usage: str


class DashboardStats(BaseModel):
    stats: DashboardCounters
    recent_events: List[Dict[str, Any]]
    user_bookings: List[Dict[str, Any]]


class NotificationFeed(BaseModel):
    notifications: List[Notification]
    unread_count: int


class MonthlyActivity(BaseModel):
    month: str
    events: int
    attendees: int


class ResourceShare(BaseModel):
    name: str
    value: int


class AnalyticsTotals(BaseModel):
    total_events: int
    total_attendees: int
    total_bookings: int


class AnalyticsChanges(BaseModel):
    """Month-over-month change in percent."""

    events: int
    attendees: int
    bookings: int


class Analytics(BaseModel):
    stats: AnalyticsTotals
    changes: AnalyticsChanges
    event_data: List[MonthlyActivity]
    resource_data: List[ResourceShare]
