"""
Pydantic models for communities, their members and chat messages.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from campus_hub_api.app.schemas.user import UserSummary


class CommunityCreate(BaseModel):
    name: str = Field(..., min_length=1, json_schema_extra={"example": "Robotics Club"})
    description: Optional[str] = None


class CommunityRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    created_by: Optional[int] = None
    member_count: int = 0
    created_at: Optional[datetime] = None


class MemberRead(BaseModel):
    id: int
    community_id: int
    user_id: int
    role: str
    joined_at: Optional[datetime] = None
    user: Optional[UserSummary] = None


class Memberships(BaseModel):
    memberships: List[int]


class MessageCreate(BaseModel):
    message: str = Field(..., min_length=1, max_length=4000)


class MessageRead(BaseModel):
    id: int
    community_id: int
    user_id: int
    message: str
    created_at: Optional[datetime] = None
    user: Optional[UserSummary] = None
