"""
Pydantic models for user data.

``UserCreate`` carries the role requested at signup.  It is stored
twice: as the effective ``role`` and as ``signup_role``, the record
that ``POST /users/sync-role`` reads back.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from campus_hub_api.app.core.roles import Role


class UserBase(BaseModel):
    email: str = Field(..., min_length=3, json_schema_extra={"example": "student@campus.edu"})
    full_name: Optional[str] = Field(None, json_schema_extra={"example": "Jane Doe"})


class UserCreate(UserBase):
    """Schema for registering a user."""

    password: str = Field(..., min_length=8)
    role: Role = Field(Role.USER, description="Role requested at signup")


class UserLogin(BaseModel):
    email: str
    password: str


class UserRead(UserBase):
    """Schema for reading a user from the API."""

    id: int
    role: Role
    avatar_url: Optional[str] = None
    disabled: bool = False
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }


class UserProfile(UserRead):
    """The caller's own profile together with the derived permissions."""

    signup_role: Role
    can_manage_content: bool
    can_approve_resources: bool
    can_view_analytics: bool
    can_join_rooms: bool


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    email: Optional[str] = None


class RoleAssignment(BaseModel):
    role: Role


class UserSummary(BaseModel):
    """Compact user reference embedded in other payloads."""

    id: int
    full_name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
