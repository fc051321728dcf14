"""
User endpoints for API v1.

Registration, login, the caller's own profile and role, and the
administrator operations for listing users and assigning roles.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from campus_hub_api.app.core.roles import is_admin
from campus_hub_api.app.core.security import create_access_token, get_current_user, require_permission
from campus_hub_api.app.schemas.user import (
    ProfileUpdate,
    RoleAssignment,
    Token,
    UserCreate,
    UserLogin,
    UserProfile,
    UserRead,
)
from campus_hub_api.app.services.user_service import UserService

router = APIRouter()

admin_only = require_permission(is_admin, "Only administrators can manage users")


@router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def register_user(user: UserCreate) -> UserRead:
    """Register a new account with the role chosen at signup."""
    try:
        return await UserService.create_user(user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


@router.post("/login", response_model=Token)
async def login_user(credentials: UserLogin) -> Token:
    """Exchange email and password for a bearer token."""
    user = await UserService.authenticate(credentials.email, credentials.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect email or password")
    return Token(access_token=create_access_token({"sub": str(user.id)}))


@router.get("/me", response_model=UserProfile)
async def read_me(current_user: dict = Depends(get_current_user)) -> UserProfile:
    """The caller's profile with role and permission flags."""
    try:
        return await UserService.get_profile(current_user["user_id"])
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.put("/profile", response_model=UserProfile)
async def update_profile(
    updates: ProfileUpdate,
    current_user: dict = Depends(get_current_user),
) -> UserProfile:
    try:
        return await UserService.update_profile(
            current_user["user_id"], full_name=updates.full_name, email=updates.email
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


@router.post("/sync-role", response_model=UserProfile)
async def sync_role(current_user: dict = Depends(get_current_user)) -> UserProfile:
    """Reset the caller's role to the one recorded at signup."""
    try:
        return await UserService.sync_role(current_user["user_id"])
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.get("/", response_model=List[UserRead])
async def list_users(current_user: dict = Depends(admin_only)) -> List[UserRead]:
    return await UserService.list_users()


@router.get("/{user_id}", response_model=UserRead)
async def get_user(user_id: int, current_user: dict = Depends(get_current_user)) -> UserRead:
    try:
        return await UserService.get_user(user_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.put("/{user_id}/role", response_model=UserRead)
async def assign_role(
    user_id: int,
    assignment: RoleAssignment,
    current_user: dict = Depends(admin_only),
) -> UserRead:
    """Assign a role to a user (administrators only)."""
    try:
        return await UserService.assign_role(user_id, assignment.role, assigned_by=current_user["user_id"])
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
