"""User endpoints: own profile for everyone, user management for admins."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from callbook.api.v1.auth import get_current_user
from callbook.core.database import get_db
from callbook.schemas.auth import (
    CurrentUser,
    ProfileOut,
    UserCreate,
    UserOut,
    UsersListResponse,
    UserStatsOut,
    UserUpdate,
)
from callbook.services.users import UserService

router = APIRouter()


@router.get("/user/me", response_model=ProfileOut)
def get_me(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> ProfileOut:
    """Own profile, including the stored password hash for profile-edit pre-fill."""
    return ProfileOut.from_row(UserService(db).get_profile(user))


@router.get("/users", response_model=UsersListResponse)
def list_users(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> UsersListResponse:
    """List all users, newest first, with their total and completed record counts (admin only)."""
    rows = UserService(db).list_users(user)
    return UsersListResponse(
        users=[UserStatsOut.from_row(u, total, completed) for u, total, completed in rows]
    )


@router.post("/users", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    body: UserCreate,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> UserOut:
    """Create a user (admin only). Role defaults to agent; duplicate usernames are rejected."""
    return UserOut.from_row(UserService(db).create_user(user, body))


@router.put("/users/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    body: UserUpdate,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> UserOut:
    """Update username/password (self or admin) and role (admin only)."""
    return UserOut.from_row(UserService(db).update_user(user, user_id, body))


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    """Delete a user (admin only). Users who own call records cannot be deleted."""
    UserService(db).delete_user(user, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
