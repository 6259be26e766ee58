"""Request/response schemas for auth and user endpoints."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

RoleName = Literal["admin", "agent"]


def _clean_username(value: str) -> str:
    username = value.strip()
    if not username:
        raise ValueError("Username must not be blank")
    return username


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class LoginRequest(BaseModel):
    """Credentials for login."""

    username: str = Field(..., min_length=1, max_length=255, description="Username")
    password: str = Field(..., min_length=1, max_length=128, description="Password")


class CurrentUser(BaseModel):
    """Authenticated caller (id, username, role) resolved from the bearer token."""

    id: int
    username: str
    role: str

    class Config:
        from_attributes = True


class UserOut(_CamelModel):
    """User entry returned by user management endpoints (no password hash)."""

    id: int
    username: str
    role: str
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "UserOut":
        return cls(id=row.id, username=row.username, role=row.role, created_at=row.created_at)


class ProfileOut(UserOut):
    """Own profile; carries the stored hash so the profile form can be pre-filled."""

    password_hash: str

    @classmethod
    def from_row(cls, row: Any) -> "ProfileOut":
        return cls(
            id=row.id,
            username=row.username,
            role=row.role,
            created_at=row.created_at,
            password_hash=row.password_hash,
        )


class UserStatsOut(UserOut):
    """User entry in the admin listing, with the call records they own."""

    record_count: int = 0
    completed_count: int = 0

    @classmethod
    def from_row(cls, row: Any, record_count: int = 0, completed_count: int = 0) -> "UserStatsOut":
        return cls(
            id=row.id,
            username=row.username,
            role=row.role,
            created_at=row.created_at,
            record_count=record_count,
            completed_count=completed_count,
        )


class LoginResponse(_CamelModel):
    """JWT returned after successful login, plus the user it was issued for."""

    token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    user: UserOut


class UsersListResponse(BaseModel):
    """Response for GET /users (admin only)."""

    users: list[UserStatsOut]


class UserCreate(_CamelModel):
    """Body for POST /users."""

    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=8, max_length=128)
    role: RoleName = "agent"

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        return _clean_username(v)


class UserUpdate(_CamelModel):
    """Body for PUT /users/{id}; omitted fields stay unchanged."""

    username: str | None = Field(default=None, min_length=1, max_length=255)
    password: str | None = Field(default=None, min_length=8, max_length=128)
    role: RoleName | None = None

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str | None) -> str | None:
        return None if v is None else _clean_username(v)
