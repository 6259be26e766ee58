"""Pydantic request/response schemas."""

from callbook.schemas.auth import (
    CurrentUser,
    LoginRequest,
    LoginResponse,
    ProfileOut,
    UserCreate,
    UserOut,
    UserStatsOut,
    UsersListResponse,
    UserUpdate,
)
from callbook.schemas.health import HealthResponse
from callbook.schemas.records import (
    CallRecordCreate,
    CallRecordOut,
    CallRecordUpdate,
    RecordListResponse,
)
from callbook.schemas.reminders import CallbackNotification

__all__ = [
    "CallRecordCreate",
    "CallRecordOut",
    "CallRecordUpdate",
    "CallbackNotification",
    "CurrentUser",
    "HealthResponse",
    "LoginRequest",
    "LoginResponse",
    "ProfileOut",
    "RecordListResponse",
    "UserCreate",
    "UserOut",
    "UserStatsOut",
    "UserUpdate",
    "UsersListResponse",
]
