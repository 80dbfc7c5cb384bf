"""Pydantic request/response schemas."""

from app.schemas.admin import (
    AccessResponse,
    CreateUserRequest,
    SettingsSummary,
    UserListItem,
    UsersListResponse,
)
from app.schemas.auth import (
    ActionResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RequestResetRequest,
    RequestResetResponse,
    ResetPasswordRequest,
    SessionAssertion,
    UserPublic,
)
from app.schemas.health import HealthResponse

__all__ = [
    "AccessResponse",
    "ActionResponse",
    "CreateUserRequest",
    "HealthResponse",
    "LoginRequest",
    "LoginResponse",
    "RegisterRequest",
    "RequestResetRequest",
    "RequestResetResponse",
    "ResetPasswordRequest",
    "SessionAssertion",
    "SettingsSummary",
    "UserListItem",
    "UserPublic",
    "UsersListResponse",
]
