"""Schemas for dashboard (admin-area) endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.auth import UserPublic, LenientBody, as_safe_string
from app.services.roles import Role


class UserListItem(UserPublic):
    """User entry for the dashboard list (no password)."""

    role: Role
    is_active: bool = Field(serialization_alias="isActive")


class UsersListResponse(BaseModel):
    """Response for GET /admin/users."""

    users: list[UserListItem]


class AccessResponse(BaseModel):
    """What the current session may open; consumed by frontend page guards."""

    model_config = ConfigDict(populate_by_name=True)

    role: Role
    can_access_admin: bool = Field(alias="canAccessAdmin")
    can_access_settings: bool = Field(alias="canAccessSettings")
    redirect_to: str | None = Field(default=None, alias="redirectTo")


class SettingsSummary(BaseModel):
    """Non-secret runtime settings shown on the dashboard settings page."""

    model_config = ConfigDict(populate_by_name=True)

    environment: str
    reset_token_ttl_minutes: int = Field(alias="resetTokenTtlMinutes")
    session_max_age_minutes: int = Field(alias="sessionMaxAgeMinutes")
    reset_delivery_configured: bool = Field(alias="resetDeliveryConfigured")


class CreateUserRequest(LenientBody):
    """Body for POST /admin/users. A blank username is generated from name and surname."""

    username: str = ""
    name: str = ""
    surname: str = ""
    email: str = ""
    password: str = ""
    role: str = ""
    phone: str = ""
    city: str = ""
    address: str = ""

    @field_validator(
        "username", "name", "surname", "email", "role", "phone", "city", "address", mode="before"
    )
    @classmethod
    def _trim(cls, v: Any) -> str:
        return as_safe_string(v)

    @field_validator("password", mode="before")
    @classmethod
    def _keep_password(cls, v: Any) -> str:
        return v if isinstance(v, str) else ""
