"""Request/response schemas for session and password-reset endpoints."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.services.roles import Role


def as_safe_string(value: Any) -> str:
    """Non-strings become empty; strings are trimmed."""
    return value.strip() if isinstance(value, str) else ""


class LenientBody(BaseModel):
    """Request body whose fields default to "" instead of failing on wrong types."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RequestResetRequest(LenientBody):
    """Body for POST /auth/request-reset."""

    identifier: str = Field(default="", description="Username or email")

    @field_validator("identifier", mode="before")
    @classmethod
    def _trim(cls, v: Any) -> str:
        return as_safe_string(v)


class ResetPasswordRequest(LenientBody):
    """Body for POST /auth/reset-password."""

    identifier: str = Field(default="", description="Username or email")
    token: str = Field(default="", description="Reset token received out-of-band")
    new_password: str = Field(default="", alias="newPassword")

    @field_validator("identifier", "token", mode="before")
    @classmethod
    def _trim(cls, v: Any) -> str:
        return as_safe_string(v)

    @field_validator("new_password", mode="before")
    @classmethod
    def _keep_password(cls, v: Any) -> str:
        # Passwords are not trimmed.
        return v if isinstance(v, str) else ""


class LoginRequest(LenientBody):
    """Credentials for login; username may also be the account email."""

    username: str = ""
    password: str = ""

    @field_validator("username", mode="before")
    @classmethod
    def _trim(cls, v: Any) -> str:
        return as_safe_string(v)

    @field_validator("password", mode="before")
    @classmethod
    def _keep_password(cls, v: Any) -> str:
        return v if isinstance(v, str) else ""


class RegisterRequest(LenientBody):
    """Customer self-registration."""

    name: str = ""
    surname: str = ""
    email: str = ""
    password: str = ""

    @field_validator("name", "surname", "email", mode="before")
    @classmethod
    def _trim(cls, v: Any) -> str:
        return as_safe_string(v)

    @field_validator("password", mode="before")
    @classmethod
    def _keep_password(cls, v: Any) -> str:
        return v if isinstance(v, str) else ""


class UserPublic(BaseModel):
    """Public projection of a user: no password hash or other secrets."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    name: str
    surname: str
    email: str
    phone: str
    city: str
    address: str


class SessionAssertion(BaseModel):
    """
    Result of reading the session cookies.

    Serialized with exclude_none, so an unauthenticated session is exactly
    {"authenticated": false}.
    """

    authenticated: bool
    role: Role | None = None
    user: UserPublic | None = None


class ActionResponse(BaseModel):
    """Generic {ok, message?} envelope used by the auth endpoints."""

    ok: bool
    message: str | None = None


class RequestResetResponse(BaseModel):
    """Uniform response for reset requests; previewToken only outside production."""

    model_config = ConfigDict(populate_by_name=True)

    ok: Literal[True] = True
    message: str
    preview_token: str | None = Field(default=None, alias="previewToken")


class LoginResponse(BaseModel):
    """Successful login/registration: where the client should go next."""

    model_config = ConfigDict(populate_by_name=True)

    ok: Literal[True] = True
    redirect_to: str = Field(alias="redirectTo")
