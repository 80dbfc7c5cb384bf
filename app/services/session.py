"""
Session reader: rebuild the caller's identity from the cookie bundle.

The session cookie holds a signed per-login token (see create_session_token).
The username and role cookies must agree with the token's claims, and the
username must still name an active account; otherwise the result is the bare
unauthenticated assertion. Reading never mutates cookies or the store.
"""

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

import jwt

from app.core.security import create_session_token, decode_session_token
from app.schemas.auth import SessionAssertion, UserPublic
from app.services.credential_store import CredentialStore
from app.services.roles import Role, resolve_role, role_to_string

if TYPE_CHECKING:
    from app.core.config import Settings
    from app.models import User

logger = logging.getLogger(__name__)

UNAUTHENTICATED = SessionAssertion(authenticated=False)


def read_session(
    cookies: Mapping[str, str],
    store: CredentialStore,
    settings: "Settings",
) -> SessionAssertion:
    token = cookies.get(settings.SESSION_COOKIE_NAME) or ""
    if not token:
        return UNAUTHENTICATED
    try:
        claims = decode_session_token(token, settings)
    except jwt.PyJWTError:
        return UNAUTHENTICATED

    username = (cookies.get(settings.USERNAME_COOKIE_NAME) or "").strip()
    if not username or username != claims.get("sub"):
        return UNAUTHENTICATED

    role = resolve_role(cookies.get(settings.ROLE_COOKIE_NAME) or role_to_string(Role.CUSTOMER))
    if role != resolve_role(claims.get("role")):
        return UNAUTHENTICATED

    user = store.find_user_by_username(username)
    if user is None or not user.is_active:
        logger.info("Session cookie names a missing or inactive account; treating as signed out")
        return UNAUTHENTICATED

    return SessionAssertion(
        authenticated=True,
        role=role,
        user=UserPublic.model_validate(user),
    )


def session_cookies(user: "User", settings: "Settings") -> dict[str, str]:
    """Cookie name -> value for a fresh login of user."""
    role = role_to_string(resolve_role(user.role))
    return {
        settings.SESSION_COOKIE_NAME: create_session_token(user.username, role, settings),
        settings.ROLE_COOKIE_NAME: role,
        settings.USERNAME_COOKIE_NAME: user.username,
    }
