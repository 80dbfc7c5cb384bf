"""Session login/logout, identity check, password reset and auth dependencies."""

import logging
from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import Settings, get_settings
from app.core.database import get_db, get_session_factory
from app.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
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
)
from app.services.access import CUSTOMER_HOME, STAFF_HOME, can_access_admin, can_access_settings
from app.services.accounts import authenticate, register_customer
from app.services.credential_store import CredentialStore
from app.services.password_reset import redeem_reset, request_reset
from app.services.reset_delivery import deliver_reset_token, issue_and_deliver_reset
from app.services.roles import resolve_role
from app.services.session import read_session, session_cookies

logger = logging.getLogger(__name__)

router = APIRouter()

# One message for found and not-found identifiers.
RESET_REQUEST_MESSAGE = "If the account exists, a reset token has been sent to its email."
RESET_REQUEST_INVALID = "Username or email is required."
RESET_PASSWORD_INVALID = "Username/email, token and valid password are required."
RESET_PASSWORD_FAILED = "Invalid or expired token. Please request a new token."
LOGIN_FAILED = "Username or password is invalid."
REGISTER_FAILED = "Registration failed. Please check your details or use another email."


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ActionResponse(ok=False, message=message).model_dump(exclude_none=True),
    )


def _set_session_cookies(response: Response, cookies: dict[str, str], settings: Settings) -> None:
    for name, value in cookies.items():
        response.set_cookie(
            key=name,
            value=value,
            max_age=settings.SESSION_MAX_AGE_MINUTES * 60,
            path="/",
            httponly=True,
            samesite="lax",
            secure=settings.is_production,
        )


def _clear_session_cookies(response: Response, settings: Settings) -> None:
    for name in (
        settings.SESSION_COOKIE_NAME,
        settings.ROLE_COOKIE_NAME,
        settings.USERNAME_COOKIE_NAME,
    ):
        response.delete_cookie(
            key=name,
            path="/",
            httponly=True,
            samesite="lax",
            secure=settings.is_production,
        )


def get_store(db: Annotated[Session, Depends(get_db)]) -> CredentialStore:
    """Dependency: credential store bound to the request's DB session."""
    return CredentialStore(db)


def get_session(
    request: Request,
    store: Annotated[CredentialStore, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> SessionAssertion:
    """Dependency: the caller's session assertion (never raises for signed-out callers)."""
    return read_session(dict(request.cookies), store, settings)


def require_session(
    session: Annotated[SessionAssertion, Depends(get_session)],
) -> SessionAssertion:
    """Dependency: require an authenticated session. Raises 401 otherwise."""
    if not session.authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return session


def require_admin_area(
    session: Annotated[SessionAssertion, Depends(require_session)],
) -> SessionAssertion:
    """Dependency: require a staff role (anything but Customer). Raises 403 otherwise."""
    if not can_access_admin(session.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Dashboard access required",
        )
    return session


def require_settings_access(
    session: Annotated[SessionAssertion, Depends(require_session)],
) -> SessionAssertion:
    """Dependency: require Super Admin or Admin. Raises 403 otherwise."""
    if not can_access_settings(session.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Settings access required",
        )
    return session


@router.get("/me", response_model=SessionAssertion, response_model_exclude_none=True)
def get_me(
    session: Annotated[SessionAssertion, Depends(get_session)],
) -> SessionAssertion:
    """Identity check: {"authenticated": false} or the role and public profile."""
    return session


@router.post("/login", response_model=LoginResponse, responses={401: {"model": ActionResponse}})
def login(
    body: LoginRequest,
    response: Response,
    store: Annotated[CredentialStore, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """
    Authenticate with username (or email) and password; sets the session cookies.
    Unknown user, wrong password and disabled account all give the same 401.
    """
    user = None
    if body.username and len(body.username) <= USERNAME_MAX_LEN and len(body.password) <= PASSWORD_MAX_LEN:
        user = authenticate(store, body.username, body.password)
    if user is None:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content=ActionResponse(ok=False, message=LOGIN_FAILED).model_dump(exclude_none=True),
        )

    _set_session_cookies(response, session_cookies(user, settings), settings)
    logger.info("Login succeeded: user_id=%s", user.id)
    redirect_to = STAFF_HOME if can_access_admin(resolve_role(user.role)) else CUSTOMER_HOME
    return LoginResponse(redirect_to=redirect_to)


@router.post("/logout", response_model=ActionResponse, response_model_exclude_none=True)
def logout(
    response: Response,
    settings: Annotated[Settings, Depends(get_settings)],
) -> ActionResponse:
    """Clear the session cookies."""
    _clear_session_cookies(response, settings)
    return ActionResponse(ok=True)


@router.post("/register", response_model=LoginResponse, responses={400: {"model": ActionResponse}})
def register(
    body: RegisterRequest,
    response: Response,
    store: Annotated[CredentialStore, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Create a Customer account and sign it in."""
    if (
        not body.name
        or "@" not in body.email
        or not (PASSWORD_MIN_LEN <= len(body.password) <= PASSWORD_MAX_LEN)
    ):
        return _bad_request(REGISTER_FAILED)

    user = register_customer(
        store,
        name=body.name,
        surname=body.surname,
        email=body.email,
        password=body.password,
    )
    if user is None:
        return _bad_request(REGISTER_FAILED)

    _set_session_cookies(response, session_cookies(user, settings), settings)
    return LoginResponse(redirect_to=CUSTOMER_HOME)


@router.post(
    "/request-reset",
    response_model=RequestResetResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ActionResponse}},
)
def post_request_reset(
    body: RequestResetRequest,
    background_tasks: BackgroundTasks,
    store: Annotated[CredentialStore, Depends(get_store)],
    session_factory: Annotated[sessionmaker, Depends(get_session_factory)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """
    Issue a password-reset token and send it out-of-band.

    The response is the same whether or not the identifier matched an account.
    In production the lookup, issuance and delivery all run as a background
    task, so the request path does the same work for every identifier.
    Outside production the token is issued inline and echoed as previewToken
    for local testing.
    """
    if not body.identifier:
        return _bad_request(RESET_REQUEST_INVALID)

    if settings.is_production:
        background_tasks.add_task(
            issue_and_deliver_reset, session_factory, body.identifier, settings
        )
        return RequestResetResponse(message=RESET_REQUEST_MESSAGE)

    result = request_reset(
        store,
        body.identifier,
        ttl=timedelta(minutes=settings.RESET_TOKEN_TTL_MINUTES),
    )

    payload = RequestResetResponse(message=RESET_REQUEST_MESSAGE)
    if result.sent and result.token is not None:
        background_tasks.add_task(deliver_reset_token, result.token, settings)
        payload.preview_token = result.token.token
    return payload


@router.post(
    "/reset-password",
    response_model=ActionResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ActionResponse}},
)
def post_reset_password(
    body: ResetPasswordRequest,
    store: Annotated[CredentialStore, Depends(get_store)],
):
    """Redeem a reset token and set a new password. Failures carry one generic message."""
    if (
        not body.identifier
        or not body.token
        or not (PASSWORD_MIN_LEN <= len(body.new_password) <= PASSWORD_MAX_LEN)
    ):
        return _bad_request(RESET_PASSWORD_INVALID)

    if not redeem_reset(store, body.identifier, body.token, body.new_password):
        return _bad_request(RESET_PASSWORD_FAILED)
    return ActionResponse(ok=True)
