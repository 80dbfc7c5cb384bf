"""Dashboard endpoints guarded by the access gates."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.v1.auth import (
    get_session,
    get_store,
    require_admin_area,
    require_settings_access,
)
from app.core.config import Settings, get_settings
from app.core.security import PASSWORD_MAX_LEN, PASSWORD_MIN_LEN, USERNAME_MAX_LEN
from app.models import User
from app.schemas.admin import (
    AccessResponse,
    CreateUserRequest,
    SettingsSummary,
    UserListItem,
    UsersListResponse,
)
from app.schemas.auth import ActionResponse, SessionAssertion
from app.services.access import (
    STAFF_HOME,
    can_access_admin,
    can_access_settings,
    can_create_user_role,
    can_delete_user,
    resolve_dashboard_redirect,
)
from app.services.accounts import create_account
from app.services.credential_store import CredentialStore
from app.services.roles import Role, resolve_role, role_to_string

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/access", response_model=AccessResponse)
def get_access(
    session: Annotated[SessionAssertion, Depends(get_session)],
    path: Annotated[str, Query(max_length=2048)] = STAFF_HOME,
) -> AccessResponse:
    """
    Page-guard answer for the current session: which areas it may open and,
    for path, where the frontend should redirect (null to render the page).
    """
    role = session.role if session.authenticated and session.role else Role.CUSTOMER
    return AccessResponse(
        role=role,
        can_access_admin=session.authenticated and can_access_admin(role),
        can_access_settings=session.authenticated and can_access_settings(role),
        redirect_to=resolve_dashboard_redirect(path, session),
    )


def _list_item(user: User) -> UserListItem:
    return UserListItem.model_validate(
        {
            "id": user.id,
            "username": user.username,
            "name": user.name,
            "surname": user.surname,
            "email": user.email,
            "phone": user.phone,
            "city": user.city,
            "address": user.address,
            "role": resolve_role(user.role),
            "is_active": user.is_active,
        }
    )


@router.get("/users", response_model=UsersListResponse)
def list_users(
    _session: Annotated[SessionAssertion, Depends(require_admin_area)],
    store: Annotated[CredentialStore, Depends(get_store)],
) -> UsersListResponse:
    """List all accounts (dashboard roles only)."""
    return UsersListResponse(users=[_list_item(u) for u in store.list_users()])


@router.post("/users", response_model=UserListItem, status_code=status.HTTP_201_CREATED)
def create_user(
    body: CreateUserRequest,
    session: Annotated[SessionAssertion, Depends(require_admin_area)],
    store: Annotated[CredentialStore, Depends(get_store)],
) -> UserListItem:
    """
    Create an account from the dashboard. Admins may create any role but
    Super Admin; Managers only Manager and Customer accounts.
    """
    role = resolve_role(body.role or role_to_string(Role.CUSTOMER))
    if not can_create_user_role(session.role, role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to create this role",
        )
    if (
        not body.name
        or "@" not in body.email
        or len(body.username) > USERNAME_MAX_LEN
        or not (PASSWORD_MIN_LEN <= len(body.password) <= PASSWORD_MAX_LEN)
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Name, email and a valid password are required",
        )

    user = create_account(
        store,
        username=body.username,
        name=body.name,
        surname=body.surname,
        email=body.email,
        password=body.password,
        role=role,
        phone=body.phone,
        city=body.city,
        address=body.address,
    )
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username or email already registered",
        )
    logger.info(
        "User created: user_id=%s by=%s", user.id, session.user.id if session.user else None
    )
    return _list_item(user)


@router.post(
    "/users/{user_id}/deactivate",
    response_model=ActionResponse,
    response_model_exclude_none=True,
)
def deactivate_user(
    user_id: int,
    session: Annotated[SessionAssertion, Depends(require_admin_area)],
    store: Annotated[CredentialStore, Depends(get_store)],
) -> ActionResponse:
    """
    Deactivate an account. Any staff role may deactivate Admin, Manager and
    Customer accounts; only a Super Admin may deactivate a Super Admin.
    """
    target = store.get_user(user_id)
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if not can_delete_user(session.role, resolve_role(target.role)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to deactivate this user",
        )
    store.deactivate_user(user_id)
    logger.info(
        "User deactivated: user_id=%s by=%s", user_id, session.user.id if session.user else None
    )
    return ActionResponse(ok=True)


@router.get("/settings", response_model=SettingsSummary)
def get_settings_summary(
    _session: Annotated[SessionAssertion, Depends(require_settings_access)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> SettingsSummary:
    """Non-secret runtime settings (Super Admin and Admin only)."""
    return SettingsSummary(
        environment=settings.APP_ENV,
        reset_token_ttl_minutes=settings.RESET_TOKEN_TTL_MINUTES,
        session_max_age_minutes=settings.SESSION_MAX_AGE_MINUTES,
        reset_delivery_configured=bool(settings.RESET_DELIVERY_URL),
    )
