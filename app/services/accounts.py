"""Account login, customer self-registration and staff-created accounts."""

import logging

from app.core.security import hash_password, verify_password
from app.models import User
from app.services.credential_store import (
    CredentialStore,
    DuplicateAccountError,
    normalize_email,
)
from app.services.roles import Role, role_to_string

logger = logging.getLogger(__name__)


def authenticate(store: CredentialStore, identifier: str, password: str) -> User | None:
    """
    Return the active account matching identifier (email or username) and password.

    Unknown accounts still pay for one bcrypt check so the timing matches a wrong password.
    """
    if not identifier or not password:
        return None
    user = store.find_user_by_identifier(identifier)
    if user is None:
        verify_password(password, None)
        return None
    if not verify_password(password, user.password_hash) or not user.is_active:
        return None
    return user


def create_account(
    store: CredentialStore,
    *,
    email: str,
    password: str,
    role: Role,
    username: str = "",
    name: str = "",
    surname: str = "",
    phone: str = "",
    city: str = "",
    address: str = "",
) -> User | None:
    """
    Create an account; None if the email or an explicit username is already taken.

    A blank username is derived from name and surname (janedoe, janedoe1, ...).
    """
    if store.find_user_by_email(email) is not None:
        return None
    if username:
        if store.username_taken(username):
            return None
    else:
        username = store.next_available_username(f"{name} {surname}")
    try:
        user = store.add_user(
            username=username,
            email=normalize_email(email),
            password_hash=hash_password(password),
            role=role_to_string(role),
            name=name,
            surname=surname,
            phone=phone,
            city=city,
            address=address,
        )
    except DuplicateAccountError:
        return None
    logger.info("Account created: user_id=%s role=%s", user.id, user.role)
    return user


def register_customer(
    store: CredentialStore,
    *,
    name: str,
    surname: str,
    email: str,
    password: str,
) -> User | None:
    """Create a Customer account; None if the email is already registered."""
    return create_account(
        store,
        email=email,
        password=password,
        role=Role.CUSTOMER,
        name=name,
        surname=surname,
    )
