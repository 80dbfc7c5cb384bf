"""
Password reset: issue single-use, time-bound tokens and redeem them.

Neither function tells the caller *why* something failed. request_reset reports
internally whether an account matched; the router collapses that into one
uniform response. redeem_reset returns a bare boolean.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from app.core.security import (
    generate_reset_token,
    hash_password,
    hash_reset_token,
    reset_token_matches,
)
from app.services.credential_store import CredentialStore, as_utc

logger = logging.getLogger(__name__)

DEFAULT_RESET_TOKEN_TTL = timedelta(minutes=30)

# Compared against when no token exists so the failure path does the same work.
_DUMMY_TOKEN_HASH = hash_reset_token("no-token-issued")


@dataclass(frozen=True)
class IssuedResetToken:
    """Raw token plus metadata; the raw value goes only to the delivery channel."""

    user_id: int
    username: str
    email: str
    token: str
    issued_at: datetime
    expires_at: datetime

    def __repr__(self) -> str:
        return (
            f"IssuedResetToken(user_id={self.user_id}, username={self.username!r}, "
            f"expires_at={self.expires_at.isoformat()}, token=<redacted>)"
        )


@dataclass(frozen=True)
class ResetRequestResult:
    sent: bool
    token: IssuedResetToken | None = None


def request_reset(
    store: CredentialStore,
    identifier: str,
    *,
    ttl: timedelta = DEFAULT_RESET_TOKEN_TTL,
    now: datetime | None = None,
) -> ResetRequestResult:
    """
    Issue a reset token for the account matching identifier (email or username).

    Any earlier token of that account stops being valid in the same commit.
    Unknown or inactive accounts give sent=False; a throwaway token is still
    generated and hashed on that path.
    """
    now = now or datetime.now(UTC)
    raw_token = generate_reset_token()
    token_hash = hash_reset_token(raw_token)

    user = store.find_user_by_identifier(identifier)
    if user is None or not user.is_active:
        logger.info("Password reset requested for unknown or inactive account")
        return ResetRequestResult(sent=False)

    expires_at = now + ttl
    store.replace_reset_token(user.id, token_hash, issued_at=now, expires_at=expires_at)
    logger.info(
        "Password reset token issued: user_id=%s expires_at=%s",
        user.id,
        expires_at.isoformat(),
    )
    return ResetRequestResult(
        sent=True,
        token=IssuedResetToken(
            user_id=user.id,
            username=user.username,
            email=user.email,
            token=raw_token,
            issued_at=now,
            expires_at=expires_at,
        ),
    )


def redeem_reset(
    store: CredentialStore,
    identifier: str,
    token: str,
    new_password: str,
    *,
    now: datetime | None = None,
) -> bool:
    """
    Redeem a reset token and set a new password.

    True only if the token is the account's live token (unconsumed, not past
    expires_at) and this call is the one that consumed it. Input validation
    (non-empty fields, password length) belongs to the caller.
    """
    now = now or datetime.now(UTC)
    # Hashed up front for every caller; bcrypt must not run under the row lock.
    password_hash = hash_password(new_password)

    user = store.find_user_by_identifier(identifier)
    if user is None or not user.is_active:
        reset_token_matches(token, _DUMMY_TOKEN_HASH)
        return False

    row = store.get_latest_reset_token(user.id, lock=True)
    if row is None:
        reset_token_matches(token, _DUMMY_TOKEN_HASH)
        store.rollback()
        return False

    matches = reset_token_matches(token, row.token_hash)
    live = row.consumed_at is None and now <= as_utc(row.expires_at)
    if not (matches and live):
        store.rollback()
        logger.info("Password reset redemption rejected: user_id=%s", user.id)
        return False

    if not store.consume_reset_token(row.id, user.id, password_hash, now):
        logger.info("Password reset token already consumed: user_id=%s", user.id)
        return False

    logger.info("Password reset completed: user_id=%s", user.id)
    return True
