"""Out-of-band issuance and delivery of password-reset tokens through a mail/SMS webhook."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any

import httpx
from sqlalchemy.orm import sessionmaker

from app.services.credential_store import CredentialStore, CredentialStoreError
from app.services.password_reset import IssuedResetToken, request_reset

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


class ResetDeliveryError(Exception):
    """Raised when the delivery webhook is unreachable or rejects the message."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def _is_delivery_configured(settings: "Settings") -> bool:
    return bool(settings.RESET_DELIVERY_URL)


def _build_payload(issued: "IssuedResetToken") -> dict[str, Any]:
    """Webhook body: recipient, token and expiry. Callers must never log this."""
    return {
        "type": "password_reset",
        "recipient": issued.email,
        "username": issued.username,
        "token": issued.token,
        "expiresAt": issued.expires_at.isoformat(),
    }


def send_reset_token(issued: "IssuedResetToken", settings: "Settings") -> bool:
    """
    POST the token to RESET_DELIVERY_URL.

    Returns False when no webhook is configured. Raises ResetDeliveryError on
    transport errors and non-2xx responses.
    """
    if not _is_delivery_configured(settings):
        logger.warning(
            "Reset delivery not configured (RESET_DELIVERY_URL unset); token for user_id=%s not sent",
            issued.user_id,
        )
        return False
    try:
        with httpx.Client(timeout=settings.RESET_DELIVERY_TIMEOUT_SEC) as client:
            response = client.post(settings.RESET_DELIVERY_URL, json=_build_payload(issued))
    except httpx.TimeoutException as e:
        raise ResetDeliveryError("Reset delivery timed out") from e
    except httpx.HTTPError as e:
        raise ResetDeliveryError(f"Reset delivery unreachable: {type(e).__name__}") from e
    if response.status_code >= 400:
        raise ResetDeliveryError(
            f"Reset delivery returned status {response.status_code}",
            status_code=response.status_code,
        )
    logger.info("Reset token delivered: user_id=%s", issued.user_id)
    return True


def deliver_reset_token(issued: "IssuedResetToken", settings: "Settings") -> None:
    """Background-task wrapper: delivery failures are logged, never surfaced to the requester."""
    try:
        send_reset_token(issued, settings)
    except ResetDeliveryError as e:
        logger.warning(
            "Reset delivery failed for user_id=%s: %s", issued.user_id, e.message
        )


def issue_and_deliver_reset(
    session_factory: sessionmaker,
    identifier: str,
    settings: "Settings",
) -> None:
    """
    Background job: issue a reset token for identifier and deliver it.

    Runs after the response has been sent, so the requester's latency is the
    same whether or not the identifier matches an account. Store and delivery
    failures are logged only.
    """
    db = session_factory()
    try:
        result = request_reset(
            CredentialStore(db),
            identifier,
            ttl=timedelta(minutes=settings.RESET_TOKEN_TTL_MINUTES),
        )
    except CredentialStoreError as e:
        logger.error("Reset token issuance failed: %s", e.message)
        return
    finally:
        db.close()
    if result.sent and result.token is not None:
        deliver_reset_token(result.token, settings)
