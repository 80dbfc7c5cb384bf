"""Token cleanup: delete expired and consumed password-reset tokens."""

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from app.services.credential_store import CredentialStore

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


def run_token_cleanup(session: Session, settings: "Settings", now: datetime | None = None) -> int:
    """
    Delete reset tokens that are past expires_at or already consumed.

    Expiry is enforced at redemption time anyway; this only keeps the table small.
    Returns the number of rows deleted. Idempotent: safe to run repeatedly.
    """
    if not settings.TOKEN_CLEANUP_ENABLED:
        logger.info("Token cleanup is disabled (TOKEN_CLEANUP_ENABLED=false); skipping.")
        return 0

    now = now or datetime.now(UTC)
    deleted_count = CredentialStore(session).purge_reset_tokens(now)
    if deleted_count > 0:
        logger.info(
            "Token cleanup run: now=%s, tokens_deleted=%s",
            now.isoformat(),
            deleted_count,
        )
    return deleted_count
