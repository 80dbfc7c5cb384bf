"""
CLI entrypoint for the reset-token cleanup job. Run from cron, e.g.:

  python -m app.token_cleanup

Or hourly: 0 * * * * cd /path/to/storefront-identity && .venv/bin/python -m app.token_cleanup
"""

import logging
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.services.credential_store import CredentialStoreError
from app.services.token_cleanup import run_token_cleanup

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Delete expired and consumed password-reset tokens."""
    settings = get_settings()
    db = SessionLocal()
    try:
        tokens_deleted = run_token_cleanup(db, settings)
        logger.info("Token cleanup completed: tokens_deleted=%s", tokens_deleted)
        return 0
    except CredentialStoreError as e:
        logger.exception("Token cleanup failed: %s", e.message)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
