"""Password hashing, signed session tokens and reset-token primitives."""

import hashlib
import hmac
import secrets
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import bcrypt
import jwt

if TYPE_CHECKING:
    from app.core.config import Settings

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

# Min/max lengths for username and password validation.
USERNAME_MIN_LEN = 1
USERNAME_MAX_LEN = 255
PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 128

# Bytes of entropy in a password-reset token before url-safe encoding.
RESET_TOKEN_BYTES = 32

# Claims every session token must carry.
SESSION_REQUIRED_CLAIMS = ["sub", "role", "sid", "exp", "iat"]

# Verified against when no account matches so login timing does not reveal
# whether the username exists.
_DUMMY_PASSWORD_HASH = bcrypt.hashpw(
    b"not-a-real-password", bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
).decode("utf-8")


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed: str | None) -> bool:
    """Verify a plain password against a stored hash.

    With ``hashed=None`` a dummy hash is checked and False returned, so callers
    can spend the same time on unknown accounts.
    """
    pw_bytes = plain_password.encode("utf-8")[:72]
    if hashed is None:
        bcrypt.checkpw(pw_bytes, _DUMMY_PASSWORD_HASH.encode("utf-8"))
        return False
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def create_session_token(username: str, role: str, settings: "Settings") -> str:
    """Create a signed session token for one login (sub, role, random sid, iat, exp)."""
    now = datetime.now(UTC)
    expire = now + timedelta(minutes=settings.SESSION_MAX_AGE_MINUTES)
    payload: dict[str, Any] = {
        "sub": username,
        "role": role,
        "sid": secrets.token_urlsafe(16),
        "exp": expire,
        "iat": now,
    }
    return jwt.encode(
        payload,
        settings.SESSION_SECRET.get_secret_value(),
        algorithm=settings.SESSION_ALGORITHM,
    )


def decode_session_token(token: str, settings: "Settings") -> dict[str, Any]:
    """
    Decode and validate a session token; return its claims.
    Raises jwt.PyJWTError on a bad signature, expiry or missing claims.
    """
    return jwt.decode(
        token,
        settings.SESSION_SECRET.get_secret_value(),
        algorithms=[settings.SESSION_ALGORITHM],
        options={"require": SESSION_REQUIRED_CLAIMS},
    )


def generate_reset_token() -> str:
    """Return a new opaque, url-safe reset token."""
    return secrets.token_urlsafe(RESET_TOKEN_BYTES)


def hash_reset_token(token: str) -> str:
    """SHA-256 hex digest of a reset token; only the digest is persisted."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def reset_token_matches(presented: str, stored_hash: str) -> bool:
    """Constant-time comparison of a presented token against a stored digest."""
    return hmac.compare_digest(hash_reset_token(presented), stored_hash)
