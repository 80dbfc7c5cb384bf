"""
Credential store: users and password-reset tokens on top of a SQLAlchemy session.

Token issuance and redemption lock the user row (SELECT ... FOR UPDATE where the
backend supports it) so both serialize per account. Redemption marks the token
consumed with a conditional UPDATE; only the caller whose UPDATE hits a row wins.
"""

import logging
import re
import unicodedata
from datetime import UTC, datetime

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models import PasswordResetToken, User

logger = logging.getLogger(__name__)


class CredentialStoreError(Exception):
    """Raised when the backing database fails; callers must not retry blindly."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


class DuplicateAccountError(CredentialStoreError):
    """Raised when a username or email is already taken."""


def normalize_email(value: str) -> str:
    return value.strip().lower()


def username_from_name(value: str) -> str:
    """Lower-case ASCII alphanumerics of a display name; "user" when nothing is left."""
    decomposed = unicodedata.normalize("NFKD", value.strip().lower())
    ascii_only = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return re.sub(r"[^a-z0-9]+", "", ascii_only) or "user"


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


class CredentialStore:
    """Point lookups and atomic credential mutations for one DB session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    # -- users ---------------------------------------------------------------

    def find_user_by_username(self, username: str) -> User | None:
        username = username.strip()
        if not username:
            return None
        return self._scalar(select(User).where(User.username == username))

    def find_user_by_email(self, email: str) -> User | None:
        email = normalize_email(email)
        if not email:
            return None
        return self._scalar(select(User).where(User.email == email))

    def find_user_by_identifier(self, identifier: str) -> User | None:
        """Email match first, then username."""
        return self.find_user_by_email(identifier) or self.find_user_by_username(identifier)

    def get_user(self, user_id: int) -> User | None:
        try:
            return self.session.get(User, user_id)
        except SQLAlchemyError as e:
            raise CredentialStoreError("Credential store unavailable", e) from e

    def list_users(self) -> list[User]:
        try:
            return list(
                self.session.scalars(select(User).order_by(User.created_at.desc(), User.id.desc()))
            )
        except SQLAlchemyError as e:
            raise CredentialStoreError("Credential store unavailable", e) from e

    def username_taken(self, username: str) -> bool:
        return self.find_user_by_username(username) is not None

    def next_available_username(self, preferred: str) -> str:
        """preferred, or preferred1, preferred2, ... whichever is free first."""
        base = username_from_name(preferred)
        candidate = base
        index = 1
        while self.username_taken(candidate):
            candidate = f"{base}{index}"
            index += 1
        return candidate

    def add_user(
        self,
        *,
        username: str,
        email: str,
        password_hash: str,
        role: str,
        name: str = "",
        surname: str = "",
        phone: str = "",
        city: str = "",
        address: str = "",
    ) -> User:
        user = User(
            username=username.strip(),
            email=normalize_email(email),
            password_hash=password_hash,
            role=role,
            name=name,
            surname=surname,
            phone=phone,
            city=city,
            address=address,
            is_active=True,
        )
        try:
            self.session.add(user)
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise DuplicateAccountError("Username or email already registered", e) from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise CredentialStoreError("Could not create user", e) from e
        self.session.refresh(user)
        return user

    def deactivate_user(self, user_id: int) -> bool:
        try:
            result = self.session.execute(
                update(User).where(User.id == user_id).values(is_active=False)
            )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise CredentialStoreError("Could not deactivate user", e) from e
        return result.rowcount == 1

    # -- reset tokens --------------------------------------------------------

    def replace_reset_token(
        self,
        user_id: int,
        token_hash: str,
        issued_at: datetime,
        expires_at: datetime,
    ) -> PasswordResetToken:
        """
        Delete every earlier token of the user and insert the new one, in one commit.
        """
        try:
            self._lock_user(user_id)
            self.session.execute(
                delete(PasswordResetToken).where(PasswordResetToken.user_id == user_id)
            )
            row = PasswordResetToken(
                user_id=user_id,
                token_hash=token_hash,
                created_at=issued_at,
                expires_at=expires_at,
                consumed_at=None,
            )
            self.session.add(row)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise CredentialStoreError("Could not store reset token", e) from e
        return row

    def get_latest_reset_token(self, user_id: int, *, lock: bool = False) -> PasswordResetToken | None:
        """Most recently issued token for the user (consumed or not)."""
        try:
            if lock:
                self._lock_user(user_id)
            return self.session.scalars(
                select(PasswordResetToken)
                .where(PasswordResetToken.user_id == user_id)
                .order_by(PasswordResetToken.created_at.desc(), PasswordResetToken.id.desc())
                .limit(1)
            ).first()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise CredentialStoreError("Credential store unavailable", e) from e

    def consume_reset_token(self, token_id: int, user_id: int, password_hash: str, now: datetime) -> bool:
        """
        Mark the token consumed and store the new password hash atomically.

        Returns False (and changes nothing) if another redeemer got there first.
        """
        try:
            result = self.session.execute(
                update(PasswordResetToken)
                .where(
                    PasswordResetToken.id == token_id,
                    PasswordResetToken.user_id == user_id,
                    PasswordResetToken.consumed_at.is_(None),
                )
                .values(consumed_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.session.rollback()
                return False
            self.session.execute(
                update(User)
                .where(User.id == user_id)
                .values(password_hash=password_hash)
                .execution_options(synchronize_session=False)
            )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise CredentialStoreError("Could not redeem reset token", e) from e
        return True

    def update_password(self, user_id: int, password_hash: str) -> bool:
        try:
            result = self.session.execute(
                update(User).where(User.id == user_id).values(password_hash=password_hash)
            )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise CredentialStoreError("Could not update password", e) from e
        return result.rowcount == 1

    def purge_reset_tokens(self, now: datetime) -> int:
        """Delete expired and consumed tokens. Returns the number of rows deleted."""
        try:
            result = self.session.execute(
                delete(PasswordResetToken).where(
                    or_(
                        PasswordResetToken.expires_at < now,
                        PasswordResetToken.consumed_at.is_not(None),
                    )
                )
            )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise CredentialStoreError("Could not purge reset tokens", e) from e
        return result.rowcount

    # -- helpers -------------------------------------------------------------

    def rollback(self) -> None:
        """Release row locks taken by a read that will not be followed by a write."""
        self.session.rollback()

    def _scalar(self, stmt) -> User | None:
        try:
            return self.session.scalars(stmt).first()
        except SQLAlchemyError as e:
            raise CredentialStoreError("Credential store unavailable", e) from e

    def _lock_user(self, user_id: int) -> None:
        self.session.execute(select(User.id).where(User.id == user_id).with_for_update())
