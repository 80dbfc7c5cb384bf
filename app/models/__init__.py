"""SQLAlchemy ORM models."""

from app.models.base import Base
from app.models.password_reset_token import PasswordResetToken
from app.models.user import User

__all__ = ["Base", "PasswordResetToken", "User"]
