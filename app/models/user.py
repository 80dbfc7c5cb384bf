"""ORM model for storefront accounts (customers and dashboard staff)."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func

from app.models.base import Base


class User(Base):
    """
    Storefront account used for session login and password reset.

    role: stored as the canonical Role value ('Super Admin', 'Admin', 'Manager', 'Customer').
    Accounts are deactivated, never hard-deleted.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False, default="")
    surname = Column(String(255), nullable=False, default="")
    email = Column(String(320), nullable=False, unique=True, index=True)
    phone = Column(String(64), nullable=False, default="")
    city = Column(String(255), nullable=False, default="")
    address = Column(String(1024), nullable=False, default="")
    password_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default="Customer")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
