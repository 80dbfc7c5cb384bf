"""Declarative Base shared by the account and reset-token models."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base.metadata is the target for alembic autogenerate and test create_all()."""
