"""Base model and mixins for SQLAlchemy models.

This module provides the declarative base and the timestamp mixin shared
by every table.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamp fields.

    Both fields are timezone-aware and automatically managed:
    - created_at: Set on record creation, never changes
    - updated_at: Updated on every modification
    """

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        """Timestamp when record was created."""
        return mapped_column(
            DateTime(timezone=True),
            default=lambda: datetime.now(UTC),
            server_default=func.now(),
            nullable=False,
        )

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        """Timestamp when record was last updated."""
        return mapped_column(
            DateTime(timezone=True),
            default=lambda: datetime.now(UTC),
            server_default=func.now(),
            onupdate=lambda: datetime.now(UTC),
            nullable=False,
        )


__all__ = [
    "Base",
    "TimestampMixin",
]
