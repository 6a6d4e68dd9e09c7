"""SQLAlchemy declarative base and shared model utilities.

This module provides the declarative base class for control-plane ORM models
and common mixins for timestamps.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON on other dialects
JSONVariant = JSON().with_variant(JSONB(), "postgresql")


def _utc_now() -> datetime:
    """Generate UTC timestamp for database defaults.

    Uses a named function instead of lambda for SQLAlchemy 2.0 compatibility.
    """
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all control-plane ORM models."""

    type_annotation_map: dict[type, Any] = {
        dict[str, Any]: JSONVariant,
    }


class TimestampMixin:
    """Mixin providing created_at and updated_at timestamp columns.

    created_at is set on insert; updated_at is refreshed on every update.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        insert_default=_utc_now,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        insert_default=_utc_now,
        onupdate=_utc_now,
        nullable=False,
    )
