"""SQLAlchemy ORM model for the tenants table.

The control-plane catalog of provisioned tenants. Slugs and database
names are globally unique.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from infrastructure.database.models import Base, JSONVariant, TimestampMixin


class TenantModel(Base, TimestampMixin):
    """ORM model for tenants table."""

    __tablename__ = "tenants"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    slug: Mapped[str] = mapped_column(
        String(63), nullable=False, unique=True, index=True
    )
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    database_name: Mapped[str] = mapped_column(String(63), nullable=False, unique=True)
    connection_string: Mapped[str] = mapped_column(String(512), nullable=False)
    max_users: Mapped[int] = mapped_column(Integer, nullable=False)
    max_storage_gb: Mapped[int] = mapped_column(Integer, nullable=False)
    tier: Mapped[str | None] = mapped_column(String(50), nullable=True)
    # "metadata" is reserved on declarative classes
    tenant_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONVariant, nullable=False, default=dict
    )

    migrations = relationship(
        "TenantMigrationModel",
        back_populates="tenant",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<TenantModel(id={self.id}, slug={self.slug}, status={self.status})>"
