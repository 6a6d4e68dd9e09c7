"""SQLAlchemy ORM model for the tenant_migrations table.

One row per schema version applied to a tenant database.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from infrastructure.database.models import Base, _utc_now

MIGRATION_STATUS_APPLIED = "applied"


class TenantMigrationModel(Base):
    """ORM model for tenant_migrations table."""

    __tablename__ = "tenant_migrations"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "version", name="uq_tenant_migrations_tenant_version"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=MIGRATION_STATUS_APPLIED
    )
    applied_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, insert_default=_utc_now
    )

    tenant = relationship("TenantModel", back_populates="migrations")

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<TenantMigrationModel(tenant_id={self.tenant_id}, "
            f"version={self.version})>"
        )
