"""Tenant record aggregate."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

from tenancy.domain.value_objects import TenantId, TenantLimits, TenantStatus


@dataclass(frozen=True)
class TenantRecord:
    """Catalog entry describing one provisioned tenant.

    Business rules:
    - ``slug`` is unique and immutable
    - ``database_name`` is derived from the slug and never changes, so
      caches keyed on it never go stale
    - a record is only ever created as ``active`` after its database has
      been migrated
    - status changes go through ``with_status``; deletion is a status,
      not a row removal
    """

    id: TenantId
    slug: str
    display_name: str
    status: TenantStatus
    database_name: str
    connection_string: str
    limits: TenantLimits
    tier: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def create_active(
        cls,
        slug: str,
        display_name: str,
        database_name: str,
        connection_string: str,
        limits: TenantLimits,
        tier: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> TenantRecord:
        """Factory for a freshly provisioned, active tenant."""
        now = datetime.now(UTC)
        return cls(
            id=TenantId.generate(),
            slug=slug,
            display_name=display_name,
            status=TenantStatus.ACTIVE,
            database_name=database_name,
            connection_string=connection_string,
            limits=limits,
            tier=tier,
            metadata=dict(metadata or {}),
            created_at=now,
            updated_at=now,
        )

    @property
    def is_routable(self) -> bool:
        return self.status.is_routable

    def with_status(self, status: TenantStatus) -> TenantRecord:
        """Return a copy with ``status`` applied.

        Raises:
            InvalidStatusTransitionError: If the transition is not allowed
        """
        self.status.ensure_transition_to(status)
        return replace(self, status=status, updated_at=datetime.now(UTC))


@dataclass(frozen=True)
class TenantMigration:
    """One schema version applied to a tenant database."""

    tenant_id: TenantId
    version: str
    status: str
    applied_at: datetime
