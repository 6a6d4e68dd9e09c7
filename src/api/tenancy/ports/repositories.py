"""Repository protocols (ports) for the tenancy bounded context.

The tenant record store is the control-plane catalog of tenants and of
the schema versions applied to each tenant database.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from tenancy.domain.tenant import TenantMigration, TenantRecord
from tenancy.domain.value_objects import TenantId, TenantStatus


@runtime_checkable
class ITenantRecordStore(Protocol):
    """Persistent catalog of tenant metadata."""

    async def create(
        self, record: TenantRecord, applied_migrations: list[str]
    ) -> TenantRecord:
        """Insert a tenant record and its applied migration versions.

        Both are written in one transaction.

        Args:
            record: The tenant to persist
            applied_migrations: Versions applied to the tenant database

        Returns:
            The persisted record with store-assigned timestamps

        Raises:
            TenantSlugConflictError: If the slug or database name is taken
        """
        ...

    async def get_by_id(self, tenant_id: TenantId) -> TenantRecord | None:
        """Retrieve a tenant by canonical id."""
        ...

    async def find_by_slug(self, slug: str) -> TenantRecord | None:
        """Retrieve a tenant by slug."""
        ...

    async def exists_by_slug(self, slug: str) -> bool:
        """Check whether a tenant with the slug exists."""
        ...

    async def exists_by_database_name(self, database_name: str) -> bool:
        """Check whether a tenant already owns the database name."""
        ...

    async def list_all(self) -> list[TenantRecord]:
        """List all tenants ordered by creation time."""
        ...

    async def update_status(
        self, tenant_id: TenantId, status: TenantStatus
    ) -> TenantRecord | None:
        """Change a tenant's status.

        Returns:
            The updated record, or None if the tenant does not exist
        """
        ...

    async def delete(self, tenant_id: TenantId) -> bool:
        """Hard-delete a tenant record.

        Only the provisioning orchestrator calls this, to compensate a
        failed onboarding run. Normal removal is ``update_status(DELETED)``.

        Returns:
            True if a record was deleted
        """
        ...

    async def record_migrations(
        self, tenant_id: TenantId, versions: list[str]
    ) -> list[TenantMigration]:
        """Append applied migration versions to a tenant's history."""
        ...

    async def list_migrations(self, tenant_id: TenantId) -> list[TenantMigration]:
        """List a tenant's applied migrations, oldest first."""
        ...
