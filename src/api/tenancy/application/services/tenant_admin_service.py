"""Tenant administration service.

Operations on tenants that already exist: listing and lookup, status
changes, re-running schema migrations, migration history, and warming
connection pools at startup.
"""

from __future__ import annotations

from tenancy.application.observability import (
    DefaultTenantAdminProbe,
    TenantAdminProbe,
)
from tenancy.application.services.tenant_directory import TenantDirectory
from tenancy.domain.tenant import TenantMigration, TenantRecord
from tenancy.domain.value_objects import TenantId, TenantStatus
from tenancy.ports.exceptions import TenantNotFoundError
from tenancy.ports.gateways import DatabaseProvisioner
from tenancy.ports.repositories import ITenantRecordStore
from tenancy.ports.routing import ITenantPoolRegistry


class TenantAdminService:
    """Application service for managing provisioned tenants."""

    def __init__(
        self,
        record_store: ITenantRecordStore,
        database_provisioner: DatabaseProvisioner,
        directory: TenantDirectory,
        pool_registry: ITenantPoolRegistry,
        probe: TenantAdminProbe | None = None,
    ):
        self._store = record_store
        self._provisioner = database_provisioner
        self._directory = directory
        self._pools = pool_registry
        self._probe = probe or DefaultTenantAdminProbe()

    async def list_tenants(self) -> list[TenantRecord]:
        """List all tenants, including suspended and deleted ones."""
        records = await self._store.list_all()
        self._probe.tenants_listed(len(records))
        return records

    async def get_tenant(self, tenant_id: TenantId) -> TenantRecord:
        """Get a tenant by id.

        Raises:
            TenantNotFoundError: If the tenant does not exist
        """
        record = await self._store.get_by_id(tenant_id)
        if record is None:
            self._probe.tenant_not_found(str(tenant_id))
            raise TenantNotFoundError(f"Tenant '{tenant_id}' not found")
        return record

    async def get_tenant_by_slug(self, slug: str) -> TenantRecord:
        """Get a tenant by slug.

        Raises:
            TenantNotFoundError: If the tenant does not exist
        """
        record = await self._store.find_by_slug(slug)
        if record is None:
            self._probe.tenant_not_found(slug)
            raise TenantNotFoundError(f"Tenant '{slug}' not found")
        return record

    async def update_status(
        self, tenant_id: TenantId, status: TenantStatus
    ) -> TenantRecord:
        """Change a tenant's status.

        Deleting is a soft delete. A tenant that is no longer routable has
        its cached connection pool disposed.

        Raises:
            TenantNotFoundError: If the tenant does not exist
            InvalidStatusTransitionError: If the tenant is already deleted
        """
        current = await self.get_tenant(tenant_id)
        current.status.ensure_transition_to(status)

        updated = await self._store.update_status(tenant_id, status)
        if updated is None:
            raise TenantNotFoundError(f"Tenant '{tenant_id}' not found")

        self._directory.invalidate(current.id)
        if not updated.is_routable:
            await self._pools.evict(updated.database_name)

        self._probe.status_changed(str(tenant_id), current.status, updated.status)
        return updated

    async def run_migrations(self, tenant_id: TenantId) -> list[str]:
        """Apply pending schema migrations to an existing tenant database.

        Newly applied versions are appended to the tenant's history.

        Returns:
            Versions applied by this call (empty when already up to date)

        Raises:
            TenantNotFoundError: If the tenant does not exist
            DatabaseProvisioningError: If a migration fails
        """
        record = await self.get_tenant(tenant_id)
        versions = await self._provisioner.migrate(record.database_name)
        if versions:
            await self._store.record_migrations(record.id, versions)
        self._probe.migrations_applied(str(record.id), versions)
        return versions

    async def list_migrations(self, tenant_id: TenantId) -> list[TenantMigration]:
        """List the migrations recorded for a tenant, oldest first.

        Raises:
            TenantNotFoundError: If the tenant does not exist
        """
        await self.get_tenant(tenant_id)
        return await self._store.list_migrations(tenant_id)

    async def warm_connection_pools(self) -> int:
        """Create and validate connection pools for all active tenants.

        Returns:
            Number of pools warmed successfully
        """
        records = [r for r in await self._store.list_all() if r.is_routable]
        warmed = await self._pools.warm(records)
        self._probe.pools_warmed(warmed, len(records))
        return warmed
