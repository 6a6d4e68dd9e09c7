"""Tenant-aware selection of the database engine for a unit of work.

Each unit of work states its operation kind. The routing policy maps
the kind to a mode:

- control plane: always the control-plane engine
- tenant or control plane: the bound tenant's engine; if no tenant is
  bound, or the tenant cannot be resolved, the control-plane engine
- tenant required: the bound tenant's engine, or an error

Tenant engines are created lazily, one per database, and cached for the
life of the process (or until evicted).

Example:
    async with routing.session() as session:
        await session.execute(select(Project))
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncSession

from infrastructure.database.pool_cache import ConnectionPoolCache
from shared_kernel.routing_policy import OperationKind, RoutingMode, routing_mode_for
from shared_kernel.tenant_context import (
    TenantContextMissingError,
    get_current_tenant_id,
)
from tenancy.application.services.tenant_directory import TenantDirectory
from tenancy.domain.tenant import TenantRecord
from tenancy.infrastructure.observability import DefaultRoutingProbe, RoutingProbe
from tenancy.ports.exceptions import TenantInactiveError
from tenancy.ports.routing import ITenantPoolRegistry

VALIDATION_QUERY = "SELECT 1"


class RoutingDataSource(ITenantPoolRegistry):
    """Routes data access to the current tenant's database."""

    def __init__(
        self,
        control_plane_engine: AsyncEngine,
        directory: TenantDirectory,
        pool_cache: ConnectionPoolCache,
        probe: RoutingProbe | None = None,
    ):
        """Initialize the data source.

        Args:
            control_plane_engine: Engine for the control-plane database
            directory: Resolves tenant identifiers to records
            pool_cache: Cache of per-tenant engines keyed by database name
            probe: Optional domain probe for observability
        """
        self._control_plane = control_plane_engine
        self._directory = directory
        self._pools = pool_cache
        self._probe = probe or DefaultRoutingProbe()

    @property
    def control_plane_engine(self) -> AsyncEngine:
        return self._control_plane

    async def resolve_engine(
        self, kind: OperationKind = OperationKind.TENANT_DATA
    ) -> AsyncEngine:
        """Select the engine for a unit of work of the given kind.

        Args:
            kind: What the unit of work does; decides the routing mode

        Returns:
            The tenant engine or the control-plane engine

        Raises:
            TenantContextMissingError: For tenant-required operations with
                no tenant bound
            TenancyError: For tenant-required operations whose tenant is
                unknown or inactive
        """
        mode = routing_mode_for(kind)
        if mode is RoutingMode.CONTROL_PLANE:
            self._probe.routed_to_control_plane(kind, reason="policy")
            return self._control_plane

        tenant_id = get_current_tenant_id()
        if tenant_id is None:
            if mode is RoutingMode.TENANT_REQUIRED:
                self._probe.tenant_context_missing(kind)
                raise TenantContextMissingError(
                    f"Operation '{kind}' requires a tenant context"
                )
            self._probe.routed_to_control_plane(kind, reason="no_tenant")
            return self._control_plane

        try:
            record = await self._resolve_routable(tenant_id)
        except Exception as e:
            if mode is RoutingMode.TENANT_REQUIRED:
                self._probe.tenant_resolution_failed(tenant_id, kind, e)
                raise
            self._probe.fallback_to_control_plane(tenant_id, kind, e)
            return self._control_plane

        engine, created = self._pools.get_or_create(record.database_name)
        if created:
            await self._pools.dispose_retired()
        self._probe.routed_to_tenant(tenant_id, record.database_name, kind)
        return engine

    async def _resolve_routable(self, tenant_id: str) -> TenantRecord:
        record = await self._directory.resolve(tenant_id)
        if not record.is_routable:
            raise TenantInactiveError(
                f"Tenant '{record.slug}' is {record.status} and cannot be routed"
            )
        return record

    @asynccontextmanager
    async def session(
        self, kind: OperationKind = OperationKind.TENANT_DATA
    ) -> AsyncIterator[AsyncSession]:
        """Open a session on the engine selected for ``kind``.

        The session does not auto-commit; use ``session.begin()``.
        """
        engine = await self.resolve_engine(kind)
        async with AsyncSession(engine, expire_on_commit=False) as session:
            yield session

    @asynccontextmanager
    async def connect(
        self, kind: OperationKind = OperationKind.TENANT_DATA
    ) -> AsyncIterator[AsyncConnection]:
        """Check out a connection from the engine selected for ``kind``."""
        engine = await self.resolve_engine(kind)
        async with engine.connect() as connection:
            yield connection

    async def warm(self, records: Iterable[TenantRecord]) -> int:
        """Create pools for routable tenants and validate one connection each."""
        warmed = 0
        for record in records:
            if not record.is_routable:
                continue
            engine, created = self._pools.get_or_create(record.database_name)
            if created:
                await self._pools.dispose_retired()
            if await self._pools.validate(
                record.database_name, engine, VALIDATION_QUERY
            ):
                warmed += 1
        return warmed

    async def evict(self, database_name: str) -> bool:
        return await self._pools.evict(database_name)

    async def close(self) -> None:
        """Dispose every cached tenant engine.

        The control-plane engine is owned by its own module and is not
        disposed here.
        """
        await self._pools.close()

