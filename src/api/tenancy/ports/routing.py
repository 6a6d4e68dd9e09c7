"""Port for managing cached tenant connection pools."""

from __future__ import annotations

from typing import Iterable, Protocol, runtime_checkable

from tenancy.domain.tenant import TenantRecord


@runtime_checkable
class ITenantPoolRegistry(Protocol):
    """Lifecycle operations on per-tenant connection pools."""

    async def warm(self, records: Iterable[TenantRecord]) -> int:
        """Create and validate pools for routable tenants.

        Failures are logged per tenant and never raised.

        Returns:
            Number of pools successfully warmed
        """
        ...

    async def evict(self, database_name: str) -> bool:
        """Dispose the pool for a database, if one is cached."""
        ...
