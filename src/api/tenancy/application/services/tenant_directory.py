"""Tenant directory: resolves a tenant identifier to its record.

Identifiers arrive from authenticated claims and may be either the
canonical id or the slug. Resolved records are cached in-process under
both keys; the routing-relevant field (``database_name``) never changes,
so entries are only dropped when an administrator changes a tenant.
"""

from __future__ import annotations

import threading

from tenancy.application.observability import (
    DefaultTenantDirectoryProbe,
    TenantDirectoryProbe,
)
from tenancy.domain.tenant import TenantRecord
from tenancy.domain.value_objects import TenantId
from tenancy.ports.exceptions import TenantNotFoundError
from tenancy.ports.repositories import ITenantRecordStore


class TenantDirectory:
    """Cached lookup of tenant records by id or slug.

    Safe for concurrent use: the cache is guarded by a lock and the store
    is consulted outside it. Two concurrent misses for the same tenant
    both hit the store and write the same record. A load that overlaps
    an invalidation returns its record but does not cache it.
    """

    def __init__(
        self,
        store: ITenantRecordStore,
        probe: TenantDirectoryProbe | None = None,
    ):
        self._store = store
        self._probe = probe or DefaultTenantDirectoryProbe()
        self._cache: dict[str, TenantRecord] = {}
        self._lock = threading.Lock()
        # Bumped by invalidate() and clear()
        self._generation = 0

    async def resolve(self, identifier: str) -> TenantRecord:
        """Resolve an id or slug to a tenant record.

        ID-shaped identifiers are looked up by id first; anything that is
        not an id, or an id that matches nothing, is looked up as a slug.

        Args:
            identifier: Canonical tenant id or slug

        Returns:
            The tenant record (in any status)

        Raises:
            TenantNotFoundError: If no tenant matches
        """
        key = (identifier or "").strip()
        if not key:
            raise TenantNotFoundError("Tenant identifier is empty")

        with self._lock:
            cached = self._cache.get(key)
            generation = self._generation
        if cached is not None:
            self._probe.cache_hit(key)
            return cached

        record = await self._load(key)
        if record is None:
            self._probe.tenant_not_found(key)
            raise TenantNotFoundError(f"Tenant '{key}' not found")

        with self._lock:
            if generation == self._generation:
                self._cache[str(record.id)] = record
                self._cache[record.slug] = record
                self._cache[key] = record
        self._probe.tenant_loaded(key, str(record.id), record.slug)
        return record

    async def _load(self, key: str) -> TenantRecord | None:
        try:
            tenant_id = TenantId.from_string(key)
        except ValueError:
            tenant_id = None

        if tenant_id is not None:
            record = await self._store.get_by_id(tenant_id)
            if record is not None:
                return record
        return await self._store.find_by_slug(key)

    def invalidate(self, tenant_id: TenantId) -> None:
        """Drop every cache entry pointing at the tenant."""
        with self._lock:
            self._generation += 1
            stale = [
                key for key, cached in self._cache.items() if cached.id == tenant_id
            ]
            for key in stale:
                del self._cache[key]
        self._probe.cache_invalidated(str(tenant_id), len(stale))

    def clear(self) -> None:
        """Drop all cached entries."""
        with self._lock:
            self._generation += 1
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
