"""Protocol for tenant directory observability."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class TenantDirectoryProbe(Protocol):
    """Domain probe for tenant identifier resolution."""

    def cache_hit(self, identifier: str) -> None:
        """Record that a tenant was served from the cache."""
        ...

    def tenant_loaded(self, identifier: str, tenant_id: str, slug: str) -> None:
        """Record that a tenant was loaded from the store and cached."""
        ...

    def tenant_not_found(self, identifier: str) -> None:
        """Record that no tenant matches the identifier."""
        ...

    def cache_invalidated(self, tenant_id: str, entries: int) -> None:
        """Record that cached entries for a tenant were dropped."""
        ...

    def with_context(self, context: ObservationContext) -> TenantDirectoryProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultTenantDirectoryProbe:
    """Default implementation of TenantDirectoryProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        """Get context metadata as kwargs for logging."""
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultTenantDirectoryProbe:
        """Create a new probe with observation context bound."""
        return DefaultTenantDirectoryProbe(logger=self._logger, context=context)

    def cache_hit(self, identifier: str) -> None:
        self._logger.debug(
            "tenant_directory_cache_hit",
            identifier=identifier,
            **self._get_context_kwargs(),
        )

    def tenant_loaded(self, identifier: str, tenant_id: str, slug: str) -> None:
        self._logger.debug(
            "tenant_directory_tenant_loaded",
            identifier=identifier,
            tenant_id=tenant_id,
            slug=slug,
            **self._get_context_kwargs(),
        )

    def tenant_not_found(self, identifier: str) -> None:
        self._logger.info(
            "tenant_directory_tenant_not_found",
            identifier=identifier,
            **self._get_context_kwargs(),
        )

    def cache_invalidated(self, tenant_id: str, entries: int) -> None:
        self._logger.debug(
            "tenant_directory_cache_invalidated",
            tenant_id=tenant_id,
            entries=entries,
            **self._get_context_kwargs(),
        )
