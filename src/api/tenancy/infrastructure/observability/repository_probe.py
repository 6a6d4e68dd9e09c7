"""Domain probe for the tenant record store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class TenantRecordStoreProbe(Protocol):
    """Domain probe for control-plane catalog operations."""

    def tenant_saved(self, tenant_id: str, slug: str) -> None:
        """Record that a tenant record was inserted."""
        ...

    def duplicate_tenant(self, slug: str, database_name: str) -> None:
        """Record that an insert hit a uniqueness constraint."""
        ...

    def tenant_status_updated(self, tenant_id: str, status: str) -> None:
        """Record that a tenant's status was updated."""
        ...

    def tenant_deleted(self, tenant_id: str) -> None:
        """Record that a tenant record was hard-deleted."""
        ...

    def migrations_recorded(self, tenant_id: str, count: int) -> None:
        """Record that migration history rows were written."""
        ...

    def with_context(self, context: ObservationContext) -> TenantRecordStoreProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultTenantRecordStoreProbe:
    """Default implementation of TenantRecordStoreProbe using structlog."""

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

    def with_context(
        self, context: ObservationContext
    ) -> DefaultTenantRecordStoreProbe:
        """Create a new probe with observation context bound."""
        return DefaultTenantRecordStoreProbe(logger=self._logger, context=context)

    def tenant_saved(self, tenant_id: str, slug: str) -> None:
        self._logger.info(
            "tenant_record_saved",
            tenant_id=tenant_id,
            slug=slug,
            **self._get_context_kwargs(),
        )

    def duplicate_tenant(self, slug: str, database_name: str) -> None:
        self._logger.warning(
            "tenant_record_duplicate",
            slug=slug,
            database_name=database_name,
            **self._get_context_kwargs(),
        )

    def tenant_status_updated(self, tenant_id: str, status: str) -> None:
        self._logger.info(
            "tenant_record_status_updated",
            tenant_id=tenant_id,
            status=status,
            **self._get_context_kwargs(),
        )

    def tenant_deleted(self, tenant_id: str) -> None:
        self._logger.info(
            "tenant_record_deleted",
            tenant_id=tenant_id,
            **self._get_context_kwargs(),
        )

    def migrations_recorded(self, tenant_id: str, count: int) -> None:
        self._logger.debug(
            "tenant_migrations_recorded",
            tenant_id=tenant_id,
            count=count,
            **self._get_context_kwargs(),
        )
