"""Protocol for tenant administration observability."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class TenantAdminProbe(Protocol):
    """Domain probe for tenant administration operations."""

    def tenants_listed(self, count: int) -> None:
        """Record that tenants were listed."""
        ...

    def tenant_not_found(self, identifier: str) -> None:
        """Record that a tenant was not found."""
        ...

    def status_changed(self, tenant_id: str, old_status: str, new_status: str) -> None:
        """Record that a tenant's status changed."""
        ...

    def migrations_applied(self, tenant_id: str, versions: list[str]) -> None:
        """Record that migrations were re-run for a tenant."""
        ...

    def pools_warmed(self, warmed: int, total: int) -> None:
        """Record the outcome of connection pool pre-warming."""
        ...

    def with_context(self, context: ObservationContext) -> TenantAdminProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultTenantAdminProbe:
    """Default implementation of TenantAdminProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultTenantAdminProbe:
        """Create a new probe with observation context bound."""
        return DefaultTenantAdminProbe(logger=self._logger, context=context)

    def tenants_listed(self, count: int) -> None:
        self._logger.debug(
            "tenants_listed",
            count=count,
            **self._get_context_kwargs(),
        )

    def tenant_not_found(self, identifier: str) -> None:
        self._logger.debug(
            "tenant_not_found",
            identifier=identifier,
            **self._get_context_kwargs(),
        )

    def status_changed(self, tenant_id: str, old_status: str, new_status: str) -> None:
        self._logger.info(
            "tenant_status_changed",
            tenant_id=tenant_id,
            old_status=old_status,
            new_status=new_status,
            **self._get_context_kwargs(),
        )

    def migrations_applied(self, tenant_id: str, versions: list[str]) -> None:
        self._logger.info(
            "tenant_migrations_applied",
            tenant_id=tenant_id,
            versions=versions,
            count=len(versions),
            **self._get_context_kwargs(),
        )

    def pools_warmed(self, warmed: int, total: int) -> None:
        self._logger.info(
            "tenant_connection_pools_warmed",
            warmed=warmed,
            total=total,
            **self._get_context_kwargs(),
        )
