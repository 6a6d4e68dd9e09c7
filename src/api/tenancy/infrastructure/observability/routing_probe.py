"""Domain probe for tenant-aware database routing.

Fallbacks to the control plane are invisible to end users, so they are
logged at warning level to keep misrouted tenants observable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class RoutingProbe(Protocol):
    """Domain probe for routing data access to a database."""

    def routed_to_tenant(
        self, tenant_id: str, database_name: str, operation: str
    ) -> None:
        """Record that a unit of work was routed to a tenant database."""
        ...

    def routed_to_control_plane(self, operation: str, reason: str) -> None:
        """Record that a unit of work used the control plane by policy or absence."""
        ...

    def fallback_to_control_plane(
        self, tenant_id: str, operation: str, error: Exception
    ) -> None:
        """Record that tenant resolution failed and the control plane was used."""
        ...

    def tenant_context_missing(self, operation: str) -> None:
        """Record that a tenant-scoped operation ran without a tenant."""
        ...

    def tenant_resolution_failed(
        self, tenant_id: str, operation: str, error: Exception
    ) -> None:
        """Record that a tenant-scoped operation could not resolve its tenant."""
        ...

    def with_context(self, context: ObservationContext) -> RoutingProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultRoutingProbe:
    """Default implementation of RoutingProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultRoutingProbe:
        """Create a new probe with observation context bound."""
        return DefaultRoutingProbe(logger=self._logger, context=context)

    def routed_to_tenant(
        self, tenant_id: str, database_name: str, operation: str
    ) -> None:
        self._logger.debug(
            "routing_tenant_database_selected",
            tenant_id=tenant_id,
            database_name=database_name,
            operation=operation,
            **self._get_context_kwargs(),
        )

    def routed_to_control_plane(self, operation: str, reason: str) -> None:
        self._logger.debug(
            "routing_control_plane_selected",
            operation=operation,
            reason=reason,
            **self._get_context_kwargs(),
        )

    def fallback_to_control_plane(
        self, tenant_id: str, operation: str, error: Exception
    ) -> None:
        self._logger.warning(
            "routing_fallback_to_control_plane",
            tenant_id=tenant_id,
            operation=operation,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )

    def tenant_context_missing(self, operation: str) -> None:
        self._logger.warning(
            "routing_tenant_context_missing",
            operation=operation,
            **self._get_context_kwargs(),
        )

    def tenant_resolution_failed(
        self, tenant_id: str, operation: str, error: Exception
    ) -> None:
        self._logger.warning(
            "routing_tenant_resolution_failed",
            tenant_id=tenant_id,
            operation=operation,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )
