"""Domain probe for request tenant binding.

Following Domain-Oriented Observability patterns, this probe captures
when the middleware binds a tenant to a request and when it restores
the previous context.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class TenantContextProbe(Protocol):
    """Domain probe for tenant context binding operations."""

    def tenant_bound(self, tenant_id: str, source: str, path: str) -> None:
        """Record that a tenant was bound for the duration of a request."""
        ...

    def tenant_absent(self, path: str) -> None:
        """Record that a request carried no tenant claim."""
        ...

    def tenant_cleared(self, tenant_id: str | None, path: str) -> None:
        """Record that the tenant context was cleared at request end."""
        ...

    def claim_resolution_failed(self, path: str, error: Exception) -> None:
        """Record that reading the tenant claim raised."""
        ...

    def with_context(self, context: ObservationContext) -> TenantContextProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultTenantContextProbe:
    """Default implementation of TenantContextProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultTenantContextProbe:
        """Create a new probe with observation context bound."""
        return DefaultTenantContextProbe(logger=self._logger, context=context)

    def tenant_bound(self, tenant_id: str, source: str, path: str) -> None:
        self._logger.debug(
            "tenant_context_bound",
            tenant_id=tenant_id,
            source=source,
            path=path,
            **self._get_context_kwargs(),
        )

    def tenant_absent(self, path: str) -> None:
        self._logger.debug(
            "tenant_context_absent",
            path=path,
            **self._get_context_kwargs(),
        )

    def tenant_cleared(self, tenant_id: str | None, path: str) -> None:
        self._logger.debug(
            "tenant_context_cleared",
            tenant_id=tenant_id,
            path=path,
            **self._get_context_kwargs(),
        )

    def claim_resolution_failed(self, path: str, error: Exception) -> None:
        self._logger.warning(
            "tenant_context_claim_resolution_failed",
            path=path,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )
