"""Domain probes for infrastructure observability.

Domain probes provide a high-level instrumentation API oriented around
domain semantics, keeping infrastructure code clean and testable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class ConnectionProbe(Protocol):
    """Domain probe for database connection pool observability.

    Captures the lifecycle of pooled engines (one per tenant database plus
    the control plane) without exposing logging implementation details.
    """

    def pool_created(self, database: str, max_connections: int) -> None:
        """Record that a connection pool was created for a database."""
        ...

    def pool_evicted(self, database: str) -> None:
        """Record that a pool was evicted from the cache."""
        ...

    def pool_warmed(self, database: str) -> None:
        """Record that a pool was pre-warmed with a validated connection."""
        ...

    def pool_warm_failed(self, database: str, error: Exception) -> None:
        """Record that pre-warming a pool failed."""
        ...

    def pool_closed(self, database: str) -> None:
        """Record that a connection pool was disposed."""
        ...

    def pool_close_failed(self, database: str, error: Exception) -> None:
        """Record that disposing a connection pool failed."""
        ...

    def with_context(self, context: ObservationContext) -> ConnectionProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultConnectionProbe:
    """Default implementation of ConnectionProbe using structlog.

    Supports observation context for including request-scoped metadata
    with all log events.
    """

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

    def with_context(self, context: ObservationContext) -> DefaultConnectionProbe:
        """Create a new probe with observation context bound."""
        return DefaultConnectionProbe(logger=self._logger, context=context)

    def pool_created(self, database: str, max_connections: int) -> None:
        self._logger.info(
            "connection_pool_created",
            database=database,
            max_connections=max_connections,
            **self._get_context_kwargs(),
        )

    def pool_evicted(self, database: str) -> None:
        self._logger.info(
            "connection_pool_evicted",
            database=database,
            **self._get_context_kwargs(),
        )

    def pool_warmed(self, database: str) -> None:
        self._logger.debug(
            "connection_pool_warmed",
            database=database,
            **self._get_context_kwargs(),
        )

    def pool_warm_failed(self, database: str, error: Exception) -> None:
        self._logger.warning(
            "connection_pool_warm_failed",
            database=database,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )

    def pool_closed(self, database: str) -> None:
        self._logger.info(
            "connection_pool_closed",
            database=database,
            **self._get_context_kwargs(),
        )

    def pool_close_failed(self, database: str, error: Exception) -> None:
        self._logger.error(
            "connection_pool_close_failed",
            database=database,
            error=str(error),
            **self._get_context_kwargs(),
        )
