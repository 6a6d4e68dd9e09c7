"""Domain probe for tenant database provisioning."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class DatabaseProvisionerProbe(Protocol):
    """Domain probe for database creation and migration."""

    def database_created(self, database_name: str) -> None:
        """Record that a tenant database was created."""
        ...

    def database_already_exists(self, database_name: str) -> None:
        """Record that creation was skipped because the database exists."""
        ...

    def database_creation_failed(self, database_name: str, error: Exception) -> None:
        """Record that creating a tenant database failed."""
        ...

    def migrations_applied(self, database_name: str, versions: list[str]) -> None:
        """Record that migrations were applied to a tenant database."""
        ...

    def migration_failed(self, database_name: str, error: Exception) -> None:
        """Record that migrating a tenant database failed."""
        ...

    def with_context(self, context: ObservationContext) -> DatabaseProvisionerProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultDatabaseProvisionerProbe:
    """Default implementation of DatabaseProvisionerProbe using structlog."""

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
    ) -> DefaultDatabaseProvisionerProbe:
        """Create a new probe with observation context bound."""
        return DefaultDatabaseProvisionerProbe(logger=self._logger, context=context)

    def database_created(self, database_name: str) -> None:
        self._logger.info(
            "tenant_database_created",
            database_name=database_name,
            **self._get_context_kwargs(),
        )

    def database_already_exists(self, database_name: str) -> None:
        self._logger.info(
            "tenant_database_already_exists",
            database_name=database_name,
            **self._get_context_kwargs(),
        )

    def database_creation_failed(self, database_name: str, error: Exception) -> None:
        self._logger.error(
            "tenant_database_creation_failed",
            database_name=database_name,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )

    def migrations_applied(self, database_name: str, versions: list[str]) -> None:
        self._logger.info(
            "tenant_database_migrated",
            database_name=database_name,
            versions=versions,
            count=len(versions),
            **self._get_context_kwargs(),
        )

    def migration_failed(self, database_name: str, error: Exception) -> None:
        self._logger.error(
            "tenant_database_migration_failed",
            database_name=database_name,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )
