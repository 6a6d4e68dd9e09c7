"""Protocol for tenant onboarding observability.

Captures the progress of the onboarding saga, its failures, and the
compensation that follows, so an operator can reconstruct what a failed
run left behind.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class ProvisioningProbe(Protocol):
    """Domain probe for the provisioning orchestrator."""

    def provisioning_started(self, slug: str, database_name: str) -> None:
        """Record that an onboarding run started."""
        ...

    def step_completed(self, slug: str, step: str) -> None:
        """Record that a saga step committed its side effect."""
        ...

    def slug_conflict(self, slug: str) -> None:
        """Record that the slug was already taken before any side effect."""
        ...

    def database_name_conflict(self, slug: str, database_name: str) -> None:
        """Record that the derived database name belongs to another tenant."""
        ...

    def provisioning_failed(
        self, slug: str, step: str | None, error: Exception
    ) -> None:
        """Record that an onboarding run failed."""
        ...

    def compensation_succeeded(self, slug: str, action: str) -> None:
        """Record that one compensating action succeeded."""
        ...

    def compensation_failed(self, slug: str, action: str, error: Exception) -> None:
        """Record that one compensating action failed."""
        ...

    def manual_cleanup_required(self, slug: str, database_name: str) -> None:
        """Record that a tenant database was left behind for manual cleanup."""
        ...

    def role_assignment_failed(
        self, slug: str, user_id: str, role_name: str, error: Exception
    ) -> None:
        """Record that the best-effort admin role assignment failed."""
        ...

    def tenant_provisioned(
        self, tenant_id: str, slug: str, database_name: str, migrations: int
    ) -> None:
        """Record that a tenant was fully provisioned."""
        ...

    def with_context(self, context: ObservationContext) -> ProvisioningProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultProvisioningProbe:
    """Default implementation of ProvisioningProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultProvisioningProbe:
        """Create a new probe with observation context bound."""
        return DefaultProvisioningProbe(logger=self._logger, context=context)

    def provisioning_started(self, slug: str, database_name: str) -> None:
        self._logger.info(
            "tenant_provisioning_started",
            slug=slug,
            database_name=database_name,
            **self._get_context_kwargs(),
        )

    def step_completed(self, slug: str, step: str) -> None:
        self._logger.info(
            "tenant_provisioning_step_completed",
            slug=slug,
            step=step,
            **self._get_context_kwargs(),
        )

    def slug_conflict(self, slug: str) -> None:
        self._logger.warning(
            "tenant_provisioning_slug_conflict",
            slug=slug,
            **self._get_context_kwargs(),
        )

    def database_name_conflict(self, slug: str, database_name: str) -> None:
        self._logger.warning(
            "tenant_provisioning_database_name_conflict",
            slug=slug,
            database_name=database_name,
            **self._get_context_kwargs(),
        )

    def provisioning_failed(
        self, slug: str, step: str | None, error: Exception
    ) -> None:
        self._logger.error(
            "tenant_provisioning_failed",
            slug=slug,
            failed_step=step,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )

    def compensation_succeeded(self, slug: str, action: str) -> None:
        self._logger.info(
            "tenant_provisioning_compensated",
            slug=slug,
            action=action,
            **self._get_context_kwargs(),
        )

    def compensation_failed(self, slug: str, action: str, error: Exception) -> None:
        self._logger.error(
            "tenant_provisioning_compensation_failed",
            slug=slug,
            action=action,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )

    def manual_cleanup_required(self, slug: str, database_name: str) -> None:
        self._logger.warning(
            "tenant_database_requires_manual_cleanup",
            slug=slug,
            database_name=database_name,
            message="Tenant database is not dropped automatically",
            **self._get_context_kwargs(),
        )

    def role_assignment_failed(
        self, slug: str, user_id: str, role_name: str, error: Exception
    ) -> None:
        self._logger.warning(
            "tenant_admin_role_assignment_failed",
            slug=slug,
            user_id=user_id,
            role_name=role_name,
            error=str(error),
            **self._get_context_kwargs(),
        )

    def tenant_provisioned(
        self, tenant_id: str, slug: str, database_name: str, migrations: int
    ) -> None:
        self._logger.info(
            "tenant_provisioned",
            tenant_id=tenant_id,
            slug=slug,
            database_name=database_name,
            migrations_applied=migrations,
            **self._get_context_kwargs(),
        )
