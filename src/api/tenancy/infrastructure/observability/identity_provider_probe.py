"""Domain probe for identity provider calls."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class IdentityProviderProbe(Protocol):
    """Domain probe for identity provider operations."""

    def user_created(self, user_id: str, email: str) -> None:
        """Record that a user was created."""
        ...

    def user_deleted(self, user_id: str, existed: bool) -> None:
        """Record that a user was deleted (or was already gone)."""
        ...

    def organization_created(self, organization_id: str, alias: str) -> None:
        """Record that an organization was created."""
        ...

    def organization_deleted(self, organization_id: str, existed: bool) -> None:
        """Record that an organization was deleted (or was already gone)."""
        ...

    def member_bound(self, organization_id: str, user_id: str, attempts: int) -> None:
        """Record that a user was bound to an organization."""
        ...

    def bind_retry_scheduled(
        self,
        organization_id: str,
        user_id: str,
        attempt: int,
        delay_seconds: float,
        status_code: int | None,
        message: str,
    ) -> None:
        """Record that a membership bind will be retried."""
        ...

    def bind_failed(
        self,
        organization_id: str,
        user_id: str,
        attempts: int,
        status_code: int | None,
        message: str,
    ) -> None:
        """Record that a membership bind failed terminally."""
        ...

    def role_assigned(self, user_id: str, role_name: str) -> None:
        """Record that a role was granted to a user."""
        ...

    def request_failed(
        self, method: str, path: str, status_code: int | None, message: str
    ) -> None:
        """Record that an admin API call failed."""
        ...

    def with_context(self, context: ObservationContext) -> IdentityProviderProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultIdentityProviderProbe:
    """Default implementation of IdentityProviderProbe using structlog."""

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
    ) -> DefaultIdentityProviderProbe:
        """Create a new probe with observation context bound."""
        return DefaultIdentityProviderProbe(logger=self._logger, context=context)

    def user_created(self, user_id: str, email: str) -> None:
        self._logger.info(
            "identity_user_created",
            user_id=user_id,
            email=email,
            **self._get_context_kwargs(),
        )

    def user_deleted(self, user_id: str, existed: bool) -> None:
        self._logger.info(
            "identity_user_deleted",
            user_id=user_id,
            existed=existed,
            **self._get_context_kwargs(),
        )

    def organization_created(self, organization_id: str, alias: str) -> None:
        self._logger.info(
            "identity_organization_created",
            organization_id=organization_id,
            alias=alias,
            **self._get_context_kwargs(),
        )

    def organization_deleted(self, organization_id: str, existed: bool) -> None:
        self._logger.info(
            "identity_organization_deleted",
            organization_id=organization_id,
            existed=existed,
            **self._get_context_kwargs(),
        )

    def member_bound(self, organization_id: str, user_id: str, attempts: int) -> None:
        self._logger.info(
            "identity_member_bound",
            organization_id=organization_id,
            user_id=user_id,
            attempts=attempts,
            **self._get_context_kwargs(),
        )

    def bind_retry_scheduled(
        self,
        organization_id: str,
        user_id: str,
        attempt: int,
        delay_seconds: float,
        status_code: int | None,
        message: str,
    ) -> None:
        self._logger.warning(
            "identity_member_bind_retry",
            organization_id=organization_id,
            user_id=user_id,
            attempt=attempt,
            delay_seconds=delay_seconds,
            status_code=status_code,
            message=message,
            **self._get_context_kwargs(),
        )

    def bind_failed(
        self,
        organization_id: str,
        user_id: str,
        attempts: int,
        status_code: int | None,
        message: str,
    ) -> None:
        self._logger.error(
            "identity_member_bind_failed",
            organization_id=organization_id,
            user_id=user_id,
            attempts=attempts,
            status_code=status_code,
            message=message,
            **self._get_context_kwargs(),
        )

    def role_assigned(self, user_id: str, role_name: str) -> None:
        self._logger.info(
            "identity_role_assigned",
            user_id=user_id,
            role_name=role_name,
            **self._get_context_kwargs(),
        )

    def request_failed(
        self, method: str, path: str, status_code: int | None, message: str
    ) -> None:
        self._logger.warning(
            "identity_request_failed",
            method=method,
            path=path,
            status_code=status_code,
            message=message,
            **self._get_context_kwargs(),
        )
