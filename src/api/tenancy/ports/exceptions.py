"""Exceptions for the tenancy bounded context.

Every error raised by tenancy services derives from ``TenancyError``.
The provisioning orchestrator tags errors with the onboarding step at
which they occurred plus the tenant slug and database name, so callers
(and operators doing manual cleanup) can see where a run stopped.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from shared_kernel.tenant_context import TenantContextMissingError
from tenancy.domain.exceptions import InvalidSlugError, InvalidStatusTransitionError

if TYPE_CHECKING:
    from tenancy.domain.value_objects import OnboardingStep

__all__ = [
    "TenancyError",
    "ConflictError",
    "TenantSlugConflictError",
    "TenantDatabaseConflictError",
    "UserAlreadyExistsError",
    "OrganizationAlreadyExistsError",
    "NotFoundError",
    "TenantNotFoundError",
    "ExternalServiceError",
    "TransientExternalError",
    "TerminalExternalError",
    "DatabaseProvisioningError",
    "TenantInactiveError",
    "ProvisioningStepError",
    "InvalidSlugError",
    "InvalidStatusTransitionError",
    "TenantContextMissingError",
]


class TenancyError(Exception):
    """Base exception for tenancy operations.

    Attributes:
        failed_step: Onboarding step at which the error occurred, if raised
            during provisioning
        tenant_slug: Slug of the tenant being provisioned, if known
        database_name: Physical database name of the tenant, if known
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.failed_step: OnboardingStep | None = None
        self.tenant_slug: str | None = None
        self.database_name: str | None = None

    def tag(
        self,
        step: OnboardingStep,
        tenant_slug: str | None = None,
        database_name: str | None = None,
    ) -> TenancyError:
        """Attach provisioning details and return self for re-raising."""
        self.failed_step = step
        self.tenant_slug = tenant_slug
        self.database_name = database_name
        return self

    def __str__(self) -> str:
        message = super().__str__()
        if self.failed_step is None:
            return message
        return f"[{self.failed_step}] {message}"


class ConflictError(TenancyError):
    """Raised when a resource that must be unique already exists."""

    pass


class TenantSlugConflictError(ConflictError):
    """Raised when a tenant with the requested slug already exists."""

    pass


class TenantDatabaseConflictError(ConflictError):
    """Raised when another tenant already owns the derived database name."""

    pass


class UserAlreadyExistsError(ConflictError):
    """Raised when the identity provider already has a user with the email."""

    pass


class OrganizationAlreadyExistsError(ConflictError):
    """Raised when the identity provider already has an organization alias."""

    pass


class NotFoundError(TenancyError):
    """Raised when a tenant, user, or organization lookup misses."""

    pass


class TenantNotFoundError(NotFoundError):
    """Raised when no tenant matches the given id or slug."""

    pass


class ExternalServiceError(TenancyError):
    """Base for failures reported by an external system.

    Attributes:
        status_code: HTTP status returned by the external system, if any
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TransientExternalError(ExternalServiceError):
    """Raised for failures that may succeed if retried."""

    pass


class TerminalExternalError(ExternalServiceError):
    """Raised for failures that will not succeed if retried."""

    pass


class DatabaseProvisioningError(TenancyError):
    """Raised when creating or migrating a tenant database fails."""

    pass


class TenantInactiveError(TenancyError):
    """Raised when routing to a tenant that is suspended or deleted."""

    pass


class ProvisioningStepError(TenancyError):
    """Wraps an unexpected exception raised by an onboarding step.

    The original exception is available as ``__cause__``.
    """

    pass
