"""Observation context for domain-oriented observability.

Observation contexts collect and manage contextual metadata for
instrumentation. Probes bind a context with ``with_context`` so every
event they emit carries the same request and tenant metadata.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class ObservationContext:
    """Immutable context containing metadata for observability.

    Attributes:
        request_id: Unique identifier for the current request/operation.
        tenant_id: Tenant identifier bound for the operation (if any).
        tenant_slug: Human-readable tenant slug (if known).
        operation: Name of the operation being performed (if applicable).
        extra: Additional contextual metadata.

    Example:
        context = ObservationContext(request_id="req-123", tenant_slug="acme")
        probe = DefaultProvisioningProbe().with_context(context)
    """

    request_id: str | None = None
    tenant_id: str | None = None
    tenant_slug: str | None = None
    operation: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        """Convert context to a dictionary for logging.

        Only includes non-None values to keep logs clean.
        """
        result: dict[str, Any] = {}
        if self.request_id is not None:
            result["request_id"] = self.request_id
        if self.tenant_id is not None:
            result["tenant_id"] = self.tenant_id
        if self.tenant_slug is not None:
            result["tenant_slug"] = self.tenant_slug
        if self.operation is not None:
            result["operation"] = self.operation
        result.update(self.extra)
        return result

    def with_tenant(
        self, tenant_id: str | None = None, tenant_slug: str | None = None
    ) -> ObservationContext:
        """Create a new context with tenant identity set."""
        return replace(
            self,
            tenant_id=tenant_id if tenant_id is not None else self.tenant_id,
            tenant_slug=tenant_slug if tenant_slug is not None else self.tenant_slug,
        )

    def with_extra(self, **kwargs: Any) -> ObservationContext:
        """Create a new context with additional metadata."""
        return replace(self, extra={**self.extra, **kwargs})
