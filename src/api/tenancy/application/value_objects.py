"""Application-layer value objects for the tenancy context.

Inputs to the onboarding use case. Validation of the slug happens in the
orchestrator so that callers get a typed ``InvalidSlugError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from tenancy.domain.value_objects import TenantLimits


@dataclass(frozen=True)
class AdminUserSpec:
    """Initial administrator account for a new tenant.

    The password is only passed through to the identity provider and is
    excluded from ``repr`` so it never reaches logs.
    """

    email: str
    password: str = field(repr=False)
    first_name: str
    last_name: str
    email_verified: bool = True


@dataclass(frozen=True)
class ProvisionTenantRequest:
    """Request to onboard a new tenant.

    Attributes:
        tenant_name: Display name of the tenant
        slug: URL-safe identifier; must match ``^[a-z0-9-]+$``
        admin_user: Initial administrator account
        tier: Optional subscription tier label
        limits: Resource limits; configured defaults apply when omitted
        metadata: Opaque metadata stored with the tenant record
    """

    tenant_name: str
    slug: str
    admin_user: AdminUserSpec
    tier: str | None = None
    limits: TenantLimits | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
