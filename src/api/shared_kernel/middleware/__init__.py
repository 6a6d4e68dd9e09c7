"""Shared middleware for cross-cutting concerns.

The tenant context middleware binds the authenticated tenant claim to
the request so data access can be routed to the tenant's database.
"""

from shared_kernel.middleware.tenant_context import (
    TenantContextMiddleware,
    header_claim_resolver,
    state_claim_resolver,
)

__all__ = [
    "TenantContextMiddleware",
    "header_claim_resolver",
    "state_claim_resolver",
]
