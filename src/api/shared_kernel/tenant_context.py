"""Request-scoped carrier of the current tenant identifier.

The identifier lives in a ``ContextVar`` so each asyncio task (and each
thread) sees its own value. Code that binds a tenant must use
``tenant_scope`` (or ``tenant_scope_async``), which restores the previous
value on every exit path including exceptions and cancellation.

Example:
    with tenant_scope("acme"):
        engine = await routing.resolve_engine()
"""

from __future__ import annotations

from contextlib import asynccontextmanager, contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import AsyncIterator, Iterator

_current_tenant: ContextVar[TenantContext | None] = ContextVar(
    "current_tenant", default=None
)


class TenantContextMissingError(Exception):
    """Raised when an operation requires a tenant but none is bound.

    Only operations whose routing mode demands tenant scoping raise this;
    everything else falls back to the control plane.
    """

    pass


@dataclass(frozen=True)
class TenantContext:
    """Resolved tenant context for the current request.

    Attributes:
        tenant_id: Tenant identifier as received from the validated claim.
            May be a canonical id or a slug.
        source: Where the identifier came from (e.g. 'claim', 'header', 'job').
    """

    tenant_id: str
    source: str = "claim"


def get_current_tenant() -> TenantContext | None:
    """Return the tenant bound to the current task, if any."""
    return _current_tenant.get()


def get_current_tenant_id() -> str | None:
    """Return the bound tenant identifier, or None when absent or blank."""
    context = _current_tenant.get()
    if context is None or not context.tenant_id.strip():
        return None
    return context.tenant_id


def require_current_tenant() -> str:
    """Return the bound tenant identifier.

    Raises:
        TenantContextMissingError: If no tenant is bound
    """
    tenant_id = get_current_tenant_id()
    if tenant_id is None:
        raise TenantContextMissingError("No tenant is bound to the current request")
    return tenant_id


@contextmanager
def tenant_scope(tenant_id: str | None, source: str = "claim") -> Iterator[None]:
    """Bind ``tenant_id`` for the duration of the block.

    Passing None or a blank string binds "no tenant", which routes to the
    control plane. The previous value is restored unconditionally.
    """
    value = TenantContext(tenant_id=tenant_id, source=source) if tenant_id else None
    token = _current_tenant.set(value)
    try:
        yield
    finally:
        _current_tenant.reset(token)


@asynccontextmanager
async def tenant_scope_async(
    tenant_id: str | None, source: str = "claim"
) -> AsyncIterator[None]:
    """Async variant of ``tenant_scope`` for use in ``async with`` blocks."""
    with tenant_scope(tenant_id, source):
        yield
