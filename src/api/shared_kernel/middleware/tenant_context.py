"""ASGI middleware binding the tenant claim to the request context.

Authentication runs upstream and leaves the validated tenant identifier
on the request (``request.state.tenant_id`` by default). This middleware
copies it into the tenant context for the lifetime of one request and
restores the previous value afterwards, whether the handler returns,
raises, or is cancelled.

The middleware is pure ASGI rather than ``BaseHTTPMiddleware`` so the
handler runs in the same task and sees the bound context.
"""

from __future__ import annotations

from typing import Callable

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Receive, Scope, Send

from shared_kernel.middleware.observability import (
    DefaultTenantContextProbe,
    TenantContextProbe,
)
from shared_kernel.tenant_context import tenant_scope

TenantClaimResolver = Callable[[Scope], str | None]

DEFAULT_TENANT_HEADER = "x-tenant-id"


def state_claim_resolver(scope: Scope) -> str | None:
    """Read the tenant id placed on ``request.state`` by authentication."""
    state = scope.get("state") or {}
    value = state.get("tenant_id")
    return str(value) if value else None


def header_claim_resolver(
    header_name: str = DEFAULT_TENANT_HEADER,
) -> TenantClaimResolver:
    """Build a resolver reading the tenant id from a request header.

    Only use behind a trusted gateway that strips client-supplied values.
    """

    def resolve(scope: Scope) -> str | None:
        value = Headers(scope=scope).get(header_name)
        return value.strip() if value and value.strip() else None

    return resolve


class TenantContextMiddleware:
    """Bind the validated tenant claim around each HTTP or WebSocket request."""

    def __init__(
        self,
        app: ASGIApp,
        resolver: TenantClaimResolver = state_claim_resolver,
        source: str = "claim",
        probe: TenantContextProbe | None = None,
    ) -> None:
        self.app = app
        self._resolver = resolver
        self._source = source
        self._probe = probe or DefaultTenantContextProbe()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        try:
            tenant_id = self._resolver(scope)
        except Exception as e:
            # An unreadable claim is treated as no tenant; routing falls back
            self._probe.claim_resolution_failed(path, e)
            tenant_id = None

        if tenant_id:
            self._probe.tenant_bound(tenant_id, self._source, path)
        else:
            self._probe.tenant_absent(path)

        try:
            with tenant_scope(tenant_id, self._source):
                await self.app(scope, receive, send)
        finally:
            self._probe.tenant_cleared(tenant_id, path)
