"""Unit tests for TenantContextMiddleware."""

from __future__ import annotations

from unittest.mock import Mock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from shared_kernel.middleware import (
    TenantContextMiddleware,
    header_claim_resolver,
    state_claim_resolver,
)
from shared_kernel.middleware.observability import TenantContextProbe
from shared_kernel.tenant_context import get_current_tenant_id


@pytest.fixture
def mock_probe():
    return Mock(spec=TenantContextProbe)


def _scope(**overrides) -> dict:
    scope = {"type": "http", "path": "/projects", "headers": [], "state": {}}
    scope.update(overrides)
    return scope


async def _receive():
    return {"type": "http.request", "body": b""}


async def _send(message):
    pass


class RecordingApp:
    def __init__(self, error: Exception | None = None):
        self.seen: list[str | None] = []
        self.error = error

    async def __call__(self, scope, receive, send):
        self.seen.append(get_current_tenant_id())
        if self.error is not None:
            raise self.error


class TestMiddleware:
    @pytest.mark.asyncio
    async def test_binds_claim_for_handler_and_restores(self, mock_probe):
        app = RecordingApp()
        middleware = TenantContextMiddleware(app, probe=mock_probe)

        await middleware(_scope(state={"tenant_id": "acme"}), _receive, _send)

        assert app.seen == ["acme"]
        assert get_current_tenant_id() is None
        mock_probe.tenant_bound.assert_called_once_with("acme", "claim", "/projects")
        mock_probe.tenant_cleared.assert_called_once_with("acme", "/projects")

    @pytest.mark.asyncio
    async def test_restores_when_handler_raises(self, mock_probe):
        app = RecordingApp(error=RuntimeError("boom"))
        middleware = TenantContextMiddleware(app, probe=mock_probe)

        with pytest.raises(RuntimeError):
            await middleware(_scope(state={"tenant_id": "acme"}), _receive, _send)

        assert app.seen == ["acme"]
        assert get_current_tenant_id() is None
        mock_probe.tenant_cleared.assert_called_once()

    @pytest.mark.asyncio
    async def test_no_claim_binds_nothing(self, mock_probe):
        app = RecordingApp()
        middleware = TenantContextMiddleware(app, probe=mock_probe)

        await middleware(_scope(), _receive, _send)

        assert app.seen == [None]
        mock_probe.tenant_absent.assert_called_once_with("/projects")

    @pytest.mark.asyncio
    async def test_resolver_error_is_treated_as_no_tenant(self, mock_probe):
        app = RecordingApp()
        error = ValueError("malformed claim")
        middleware = TenantContextMiddleware(
            app, resolver=Mock(side_effect=error), probe=mock_probe
        )

        await middleware(_scope(), _receive, _send)

        assert app.seen == [None]
        mock_probe.claim_resolution_failed.assert_called_once_with("/projects", error)

    @pytest.mark.asyncio
    async def test_lifespan_passes_through(self, mock_probe):
        app = RecordingApp()
        resolver = Mock()
        middleware = TenantContextMiddleware(app, resolver=resolver, probe=mock_probe)

        await middleware({"type": "lifespan"}, _receive, _send)

        assert app.seen == [None]
        resolver.assert_not_called()
        mock_probe.tenant_cleared.assert_not_called()


class TestResolvers:
    def test_state_resolver(self):
        assert state_claim_resolver(_scope(state={"tenant_id": "acme"})) == "acme"
        assert state_claim_resolver(_scope(state={"tenant_id": ""})) is None
        assert state_claim_resolver({"type": "http"}) is None

    def test_header_resolver(self):
        resolve = header_claim_resolver("x-org")
        scope = _scope(headers=[(b"x-org", b"  acme  ")])

        assert resolve(scope) == "acme"
        assert resolve(_scope(headers=[(b"x-org", b"   ")])) is None
        assert resolve(_scope()) is None


class TestWithFastAPI:
    """End-to-end through a FastAPI application."""

    @pytest.fixture
    def client(self):
        app = FastAPI()
        app.add_middleware(
            TenantContextMiddleware,
            resolver=header_claim_resolver(),
            source="header",
        )

        @app.get("/whoami")
        async def whoami():
            return {"tenant": get_current_tenant_id()}

        return TestClient(app)

    def test_each_request_sees_its_own_tenant(self, client):
        first = client.get("/whoami", headers={"X-Tenant-Id": "acme"})
        second = client.get("/whoami", headers={"X-Tenant-Id": "globex"})
        anonymous = client.get("/whoami")

        assert first.json() == {"tenant": "acme"}
        assert second.json() == {"tenant": "globex"}
        assert anonymous.json() == {"tenant": None}
