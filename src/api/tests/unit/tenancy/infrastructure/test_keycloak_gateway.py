"""Unit tests for KeycloakIdentityGateway.

The Keycloak admin API is simulated with ``httpx.MockTransport``. Each
test routes requests through a small handler that issues numbered admin
tokens so token freshness can be asserted.
"""

from __future__ import annotations

import json
from typing import Callable

import httpx
import pytest

from tenancy.infrastructure.keycloak import KeycloakIdentityGateway
from tenancy.ports.exceptions import (
    OrganizationAlreadyExistsError,
    TerminalExternalError,
    TransientExternalError,
    UserAlreadyExistsError,
)

TOKEN_PATH = "/realms/master/protocol/openid-connect/token"
ADMIN_PREFIX = "/admin/realms/tenants"

Route = Callable[[httpx.Request], httpx.Response]


class FakeKeycloak:
    """Routes admin API requests to per-test handlers."""

    def __init__(self):
        self.routes: dict[tuple[str, str], Route] = {}
        self.requests: list[httpx.Request] = []
        self.tokens_issued = 0

    def on(self, method: str, path: str, handler: Route) -> None:
        self.routes[(method, path)] = handler

    def admin_calls(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.method == method and r.url.path == ADMIN_PREFIX + path
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == TOKEN_PATH:
            self.tokens_issued += 1
            return httpx.Response(
                200, json={"access_token": f"token-{self.tokens_issued}"}
            )

        self.requests.append(request)
        path = request.url.path.removeprefix(ADMIN_PREFIX)
        handler = self.routes.get((request.method, path))
        if handler is None:
            return httpx.Response(404, json={"error": "no route"})
        return handler(request)


class SleepRecorder:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def keycloak():
    return FakeKeycloak()


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def gateway(keycloak, sleep, idp_settings):
    client = httpx.AsyncClient(transport=httpx.MockTransport(keycloak))
    return KeycloakIdentityGateway(settings=idp_settings, client=client, sleep=sleep)


def _created(location: str) -> Route:
    return lambda request: httpx.Response(201, headers={"Location": location})


def _status(code: int, body: dict | None = None) -> Route:
    return lambda request: httpx.Response(code, json=body if body is not None else {})


def _sequence(*responses: httpx.Response) -> Route:
    remaining = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        template = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        return httpx.Response(template.status_code, content=template.content)

    return handler


class TestCreateUser:
    """Tests for create_user()."""

    @pytest.mark.asyncio
    async def test_creates_user_and_sets_password(self, gateway, keycloak):
        keycloak.on("GET", "/users", _status(200, []))
        location = "http://keycloak.test/admin/realms/tenants/users/u-1"
        keycloak.on("POST", "/users", _created(location))
        keycloak.on("PUT", "/users/u-1/reset-password", _status(204))

        user_id = await gateway.create_user("admin@acme.com", "pw", "Ada", "Admin")

        assert user_id == "u-1"
        created = json.loads(keycloak.admin_calls("POST", "/users")[0].content)
        assert created["email"] == "admin@acme.com"
        assert created["emailVerified"] is True
        password = json.loads(
            keycloak.admin_calls("PUT", "/users/u-1/reset-password")[0].content
        )
        assert password == {"type": "password", "value": "pw", "temporary": False}

    @pytest.mark.asyncio
    async def test_existing_email_is_conflict(self, gateway, keycloak):
        keycloak.on("GET", "/users", _status(200, [{"id": "u-0"}]))

        with pytest.raises(UserAlreadyExistsError):
            await gateway.create_user("admin@acme.com", "pw", "Ada", "Admin")

        assert keycloak.admin_calls("POST", "/users") == []

    @pytest.mark.asyncio
    async def test_409_is_conflict(self, gateway, keycloak):
        keycloak.on("GET", "/users", _status(200, []))
        keycloak.on("POST", "/users", _status(409, {"errorMessage": "exists"}))

        with pytest.raises(UserAlreadyExistsError):
            await gateway.create_user("admin@acme.com", "pw", "Ada", "Admin")

    @pytest.mark.asyncio
    async def test_password_failure_removes_user(self, gateway, keycloak):
        keycloak.on("GET", "/users", _status(200, []))
        keycloak.on("POST", "/users", _created("/users/u-1"))
        keycloak.on(
            "PUT",
            "/users/u-1/reset-password",
            _status(400, {"error": "invalidPasswordMinLengthMessage"}),
        )
        keycloak.on("DELETE", "/users/u-1", _status(204))

        with pytest.raises(TerminalExternalError) as exc_info:
            await gateway.create_user("admin@acme.com", "pw", "Ada", "Admin")

        assert exc_info.value.status_code == 400
        assert len(keycloak.admin_calls("DELETE", "/users/u-1")) == 1

    @pytest.mark.asyncio
    async def test_server_error_is_transient(self, gateway, keycloak):
        keycloak.on("GET", "/users", _status(503, {"error": "unavailable"}))

        with pytest.raises(TransientExternalError):
            await gateway.create_user("admin@acme.com", "pw", "Ada", "Admin")


class TestUsers:
    """Tests for user lookups and deletion."""

    @pytest.mark.asyncio
    async def test_user_exists(self, gateway, keycloak):
        keycloak.on("GET", "/users/u-1", _status(200, {"id": "u-1"}))

        assert await gateway.user_exists("u-1") is True
        assert await gateway.user_exists("u-2") is False

    @pytest.mark.asyncio
    async def test_delete_missing_user_is_tolerated(self, gateway, keycloak):
        await gateway.delete_user("ghost")

        assert len(keycloak.admin_calls("DELETE", "/users/ghost")) == 1


class TestOrganizations:
    """Tests for organization management."""

    @pytest.mark.asyncio
    async def test_creates_organization_with_domain(self, gateway, keycloak):
        keycloak.on("POST", "/organizations", _created("/organizations/o-1"))

        organization_id = await gateway.create_organization("acme", "Acme Inc")

        assert organization_id == "o-1"
        body = json.loads(keycloak.admin_calls("POST", "/organizations")[0].content)
        assert body["alias"] == "acme"
        assert body["name"] == "Acme Inc"
        assert body["domains"] == [{"name": "acme.local"}]

    @pytest.mark.asyncio
    async def test_duplicate_alias_is_conflict(self, gateway, keycloak):
        keycloak.on("POST", "/organizations", _status(409))

        with pytest.raises(OrganizationAlreadyExistsError):
            await gateway.create_organization("acme", "Acme Inc")

    @pytest.mark.asyncio
    async def test_missing_location_is_terminal(self, gateway, keycloak):
        keycloak.on("POST", "/organizations", _status(201))

        with pytest.raises(TerminalExternalError):
            await gateway.create_organization("acme", "Acme Inc")

    @pytest.mark.asyncio
    async def test_delete_and_exists(self, gateway, keycloak):
        keycloak.on("GET", "/organizations/o-1", _status(200, {"id": "o-1"}))
        keycloak.on("DELETE", "/organizations/o-1", _status(204))

        assert await gateway.organization_exists("o-1")
        await gateway.delete_organization("o-1")
        await gateway.delete_organization("o-2")

    def test_membership_is_never_atomic(self, gateway):
        assert gateway.supports_atomic_membership is False


class TestBindUserToOrganization:
    """Tests for the membership retry loop."""

    MEMBERS = "/organizations/o-1/members"

    @pytest.fixture(autouse=True)
    def user_present(self, keycloak):
        keycloak.on("GET", "/users/u-1", _status(200, {"id": "u-1"}))

    @pytest.mark.asyncio
    async def test_succeeds_first_time(self, gateway, keycloak, sleep):
        keycloak.on("POST", self.MEMBERS, _status(204))

        await gateway.bind_user_to_organization("o-1", "u-1")

        calls = keycloak.admin_calls("POST", self.MEMBERS)
        assert len(calls) == 1
        assert json.loads(calls[0].content) == "u-1"
        assert sleep.delays == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("k", [2, 3, 5])
    async def test_succeeds_on_kth_attempt(self, gateway, keycloak, sleep, k):
        not_found = httpx.Response(400, json={"errorMessage": "User not found"})
        keycloak.on(
            "POST",
            self.MEMBERS,
            _sequence(*([not_found] * (k - 1)), httpx.Response(204)),
        )

        await gateway.bind_user_to_organization("o-1", "u-1")

        assert len(keycloak.admin_calls("POST", self.MEMBERS)) == k
        assert sleep.delays == [min(2.0 * n, 10.0) for n in range(1, k)]

    @pytest.mark.asyncio
    async def test_terminal_error_fails_after_one_attempt(
        self, gateway, keycloak, sleep
    ):
        keycloak.on(
            "POST", self.MEMBERS, _status(400, {"errorMessage": "malformed request"})
        )

        with pytest.raises(TerminalExternalError) as exc_info:
            await gateway.bind_user_to_organization("o-1", "u-1")

        assert exc_info.value.status_code == 400
        assert len(keycloak.admin_calls("POST", self.MEMBERS)) == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_missing_organization_is_not_retried(self, gateway, keycloak, sleep):
        keycloak.on(
            "POST",
            self.MEMBERS,
            _status(404, {"errorMessage": "Organization not found"}),
        )

        with pytest.raises(TerminalExternalError) as exc_info:
            await gateway.bind_user_to_organization("o-1", "u-1")

        assert exc_info.value.status_code == 404
        assert len(keycloak.admin_calls("POST", self.MEMBERS)) == 1
        assert keycloak.admin_calls("GET", "/users/u-1") == []
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_gives_up_at_attempt_ceiling(self, gateway, keycloak, sleep):
        keycloak.on("POST", self.MEMBERS, _status(500, {"error": "unknown_error"}))

        with pytest.raises(TerminalExternalError):
            await gateway.bind_user_to_organization("o-1", "u-1")

        # idp_settings caps attempts at 5
        assert len(keycloak.admin_calls("POST", self.MEMBERS)) == 5
        assert sleep.delays == [2.0, 4.0, 6.0, 8.0]

    @pytest.mark.asyncio
    async def test_vanished_user_aborts_retries(self, gateway, keycloak, sleep):
        keycloak.on("GET", "/users/u-1", _status(404))
        keycloak.on(
            "POST", self.MEMBERS, _status(400, {"errorMessage": "User not found"})
        )

        with pytest.raises(TerminalExternalError, match="no longer exists"):
            await gateway.bind_user_to_organization("o-1", "u-1")

        assert len(keycloak.admin_calls("POST", self.MEMBERS)) == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_already_member_counts_as_success(self, gateway, keycloak):
        keycloak.on("POST", self.MEMBERS, _status(409, {"errorMessage": "exists"}))

        await gateway.bind_user_to_organization("o-1", "u-1")

    @pytest.mark.asyncio
    async def test_each_attempt_uses_fresh_token(self, gateway, keycloak):
        not_found = httpx.Response(400, json={"errorMessage": "user not found"})
        keycloak.on(
            "POST", self.MEMBERS, _sequence(not_found, not_found, httpx.Response(204))
        )

        await gateway.bind_user_to_organization("o-1", "u-1")

        tokens = [
            r.headers["Authorization"]
            for r in keycloak.admin_calls("POST", self.MEMBERS)
        ]
        assert len(set(tokens)) == 3

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried(self, idp_settings, sleep):
        attempts = {"count": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == TOKEN_PATH:
                return httpx.Response(200, json={"access_token": "t"})
            if request.url.path.endswith("/members"):
                attempts["count"] += 1
                if attempts["count"] == 1:
                    raise httpx.ConnectError("connection reset", request=request)
                return httpx.Response(204)
            return httpx.Response(200, json={"id": "u-1"})

        gateway = KeycloakIdentityGateway(
            settings=idp_settings,
            client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
            sleep=sleep,
        )

        await gateway.bind_user_to_organization("o-1", "u-1")

        assert attempts["count"] == 2
        assert sleep.delays == [2.0]


class TestAssignRole:
    """Tests for assign_role()."""

    @pytest.mark.asyncio
    async def test_maps_realm_role(self, gateway, keycloak):
        role = {"id": "r-1", "name": "tenant-admin"}
        keycloak.on("GET", "/roles/tenant-admin", _status(200, role))
        keycloak.on("POST", "/users/u-1/role-mappings/realm", _status(204))

        await gateway.assign_role("o-1", "u-1", "tenant-admin")

        call = keycloak.admin_calls("POST", "/users/u-1/role-mappings/realm")[0]
        assert json.loads(call.content) == [role]

    @pytest.mark.asyncio
    async def test_missing_role_raises(self, gateway, keycloak):
        with pytest.raises(TerminalExternalError):
            await gateway.assign_role("o-1", "u-1", "tenant-admin")


class TestAdminToken:
    """Tests for admin token acquisition."""

    @pytest.mark.asyncio
    async def test_uses_client_credentials_when_secret_set(self, idp_settings):
        from pydantic import SecretStr

        seen: list[bytes] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == TOKEN_PATH:
                seen.append(request.content)
                return httpx.Response(200, json={"access_token": "t"})
            return httpx.Response(200, json={"id": "u-1"})

        settings = idp_settings.model_copy(
            update={"client_secret": SecretStr("shh")}
        )
        gateway = KeycloakIdentityGateway(
            settings=settings,
            client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )

        await gateway.user_exists("u-1")

        assert b"grant_type=client_credentials" in seen[0]
        assert b"client_secret=shh" in seen[0]

    @pytest.mark.asyncio
    async def test_token_transport_error_is_transient(self, idp_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        gateway = KeycloakIdentityGateway(
            settings=idp_settings,
            client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )

        with pytest.raises(TransientExternalError):
            await gateway.user_exists("u-1")
