"""Keycloak implementation of IdentityProviderGateway.

Talks to the Keycloak admin REST API over httpx. Every call obtains a
fresh admin token, so long retry loops never run on an expired
credential. Keycloak cannot create an organization with an initial
member in one call, so membership is always bound separately.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import httpx

from infrastructure.settings import IdentityProviderSettings
from tenancy.infrastructure.keycloak.retry import MembershipRetryPolicy
from tenancy.infrastructure.observability import (
    DefaultIdentityProviderProbe,
    IdentityProviderProbe,
)
from tenancy.ports.exceptions import (
    ExternalServiceError,
    OrganizationAlreadyExistsError,
    TerminalExternalError,
    TransientExternalError,
    UserAlreadyExistsError,
)
from tenancy.ports.gateways import IdentityProviderGateway

Sleep = Callable[[float], Awaitable[None]]


class KeycloakIdentityGateway(IdentityProviderGateway):
    """Identity provider gateway backed by the Keycloak admin API."""

    def __init__(
        self,
        settings: IdentityProviderSettings,
        client: httpx.AsyncClient | None = None,
        retry_policy: MembershipRetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
        probe: IdentityProviderProbe | None = None,
    ):
        """Initialize the gateway.

        Args:
            settings: Keycloak connection and retry settings
            client: Optional preconfigured client (tests pass one with a
                mock transport); otherwise one is created with the
                configured timeout
            retry_policy: Membership binding retry policy
            sleep: Awaitable used between retries
            probe: Optional domain probe for observability
        """
        self._settings = settings
        self._base_url = settings.server_url.rstrip("/")
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.request_timeout_seconds)
        )
        self._owns_client = client is None
        self._retry = retry_policy or MembershipRetryPolicy.from_settings(settings)
        self._sleep = sleep
        self._probe = probe or DefaultIdentityProviderProbe()

    @property
    def supports_atomic_membership(self) -> bool:
        return False

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this gateway created it."""
        if self._owns_client:
            await self._client.aclose()

    # Users

    async def create_user(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        email_verified: bool = True,
    ) -> str:
        existing = await self._request(
            "GET", "/users", params={"email": email, "exact": "true"}
        )
        if not existing.is_success:
            raise self._error(existing, "GET", "/users", "User search failed")
        if existing.json():
            raise UserAlreadyExistsError(f"User with email '{email}' already exists")

        response = await self._request(
            "POST",
            "/users",
            json={
                "username": email,
                "email": email,
                "firstName": first_name,
                "lastName": last_name,
                "enabled": True,
                "emailVerified": email_verified,
            },
        )
        if response.status_code == 409:
            raise UserAlreadyExistsError(f"User with email '{email}' already exists")
        if response.status_code != 201:
            raise self._error(response, "POST", "/users", "Failed to create user")

        user_id = self._id_from_location(response)

        password_response = await self._request(
            "PUT",
            f"/users/{user_id}/reset-password",
            json={"type": "password", "value": password, "temporary": False},
        )
        if not password_response.is_success:
            error = self._error(
                password_response,
                "PUT",
                f"/users/{user_id}/reset-password",
                "Failed to set user password",
            )
            # The caller never learns the id, so remove the half-created user
            await self.delete_user(user_id)
            raise error

        self._probe.user_created(user_id, email)
        return user_id

    async def user_exists(self, user_id: str) -> bool:
        response = await self._request("GET", f"/users/{user_id}")
        if response.status_code == 404:
            return False
        if not response.is_success:
            raise self._error(
                response, "GET", f"/users/{user_id}", "User lookup failed"
            )
        return True

    async def delete_user(self, user_id: str) -> None:
        response = await self._request("DELETE", f"/users/{user_id}")
        if response.status_code == 404:
            self._probe.user_deleted(user_id, existed=False)
            return
        if not response.is_success:
            raise self._error(
                response, "DELETE", f"/users/{user_id}", "Failed to delete user"
            )
        self._probe.user_deleted(user_id, existed=True)

    # Organizations

    async def create_organization(
        self, alias: str, name: str, member_id: str | None = None
    ) -> str:
        response = await self._request(
            "POST",
            "/organizations",
            json={
                "name": name,
                "alias": alias,
                "enabled": True,
                "domains": [
                    {"name": f"{alias}{self._settings.organization_domain_suffix}"}
                ],
            },
        )
        if response.status_code == 409:
            raise OrganizationAlreadyExistsError(
                f"Organization with alias '{alias}' already exists"
            )
        if response.status_code != 201:
            raise self._error(
                response, "POST", "/organizations", "Failed to create organization"
            )

        organization_id = self._id_from_location(response)
        self._probe.organization_created(organization_id, alias)
        return organization_id

    async def organization_exists(self, organization_id: str) -> bool:
        path = f"/organizations/{organization_id}"
        response = await self._request("GET", path)
        if response.status_code == 404:
            return False
        if not response.is_success:
            raise self._error(response, "GET", path, "Organization lookup failed")
        return True

    async def delete_organization(self, organization_id: str) -> None:
        path = f"/organizations/{organization_id}"
        response = await self._request("DELETE", path)
        if response.status_code == 404:
            self._probe.organization_deleted(organization_id, existed=False)
            return
        if not response.is_success:
            raise self._error(response, "DELETE", path, "Failed to delete organization")
        self._probe.organization_deleted(organization_id, existed=True)

    async def bind_user_to_organization(
        self, organization_id: str, user_id: str
    ) -> None:
        """Add a user to an organization, retrying while Keycloak catches up.

        Each attempt uses a fresh admin token. Before every retry the user
        is looked up directly; if it is gone the bind fails immediately.

        Raises:
            TerminalExternalError: On a non-retryable response, when the
                user disappeared, or when the attempt ceiling is reached
        """
        path = f"/organizations/{organization_id}/members"
        policy = self._retry
        status_code: int | None = None
        message = ""

        for attempt in range(1, policy.max_attempts + 1):
            try:
                response = await self._request("POST", path, json=user_id)
            except TransientExternalError as e:
                status_code, message = None, str(e)
            else:
                # 409: the user is already a member
                if response.is_success or response.status_code == 409:
                    self._probe.member_bound(organization_id, user_id, attempt)
                    return
                status_code, message = response.status_code, self._message(response)

            if not policy.is_retryable(status_code, message):
                self._probe.bind_failed(
                    organization_id, user_id, attempt, status_code, message
                )
                raise TerminalExternalError(
                    f"Failed to add user {user_id} to organization "
                    f"{organization_id}: {message}",
                    status_code=status_code,
                )

            if attempt == policy.max_attempts:
                break

            if not await self.user_exists(user_id):
                self._probe.bind_failed(
                    organization_id,
                    user_id,
                    attempt,
                    status_code,
                    "user no longer exists",
                )
                raise TerminalExternalError(
                    f"User {user_id} no longer exists; cannot add to organization "
                    f"{organization_id}",
                    status_code=status_code,
                )

            delay = policy.delay_for(attempt)
            self._probe.bind_retry_scheduled(
                organization_id, user_id, attempt, delay, status_code, message
            )
            await self._sleep(delay)

        self._probe.bind_failed(
            organization_id, user_id, policy.max_attempts, status_code, message
        )
        raise TerminalExternalError(
            f"Failed to add user {user_id} to organization {organization_id} "
            f"after {policy.max_attempts} attempts: {message}",
            status_code=status_code,
        )

    async def assign_role(
        self, organization_id: str, user_id: str, role_name: str
    ) -> None:
        """Grant a realm role to the user.

        Keycloak organizations carry no roles of their own, so the role is
        a realm role; ``organization_id`` scopes the call for logging only.
        """
        role_path = f"/roles/{role_name}"
        role_response = await self._request("GET", role_path)
        if not role_response.is_success:
            raise self._error(role_response, "GET", role_path, "Role lookup failed")

        mapping_path = f"/users/{user_id}/role-mappings/realm"
        response = await self._request(
            "POST", mapping_path, json=[role_response.json()]
        )
        if not response.is_success:
            raise self._error(response, "POST", mapping_path, "Failed to assign role")
        self._probe.role_assigned(user_id, role_name)

    # Plumbing

    async def _admin_token(self) -> str:
        url = (
            f"{self._base_url}/realms/{self._settings.admin_realm}"
            "/protocol/openid-connect/token"
        )
        if self._settings.client_secret is not None:
            data = {
                "grant_type": "client_credentials",
                "client_id": self._settings.client_id,
                "client_secret": self._settings.client_secret.get_secret_value(),
            }
        else:
            data = {
                "grant_type": "password",
                "client_id": self._settings.client_id,
                "username": self._settings.username,
                "password": self._settings.password.get_secret_value(),
            }

        try:
            response = await self._client.post(url, data=data)
        except httpx.HTTPError as e:
            raise TransientExternalError(
                f"Failed to obtain admin token: {e}"
            ) from e

        if not response.is_success:
            raise self._error(response, "POST", "token", "Failed to obtain admin token")
        return response.json()["access_token"]

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        token = await self._admin_token()
        url = f"{self._base_url}/admin/realms/{self._settings.realm}{path}"
        try:
            return await self._client.request(
                method,
                url,
                headers={"Authorization": f"Bearer {token}"},
                **kwargs,
            )
        except httpx.HTTPError as e:
            self._probe.request_failed(method, path, None, str(e))
            raise TransientExternalError(
                f"Identity provider request {method} {path} failed: {e}"
            ) from e

    def _error(
        self, response: httpx.Response, method: str, path: str, summary: str
    ) -> ExternalServiceError:
        message = self._message(response)
        self._probe.request_failed(method, path, response.status_code, message)
        error_class = (
            TransientExternalError
            if response.status_code >= 500
            else TerminalExternalError
        )
        return error_class(
            f"{summary} ({response.status_code}): {message}",
            status_code=response.status_code,
        )

    @staticmethod
    def _message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text
        if isinstance(body, dict):
            for key in ("errorMessage", "error_description", "error"):
                if body.get(key):
                    return str(body[key])
        return response.text

    @staticmethod
    def _id_from_location(response: httpx.Response) -> str:
        location = response.headers.get("Location")
        if not location:
            raise TerminalExternalError(
                "Identity provider response is missing the Location header",
                status_code=response.status_code,
            )
        return location.rstrip("/").rsplit("/", 1)[-1]
