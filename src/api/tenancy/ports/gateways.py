"""Gateway protocols (ports) for external systems used during onboarding.

The identity provider and the database server do not share a
transaction with the control-plane store; the orchestrator keeps them
consistent by compensation.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class IdentityProviderGateway(Protocol):
    """Client abstraction over the external identity system."""

    @property
    def supports_atomic_membership(self) -> bool:
        """Whether ``create_organization`` can add an initial member."""
        ...

    async def create_user(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        email_verified: bool = True,
    ) -> str:
        """Create a user and return its id.

        Raises:
            UserAlreadyExistsError: If a user with the email exists
            ExternalServiceError: If the provider rejects the request
        """
        ...

    async def user_exists(self, user_id: str) -> bool:
        """Check whether a user is resolvable by id."""
        ...

    async def delete_user(self, user_id: str) -> None:
        """Delete a user. Deleting a missing user is not an error."""
        ...

    async def create_organization(
        self, alias: str, name: str, member_id: str | None = None
    ) -> str:
        """Create an organization and return its id.

        ``member_id`` is only honored when ``supports_atomic_membership``.

        Raises:
            OrganizationAlreadyExistsError: If the alias is taken
            ExternalServiceError: If the provider rejects the request
        """
        ...

    async def organization_exists(self, organization_id: str) -> bool:
        """Check whether an organization is resolvable by id."""
        ...

    async def delete_organization(self, organization_id: str) -> None:
        """Delete an organization. Deleting a missing one is not an error."""
        ...

    async def bind_user_to_organization(
        self, organization_id: str, user_id: str
    ) -> None:
        """Add a user to an organization, retrying while the user is not visible.

        Raises:
            TerminalExternalError: If binding fails permanently or the retry
                ceiling is exhausted
        """
        ...

    async def assign_role(
        self, organization_id: str, user_id: str, role_name: str
    ) -> None:
        """Grant a role to a user within an organization."""
        ...


@runtime_checkable
class DatabaseProvisioner(Protocol):
    """Creates tenant databases and applies their schema migrations."""

    async def ensure_database(self, name: str) -> bool:
        """Create the database if it does not exist.

        Returns:
            True if the database was created, False if it already existed

        Raises:
            DatabaseProvisioningError: If creation fails
        """
        ...

    async def migrate(self, name: str) -> list[str]:
        """Apply unapplied migrations to the database.

        Returns:
            Versions newly applied by this call, in order

        Raises:
            DatabaseProvisioningError: If a migration fails
        """
        ...
