"""Unit test fixtures with in-memory collaborators.

The fakes implement the tenancy ports without any network or database
access. Each one can be told to fail a given method, and records the
order of calls so compensation sequences can be asserted.
"""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest
from pydantic import SecretStr

from tenancy.domain.tenant import TenantMigration, TenantRecord
from tenancy.domain.value_objects import TenantId, TenantLimits, TenantStatus
from tenancy.ports.exceptions import (
    OrganizationAlreadyExistsError,
    TenantSlugConflictError,
    UserAlreadyExistsError,
)

DEFAULT_TENANT_MIGRATIONS = ["t0001", "t0002", "t0003"]


class FakeIdentityProvider:
    """In-memory identity provider."""

    def __init__(self, atomic_membership: bool = False):
        self.atomic_membership = atomic_membership
        self.users: dict[str, str] = {}
        self.organizations: dict[str, str] = {}
        self.members: set[tuple[str, str]] = set()
        self.roles: set[tuple[str, str]] = set()
        self.calls: list[str] = []
        self.fail_on: dict[str, Exception] = {}

    @property
    def supports_atomic_membership(self) -> bool:
        return self.atomic_membership

    def _enter(self, method: str) -> None:
        self.calls.append(method)
        if method in self.fail_on:
            raise self.fail_on[method]

    async def create_user(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        email_verified: bool = True,
    ) -> str:
        self._enter("create_user")
        if email in self.users.values():
            raise UserAlreadyExistsError(f"User with email '{email}' already exists")
        user_id = f"user-{uuid.uuid4().hex[:8]}"
        self.users[user_id] = email
        return user_id

    async def user_exists(self, user_id: str) -> bool:
        self._enter("user_exists")
        return user_id in self.users

    async def delete_user(self, user_id: str) -> None:
        self._enter("delete_user")
        self.users.pop(user_id, None)

    async def create_organization(
        self, alias: str, name: str, member_id: str | None = None
    ) -> str:
        self._enter("create_organization")
        if alias in self.organizations.values():
            raise OrganizationAlreadyExistsError(
                f"Organization with alias '{alias}' already exists"
            )
        organization_id = f"org-{uuid.uuid4().hex[:8]}"
        self.organizations[organization_id] = alias
        if member_id is not None:
            self.members.add((organization_id, member_id))
        return organization_id

    async def organization_exists(self, organization_id: str) -> bool:
        self._enter("organization_exists")
        return organization_id in self.organizations

    async def delete_organization(self, organization_id: str) -> None:
        self._enter("delete_organization")
        self.organizations.pop(organization_id, None)
        self.members = {m for m in self.members if m[0] != organization_id}

    async def bind_user_to_organization(
        self, organization_id: str, user_id: str
    ) -> None:
        self._enter("bind_user_to_organization")
        self.members.add((organization_id, user_id))

    async def assign_role(
        self, organization_id: str, user_id: str, role_name: str
    ) -> None:
        self._enter("assign_role")
        self.roles.add((user_id, role_name))


class FakeDatabaseProvisioner:
    """In-memory database server."""

    def __init__(self, migrations: list[str] | None = None):
        self.migrations = list(migrations or DEFAULT_TENANT_MIGRATIONS)
        self.databases: set[str] = set()
        self.applied: dict[str, list[str]] = {}
        self.calls: list[str] = []
        self.fail_on: dict[str, Exception] = {}

    def _enter(self, method: str) -> None:
        self.calls.append(method)
        if method in self.fail_on:
            raise self.fail_on[method]

    async def ensure_database(self, name: str) -> bool:
        self._enter("ensure_database")
        if name in self.databases:
            return False
        self.databases.add(name)
        return True

    async def migrate(self, name: str) -> list[str]:
        self._enter("migrate")
        done = self.applied.setdefault(name, [])
        pending = [v for v in self.migrations if v not in done]
        done.extend(pending)
        return pending


class InMemoryTenantRecordStore:
    """Dict-backed tenant catalog."""

    def __init__(self):
        self.records: dict[TenantId, TenantRecord] = {}
        self.migrations: dict[TenantId, list[TenantMigration]] = {}
        self.calls: list[str] = []
        self.fail_on: dict[str, Exception] = {}

    def _enter(self, method: str) -> None:
        self.calls.append(method)
        if method in self.fail_on:
            raise self.fail_on[method]

    def add(self, record: TenantRecord) -> TenantRecord:
        self.records[record.id] = record
        return record

    async def create(
        self, record: TenantRecord, applied_migrations: list[str]
    ) -> TenantRecord:
        self._enter("create")
        # Mirrors the unique indexes on slug and database_name
        if any(
            r.slug == record.slug or r.database_name == record.database_name
            for r in self.records.values()
        ):
            raise TenantSlugConflictError(f"Tenant '{record.slug}' already exists")
        self.records[record.id] = record
        self.migrations[record.id] = []
        await self.record_migrations(record.id, applied_migrations)
        return record

    async def get_by_id(self, tenant_id: TenantId) -> TenantRecord | None:
        self._enter("get_by_id")
        return self.records.get(tenant_id)

    async def find_by_slug(self, slug: str) -> TenantRecord | None:
        self._enter("find_by_slug")
        return next((r for r in self.records.values() if r.slug == slug), None)

    async def exists_by_slug(self, slug: str) -> bool:
        self._enter("exists_by_slug")
        return any(r.slug == slug for r in self.records.values())

    async def exists_by_database_name(self, database_name: str) -> bool:
        self._enter("exists_by_database_name")
        return any(r.database_name == database_name for r in self.records.values())

    async def list_all(self) -> list[TenantRecord]:
        self._enter("list_all")
        return list(self.records.values())

    async def update_status(
        self, tenant_id: TenantId, status: TenantStatus
    ) -> TenantRecord | None:
        self._enter("update_status")
        record = self.records.get(tenant_id)
        if record is None:
            return None
        updated = replace(record, status=status)
        self.records[tenant_id] = updated
        return updated

    async def delete(self, tenant_id: TenantId) -> bool:
        self._enter("delete")
        self.migrations.pop(tenant_id, None)
        return self.records.pop(tenant_id, None) is not None

    async def record_migrations(
        self, tenant_id: TenantId, versions: list[str]
    ) -> list[TenantMigration]:
        history = self.migrations.setdefault(tenant_id, [])
        known = {m.version for m in history}
        added = [
            TenantMigration(
                tenant_id=tenant_id,
                version=v,
                status="applied",
                applied_at=datetime.now(UTC),
            )
            for v in versions
            if v not in known
        ]
        history.extend(added)
        return added

    async def list_migrations(self, tenant_id: TenantId) -> list[TenantMigration]:
        self._enter("list_migrations")
        return list(self.migrations.get(tenant_id, []))


def make_record(
    slug: str = "acme",
    status: TenantStatus = TenantStatus.ACTIVE,
    database_name: str | None = None,
) -> TenantRecord:
    """Build a tenant record for tests."""
    database_name = database_name or slug.replace("-", "_")
    return TenantRecord(
        id=TenantId.generate(),
        slug=slug,
        display_name=slug.title(),
        status=status,
        database_name=database_name,
        connection_string=f"postgresql://db:5432/{database_name}",
        limits=TenantLimits(max_users=50, max_storage_gb=10),
    )


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def database_provisioner() -> FakeDatabaseProvisioner:
    return FakeDatabaseProvisioner()


@pytest.fixture
def record_store() -> InMemoryTenantRecordStore:
    return InMemoryTenantRecordStore()


@pytest.fixture
def db_settings():
    """Provide test database settings."""
    from infrastructure.settings import DatabaseSettings

    return DatabaseSettings(
        host="testhost",
        port=5432,
        database="tenancy",
        admin_database="postgres",
        username="testuser",
        password=SecretStr("testpass"),
    )


@pytest.fixture
def pool_settings():
    from infrastructure.settings import TenantPoolSettings

    return TenantPoolSettings(
        max_connections=5,
        acquire_timeout_seconds=2.0,
        max_lifetime_seconds=300,
    )


@pytest.fixture
def idp_settings():
    """Provide identity provider settings with fast retries."""
    from infrastructure.settings import IdentityProviderSettings

    return IdentityProviderSettings(
        server_url="http://keycloak.test",
        realm="tenants",
        admin_realm="master",
        client_id="admin-cli",
        username="admin",
        password=SecretStr("admin"),
        bind_retry_base_delay_seconds=2.0,
        bind_retry_max_delay_seconds=10.0,
        bind_retry_max_attempts=5,
    )


@pytest.fixture
def provisioning_settings():
    from infrastructure.settings import ProvisioningSettings

    return ProvisioningSettings(
        database_name_max_length=63,
        admin_role_name="tenant-admin",
        default_max_users=50,
        default_max_storage_gb=10,
    )


@pytest.fixture
def mock_psycopg2_connection():
    """Provide a mocked psycopg2 connection."""
    conn = MagicMock()
    conn.closed = False

    cursor = MagicMock()
    cursor.fetchone.return_value = None

    # Set up context manager
    cursor.__enter__ = MagicMock(return_value=cursor)
    cursor.__exit__ = MagicMock(return_value=False)
    conn.cursor.return_value = cursor

    return conn, cursor


@pytest.fixture
def tenant_record_factory():
    """Provide a builder for tenant records."""
    return make_record
