"""Tenant onboarding saga.

Drives the steps that provision a tenant across the identity provider,
the database server, and the control-plane catalog. The three systems do
not share a transaction, so consistency comes from compensation: every
committed side effect is recorded in a ``ProvisioningLedger`` and undone
in reverse order when a later step fails.

Steps, in order:

1. create the administrator user
2. create the organization (with the user as member when the provider
   supports it atomically)
3. create the tenant database if absent
4. apply schema migrations
5. persist the tenant record as active, with its migration history
6. bind the user to the organization if step 2 did not
7. grant the administrator role (best effort, never fails the run)

Compensation deletes the tenant record, then the user, then the
organization. The tenant database is never dropped automatically; the
failure carries the slug and database name for manual cleanup.
"""

from __future__ import annotations

from typing import Awaitable, Callable

from infrastructure.settings import ProvisioningSettings, get_provisioning_settings
from tenancy.application.observability import (
    DefaultProvisioningProbe,
    ProvisioningProbe,
)
from tenancy.application.services.tenant_directory import TenantDirectory
from tenancy.application.value_objects import ProvisionTenantRequest
from tenancy.domain.ledger import ProvisioningLedger
from tenancy.domain.tenant import TenantRecord
from tenancy.domain.value_objects import (
    OnboardingStep,
    TenantLimits,
    derive_database_name,
    validate_slug,
)
from tenancy.ports.exceptions import (
    ProvisioningStepError,
    TenancyError,
    TenantDatabaseConflictError,
    TenantSlugConflictError,
)
from tenancy.ports.gateways import DatabaseProvisioner, IdentityProviderGateway
from tenancy.ports.repositories import ITenantRecordStore

ConnectionStringBuilder = Callable[[str], str]


class ProvisioningOrchestrator:
    """Application service running the tenant onboarding saga.

    Steps run strictly sequentially. A run holds no shared state other
    than its own ledger, so runs for different tenants can proceed
    concurrently.
    """

    def __init__(
        self,
        identity_provider: IdentityProviderGateway,
        database_provisioner: DatabaseProvisioner,
        record_store: ITenantRecordStore,
        connection_string_for: ConnectionStringBuilder,
        directory: TenantDirectory | None = None,
        settings: ProvisioningSettings | None = None,
        probe: ProvisioningProbe | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            identity_provider: Gateway to the external identity system
            database_provisioner: Creates and migrates tenant databases
            record_store: Control-plane tenant catalog
            connection_string_for: Builds the stored (credential-free)
                connection string for a database name
            directory: Optional directory whose cache is invalidated when
                a record is compensated
            settings: Provisioning settings (defaults to environment)
            probe: Optional domain probe for observability
        """
        self._identity = identity_provider
        self._provisioner = database_provisioner
        self._store = record_store
        self._connection_string_for = connection_string_for
        self._directory = directory
        self._settings = settings or get_provisioning_settings()
        self._probe = probe or DefaultProvisioningProbe()

    async def provision(self, request: ProvisionTenantRequest) -> TenantRecord:
        """Provision a tenant end to end.

        Args:
            request: Tenant and administrator details

        Returns:
            The persisted, active tenant record

        Raises:
            InvalidSlugError: If the slug is malformed (nothing is created)
            TenantSlugConflictError: If the slug is already taken
            TenantDatabaseConflictError: If another tenant owns the derived
                database name
            TenancyError: The original failure of the step that failed,
                tagged with ``failed_step``, ``tenant_slug`` and
                ``database_name``. Unexpected exceptions are wrapped in
                ``ProvisioningStepError``.
        """
        slug = validate_slug(request.slug)
        database_name = derive_database_name(
            slug, self._settings.database_name_max_length
        )

        if await self._store.exists_by_slug(slug):
            self._probe.slug_conflict(slug)
            raise TenantSlugConflictError(f"Tenant '{slug}' already exists")
        if await self._store.exists_by_database_name(database_name):
            self._probe.database_name_conflict(slug, database_name)
            raise TenantDatabaseConflictError(
                f"Database '{database_name}' for tenant '{slug}' is already in use"
            )

        ledger = ProvisioningLedger(slug=slug, database_name=database_name)
        self._probe.provisioning_started(slug, database_name)

        step = OnboardingStep.USER_CREATION
        try:
            admin = request.admin_user
            user_id = await self._identity.create_user(
                email=admin.email,
                password=admin.password,
                first_name=admin.first_name,
                last_name=admin.last_name,
                email_verified=admin.email_verified,
            )
            ledger.record_user(user_id)
            self._probe.step_completed(slug, step)

            step = OnboardingStep.ORG_CREATION
            atomic = self._identity.supports_atomic_membership
            organization_id = await self._identity.create_organization(
                alias=slug,
                name=request.tenant_name,
                member_id=user_id if atomic else None,
            )
            ledger.record_organization(organization_id, with_member=atomic)
            self._probe.step_completed(slug, step)

            step = OnboardingStep.DATABASE_CREATION
            created = await self._provisioner.ensure_database(database_name)
            ledger.record_database(created)
            self._probe.step_completed(slug, step)

            step = OnboardingStep.DATABASE_MIGRATION
            versions = await self._provisioner.migrate(database_name)
            ledger.record_migrations(versions)
            self._probe.step_completed(slug, step)

            # Persisting the catalog entry completes database setup
            step = OnboardingStep.DATABASE_CREATION
            record = await self._store.create(
                self._build_record(request, slug, database_name), versions
            )
            ledger.record_tenant(record.id)

            if not ledger.membership_bound:
                step = OnboardingStep.USER_ORG_ASSIGNMENT
                await self._identity.bind_user_to_organization(
                    organization_id, user_id
                )
                ledger.record_membership()
                self._probe.step_completed(slug, step)
        except TenancyError as exc:
            exc.tag(step, slug, database_name)
            await self._compensate(ledger, step, exc)
            raise
        except Exception as exc:
            error = ProvisioningStepError(f"Onboarding step {step} failed: {exc}")
            error.tag(step, slug, database_name)
            await self._compensate(ledger, step, error)
            raise error from exc

        await self._assign_admin_role(slug, organization_id, user_id)

        self._probe.tenant_provisioned(
            str(record.id), slug, database_name, len(ledger.migrations_applied)
        )
        return record

    def _build_record(
        self, request: ProvisionTenantRequest, slug: str, database_name: str
    ) -> TenantRecord:
        limits = request.limits or TenantLimits(
            max_users=self._settings.default_max_users,
            max_storage_gb=self._settings.default_max_storage_gb,
        )
        return TenantRecord.create_active(
            slug=slug,
            display_name=request.tenant_name,
            database_name=database_name,
            connection_string=self._connection_string_for(database_name),
            limits=limits,
            tier=request.tier,
            metadata=request.metadata,
        )

    async def _assign_admin_role(
        self, slug: str, organization_id: str, user_id: str
    ) -> None:
        role_name = self._settings.admin_role_name
        try:
            await self._identity.assign_role(organization_id, user_id, role_name)
        except Exception as e:
            self._probe.role_assignment_failed(slug, user_id, role_name, e)
            return
        self._probe.step_completed(slug, OnboardingStep.ROLE_ASSIGNMENT)

    async def _compensate(
        self,
        ledger: ProvisioningLedger,
        step: OnboardingStep,
        error: Exception,
    ) -> None:
        """Undo committed side effects in reverse order.

        Compensation failures are logged and swallowed so the caller
        always sees the original error.
        """
        self._probe.provisioning_failed(ledger.slug, step, error)
        if not ledger.has_side_effects:
            return

        if ledger.tenant_record_id is not None:
            tenant_id = ledger.tenant_record_id
            await self._attempt(
                ledger.slug,
                "delete_tenant_record",
                lambda: self._store.delete(tenant_id),
            )
            if self._directory is not None:
                self._directory.invalidate(tenant_id)

        if ledger.user_id is not None:
            user_id = ledger.user_id
            await self._attempt(
                ledger.slug, "delete_user", lambda: self._identity.delete_user(user_id)
            )

        if ledger.organization_id is not None:
            organization_id = ledger.organization_id
            await self._attempt(
                ledger.slug,
                "delete_organization",
                lambda: self._identity.delete_organization(organization_id),
            )

        if ledger.database_created:
            self._probe.manual_cleanup_required(ledger.slug, ledger.database_name)

    async def _attempt(
        self,
        slug: str,
        action: str,
        operation: Callable[[], Awaitable[object]],
    ) -> None:
        try:
            await operation()
        except Exception as e:
            self._probe.compensation_failed(slug, action, e)
            return
        self._probe.compensation_succeeded(slug, action)
