"""Provisioning ledger for one onboarding run.

The ledger records which side effects have been committed so a failure
can be compensated in reverse order. It lives only for the duration of
one run and is never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tenancy.domain.value_objects import OnboardingStep, TenantId


@dataclass
class ProvisioningLedger:
    """Ordered record of committed onboarding side effects."""

    slug: str
    database_name: str
    user_id: str | None = None
    organization_id: str | None = None
    database_created: bool = False
    migrations_applied: list[str] = field(default_factory=list)
    tenant_record_id: TenantId | None = None
    membership_bound: bool = False
    completed_steps: list[OnboardingStep] = field(default_factory=list)

    @property
    def has_side_effects(self) -> bool:
        """True once any external or persistent change has been committed."""
        return (
            self.user_id is not None
            or self.organization_id is not None
            or self.database_created
            or bool(self.migrations_applied)
            or self.tenant_record_id is not None
        )

    def record_user(self, user_id: str) -> None:
        self.user_id = user_id
        self.completed_steps.append(OnboardingStep.USER_CREATION)

    def record_organization(self, organization_id: str, with_member: bool) -> None:
        self.organization_id = organization_id
        self.completed_steps.append(OnboardingStep.ORG_CREATION)
        if with_member:
            self.membership_bound = True

    def record_database(self, created: bool) -> None:
        self.database_created = created
        self.completed_steps.append(OnboardingStep.DATABASE_CREATION)

    def record_migrations(self, versions: list[str]) -> None:
        self.migrations_applied = list(versions)
        self.completed_steps.append(OnboardingStep.DATABASE_MIGRATION)

    def record_tenant(self, tenant_id: TenantId) -> None:
        self.tenant_record_id = tenant_id

    def record_membership(self) -> None:
        self.membership_bound = True
        self.completed_steps.append(OnboardingStep.USER_ORG_ASSIGNMENT)
