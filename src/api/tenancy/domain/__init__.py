"""Domain model for the tenancy context.

Pure Python value objects and aggregates with no infrastructure
dependencies.
"""

from tenancy.domain.exceptions import InvalidSlugError, InvalidStatusTransitionError
from tenancy.domain.ledger import ProvisioningLedger
from tenancy.domain.tenant import TenantMigration, TenantRecord
from tenancy.domain.value_objects import (
    OnboardingStep,
    TenantId,
    TenantLimits,
    TenantStatus,
    derive_database_name,
    validate_slug,
)

__all__ = [
    "InvalidSlugError",
    "InvalidStatusTransitionError",
    "OnboardingStep",
    "ProvisioningLedger",
    "TenantId",
    "TenantLimits",
    "TenantMigration",
    "TenantRecord",
    "TenantStatus",
    "derive_database_name",
    "validate_slug",
]
