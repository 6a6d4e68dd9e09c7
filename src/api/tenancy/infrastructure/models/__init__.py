"""SQLAlchemy ORM models for the tenancy bounded context.

These map the control-plane tables used by the tenant record store.
"""

from tenancy.infrastructure.models.tenant import TenantModel
from tenancy.infrastructure.models.tenant_migration import (
    MIGRATION_STATUS_APPLIED,
    TenantMigrationModel,
)

__all__ = [
    "MIGRATION_STATUS_APPLIED",
    "TenantMigrationModel",
    "TenantModel",
]
