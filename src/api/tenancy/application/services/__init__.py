"""Application services for the tenancy bounded context."""

from tenancy.application.services.provisioning_orchestrator import (
    ProvisioningOrchestrator,
)
from tenancy.application.services.tenant_admin_service import TenantAdminService
from tenancy.application.services.tenant_directory import TenantDirectory

__all__ = [
    "ProvisioningOrchestrator",
    "TenantAdminService",
    "TenantDirectory",
]
