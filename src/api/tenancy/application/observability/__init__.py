"""Domain-Oriented Observability for the tenancy application layer."""

from tenancy.application.observability.provisioning_probe import (
    DefaultProvisioningProbe,
    ProvisioningProbe,
)
from tenancy.application.observability.tenant_admin_probe import (
    DefaultTenantAdminProbe,
    TenantAdminProbe,
)
from tenancy.application.observability.tenant_directory_probe import (
    DefaultTenantDirectoryProbe,
    TenantDirectoryProbe,
)

__all__ = [
    "ProvisioningProbe",
    "DefaultProvisioningProbe",
    "TenantAdminProbe",
    "DefaultTenantAdminProbe",
    "TenantDirectoryProbe",
    "DefaultTenantDirectoryProbe",
]
