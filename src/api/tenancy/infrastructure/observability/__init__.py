"""Domain-Oriented Observability for tenancy infrastructure."""

from tenancy.infrastructure.observability.database_provisioner_probe import (
    DatabaseProvisionerProbe,
    DefaultDatabaseProvisionerProbe,
)
from tenancy.infrastructure.observability.identity_provider_probe import (
    DefaultIdentityProviderProbe,
    IdentityProviderProbe,
)
from tenancy.infrastructure.observability.repository_probe import (
    DefaultTenantRecordStoreProbe,
    TenantRecordStoreProbe,
)
from tenancy.infrastructure.observability.routing_probe import (
    DefaultRoutingProbe,
    RoutingProbe,
)

__all__ = [
    "DatabaseProvisionerProbe",
    "DefaultDatabaseProvisionerProbe",
    "IdentityProviderProbe",
    "DefaultIdentityProviderProbe",
    "TenantRecordStoreProbe",
    "DefaultTenantRecordStoreProbe",
    "RoutingProbe",
    "DefaultRoutingProbe",
]
