"""Ports (interfaces) for the tenancy bounded context.

Ports define the contracts for the tenant catalog, the external systems
touched during onboarding, and the connection pool registry, so the
application layer stays independent of infrastructure.
"""

from tenancy.ports.gateways import DatabaseProvisioner, IdentityProviderGateway
from tenancy.ports.repositories import ITenantRecordStore
from tenancy.ports.routing import ITenantPoolRegistry

__all__ = [
    "DatabaseProvisioner",
    "ITenantPoolRegistry",
    "ITenantRecordStore",
    "IdentityProviderGateway",
]
