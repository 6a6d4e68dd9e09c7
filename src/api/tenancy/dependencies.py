"""Dependency injection for the tenancy bounded context.

Composes shared database infrastructure with tenancy components. Every
component is an application-scoped singleton created on first use;
``close_tenancy_runtime`` releases the ones holding network resources.
"""

from __future__ import annotations

from functools import lru_cache, partial

from infrastructure.database.dependencies import (
    get_control_plane_engine,
    get_control_plane_sessionmaker,
)
from infrastructure.database.engines import (
    build_connection_string,
    create_tenant_engine,
)
from infrastructure.database.pool_cache import ConnectionPoolCache
from infrastructure.settings import (
    get_database_settings,
    get_identity_provider_settings,
    get_provisioning_settings,
    get_tenant_pool_settings,
)
from tenancy.application.services import (
    ProvisioningOrchestrator,
    TenantAdminService,
    TenantDirectory,
)
from tenancy.infrastructure.database_provisioner import PostgresDatabaseProvisioner
from tenancy.infrastructure.keycloak import KeycloakIdentityGateway
from tenancy.infrastructure.routing_data_source import RoutingDataSource
from tenancy.infrastructure.tenant_repository import TenantRecordStore


@lru_cache
def get_tenant_record_store() -> TenantRecordStore:
    """Get the control-plane tenant catalog."""
    return TenantRecordStore(session_factory=get_control_plane_sessionmaker())


@lru_cache
def get_tenant_directory() -> TenantDirectory:
    """Get the process-wide tenant directory (shared cache)."""
    return TenantDirectory(store=get_tenant_record_store())


@lru_cache
def get_tenant_pool_cache() -> ConnectionPoolCache:
    """Get the cache of per-tenant engines."""
    db_settings = get_database_settings()
    pool_settings = get_tenant_pool_settings()
    return ConnectionPoolCache(
        factory=partial(create_tenant_engine, db_settings, pool_settings),
        max_size=pool_settings.max_cached_pools,
        max_connections=pool_settings.max_connections,
    )


@lru_cache
def get_routing_data_source() -> RoutingDataSource:
    """Get the tenant-aware routing data source (singleton)."""
    return RoutingDataSource(
        control_plane_engine=get_control_plane_engine(),
        directory=get_tenant_directory(),
        pool_cache=get_tenant_pool_cache(),
    )


@lru_cache
def get_identity_provider() -> KeycloakIdentityGateway:
    """Get the Keycloak gateway (owns one HTTP client)."""
    return KeycloakIdentityGateway(settings=get_identity_provider_settings())


@lru_cache
def get_database_provisioner() -> PostgresDatabaseProvisioner:
    """Get the tenant database provisioner."""
    return PostgresDatabaseProvisioner(settings=get_database_settings())


def get_provisioning_orchestrator() -> ProvisioningOrchestrator:
    """Build the onboarding orchestrator over the shared components."""
    return ProvisioningOrchestrator(
        identity_provider=get_identity_provider(),
        database_provisioner=get_database_provisioner(),
        record_store=get_tenant_record_store(),
        connection_string_for=partial(
            build_connection_string, get_database_settings()
        ),
        directory=get_tenant_directory(),
        settings=get_provisioning_settings(),
    )


def get_tenant_admin_service() -> TenantAdminService:
    """Build the tenant administration service."""
    return TenantAdminService(
        record_store=get_tenant_record_store(),
        database_provisioner=get_database_provisioner(),
        directory=get_tenant_directory(),
        pool_registry=get_routing_data_source(),
    )


async def close_tenancy_runtime() -> None:
    """Dispose tenant pools and close the identity provider client.

    Only components that were actually created are closed. Caches are
    cleared so the next call recreates them.
    """
    if get_routing_data_source.cache_info().currsize:
        await get_routing_data_source().close()
    elif get_tenant_pool_cache.cache_info().currsize:
        await get_tenant_pool_cache().close()

    if get_identity_provider.cache_info().currsize:
        await get_identity_provider().aclose()

    for getter in (
        get_routing_data_source,
        get_tenant_pool_cache,
        get_identity_provider,
        get_database_provisioner,
        get_tenant_directory,
        get_tenant_record_store,
    ):
        getter.cache_clear()
