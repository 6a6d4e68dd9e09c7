"""Application settings using pydantic-settings.

Settings are loaded from environment variables with sensible defaults
for development. Production deployments should set all values explicitly.
"""

from functools import lru_cache

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Control-plane database server settings.

    The same server hosts the control-plane catalog and every tenant
    database, so these credentials are reused for tenant pools and for
    the administrative connection that issues CREATE DATABASE.

    Environment variables:
        TENANCY_DB_HOST: Database host (default: localhost)
        TENANCY_DB_PORT: Database port (default: 5432)
        TENANCY_DB_DATABASE: Control-plane database name (default: tenancy)
        TENANCY_DB_ADMIN_DATABASE: Database used for administrative
            commands (default: postgres)
        TENANCY_DB_USERNAME: Database user (default: tenancy)
        TENANCY_DB_PASSWORD: Database password (required in production)
        TENANCY_DB_POOL_MAX_CONNECTIONS: Control-plane pool size (default: 10)
        TENANCY_DB_CONNECT_TIMEOUT_SECONDS: Connect timeout (default: 5)
    """

    model_config = SettingsConfigDict(
        env_prefix="TENANCY_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    database: str = Field(default="tenancy", description="Control-plane database")
    admin_database: str = Field(
        default="postgres",
        description="Database used for administrative connections",
    )
    username: str = Field(default="tenancy", description="Database username")
    password: SecretStr = Field(
        default=SecretStr(""),
        description="Database password",
    )
    pool_max_connections: int = Field(
        default=10,
        description="Maximum connections in the control-plane pool",
        ge=1,
        le=100,
    )
    connect_timeout_seconds: int = Field(
        default=5,
        description="Timeout for establishing a connection",
        ge=1,
        le=120,
    )

    @property
    def connection_string(self) -> str:
        """Generate a connection string (without password for logging)."""
        return f"postgresql://{self.username}@{self.host}:{self.port}/{self.database}"


class TenantPoolSettings(BaseSettings):
    """Per-tenant connection pool settings.

    Pools are tuned small and short-lived so a process can switch between
    many tenants without holding idle connections for long.

    Environment variables:
        TENANCY_TENANT_POOL_MAX_CONNECTIONS: Pool size per tenant (default: 10)
        TENANCY_TENANT_POOL_ACQUIRE_TIMEOUT_SECONDS: Wait for a free
            connection before failing (default: 5)
        TENANCY_TENANT_POOL_MAX_LIFETIME_SECONDS: Recycle connections older
            than this (default: 900)
        TENANCY_TENANT_POOL_MAX_CACHED_POOLS: Evict least recently used
            pools beyond this count (default: unbounded)
    """

    model_config = SettingsConfigDict(
        env_prefix="TENANCY_TENANT_POOL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_connections: int = Field(default=10, ge=1, le=100)
    acquire_timeout_seconds: float = Field(default=5.0, gt=0)
    max_lifetime_seconds: int = Field(default=900, ge=30)
    max_cached_pools: int | None = Field(
        default=None,
        description="Upper bound on cached tenant pools (None for unbounded)",
        ge=1,
    )


class IdentityProviderSettings(BaseSettings):
    """Keycloak admin API settings.

    Environment variables:
        TENANCY_IDP_SERVER_URL: Base URL of the Keycloak server
        TENANCY_IDP_REALM: Realm in which tenants are provisioned
        TENANCY_IDP_ADMIN_REALM: Realm used to obtain admin tokens (default: master)
        TENANCY_IDP_CLIENT_ID: Admin client id (default: admin-cli)
        TENANCY_IDP_CLIENT_SECRET: Admin client secret (client credentials grant)
        TENANCY_IDP_USERNAME: Admin username (password grant)
        TENANCY_IDP_PASSWORD: Admin password (password grant)
        TENANCY_IDP_REQUEST_TIMEOUT_SECONDS: Per-request timeout (default: 30)
        TENANCY_IDP_BIND_RETRY_BASE_DELAY_SECONDS: Linear backoff step (default: 2)
        TENANCY_IDP_BIND_RETRY_MAX_DELAY_SECONDS: Backoff cap (default: 10)
        TENANCY_IDP_BIND_RETRY_MAX_ATTEMPTS: Attempt ceiling (default: 15)
    """

    model_config = SettingsConfigDict(
        env_prefix="TENANCY_IDP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    server_url: str = Field(default="http://localhost:8180")
    realm: str = Field(default="tenants")
    admin_realm: str = Field(default="master")
    client_id: str = Field(default="admin-cli")
    client_secret: SecretStr | None = Field(default=None)
    username: str = Field(default="admin")
    password: SecretStr = Field(default=SecretStr(""))
    request_timeout_seconds: float = Field(default=30.0, gt=0, le=300)
    bind_retry_base_delay_seconds: float = Field(default=2.0, ge=0)
    bind_retry_max_delay_seconds: float = Field(default=10.0, ge=0)
    bind_retry_max_attempts: int = Field(default=15, ge=1, le=100)
    organization_domain_suffix: str = Field(default=".local")

    @model_validator(mode="after")
    def validate_retry_settings(self) -> "IdentityProviderSettings":
        """Validate backoff base <= cap."""
        if self.bind_retry_base_delay_seconds > self.bind_retry_max_delay_seconds:
            raise ValueError(
                f"bind_retry_base_delay_seconds ({self.bind_retry_base_delay_seconds}) "
                f"must be <= bind_retry_max_delay_seconds "
                f"({self.bind_retry_max_delay_seconds})"
            )
        return self


class ProvisioningSettings(BaseSettings):
    """Tenant onboarding settings.

    Environment variables:
        TENANCY_PROVISIONING_DATABASE_NAME_MAX_LENGTH: Max derived database
            name length (default: 63, the PostgreSQL identifier limit)
        TENANCY_PROVISIONING_ADMIN_ROLE_NAME: Role granted to the initial
            administrator (default: tenant-admin)
        TENANCY_PROVISIONING_DEFAULT_MAX_USERS: Default user limit (default: 50)
        TENANCY_PROVISIONING_DEFAULT_MAX_STORAGE_GB: Default storage limit
            (default: 10)
    """

    model_config = SettingsConfigDict(
        env_prefix="TENANCY_PROVISIONING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_name_max_length: int = Field(default=63, ge=8, le=63)
    admin_role_name: str = Field(default="tenant-admin")
    default_max_users: int = Field(default=50, ge=1)
    default_max_storage_gb: int = Field(default=10, ge=1)


class Settings(BaseSettings):
    """Main application settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="Tenancy Core", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def database(self) -> DatabaseSettings:
        """Get database settings."""
        return get_database_settings()


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


@lru_cache
def get_database_settings() -> DatabaseSettings:
    """Get cached database settings."""
    return DatabaseSettings()


@lru_cache
def get_tenant_pool_settings() -> TenantPoolSettings:
    """Get cached tenant pool settings."""
    return TenantPoolSettings()


@lru_cache
def get_identity_provider_settings() -> IdentityProviderSettings:
    """Get cached identity provider settings."""
    return IdentityProviderSettings()


@lru_cache
def get_provisioning_settings() -> ProvisioningSettings:
    """Get cached provisioning settings."""
    return ProvisioningSettings()
