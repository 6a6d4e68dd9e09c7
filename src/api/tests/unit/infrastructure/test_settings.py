"""Unit tests for infrastructure settings."""

import pytest
from pydantic import ValidationError

from infrastructure.settings import (
    DatabaseSettings,
    IdentityProviderSettings,
    ProvisioningSettings,
    TenantPoolSettings,
)


class TestDatabaseSettings:
    """Tests for control-plane database settings."""

    def test_reads_prefixed_environment(self, monkeypatch):
        monkeypatch.setenv("TENANCY_DB_HOST", "db.internal")
        monkeypatch.setenv("TENANCY_DB_ADMIN_DATABASE", "template1")
        monkeypatch.setenv("TENANCY_DB_PASSWORD", "s3cret")

        settings = DatabaseSettings()

        assert settings.host == "db.internal"
        assert settings.admin_database == "template1"
        assert settings.password.get_secret_value() == "s3cret"

    def test_connection_string_hides_password(self):
        settings = DatabaseSettings(username="app", password="hunter2")

        assert "hunter2" not in settings.connection_string
        assert settings.connection_string.startswith("postgresql://app@")

    def test_pool_max_respects_upper_limit(self):
        """Pool max should not exceed reasonable limit."""
        with pytest.raises(ValidationError):
            DatabaseSettings(pool_max_connections=101)


class TestTenantPoolSettings:
    def test_defaults(self):
        settings = TenantPoolSettings()

        assert settings.max_connections == 10
        assert settings.max_cached_pools is None

    def test_rejects_short_lifetime(self):
        with pytest.raises(ValidationError):
            TenantPoolSettings(max_lifetime_seconds=5)


class TestIdentityProviderSettings:
    """Tests for membership retry configuration."""

    def test_default_backoff(self):
        settings = IdentityProviderSettings()

        assert settings.bind_retry_base_delay_seconds == 2.0
        assert settings.bind_retry_max_delay_seconds == 10.0
        assert settings.bind_retry_max_attempts == 15

    def test_base_delay_must_not_exceed_cap(self):
        """Should validate base <= cap."""
        with pytest.raises(ValidationError) as exc_info:
            IdentityProviderSettings(
                bind_retry_base_delay_seconds=20,
                bind_retry_max_delay_seconds=10,
            )

        assert "bind_retry_base_delay_seconds" in str(exc_info.value)

    def test_reads_prefixed_environment(self, monkeypatch):
        monkeypatch.setenv("TENANCY_IDP_REALM", "customers")
        monkeypatch.setenv("TENANCY_IDP_CLIENT_SECRET", "abc")

        settings = IdentityProviderSettings()

        assert settings.realm == "customers"
        assert settings.client_secret.get_secret_value() == "abc"


class TestProvisioningSettings:
    def test_database_name_length_capped_at_identifier_limit(self):
        with pytest.raises(ValidationError):
            ProvisioningSettings(database_name_max_length=64)
