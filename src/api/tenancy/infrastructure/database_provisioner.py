"""PostgreSQL implementation of DatabaseProvisioner.

Tenant databases are created through an administrative connection to a
maintenance database (PostgreSQL refuses CREATE DATABASE inside a
transaction and against the database being created). Schema migrations
are an Alembic script directory shipped with this package and applied
programmatically against the tenant database.

psycopg2 and Alembic are synchronous, so both run in a worker thread.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

import psycopg2
from alembic import command
from alembic.config import Config
from psycopg2 import errors as pg_errors
from psycopg2 import sql
from sqlalchemy import create_engine
from sqlalchemy.pool import NullPool

from infrastructure.database.engines import build_sync_url
from tenancy.infrastructure.observability import (
    DatabaseProvisionerProbe,
    DefaultDatabaseProvisionerProbe,
)
from tenancy.ports.exceptions import DatabaseProvisioningError
from tenancy.ports.gateways import DatabaseProvisioner

if TYPE_CHECKING:
    from psycopg2.extensions import connection as PsycopgConnection

    from infrastructure.settings import DatabaseSettings

TENANT_MIGRATIONS_LOCATION = Path(__file__).parent / "tenant_migrations"

_DATABASE_NAME = re.compile(r"^[a-z_][a-z0-9_]{0,62}$")

Connect = Callable[..., "PsycopgConnection"]


def validate_database_name(name: str) -> str:
    """Ensure a database name is a plain lowercase PostgreSQL identifier.

    Raises:
        DatabaseProvisioningError: If the name is not a safe identifier
    """
    if not _DATABASE_NAME.match(name or ""):
        raise DatabaseProvisioningError(f"Invalid tenant database name '{name}'")
    return name


class PostgresDatabaseProvisioner(DatabaseProvisioner):
    """Creates tenant databases and applies tenant schema migrations."""

    def __init__(
        self,
        settings: DatabaseSettings,
        migrations_location: Path = TENANT_MIGRATIONS_LOCATION,
        connect: Connect = psycopg2.connect,
        probe: DatabaseProvisionerProbe | None = None,
    ):
        """Initialize the provisioner.

        Args:
            settings: Server credentials and admin database name
            migrations_location: Alembic script directory for tenant schemas
            connect: psycopg2-compatible connect function
            probe: Optional domain probe for observability
        """
        self._settings = settings
        self._migrations_location = migrations_location
        self._connect = connect
        self._probe = probe or DefaultDatabaseProvisionerProbe()

    async def ensure_database(self, name: str) -> bool:
        validate_database_name(name)
        return await asyncio.to_thread(self._ensure_database_sync, name)

    async def migrate(self, name: str) -> list[str]:
        validate_database_name(name)
        return await asyncio.to_thread(self._migrate_sync, name)

    def _ensure_database_sync(self, name: str) -> bool:
        try:
            conn = self._connect(
                host=self._settings.host,
                port=self._settings.port,
                dbname=self._settings.admin_database,
                user=self._settings.username,
                password=self._settings.password.get_secret_value(),
                connect_timeout=self._settings.connect_timeout_seconds,
            )
        except psycopg2.Error as e:
            self._probe.database_creation_failed(name, e)
            raise DatabaseProvisioningError(
                f"Failed to connect to admin database: {e}"
            ) from e

        try:
            conn.autocommit = True
            with conn.cursor() as cursor:
                cursor.execute("SELECT 1 FROM pg_database WHERE datname = %s", (name,))
                if cursor.fetchone() is not None:
                    self._probe.database_already_exists(name)
                    return False
                try:
                    cursor.execute(
                        sql.SQL("CREATE DATABASE {}").format(sql.Identifier(name))
                    )
                except pg_errors.DuplicateDatabase:
                    # Created concurrently between the check and the create
                    self._probe.database_already_exists(name)
                    return False
            self._probe.database_created(name)
            return True
        except psycopg2.Error as e:
            self._probe.database_creation_failed(name, e)
            raise DatabaseProvisioningError(
                f"Failed to create database '{name}': {e}"
            ) from e
        finally:
            conn.close()

    def _migrate_sync(self, name: str) -> list[str]:
        applied: list[str] = []

        def on_version_apply(*, step: Any, **_: Any) -> None:
            if step.is_upgrade:
                applied.append(step.up_revision_id)

        config = Config()
        config.set_main_option("script_location", str(self._migrations_location))

        engine = create_engine(
            build_sync_url(self._settings, name),
            poolclass=NullPool,
            connect_args={"connect_timeout": self._settings.connect_timeout_seconds},
        )
        try:
            with engine.begin() as connection:
                config.attributes["connection"] = connection
                config.attributes["on_version_apply"] = on_version_apply
                command.upgrade(config, "head")
        except Exception as e:
            self._probe.migration_failed(name, e)
            raise DatabaseProvisioningError(
                f"Failed to migrate database '{name}': {e}"
            ) from e
        finally:
            engine.dispose()

        self._probe.migrations_applied(name, applied)
        return applied
