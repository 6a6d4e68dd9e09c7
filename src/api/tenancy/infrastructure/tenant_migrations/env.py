"""Alembic environment for tenant database schemas.

Run programmatically by the database provisioner, which supplies an open
connection and a version-apply callback through ``config.attributes``.
A ``sqlalchemy.url`` main option is honored for ad-hoc command line use.
"""

from alembic import context
from sqlalchemy import engine_from_config, pool

config = context.config

# Tenant schemas are defined by the revision scripts alone
target_metadata = None


def run_migrations_offline() -> None:
    """Emit SQL for a tenant schema without a database connection."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def _run_with_connection(connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        on_version_apply=config.attributes.get("on_version_apply"),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply revisions to a tenant database."""
    connection = config.attributes.get("connection")
    if connection is not None:
        _run_with_connection(connection)
        return

    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        _run_with_connection(connection)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
