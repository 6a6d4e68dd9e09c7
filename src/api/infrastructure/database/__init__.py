"""Database infrastructure - engines and the tenant pool cache."""

from infrastructure.database.engines import (
    create_control_plane_engine,
    create_tenant_engine,
)
from infrastructure.database.pool_cache import ConnectionPoolCache

__all__ = [
    "ConnectionPoolCache",
    "create_control_plane_engine",
    "create_tenant_engine",
]
