"""Control-plane database engine and session factory.

The control-plane engine backs the tenant catalog and is the fallback
target for routing. It is created lazily and shared for the lifetime of
the process.
"""

from __future__ import annotations

import threading
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from infrastructure.database.engines import create_control_plane_engine
from infrastructure.observability import DefaultConnectionProbe
from infrastructure.settings import get_database_settings

_probe = DefaultConnectionProbe()

# Module-level instances (created on first use)
_control_plane_engine: AsyncEngine | None = None
_control_plane_sessionmaker: async_sessionmaker[AsyncSession] | None = None

# Thread lock for safe engine initialization
_engine_lock = threading.Lock()


def get_control_plane_engine() -> AsyncEngine:
    """Get the control-plane engine (singleton).

    Uses double-check locking for thread-safe initialization and creates
    the sessionmaker alongside the engine.

    Returns:
        Configured async engine for the control-plane database
    """
    global _control_plane_engine, _control_plane_sessionmaker
    if _control_plane_engine is None:
        with _engine_lock:
            # Double-check after acquiring lock
            if _control_plane_engine is None:
                settings = get_database_settings()
                _control_plane_engine = create_control_plane_engine(settings)
                _control_plane_sessionmaker = async_sessionmaker(
                    _control_plane_engine,
                    expire_on_commit=False,
                    class_=AsyncSession,
                )
                _probe.pool_created(settings.database, settings.pool_max_connections)
    return _control_plane_engine


def get_control_plane_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Get the sessionmaker bound to the control-plane engine."""
    get_control_plane_engine()
    assert _control_plane_sessionmaker is not None
    return _control_plane_sessionmaker


async def get_control_plane_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a control-plane session (FastAPI dependency).

    The session does not auto-commit. Callers manage transactions with
    ``async with session.begin()``.

    Yields:
        AsyncSession for control-plane operations
    """
    async with get_control_plane_sessionmaker()() as session:
        yield session


async def close_database_connections() -> None:
    """Dispose the control-plane engine.

    Should be called on application shutdown. Resets the sessionmaker so
    the engine can be recreated.
    """
    global _control_plane_engine, _control_plane_sessionmaker

    if _control_plane_engine is not None:
        await _control_plane_engine.dispose()
        _probe.pool_closed(get_database_settings().database)
        _control_plane_engine = None
        _control_plane_sessionmaker = None
