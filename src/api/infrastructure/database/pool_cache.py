"""Process-wide cache of async engines keyed by database name.

Each tenant database gets exactly one pooled engine per process. Lookups
and inserts are guarded by a lock so concurrent requests for the same
database never build two engines. The cache is unbounded unless
``max_size`` is given, in which case the least recently used engine is
evicted and disposed once none of its connections are checked out.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Callable

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from infrastructure.observability.probes import ConnectionProbe, DefaultConnectionProbe

EngineFactory = Callable[[str], AsyncEngine]


class ConnectionPoolCache:
    """Thread-safe map of database name to pooled AsyncEngine.

    Engine construction does not open connections, so it is done while
    holding the lock. Disposal is async and happens outside the lock:
    evicted engines are parked until ``dispose_retired`` is awaited, and
    stay parked while a request still holds one of their connections.
    ``evict`` and ``close`` dispose unconditionally.
    """

    def __init__(
        self,
        factory: EngineFactory,
        max_size: int | None = None,
        max_connections: int = 0,
        probe: ConnectionProbe | None = None,
    ):
        """Initialize the cache.

        Args:
            factory: Builds a new engine for a database name
            max_size: Optional bound on cached engines (None for unbounded)
            max_connections: Pool size reported when an engine is created
            probe: Optional domain probe for observability
        """
        if max_size is not None and max_size < 1:
            raise ValueError("max_size must be >= 1 when set")
        self._factory = factory
        self._max_size = max_size
        self._max_connections = max_connections
        self._probe = probe or DefaultConnectionProbe()
        self._engines: OrderedDict[str, AsyncEngine] = OrderedDict()
        self._retired: list[tuple[str, AsyncEngine]] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._engines)

    def __contains__(self, database: object) -> bool:
        with self._lock:
            return database in self._engines

    def databases(self) -> list[str]:
        """Return cached database names, least recently used first."""
        with self._lock:
            return list(self._engines)

    def get_or_create(self, database: str) -> tuple[AsyncEngine, bool]:
        """Return the engine for ``database``, creating it on a miss.

        Returns:
            Tuple of (engine, created) where created is True on a cache miss
        """
        with self._lock:
            engine = self._engines.get(database)
            if engine is not None:
                self._engines.move_to_end(database)
                return engine, False

            engine = self._factory(database)
            self._engines[database] = engine
            self._probe.pool_created(database, self._max_connections)

            if self._max_size is not None:
                while len(self._engines) > self._max_size:
                    evicted_name, evicted = self._engines.popitem(last=False)
                    self._retired.append((evicted_name, evicted))
                    self._probe.pool_evicted(evicted_name)
            return engine, True

    async def validate(
        self, database: str, engine: AsyncEngine, query: str = "SELECT 1"
    ) -> bool:
        """Open one connection on ``engine`` and run the validation query.

        Failures are reported through the probe and return False.
        """
        try:
            async with engine.connect() as connection:
                await connection.execute(text(query))
        except Exception as e:
            self._probe.pool_warm_failed(database, e)
            return False
        self._probe.pool_warmed(database)
        return True

    async def evict(self, database: str) -> bool:
        """Remove and dispose the engine for ``database``.

        Returns:
            True if an engine was cached for the database
        """
        with self._lock:
            engine = self._engines.pop(database, None)
        if engine is None:
            return False
        self._probe.pool_evicted(database)
        await self._dispose(database, engine)
        return True

    async def dispose_retired(self) -> None:
        """Dispose engines evicted by the size bound.

        Engines with checked-out connections stay parked for a later call.
        """
        with self._lock:
            retired, self._retired = self._retired, []
        in_use = []
        for database, engine in retired:
            if engine.pool.checkedout() > 0:
                in_use.append((database, engine))
                continue
            await self._dispose(database, engine)
        if in_use:
            with self._lock:
                self._retired.extend(in_use)

    async def close(self) -> None:
        """Dispose every cached engine and empty the cache."""
        with self._lock:
            engines = list(self._engines.items()) + self._retired
            self._engines.clear()
            self._retired = []
        for database, engine in engines:
            await self._dispose(database, engine)

    async def _dispose(self, database: str, engine: AsyncEngine) -> None:
        try:
            await engine.dispose()
        except Exception as e:
            self._probe.pool_close_failed(database, e)
            return
        self._probe.pool_closed(database)
