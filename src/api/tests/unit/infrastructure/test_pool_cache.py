"""Unit tests for ConnectionPoolCache."""

from __future__ import annotations

import threading
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest

from infrastructure.database.pool_cache import ConnectionPoolCache
from infrastructure.observability.probes import ConnectionProbe


def _engine(database: str) -> SimpleNamespace:
    return SimpleNamespace(
        database=database,
        dispose=AsyncMock(),
        pool=Mock(checkedout=Mock(return_value=0)),
    )


@pytest.fixture
def mock_probe():
    return Mock(spec=ConnectionProbe)


@pytest.fixture
def factory():
    return Mock(side_effect=_engine)


class TestGetOrCreate:
    def test_creates_once_per_database(self, factory, mock_probe):
        cache = ConnectionPoolCache(factory, max_connections=7, probe=mock_probe)

        first, created_first = cache.get_or_create("acme")
        second, created_second = cache.get_or_create("acme")

        assert first is second
        assert (created_first, created_second) == (True, False)
        factory.assert_called_once_with("acme")
        mock_probe.pool_created.assert_called_once_with("acme", 7)

    def test_rejects_non_positive_bound(self, factory):
        with pytest.raises(ValueError):
            ConnectionPoolCache(factory, max_size=0)

    def test_concurrent_threads_share_one_engine(self, factory):
        cache = ConnectionPoolCache(factory)
        engines = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            engines.append(cache.get_or_create("acme")[0])

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len({id(e) for e in engines}) == 1
        factory.assert_called_once()


class TestBoundedCache:
    """LRU eviction when max_size is set."""

    @pytest.mark.asyncio
    async def test_evicts_least_recently_used(self, factory, mock_probe):
        cache = ConnectionPoolCache(factory, max_size=2, probe=mock_probe)
        a, _ = cache.get_or_create("a")
        b, _ = cache.get_or_create("b")
        cache.get_or_create("a")
        cache.get_or_create("c")

        assert cache.databases() == ["a", "c"]
        mock_probe.pool_evicted.assert_called_once_with("b")
        b.dispose.assert_not_awaited()

        await cache.dispose_retired()

        b.dispose.assert_awaited_once()
        a.dispose.assert_not_awaited()
        mock_probe.pool_closed.assert_called_once_with("b")

    @pytest.mark.asyncio
    async def test_retired_engines_are_disposed_once(self, factory):
        cache = ConnectionPoolCache(factory, max_size=1)
        a, _ = cache.get_or_create("a")
        cache.get_or_create("b")

        await cache.dispose_retired()
        await cache.dispose_retired()

        a.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_engine_in_use_is_disposed_after_release(self, factory):
        cache = ConnectionPoolCache(factory, max_size=1)
        a, _ = cache.get_or_create("a")
        a.pool.checkedout.return_value = 1
        cache.get_or_create("b")

        await cache.dispose_retired()

        a.dispose.assert_not_awaited()

        a.pool.checkedout.return_value = 0
        await cache.dispose_retired()

        a.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_disposes_engine_in_use(self, factory):
        cache = ConnectionPoolCache(factory, max_size=1)
        a, _ = cache.get_or_create("a")
        a.pool.checkedout.return_value = 2
        cache.get_or_create("b")
        await cache.dispose_retired()

        await cache.close()

        a.dispose.assert_awaited_once()


class TestEvictAndClose:
    @pytest.mark.asyncio
    async def test_evict_disposes_engine(self, factory, mock_probe):
        cache = ConnectionPoolCache(factory, probe=mock_probe)
        engine, _ = cache.get_or_create("acme")

        assert await cache.evict("acme") is True
        assert "acme" not in cache
        engine.dispose.assert_awaited_once()
        assert await cache.evict("acme") is False

    @pytest.mark.asyncio
    async def test_close_disposes_cached_and_retired(self, factory):
        cache = ConnectionPoolCache(factory, max_size=1)
        a, _ = cache.get_or_create("a")
        b, _ = cache.get_or_create("b")

        await cache.close()

        a.dispose.assert_awaited_once()
        b.dispose.assert_awaited_once()
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_dispose_failure_is_reported_not_raised(self, factory, mock_probe):
        cache = ConnectionPoolCache(factory, probe=mock_probe)
        engine, _ = cache.get_or_create("acme")
        engine.dispose.side_effect = RuntimeError("socket closed")

        await cache.close()

        mock_probe.pool_close_failed.assert_called_once()
        assert mock_probe.pool_close_failed.call_args.args[0] == "acme"
        mock_probe.pool_closed.assert_not_called()


class TestValidate:
    """Tests for validate()."""

    @staticmethod
    def _engine_with_connection(connection):
        engine = MagicMock()
        engine.connect.return_value.__aenter__.return_value = connection
        engine.connect.return_value.__aexit__.return_value = False
        return engine

    @pytest.mark.asyncio
    async def test_success(self, factory, mock_probe):
        cache = ConnectionPoolCache(factory, probe=mock_probe)
        connection = AsyncMock()
        engine = self._engine_with_connection(connection)

        assert await cache.validate("acme", engine) is True

        connection.execute.assert_awaited_once()
        assert str(connection.execute.call_args.args[0]) == "SELECT 1"
        mock_probe.pool_warmed.assert_called_once_with("acme")

    @pytest.mark.asyncio
    async def test_failure_returns_false(self, factory, mock_probe):
        cache = ConnectionPoolCache(factory, probe=mock_probe)
        connection = AsyncMock()
        connection.execute.side_effect = OSError("connection refused")
        engine = self._engine_with_connection(connection)

        assert await cache.validate("acme", engine) is False

        mock_probe.pool_warm_failed.assert_called_once()
        mock_probe.pool_warmed.assert_not_called()
