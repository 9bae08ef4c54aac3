from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from schema_serde.common.exceptions import SerdeError, SerdeErrorCode
from schema_serde.core.dto.internal.schema import SchemaDomain
from schema_serde.core.types import SchemaFormat
from schema_serde.infra.messaging.schema_registry.cache import SchemaCache
from tests.factory_builders import TICKER_AVRO_SCHEMA, FakeRegistryClient


def _schema(schema_id: int, subject: str = "ticker-value", version: int = 1) -> SchemaDomain:
    return SchemaDomain(
        id=schema_id,
        subject=subject,
        version=version,
        schema_format=SchemaFormat.AVRO,
        schema_text=TICKER_AVRO_SCHEMA,
    )


def test_get_put_invalidate() -> None:
    cache: SchemaCache[str] = SchemaCache()
    assert cache.get("a") is None

    cache.put("a", _schema(1))
    cache.put("b", _schema(2))
    assert cache.get("a").id == 1
    assert "b" in cache
    assert len(cache) == 2

    cache.invalidate("a")
    assert cache.get("a") is None
    assert len(cache) == 1

    cache.invalidate()
    assert len(cache) == 0


def test_resolve_fetches_latest_once() -> None:
    registry = FakeRegistryClient()
    registry.register("ticker-value", TICKER_AVRO_SCHEMA)
    cache: SchemaCache[str] = SchemaCache()

    first = cache.resolve(registry, "ticker-value")
    second = cache.resolve(registry, "ticker-value")

    assert first == second
    assert registry.count("get_latest_schema") == 1


def test_resolve_specific_version() -> None:
    registry = FakeRegistryClient()
    registry.register("ticker-value", TICKER_AVRO_SCHEMA)
    registry.register("ticker-value", TICKER_AVRO_SCHEMA.replace("Ticker", "TickerV2"))
    cache: SchemaCache[str] = SchemaCache()

    schema = cache.resolve(registry, "ticker-value", 1)

    assert schema.version == 1
    assert registry.count("get_schema_by_version") == 1
    assert registry.count("get_latest_schema") == 0


def test_cached_subject_ignores_later_version_requests() -> None:
    registry = FakeRegistryClient()
    registry.register("ticker-value", TICKER_AVRO_SCHEMA)
    registry.register("ticker-value", TICKER_AVRO_SCHEMA.replace("Ticker", "TickerV2"))
    cache: SchemaCache[str] = SchemaCache()

    latest = cache.resolve(registry, "ticker-value")
    pinned = cache.resolve(registry, "ticker-value", 1)

    assert latest.version == 2
    assert pinned is latest


def test_failed_lookup_is_not_cached() -> None:
    registry = FakeRegistryClient()
    cache: SchemaCache[str] = SchemaCache()

    with pytest.raises(SerdeError) as exc_info:
        cache.resolve(registry, "missing-value")
    assert exc_info.value.code == SerdeErrorCode.SCHEMA_NOT_FOUND
    assert "missing-value" not in cache

    registry.register("missing-value", TICKER_AVRO_SCHEMA)
    assert cache.resolve(registry, "missing-value").id == 1
    assert registry.count("get_latest_schema") == 2


def test_concurrent_get_or_load_runs_loader_once() -> None:
    cache: SchemaCache[str] = SchemaCache()
    calls = 0
    calls_lock = threading.Lock()
    start = threading.Barrier(16)

    def loader() -> SchemaDomain:
        nonlocal calls
        with calls_lock:
            calls += 1
        time.sleep(0.05)
        return _schema(7)

    def worker() -> SchemaDomain:
        start.wait()
        return cache.get_or_load("ticker-value", loader)

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = [f.result() for f in [pool.submit(worker) for _ in range(16)]]

    assert calls == 1
    assert all(r.id == 7 for r in results)


def test_slow_load_does_not_block_other_subjects() -> None:
    cache: SchemaCache[str] = SchemaCache()
    slow_started = threading.Event()
    release = threading.Event()

    def slow_loader() -> SchemaDomain:
        slow_started.set()
        release.wait(timeout=5)
        return _schema(1, "slow-value")

    with ThreadPoolExecutor(max_workers=1) as pool:
        future = pool.submit(cache.get_or_load, "slow-value", slow_loader)
        assert slow_started.wait(timeout=5)

        # 다른 subject는 느린 조회가 끝나기 전에 적재/조회 가능
        fast = cache.get_or_load("fast-value", lambda: _schema(2, "fast-value"))
        assert fast.id == 2
        assert not future.done()

        release.set()
        assert future.result(timeout=5).id == 1


def test_id_keyed_cache() -> None:
    registry = FakeRegistryClient()
    registered = registry.register("ticker-value", TICKER_AVRO_SCHEMA)
    cache: SchemaCache[int] = SchemaCache()

    for _ in range(3):
        schema = cache.get_or_load(registered.id, lambda: registry.get_schema_by_id(registered.id))

    assert schema.schema_text == TICKER_AVRO_SCHEMA
    assert registry.count("get_schema_by_id") == 1


def test_key_locks_are_released_after_load() -> None:
    cache: SchemaCache[int] = SchemaCache()

    for schema_id in range(50):
        cache.get_or_load(schema_id, lambda schema_id=schema_id: _schema(schema_id))

    assert len(cache) == 50
    assert cache.pending == 0


def test_key_lock_is_released_when_loader_fails() -> None:
    cache: SchemaCache[str] = SchemaCache()

    def failing_loader() -> SchemaDomain:
        raise SerdeError(SerdeErrorCode.SCHEMA_NOT_FOUND, "subject not found")

    with pytest.raises(SerdeError):
        cache.get_or_load("missing-value", failing_loader)
    assert cache.pending == 0


def test_invalidate_during_load_discards_result() -> None:
    cache: SchemaCache[str] = SchemaCache()

    def loader() -> SchemaDomain:
        # 적재 도중 다른 스레드가 invalidate한 상황
        cache.invalidate("ticker-value")
        return _schema(1)

    loaded = cache.get_or_load("ticker-value", loader)

    assert loaded.id == 1
    assert "ticker-value" not in cache
    assert cache.get_or_load("ticker-value", lambda: _schema(2)).id == 2
    assert cache.get("ticker-value").id == 2


def test_invalidate_all_during_load_discards_result() -> None:
    cache: SchemaCache[str] = SchemaCache()

    def loader() -> SchemaDomain:
        cache.invalidate()
        return _schema(1)

    cache.get_or_load("ticker-value", loader)

    assert len(cache) == 0
    assert cache.pending == 0
