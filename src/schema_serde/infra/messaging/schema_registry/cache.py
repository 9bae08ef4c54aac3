"""
스키마 캐시

subject → 마지막으로 조회된 스키마를 프로세스 전역에서 공유합니다.

- 모든 읽기/쓰기는 캐시 락으로 직렬화됩니다
- 네트워크 호출 동안에는 캐시 락을 잡지 않습니다. 키별 락으로
  같은 키는 한 번만 조회하고, 다른 키는 서로 막지 않습니다
- 키별 락은 적재 중인 동안에만 존재하고, 대기자가 모두 빠지면 제거됩니다
- 적재 도중 `invalidate()`된 키는 적재 결과를 저장하지 않습니다
- 캐시는 subject만으로 키를 잡으므로 요청 버전과 무관하게 먼저 캐시된 스키마를 돌려줍니다
  (스키마가 진화해도 만료되지 않음 → 필요하면 `invalidate()` 호출)
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from typing import Generic, Protocol, TypeVar

from schema_serde.common.logger import PipelineLogger
from schema_serde.core.dto.internal.schema import SchemaDomain
from schema_serde.core.types import LATEST_VERSION

logger = PipelineLogger.get_logger("schema_cache", "registry")

K = TypeVar("K", bound=Hashable)


class SchemaFetcher(Protocol):
    """캐시가 위임하는 registry 조회 기능"""

    def get_latest_schema(self, subject: str) -> SchemaDomain: ...

    def get_schema_by_version(self, subject: str, version: int) -> SchemaDomain: ...


@dataclass(slots=True)
class _InFlight:
    """키 하나에 대한 진행 중 적재 (락 + 대기자 수 + 무효화 세대)"""

    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0
    generation: int = 0


class SchemaCache(Generic[K]):
    """락으로 보호되는 스키마 캐시 (compute-if-absent 지원)."""

    def __init__(self) -> None:
        self._entries: dict[K, SchemaDomain] = {}
        self._in_flight: dict[K, _InFlight] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    @property
    def pending(self) -> int:
        """적재 중이거나 대기 중인 키 개수"""
        with self._lock:
            return len(self._in_flight)

    def get(self, key: K) -> SchemaDomain | None:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: K, schema: SchemaDomain) -> None:
        with self._lock:
            self._entries[key] = schema

    def invalidate(self, key: K | None = None) -> None:
        """한 키 또는 전체 캐시를 비웁니다. 진행 중인 적재 결과도 버려집니다."""
        with self._lock:
            if key is None:
                self._entries.clear()
                for entry in self._in_flight.values():
                    entry.generation += 1
                return
            self._entries.pop(key, None)
            entry = self._in_flight.get(key)
            if entry is not None:
                entry.generation += 1

    def _enter(self, key: K) -> _InFlight:
        with self._lock:
            entry = self._in_flight.get(key)
            if entry is None:
                entry = self._in_flight[key] = _InFlight()
            entry.users += 1
            return entry

    def _leave(self, key: K, entry: _InFlight) -> None:
        with self._lock:
            entry.users -= 1
            if entry.users == 0 and self._in_flight.get(key) is entry:
                del self._in_flight[key]

    def get_or_load(self, key: K, loader: Callable[[], SchemaDomain]) -> SchemaDomain:
        """
        캐시에 있으면 반환하고, 없으면 `loader()` 결과를 저장 후 반환합니다.

        같은 키의 동시 호출은 키별 락에서 대기하다가 먼저 적재된 값을 재사용합니다.
        loader가 예외를 던지면 캐시하지 않고 그대로 전파합니다.
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        # 싱글-플라이트 가드 (키 단위)
        entry = self._enter(key)
        try:
            with entry.lock:
                with self._lock:
                    cached = self._entries.get(key)
                    generation = entry.generation
                if cached is not None:
                    return cached

                logger.debug(f"스키마 캐시 miss: key={key}")
                schema = loader()
                with self._lock:
                    if entry.generation == generation:
                        self._entries[key] = schema
                    else:
                        logger.debug(f"적재 중 무효화됨, 저장 생략: key={key}")
                return schema
        finally:
            self._leave(key, entry)

    def resolve(
        self, client: SchemaFetcher, subject: K, requested_version: int = LATEST_VERSION
    ) -> SchemaDomain:
        """
        subject의 스키마를 캐시 우선으로 조회합니다.

        Args:
            client: registry 클라이언트
            subject: 스키마 주제명
            requested_version: 0이면 최신, 그 외에는 해당 버전 (캐시 hit 시 무시됨)

        Raises:
            SerdeError: SCHEMA_NOT_FOUND (캐시하지 않음)
        """

        def _fetch() -> SchemaDomain:
            if requested_version == LATEST_VERSION:
                return client.get_latest_schema(subject)
            return client.get_schema_by_version(subject, requested_version)

        return self.get_or_load(subject, _fetch)


# 프로세스 전역 캐시
schema_cache: SchemaCache[str] = SchemaCache()
schema_id_cache: SchemaCache[int] = SchemaCache()
# 호출자 스키마 등록 결과: (subject, 스키마 원문) → 등록된 스키마
registered_schema_cache: SchemaCache[tuple[str, str]] = SchemaCache()
