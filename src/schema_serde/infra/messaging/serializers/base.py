"""
Schema Registry 기반 직렬화 공통 파이프라인

직렬화:   subject 결정 → 스키마 조회/등록(캐시) → 포맷 코덱 생성 → 인코딩 → wire format 래핑
역직렬화: wire format 제거 → 스키마 조회(ID 또는 subject) → 포맷 코덱 생성 → 디코딩

포맷별 차이(Avro/JSON/Protobuf)는 하위 클래스의 `create_codec`/`encode`/`decode`만 담당합니다.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, ClassVar, Generic, TypeVar

import orjson

from schema_serde.common.exceptions import SerdeError, SerdeErrorCode
from schema_serde.core.dto.internal.schema import SchemaDomain
from schema_serde.core.dto.io.configuration import (
    SchemaRegistryConfiguration,
    SerdeConfiguration,
)
from schema_serde.core.types import LATEST_VERSION, Element, SchemaFormat
from schema_serde.infra.messaging.schema_registry.cache import (
    SchemaCache,
    registered_schema_cache,
    schema_cache,
    schema_id_cache,
)
from schema_serde.infra.messaging.schema_registry.client import (
    SchemaRegistryClient,
    get_registry_client,
)
from schema_serde.infra.messaging.schema_registry.subjects import resolve_subject_name
from schema_serde.infra.messaging.schema_registry.wire_format import (
    decode_wire_format,
    encode_wire_format,
)

CodecT = TypeVar("CodecT")

RegistryClientFactory = Callable[[SchemaRegistryConfiguration], SchemaRegistryClient]


def load_json_value(value: Any) -> Any:
    """JSON 텍스트(str/bytes)면 파싱하고, 이미 파이썬 객체면 그대로 반환합니다.

    Raises:
        SerdeError: FAILED_UNMARSHAL_JSON
    """
    if not isinstance(value, (str, bytes, bytearray, memoryview)):
        return value
    try:
        return orjson.loads(value)
    except orjson.JSONDecodeError as e:
        raise SerdeError(
            SerdeErrorCode.FAILED_UNMARSHAL_JSON, "Failed to unmarshal JSON data", cause=e
        ) from e


@dataclass(slots=True)
class SchemaRegistrySerde(ABC, Generic[CodecT]):
    """
    포맷 코덱 공통 부모 클래스

    공통 기능:
    - subject 결정, 스키마 조회/등록 및 캐싱
    - wire format 래핑/제거
    """

    schema_format: ClassVar[SchemaFormat]

    client_factory: RegistryClientFactory = get_registry_client
    cache: SchemaCache[str] = field(default_factory=lambda: schema_cache)
    id_cache: SchemaCache[int] = field(default_factory=lambda: schema_id_cache)
    registered_cache: SchemaCache[tuple[str, str]] = field(
        default_factory=lambda: registered_schema_cache
    )

    # ------------------------------------------------------------------
    # 포맷별 구현
    # ------------------------------------------------------------------
    @abstractmethod
    def create_codec(self, schema_text: str, configuration: SerdeConfiguration) -> CodecT:
        """스키마 원문으로 코덱을 생성합니다. 잘못된 스키마면 FAILED_CREATE_*_CODEC."""

    @abstractmethod
    def encode(self, codec: CodecT, value: Any) -> bytes:
        """값을 포맷 바이트로 인코딩합니다 (wire format 미포함)."""

    @abstractmethod
    def decode(self, codec: CodecT, payload: bytes) -> Any:
        """포맷 바이트를 파이썬 값으로 디코딩합니다."""

    # ------------------------------------------------------------------
    # 스키마 조회
    # ------------------------------------------------------------------
    def _schema_for_serialize(
        self,
        client: SchemaRegistryClient,
        configuration: SerdeConfiguration,
        subject: str,
        schema_text: str,
        version: int,
    ) -> SchemaDomain:
        if configuration.schema_registry.use_latest or not schema_text:
            return self.cache.resolve(client, subject, version)
        # 호출자 스키마는 (subject, 원문)마다 한 번 등록. wire id는 항상 원문의 등록 ID
        return self.registered_cache.get_or_load(
            (subject, schema_text),
            lambda: client.create_schema(subject, schema_text, self.schema_format),
        )

    def _schema_for_deserialize(
        self,
        client: SchemaRegistryClient,
        configuration: SerdeConfiguration,
        topic: str,
        element: Element | str,
        schema_text: str,
        schema_id: int,
        version: int,
    ) -> SchemaDomain:
        if configuration.schema_registry.use_latest:
            subject = resolve_subject_name(
                topic, element, configuration.subject_name_strategy, schema_text
            )
            return self.cache.resolve(client, subject, version)
        return self.id_cache.get_or_load(schema_id, lambda: client.get_schema_by_id(schema_id))

    # ------------------------------------------------------------------
    # 진입점
    # ------------------------------------------------------------------
    def serialize(
        self,
        configuration: SerdeConfiguration,
        topic: str,
        value: Any,
        element: Element | str,
        schema_text: str = "",
        version: int = LATEST_VERSION,
    ) -> bytes:
        """
        값을 Confluent wire format 바이트로 직렬화합니다.

        Args:
            configuration: 직렬화 설정
            topic: Kafka 토픽
            value: 직렬화할 값 (dict 등 파이썬 객체 또는 JSON 텍스트)
            element: key 또는 value
            schema_text: 스키마 원문 (비우면 registry의 스키마 사용)
            version: 조회할 스키마 버전 (0 = 최신)

        Returns:
            magic byte + 스키마 ID + 포맷 페이로드

        Raises:
            SerdeError: subject/registry/코덱/인코딩 실패
        """
        subject = resolve_subject_name(
            topic, element, configuration.subject_name_strategy, schema_text
        )
        client = self.client_factory(configuration.schema_registry)
        schema = self._schema_for_serialize(client, configuration, subject, schema_text, version)
        codec = self.create_codec(schema_text or schema.schema_text, configuration)
        return encode_wire_format(self.encode(codec, value), schema.id)

    def deserialize(
        self,
        configuration: SerdeConfiguration,
        topic: str,
        message: bytes,
        element: Element | str,
        schema_text: str = "",
        version: int = LATEST_VERSION,
    ) -> Any:
        """
        Confluent wire format 바이트를 파이썬 값으로 역직렬화합니다.

        Args:
            configuration: 역직렬화 설정
            topic: Kafka 토픽
            message: wire format 바이트
            element: key 또는 value
            schema_text: 스키마 원문 (비우면 registry의 스키마 사용)
            version: use_latest 시 조회할 스키마 버전 (0 = 최신)

        Raises:
            SerdeError: FAILED_DECODE_FROM_WIRE_FORMAT, registry/코덱/디코딩 실패
        """
        try:
            schema_id, payload = decode_wire_format(message)
        except SerdeError as e:
            raise SerdeError(
                SerdeErrorCode.FAILED_DECODE_FROM_WIRE_FORMAT,
                "Failed to remove wire format from the binary data",
                cause=e,
            ) from e

        client = self.client_factory(configuration.schema_registry)
        schema = self._schema_for_deserialize(
            client, configuration, topic, element, schema_text, schema_id, version
        )
        codec = self.create_codec(schema_text or schema.schema_text, configuration)
        return self.decode(codec, payload)
