"""
직렬화 진입점

설정의 `format`에 따라 포맷 코덱을 선택해 직렬화/역직렬화를 위임합니다.
지원 포맷은 AVRO, JSON, PROTOBUF로 닫혀 있습니다.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from schema_serde.common.exceptions import SerdeError, SerdeErrorCode
from schema_serde.core.dto.io.configuration import SerdeConfiguration
from schema_serde.core.types import LATEST_VERSION, Element, SchemaFormat
from schema_serde.infra.messaging.serializers.avro import AvroSerde
from schema_serde.infra.messaging.serializers.base import SchemaRegistrySerde
from schema_serde.infra.messaging.serializers.json_schema import JsonSchemaSerde
from schema_serde.infra.messaging.serializers.protobuf import ProtobufSerde

SERDES: Mapping[SchemaFormat, SchemaRegistrySerde[Any]] = MappingProxyType(
    {
        SchemaFormat.AVRO: AvroSerde(),
        SchemaFormat.JSON: JsonSchemaSerde(),
        SchemaFormat.PROTOBUF: ProtobufSerde(),
    }
)


def get_serde(schema_format: SchemaFormat | str) -> SchemaRegistrySerde[Any]:
    """포맷에 해당하는 코덱을 반환합니다.

    Raises:
        SerdeError: UNKNOWN_FORMAT
    """
    try:
        return SERDES[SchemaFormat(schema_format)]
    except (KeyError, ValueError) as e:
        raise SerdeError(
            SerdeErrorCode.UNKNOWN_FORMAT, f"Unknown schema format: {schema_format}", cause=e
        ) from e


def serialize(
    configuration: SerdeConfiguration,
    topic: str,
    value: Any,
    element: Element | str,
    schema_text: str = "",
    version: int = LATEST_VERSION,
) -> bytes:
    """
    값을 설정된 포맷과 Confluent wire format으로 직렬화합니다.

    Args:
        configuration: 직렬화 설정 (format, subject 전략, registry 연결)
        topic: Kafka 토픽
        value: 직렬화할 값 (파이썬 객체 또는 JSON 텍스트)
        element: key 또는 value
        schema_text: 스키마 원문 (비우면 registry의 스키마 사용)
        version: 조회할 스키마 버전 (0 = 최신)

    Returns:
        wire format 바이트

    Raises:
        SerdeError: UNKNOWN_FORMAT 또는 포맷 코덱의 실패
    """
    return get_serde(configuration.format).serialize(
        configuration, topic, value, element, schema_text, version
    )


def deserialize(
    configuration: SerdeConfiguration,
    topic: str,
    message: bytes,
    element: Element | str,
    schema_text: str = "",
    version: int = LATEST_VERSION,
) -> Any:
    """
    wire format 바이트를 설정된 포맷으로 역직렬화합니다.

    Raises:
        SerdeError: UNKNOWN_FORMAT 또는 포맷 코덱의 실패
    """
    return get_serde(configuration.format).deserialize(
        configuration, topic, message, element, schema_text, version
    )
