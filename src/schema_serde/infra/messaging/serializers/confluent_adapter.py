"""confluent-kafka 직렬화기 어댑터

confluent-kafka의 Serializer/Deserializer 인터페이스로 직렬화 엔진을 감싸
Producer/Consumer(SerializingProducer, DeserializingConsumer)에 바로 꽂을 수 있게 합니다.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from confluent_kafka.serialization import (
    Deserializer,
    MessageField,
    SerializationContext,
    SerializationError,
    Serializer,
)

from schema_serde.common.exceptions import SerdeError
from schema_serde.core.dto.io.configuration import SerdeConfiguration
from schema_serde.core.types import LATEST_VERSION, Element
from schema_serde.infra.messaging.serializers import facade


def element_for(ctx: SerializationContext | None) -> Element:
    """SerializationContext.field(MessageField)를 Element로 변환합니다."""
    if ctx is not None and ctx.field == MessageField.KEY:
        return Element.KEY
    return Element.VALUE


def _require_topic(ctx: SerializationContext | None) -> str:
    if ctx is None or not ctx.topic:
        raise SerializationError("SerializationContext with a topic is required")
    return ctx.topic


@dataclass(slots=True)
class SchemaRegistrySerializer(Serializer):
    """
    Schema Registry wire format 직렬화기

    Example:
        >>> serializer = SchemaRegistrySerializer(config, schema_text=avro_schema)
        >>> producer = SerializingProducer({..., "value.serializer": serializer})
    """

    configuration: SerdeConfiguration
    schema_text: str = ""
    version: int = LATEST_VERSION

    def __call__(self, obj: Any, ctx: SerializationContext | None = None) -> bytes | None:
        if obj is None:
            return None
        topic = _require_topic(ctx)
        try:
            return facade.serialize(
                self.configuration,
                topic,
                obj,
                element_for(ctx),
                self.schema_text,
                self.version,
            )
        except SerdeError as e:
            raise SerializationError(str(e)) from e


@dataclass(slots=True)
class SchemaRegistryDeserializer(Deserializer):
    """Schema Registry wire format 역직렬화기"""

    configuration: SerdeConfiguration
    schema_text: str = ""
    version: int = LATEST_VERSION

    def __call__(self, value: bytes | None, ctx: SerializationContext | None = None) -> Any:
        if value is None:
            return None
        topic = _require_topic(ctx)
        try:
            return facade.deserialize(
                self.configuration,
                topic,
                value,
                element_for(ctx),
                self.schema_text,
                self.version,
            )
        except SerdeError as e:
            raise SerializationError(str(e)) from e
