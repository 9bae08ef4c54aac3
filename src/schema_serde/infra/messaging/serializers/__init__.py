"""
Schema Registry 포맷 코덱 모듈

- SchemaRegistrySerde: subject 결정, 스키마 조회/등록, wire format 래핑 공통 파이프라인
- AvroSerde / JsonSchemaSerde / ProtobufSerde: 포맷별 코덱
- serialize / deserialize: 설정의 format으로 코덱을 선택하는 진입점
- SchemaRegistrySerializer / SchemaRegistryDeserializer: confluent-kafka 어댑터
"""

from schema_serde.infra.messaging.serializers.avro import AvroSerde
from schema_serde.infra.messaging.serializers.base import SchemaRegistrySerde
from schema_serde.infra.messaging.serializers.facade import (
    SERDES,
    deserialize,
    get_serde,
    serialize,
)
from schema_serde.infra.messaging.serializers.json_schema import JsonSchemaSerde
from schema_serde.infra.messaging.serializers.protobuf import ProtobufSerde
from schema_serde.infra.messaging.serializers.confluent_adapter import (
    SchemaRegistryDeserializer,
    SchemaRegistrySerializer,
)

__all__ = [
    "SchemaRegistrySerde",
    "AvroSerde",
    "JsonSchemaSerde",
    "ProtobufSerde",
    "SERDES",
    "get_serde",
    "serialize",
    "deserialize",
    "SchemaRegistrySerializer",
    "SchemaRegistryDeserializer",
]
