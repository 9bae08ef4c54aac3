"""
schema_serde

Confluent Schema Registry wire format(magic byte + 4바이트 스키마 ID) 기반
Avro / JSON Schema / Protobuf 직렬화 엔진.

Example:
    >>> from schema_serde import SerdeConfiguration, serialize, deserialize
    >>> config = SerdeConfiguration.model_validate({"schemaRegistry": {"url": "http://localhost:8081"}})
    >>> data = serialize(config, "ticker", {"symbol": "BTC"}, "value", schema_text=avro_schema)
    >>> deserialize(config, "ticker", data, "value")
"""

from schema_serde.common.exceptions import SerdeError, SerdeErrorCode
from schema_serde.core.dto.internal.schema import SchemaDomain
from schema_serde.core.dto.io.configuration import (
    BasicAuth,
    SchemaRegistryConfiguration,
    SerdeConfiguration,
    TLSConfig,
)
from schema_serde.core.types import Element, SchemaFormat, SubjectNameStrategy
from schema_serde.infra.messaging.schema_registry import (
    SchemaCache,
    SchemaRegistryClient,
    close_registry_clients,
    decode_wire_format,
    encode_wire_format,
    get_registry_client,
    resolve_subject_name,
    schema_cache,
)
from schema_serde.infra.messaging.serializers import (
    SchemaRegistryDeserializer,
    SchemaRegistrySerializer,
    deserialize,
    serialize,
)

__version__ = "0.1.0"

__all__ = [
    # 설정
    "SerdeConfiguration",
    "SchemaRegistryConfiguration",
    "BasicAuth",
    "TLSConfig",
    # 타입
    "Element",
    "SchemaFormat",
    "SubjectNameStrategy",
    "SchemaDomain",
    # 에러
    "SerdeError",
    "SerdeErrorCode",
    # wire format / registry
    "encode_wire_format",
    "decode_wire_format",
    "SchemaRegistryClient",
    "get_registry_client",
    "close_registry_clients",
    "SchemaCache",
    "schema_cache",
    "resolve_subject_name",
    # 직렬화
    "serialize",
    "deserialize",
    "SchemaRegistrySerializer",
    "SchemaRegistryDeserializer",
]
