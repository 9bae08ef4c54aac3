"""
Schema Registry 지원 모듈

- Confluent wire format (5바이트 envelope) 인코딩/디코딩
- Schema Registry 클라이언트 (basic auth, TLS)
- 프로세스 전역 스키마 캐시
- Subject 이름 전략
"""

from schema_serde.infra.messaging.schema_registry.cache import (
    SchemaCache,
    registered_schema_cache,
    schema_cache,
    schema_id_cache,
)
from schema_serde.infra.messaging.schema_registry.client import (
    SchemaRegistryClient,
    close_registry_clients,
    create_schema_registry_client,
    get_registry_client,
)
from schema_serde.infra.messaging.schema_registry.subjects import resolve_subject_name
from schema_serde.infra.messaging.schema_registry.wire_format import (
    decode_wire_format,
    encode_wire_format,
)

__all__ = [
    # Wire format
    "decode_wire_format",
    "encode_wire_format",
    # Registry
    "SchemaRegistryClient",
    "create_schema_registry_client",
    "get_registry_client",
    "close_registry_clients",
    # Cache
    "SchemaCache",
    "schema_cache",
    "schema_id_cache",
    "registered_schema_cache",
    # Subject
    "resolve_subject_name",
]
