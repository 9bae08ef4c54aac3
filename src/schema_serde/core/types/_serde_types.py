"""직렬화 엔진 공통 타입/상수 정의 모듈."""

from __future__ import annotations

from enum import StrEnum
from typing import Final

# ----------------------------------------------------------------------------
# Wire format 상수
# ----------------------------------------------------------------------------
# https://docs.confluent.io/platform/current/schema-registry/fundamentals/serdes-develop/index.html#wire-format
MAGIC_BYTE: Final[int] = 0
MAGIC_PREFIX_SIZE: Final[int] = 5
MAX_SCHEMA_ID: Final[int] = 2**32 - 1

# Schema Registry 동시 연결 상한 (transport 레벨)
CONCURRENT_REQUESTS: Final[int] = 16

# "latest" 요청을 의미하는 버전 값 (저장되는 값이 아님)
LATEST_VERSION: Final[int] = 0


class Element(StrEnum):
    """메시지의 어느 쪽(key/value)에 스키마가 적용되는지"""

    KEY = "key"
    VALUE = "value"


class SchemaFormat(StrEnum):
    """Schema Registry 스키마 타입"""

    AVRO = "AVRO"
    JSON = "JSON"
    PROTOBUF = "PROTOBUF"


class SubjectNameStrategy(StrEnum):
    """subject 이름 결정 전략"""

    TOPIC_NAME = "TopicNameStrategy"
    RECORD_NAME = "RecordNameStrategy"
    TOPIC_RECORD_NAME = "TopicRecordNameStrategy"
