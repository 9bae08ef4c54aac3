"""
Avro 직렬화/역직렬화 구현

fastavro schemaless writer/reader로 레코드 본문만 인코딩하고,
envelope(magic byte + 스키마 ID)는 공통 파이프라인이 붙입니다.
"""

from __future__ import annotations

import functools
import io
import struct
from dataclasses import dataclass
from typing import Any, ClassVar

import orjson
from fastavro import parse_schema, schemaless_reader, schemaless_writer
from fastavro.schema import SchemaParseException
from fastavro.validation import validate

from schema_serde.common.exceptions import SerdeError, SerdeErrorCode
from schema_serde.core.dto.io.configuration import SerdeConfiguration
from schema_serde.core.types import SchemaFormat
from schema_serde.infra.messaging.serializers.base import SchemaRegistrySerde, load_json_value

# fastavro가 잘못된 스키마/데이터에서 던지는 예외들
AVRO_SCHEMA_ERRORS = (
    orjson.JSONDecodeError,
    SchemaParseException,
    KeyError,
    TypeError,
    ValueError,
    AttributeError,
)
AVRO_ENCODE_ERRORS = (KeyError, TypeError, ValueError, AttributeError, OverflowError)
AVRO_DECODE_ERRORS = (
    EOFError,
    IndexError,
    KeyError,
    TypeError,
    ValueError,
    OverflowError,
    struct.error,
)

ParsedAvroSchema = dict[str, Any] | list[Any] | str


@functools.lru_cache(maxsize=256)
def parse_avro_schema(schema_text: str) -> ParsedAvroSchema:
    """Avro 스키마 원문을 파싱합니다 (스키마 원문 단위로 캐싱).

    Raises:
        SerdeError: FAILED_CREATE_AVRO_CODEC
    """
    try:
        return parse_schema(orjson.loads(schema_text))
    except AVRO_SCHEMA_ERRORS as e:
        raise SerdeError(
            SerdeErrorCode.FAILED_CREATE_AVRO_CODEC,
            "Failed to create codec for Avro schema",
            cause=e,
        ) from e


@dataclass(slots=True)
class AvroSerde(SchemaRegistrySerde[ParsedAvroSchema]):
    """Avro 포맷 코덱"""

    schema_format: ClassVar[SchemaFormat] = SchemaFormat.AVRO

    def create_codec(
        self, schema_text: str, configuration: SerdeConfiguration
    ) -> ParsedAvroSchema:
        return parse_avro_schema(schema_text)

    def encode(self, codec: ParsedAvroSchema, value: Any) -> bytes:
        record = load_json_value(value)
        buffer = io.BytesIO()
        if not validate(record, codec, raise_errors=False):
            raise SerdeError(
                SerdeErrorCode.FAILED_ENCODE_TO_AVRO,
                "Failed to encode data into Avro: value does not match the schema",
            )
        try:
            schemaless_writer(buffer, codec, record)
        except AVRO_ENCODE_ERRORS as e:
            raise SerdeError(
                SerdeErrorCode.FAILED_ENCODE_TO_AVRO,
                "Failed to encode data into Avro",
                cause=e,
            ) from e
        return buffer.getvalue()

    def decode(self, codec: ParsedAvroSchema, payload: bytes) -> Any:
        try:
            return schemaless_reader(io.BytesIO(payload), codec)
        except AVRO_DECODE_ERRORS as e:
            raise SerdeError(
                SerdeErrorCode.FAILED_DECODE_AVRO,
                "Failed to decode Avro data",
                cause=e,
            ) from e
