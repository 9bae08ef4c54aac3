"""
JSON Schema 직렬화/역직렬화 구현

페이로드는 orjson으로 만든 JSON 바이트입니다.
스키마 검증 실패는 경고 로그만 남기고 값은 그대로 인코딩/반환합니다.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Any, ClassVar

import orjson
from jsonschema import validators
from jsonschema.exceptions import SchemaError
from jsonschema.protocols import Validator

from schema_serde.common.exceptions import SerdeError, SerdeErrorCode
from schema_serde.common.logger import PipelineLogger
from schema_serde.core.dto.io.configuration import SerdeConfiguration
from schema_serde.core.types import SchemaFormat
from schema_serde.infra.messaging.serializers.base import SchemaRegistrySerde, load_json_value

logger = PipelineLogger.get_logger("json_schema_serde", "serde")


@functools.lru_cache(maxsize=256)
def build_json_validator(schema_text: str) -> Validator:
    """스키마 원문으로 검증기를 생성합니다 (`$schema` 드래프트 자동 선택).

    Raises:
        SerdeError: FAILED_CREATE_JSON_SCHEMA_CODEC
    """
    try:
        schema = orjson.loads(schema_text)
        validator_cls = validators.validator_for(schema)
        validator_cls.check_schema(schema)
    except (orjson.JSONDecodeError, SchemaError, TypeError) as e:
        raise SerdeError(
            SerdeErrorCode.FAILED_CREATE_JSON_SCHEMA_CODEC,
            "Failed to create codec for JSON schema",
            cause=e,
        ) from e
    return validator_cls(schema)


def report_validation_errors(validator: Validator, instance: Any, operation: str) -> int:
    """검증 에러를 경고로 남기고 에러 개수를 반환합니다. 예외는 던지지 않습니다."""
    errors = list(validator.iter_errors(instance))
    for error in errors:
        logger.warning(
            f"JSON schema validation failed during {operation}: {error.message}",
            extra={"path": "/".join(str(p) for p in error.absolute_path)},
        )
    return len(errors)


@dataclass(slots=True)
class JsonSchemaSerde(SchemaRegistrySerde[Validator]):
    """JSON Schema 포맷 코덱"""

    schema_format: ClassVar[SchemaFormat] = SchemaFormat.JSON

    def create_codec(self, schema_text: str, configuration: SerdeConfiguration) -> Validator:
        return build_json_validator(schema_text)

    def encode(self, codec: Validator, value: Any) -> bytes:
        document = load_json_value(value)
        report_validation_errors(codec, document, "serialize")
        try:
            return orjson.dumps(document)
        except TypeError as e:
            # orjson.JSONEncodeError는 TypeError 하위 클래스
            raise SerdeError(
                SerdeErrorCode.FAILED_ENCODE_JSON, "Failed to encode data into JSON", cause=e
            ) from e

    def decode(self, codec: Validator, payload: bytes) -> Any:
        document = load_json_value(bytes(payload))
        report_validation_errors(codec, document, "deserialize")
        return document
