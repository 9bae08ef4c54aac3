"""직렬화 엔진 예외 정의

에러 종류는 `SerdeErrorCode`로 닫힌 집합을 이루며, 모든 예상된 실패는
`SerdeError(code, message, cause)` 하나의 타입으로 전파됩니다.
"""

from __future__ import annotations

from enum import StrEnum


class SerdeErrorCode(StrEnum):
    """에러 코드 분류"""

    # wire format
    MESSAGE_TOO_SHORT = "message_too_short"
    INVALID_START_BYTE = "invalid_start_byte"
    INVALID_SCHEMA_ID = "invalid_schema_id"
    FAILED_DECODE_FROM_WIRE_FORMAT = "failed_decode_from_wire_format"

    # schema registry
    SCHEMA_NOT_FOUND = "schema_not_found"
    SCHEMA_CREATION_FAILED = "schema_creation_failed"

    # subject name
    FAILED_TO_UNMARSHAL_SCHEMA = "failed_to_unmarshal_schema"
    FAILED_TYPE_CAST = "failed_type_cast"
    UNKNOWN_SUBJECT_NAME_STRATEGY = "unknown_subject_name_strategy"

    # format codec
    FAILED_CREATE_AVRO_CODEC = "failed_create_avro_codec"
    FAILED_CREATE_JSON_SCHEMA_CODEC = "failed_create_json_schema_codec"
    FAILED_CREATE_PROTOBUF_CODEC = "failed_create_protobuf_codec"
    FAILED_UNMARSHAL_JSON = "failed_unmarshal_json"
    FAILED_ENCODE_JSON = "failed_encode_json"
    FAILED_ENCODE_TO_AVRO = "failed_encode_to_avro"
    FAILED_DECODE_AVRO = "failed_decode_avro"
    FAILED_ENCODE_PROTOBUF = "failed_encode_protobuf"
    FAILED_DECODE_PROTOBUF = "failed_decode_protobuf"
    UNKNOWN_FORMAT = "unknown_format"

    # TLS
    NO_TLS_CONFIG = "no_tls_config"  # 정보성, 실패 아님
    INVALID_TLS_CONFIG = "invalid_tls_config"


# 에러로 로깅하면 안 되는 코드
INFORMATIONAL_CODES: frozenset[SerdeErrorCode] = frozenset({SerdeErrorCode.NO_TLS_CONFIG})


class SerdeError(Exception):
    """직렬화 엔진 에러 기본 클래스."""

    def __init__(
        self,
        code: SerdeErrorCode,
        message: str,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        if cause is not None:
            self.__cause__ = cause

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__

    @property
    def is_informational(self) -> bool:
        return self.code in INFORMATIONAL_CODES

    def __str__(self) -> str:
        if self.__cause__ is not None:
            return f"{self.code}: {self.message} ({self.__cause__})"
        return f"{self.code}: {self.message}"
