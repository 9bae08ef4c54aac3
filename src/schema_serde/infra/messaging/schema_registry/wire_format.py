"""
Confluent Wire Format 인코딩/디코딩

Schema Registry가 관리하는 모든 페이로드 앞에는 5바이트 envelope가 붙습니다.

    byte 0     : magic byte (항상 0x00)
    byte 1..4  : 스키마 ID (big-endian unsigned 32-bit)
    byte 5..   : 포맷(Avro/JSON/Protobuf)으로 인코딩된 데이터
"""

from __future__ import annotations

import struct

from schema_serde.common.exceptions import SerdeError, SerdeErrorCode
from schema_serde.core.types import MAGIC_BYTE, MAGIC_PREFIX_SIZE, MAX_SCHEMA_ID

_SCHEMA_ID = struct.Struct(">I")


def decode_wire_format(message: bytes) -> tuple[int, bytes]:
    """
    wire format envelope를 제거합니다.

    Args:
        message: Kafka에서 받은 원본 바이트

    Returns:
        (스키마 ID, 포맷 페이로드)

    Raises:
        SerdeError: MESSAGE_TOO_SHORT / INVALID_START_BYTE
    """
    if len(message) < MAGIC_PREFIX_SIZE:
        raise SerdeError(
            SerdeErrorCode.MESSAGE_TOO_SHORT,
            "Invalid message: message too short to contain schema id.",
        )
    if message[0] != MAGIC_BYTE:
        raise SerdeError(
            SerdeErrorCode.INVALID_START_BYTE,
            "Invalid message: invalid start byte.",
        )
    (schema_id,) = _SCHEMA_ID.unpack_from(message, 1)
    return schema_id, bytes(message[MAGIC_PREFIX_SIZE:])


def encode_wire_format(payload: bytes, schema_id: int) -> bytes:
    """
    포맷 페이로드 앞에 wire format envelope를 붙입니다.

    Args:
        payload: 포맷 코덱이 만든 바이트
        schema_id: registry 스키마 ID (0 <= id < 2**32)

    Returns:
        magic byte + 스키마 ID + payload

    Raises:
        SerdeError: INVALID_SCHEMA_ID (음수, 32비트 초과, 정수 아님)
    """
    if isinstance(schema_id, bool) or not isinstance(schema_id, int):
        raise SerdeError(
            SerdeErrorCode.INVALID_SCHEMA_ID,
            f"Schema id must be an integer, got {type(schema_id).__name__}.",
        )
    if not 0 <= schema_id <= MAX_SCHEMA_ID:
        raise SerdeError(
            SerdeErrorCode.INVALID_SCHEMA_ID,
            f"Schema id {schema_id} does not fit in an unsigned 32-bit integer.",
        )
    return bytes((MAGIC_BYTE,)) + _SCHEMA_ID.pack(schema_id) + bytes(payload)
