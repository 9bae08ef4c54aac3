"""
Protobuf 직렬화/역직렬화 구현

Registry에 저장된 `.proto` 원문을 grpc_tools.protoc로 프로세스 내에서 컴파일하고,
전용 DescriptorPool에 올려 메시지 클래스를 만듭니다.

페이로드 구조 (Confluent):
    [message-index 목록 (zig-zag varint)] [직렬화된 메시지]
    첫 번째 top-level 메시지([0])는 단일 바이트 0x00으로 기록합니다.
"""

from __future__ import annotations

import functools
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar

import grpc_tools
from google.protobuf import (
    descriptor,
    descriptor_pb2,
    descriptor_pool,
    json_format,
    message_factory,
)
from google.protobuf.message import DecodeError, EncodeError, Message
from grpc_tools import protoc

from schema_serde.common.exceptions import SerdeError, SerdeErrorCode
from schema_serde.common.logger import PipelineLogger
from schema_serde.core.dto.io.configuration import SerdeConfiguration
from schema_serde.core.types import SchemaFormat
from schema_serde.infra.messaging.serializers.base import SchemaRegistrySerde, load_json_value

logger = PipelineLogger.get_logger("protobuf_serde", "serde")

PROTO_FILE_NAME = "schema.proto"
WELL_KNOWN_PROTO_PATH = Path(grpc_tools.__file__).parent / "_proto"

# protoc는 프로세스 전역 상태를 사용하므로 컴파일을 직렬화
_protoc_lock = threading.Lock()


# ---------------------------------------------------------------------------
# message-index varint
# ---------------------------------------------------------------------------
def _write_varint(value: int, out: bytearray) -> None:
    while value > 0x7F:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)


def _read_varint(data: bytes, pos: int) -> tuple[int, int]:
    result = shift = 0
    while True:
        if pos >= len(data):
            raise ValueError("truncated varint in message indexes")
        b = data[pos]
        pos += 1
        result |= (b & 0x7F) << shift
        if not b & 0x80:
            return result, pos
        shift += 7
        if shift > 63:
            raise ValueError("varint too long in message indexes")


def encode_message_indexes(indexes: tuple[int, ...]) -> bytes:
    """메시지 인덱스 경로를 Confluent 접두사로 인코딩합니다."""
    if indexes == (0,):
        return b"\x00"
    out = bytearray()
    for value in (len(indexes), *indexes):
        _write_varint((value << 1) ^ (value >> 63), out)
    return bytes(out)


def decode_message_indexes(data: bytes) -> tuple[tuple[int, ...], int]:
    """Confluent 접두사를 읽어 (인덱스 경로, 메시지 시작 위치)를 반환합니다.

    Raises:
        ValueError: varint가 잘렸거나 너무 긴 경우
    """
    values: list[int] = []
    count, pos = _read_varint(data, 0)
    count = (count >> 1) ^ -(count & 1)
    if count == 0:
        return (0,), pos
    if count < 0:
        raise ValueError(f"negative message index count: {count}")
    for _ in range(count):
        raw, pos = _read_varint(data, pos)
        values.append((raw >> 1) ^ -(raw & 1))
    return tuple(values), pos


# ---------------------------------------------------------------------------
# 코덱
# ---------------------------------------------------------------------------
@dataclass(slots=True, frozen=True)
class ProtobufCodec:
    """컴파일된 `.proto` 파일과 직렬화 대상 메시지 타입"""

    file_proto: descriptor_pb2.FileDescriptorProto
    pool: descriptor_pool.DescriptorPool
    message_class: type[Message]
    message_indexes: tuple[int, ...]

    def message_class_at(self, indexes: tuple[int, ...]) -> type[Message]:
        """인덱스 경로(top-level → nested)에 해당하는 메시지 클래스를 반환합니다."""
        if indexes == self.message_indexes:
            return self.message_class
        return resolve_message_class(self.pool, self.file_proto, indexes)

    def indexes_for(self, full_name: str) -> tuple[int, ...]:
        """메시지 전체 이름(package.Outer.Inner)의 인덱스 경로를 반환합니다.

        Raises:
            KeyError: 이 스키마 파일에 없는 메시지인 경우
        """
        if full_name == self.message_class.DESCRIPTOR.full_name:
            return self.message_indexes
        package = self.file_proto.package
        if package:
            if not full_name.startswith(f"{package}."):
                raise KeyError(f"message {full_name!r} is not defined in this schema")
            full_name = full_name[len(package) + 1 :]

        indexes: list[int] = []
        candidates = self.file_proto.message_type
        for name in full_name.split("."):
            for index, proto in enumerate(candidates):
                if proto.name == name:
                    indexes.append(index)
                    candidates = proto.nested_type
                    break
            else:
                raise KeyError(f"message {full_name!r} is not defined in this schema")
        return tuple(indexes)


def resolve_message_class(
    pool: descriptor_pool.DescriptorPool,
    file_proto: descriptor_pb2.FileDescriptorProto,
    indexes: tuple[int, ...],
) -> type[Message]:
    """인덱스 경로를 따라 메시지 이름을 찾고 메시지 클래스를 생성합니다.

    Raises:
        IndexError: 경로가 파일에 없는 메시지를 가리키는 경우
    """
    names: list[str] = [file_proto.package] if file_proto.package else []
    candidates = file_proto.message_type
    for index in indexes:
        if index < 0:
            raise IndexError(f"negative message index: {index}")
        proto = candidates[index]
        names.append(proto.name)
        candidates = proto.nested_type
    message_descriptor = pool.FindMessageTypeByName(".".join(names))
    return message_factory.GetMessageClass(message_descriptor)


# JSON 매핑에서 문자열로 표현되는 64비트 정수 타입
_INT64_TYPES = frozenset(
    {
        descriptor.FieldDescriptor.TYPE_INT64,
        descriptor.FieldDescriptor.TYPE_UINT64,
        descriptor.FieldDescriptor.TYPE_SINT64,
        descriptor.FieldDescriptor.TYPE_FIXED64,
        descriptor.FieldDescriptor.TYPE_SFIXED64,
    }
)
WELL_KNOWN_PACKAGE = "google.protobuf."


def _restore_field_value(field: descriptor.FieldDescriptor, value: Any) -> Any:
    if field.type in _INT64_TYPES:
        return int(value)
    message_type = field.message_type
    if (
        message_type is not None
        and isinstance(value, dict)
        and not message_type.full_name.startswith(WELL_KNOWN_PACKAGE)
    ):
        return restore_int64_fields(message_type, value)
    return value


def restore_int64_fields(message_descriptor: descriptor.Descriptor, document: dict) -> dict:
    """MessageToDict 결과의 64비트 정수(문자열)를 int로 되돌립니다 (중첩/반복/map 포함)."""
    for field in message_descriptor.fields:
        if field.name not in document:
            continue
        value = document[field.name]
        message_type = field.message_type
        if message_type is not None and message_type.GetOptions().map_entry:
            value_field = message_type.fields_by_name["value"]
            document[field.name] = {
                key: _restore_field_value(value_field, item) for key, item in value.items()
            }
        elif field.label == descriptor.FieldDescriptor.LABEL_REPEATED:
            document[field.name] = [_restore_field_value(field, item) for item in value]
        else:
            document[field.name] = _restore_field_value(field, value)
    return document


def message_to_value(message: Message) -> dict[str, Any]:
    """메시지를 proto 필드 이름 기준 dict로 변환합니다. 기본값 필드와 64비트 정수를 보존합니다."""
    document = json_format.MessageToDict(
        message,
        preserving_proto_field_name=True,
        always_print_fields_with_no_presence=True,
    )
    return restore_int64_fields(message.DESCRIPTOR, document)


def compile_proto(schema_text: str) -> descriptor_pb2.FileDescriptorSet:
    """`.proto` 원문을 의존 파일까지 포함한 FileDescriptorSet으로 컴파일합니다.

    Raises:
        SerdeError: FAILED_CREATE_PROTOBUF_CODEC
    """
    with tempfile.TemporaryDirectory(prefix="schema_serde_") as tmp:
        source = Path(tmp) / PROTO_FILE_NAME
        output = Path(tmp) / "schema.desc"
        source.write_text(schema_text, encoding="utf-8")
        with _protoc_lock:
            rc = protoc.main(
                [
                    "grpc_tools.protoc",
                    f"--proto_path={tmp}",
                    f"--proto_path={WELL_KNOWN_PROTO_PATH}",
                    "--include_imports",
                    f"--descriptor_set_out={output}",
                    str(source),
                ]
            )
        if rc != 0 or not output.exists():
            raise SerdeError(
                SerdeErrorCode.FAILED_CREATE_PROTOBUF_CODEC,
                f"Failed to compile protobuf schema (protoc exit code {rc})",
            )
        return descriptor_pb2.FileDescriptorSet.FromString(output.read_bytes())


def _select_message(
    file_proto: descriptor_pb2.FileDescriptorProto, message_name: str
) -> tuple[int, ...]:
    """직렬화 대상 top-level 메시지의 인덱스 경로를 결정합니다."""
    if not file_proto.message_type:
        raise KeyError("protobuf schema has no message types")
    if not message_name:
        return (0,)
    short_name = message_name.rsplit(".", 1)[-1]
    for index, proto in enumerate(file_proto.message_type):
        if proto.name == short_name:
            return (index,)
    raise KeyError(f"message {message_name!r} not found in protobuf schema")


@functools.lru_cache(maxsize=128)
def build_protobuf_codec(schema_text: str, message_name: str = "") -> ProtobufCodec:
    """스키마 원문과 메시지 이름으로 코덱을 생성합니다 (입력 단위로 캐싱).

    Args:
        schema_text: `.proto` 원문
        message_name: 대상 메시지 이름 (비우면 첫 번째 top-level 메시지)

    Raises:
        SerdeError: FAILED_CREATE_PROTOBUF_CODEC
    """
    descriptor_set = compile_proto(schema_text)
    pool = descriptor_pool.DescriptorPool()
    try:
        # --include_imports 결과는 의존 파일이 먼저 나옴
        for file_proto in descriptor_set.file:
            pool.AddSerializedFile(file_proto.SerializeToString())
        target = next(f for f in descriptor_set.file if f.name == PROTO_FILE_NAME)
        indexes = _select_message(target, message_name)
        message_class = resolve_message_class(pool, target, indexes)
    except (StopIteration, KeyError, IndexError, TypeError, ValueError) as e:
        raise SerdeError(
            SerdeErrorCode.FAILED_CREATE_PROTOBUF_CODEC,
            "Failed to create codec for protobuf schema",
            cause=e,
        ) from e

    logger.debug(f"protobuf 코덱 생성: message={message_class.DESCRIPTOR.full_name}")
    return ProtobufCodec(
        file_proto=target,
        pool=pool,
        message_class=message_class,
        message_indexes=indexes,
    )


@dataclass(slots=True)
class ProtobufSerde(SchemaRegistrySerde[ProtobufCodec]):
    """Protobuf 포맷 코덱"""

    schema_format: ClassVar[SchemaFormat] = SchemaFormat.PROTOBUF

    def create_codec(self, schema_text: str, configuration: SerdeConfiguration) -> ProtobufCodec:
        return build_protobuf_codec(schema_text, configuration.message_name)

    def encode(self, codec: ProtobufCodec, value: Any) -> bytes:
        document = load_json_value(value)
        indexes = codec.message_indexes
        if isinstance(document, Message):
            message = document
            try:
                indexes = codec.indexes_for(message.DESCRIPTOR.full_name)
            except KeyError as e:
                raise SerdeError(
                    SerdeErrorCode.FAILED_ENCODE_PROTOBUF,
                    f"protobuf message {message.DESCRIPTOR.full_name} does not belong to the schema",
                    cause=e,
                ) from e
        elif isinstance(document, dict):
            message = codec.message_class()
            try:
                json_format.ParseDict(document, message)
            except (json_format.ParseError, TypeError, ValueError) as e:
                raise SerdeError(
                    SerdeErrorCode.FAILED_ENCODE_PROTOBUF,
                    "Failed to encode data into protobuf",
                    cause=e,
                ) from e
        else:
            raise SerdeError(
                SerdeErrorCode.FAILED_ENCODE_PROTOBUF,
                f"protobuf value must be a JSON object, got {type(document).__name__}",
            )

        try:
            body = message.SerializeToString()
        except EncodeError as e:
            raise SerdeError(
                SerdeErrorCode.FAILED_ENCODE_PROTOBUF,
                "Failed to encode data into protobuf",
                cause=e,
            ) from e
        return encode_message_indexes(indexes) + body

    def decode(self, codec: ProtobufCodec, payload: bytes) -> Any:
        try:
            indexes, offset = decode_message_indexes(payload)
            message_class = codec.message_class_at(indexes)
            message = message_class.FromString(payload[offset:])
        except (DecodeError, IndexError, KeyError, ValueError) as e:
            raise SerdeError(
                SerdeErrorCode.FAILED_DECODE_PROTOBUF,
                "Failed to decode protobuf data",
                cause=e,
            ) from e
        return message_to_value(message)
