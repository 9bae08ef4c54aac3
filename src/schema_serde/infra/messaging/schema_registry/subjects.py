"""
Subject 이름 결정 (Subject Name Strategy)

- TopicNameStrategy (기본, 빈 문자열 포함): "{topic}-{key|value}"
- RecordNameStrategy: "{namespace}.{name}"
- TopicRecordNameStrategy: "{topic}-{namespace}.{name}"

포맷과 무관하게 동일하게 동작하는 순수 함수입니다.
"""

from __future__ import annotations

from typing import Any

import orjson

from schema_serde.common.exceptions import SerdeError, SerdeErrorCode
from schema_serde.core.types import Element, SubjectNameStrategy


def _record_name(schema_text: str) -> str:
    try:
        schema_map: Any = orjson.loads(schema_text)
    except orjson.JSONDecodeError as e:
        raise SerdeError(
            SerdeErrorCode.FAILED_TO_UNMARSHAL_SCHEMA, "Failed to unmarshal schema", cause=e
        ) from e
    if not isinstance(schema_map, dict):
        raise SerdeError(
            SerdeErrorCode.FAILED_TO_UNMARSHAL_SCHEMA,
            f"Failed to unmarshal schema: expected a JSON object, got {type(schema_map).__name__}",
        )

    record_name = ""
    if "namespace" in schema_map:
        namespace = schema_map["namespace"]
        if not isinstance(namespace, str):
            raise SerdeError(SerdeErrorCode.FAILED_TYPE_CAST, "Failed to cast namespace to string")
        record_name = namespace + "."
    if "name" in schema_map:
        name = schema_map["name"]
        if not isinstance(name, str):
            raise SerdeError(SerdeErrorCode.FAILED_TYPE_CAST, "Failed to cast name to string")
        record_name += name
    return record_name


def resolve_subject_name(
    topic: str, element: Element | str, strategy: str, schema_text: str
) -> str:
    """
    토픽/요소/전략으로부터 registry subject 이름을 결정합니다.

    Args:
        topic: Kafka 토픽
        element: key 또는 value
        strategy: subject 이름 전략 ("" 은 TopicNameStrategy)
        schema_text: 스키마 원문 (Record 계열 전략에서만 파싱)

    Raises:
        SerdeError: FAILED_TO_UNMARSHAL_SCHEMA / FAILED_TYPE_CAST / UNKNOWN_SUBJECT_NAME_STRATEGY
    """
    if strategy in ("", SubjectNameStrategy.TOPIC_NAME):
        return f"{topic}-{Element(element)}"

    if strategy not in (SubjectNameStrategy.RECORD_NAME, SubjectNameStrategy.TOPIC_RECORD_NAME):
        raise SerdeError(
            SerdeErrorCode.UNKNOWN_SUBJECT_NAME_STRATEGY,
            f"Unknown subject name strategy: {strategy}",
        )

    record_name = _record_name(schema_text)
    if strategy == SubjectNameStrategy.RECORD_NAME:
        return record_name
    return f"{topic}-{record_name}"
