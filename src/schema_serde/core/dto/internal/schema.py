from __future__ import annotations

from dataclasses import dataclass

from schema_serde.core.types import SchemaFormat


@dataclass(slots=True, frozen=True, match_args=False, kw_only=True)
class SchemaDomain:
    """Registry에 등록된 스키마 (내부 불변 DTO).

    - id: registry가 부여한 스키마 ID (wire format에 실리는 유일한 연결 고리)
    - version: 양의 정수. ID로만 조회한 경우 subject/version을 알 수 없어 `-1`
    """

    id: int
    subject: str
    version: int
    schema_format: SchemaFormat
    schema_text: str

    @classmethod
    def from_registry_response(
        cls, data: dict, *, subject: str = "", schema_id: int | None = None
    ) -> SchemaDomain:
        """Registry REST 응답(dict)에서 스키마를 생성합니다.

        - `schemaType`이 생략되면 registry 기본값(AVRO)으로 간주합니다
        - `/schemas/ids/{id}` 응답에는 id가 없으므로 `schema_id`로 보완합니다
        """
        schema_type = data.get("schemaType") or SchemaFormat.AVRO
        return cls(
            id=int(data["id"]) if "id" in data else int(schema_id),
            subject=data.get("subject", subject),
            version=int(data.get("version", -1)),
            schema_format=SchemaFormat(schema_type),
            schema_text=data["schema"],
        )
