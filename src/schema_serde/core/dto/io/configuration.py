"""호출자 설정 DTO 모듈

부하 테스트 스크립트 등 외부에서 넘어오는 설정(camelCase JSON)을 Pydantic v2로 검증합니다.

예시:
    {
        "subjectNameStrategy": "TopicRecordNameStrategy",
        "schemaRegistry": {
            "url": "https://registry:8081",
            "basicAuth": {"username": "u", "password": "p"},
            "useLatest": false,
            "tls": {"enableTls": true, "serverCaPem": "/certs/ca.pem"}
        },
        "format": "AVRO"
    }
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from schema_serde.config.settings import (
    SchemaRegistrySettings,
    SerdeSettings,
    schema_registry_settings,
    serde_settings,
)
from schema_serde.core.types import SchemaFormat

# 외부 입력용 불변 ConfigDict (camelCase alias 허용)
CONFIGURATION_CONFIG = ConfigDict(
    extra="forbid",
    frozen=True,
    populate_by_name=True,
    str_strip_whitespace=True,
)


class BasicAuth(BaseModel):
    """Registry basic auth 자격 증명."""

    username: str = ""
    password: str = ""

    model_config = CONFIGURATION_CONFIG

    @property
    def is_set(self) -> bool:
        return bool(self.username) and bool(self.password)


class TLSConfig(BaseModel):
    """Registry TLS 설정.

    PEM 값은 파일 경로입니다. `enable_tls=False`면 TLS를 요청하지 않은 것으로 봅니다.
    """

    enable_tls: bool = Field(False, alias="enableTls")
    insecure_skip_tls_verify: bool = Field(False, alias="insecureSkipTlsVerify")
    min_version: str = Field("TLSv1.2", alias="minVersion")
    client_cert_pem: str = Field("", alias="clientCertPem")
    client_key_pem: str = Field("", alias="clientKeyPem")
    server_ca_pem: str = Field("", alias="serverCaPem")

    model_config = CONFIGURATION_CONFIG


class SchemaRegistryConfiguration(BaseModel):
    """Schema Registry 연결 설정."""

    url: str = "http://localhost:8081"
    basic_auth: BasicAuth = Field(default_factory=BasicAuth, alias="basicAuth")
    use_latest: bool = Field(False, alias="useLatest")
    tls: TLSConfig = Field(default_factory=TLSConfig)
    timeout: float = 30.0
    max_connections: int = Field(16, alias="maxConnections", gt=0)

    model_config = CONFIGURATION_CONFIG

    @classmethod
    def from_settings(
        cls, settings: SchemaRegistrySettings | None = None
    ) -> SchemaRegistryConfiguration:
        """환경변수 설정(SCHEMA_REGISTRY_*)에서 생성합니다."""
        s = settings or schema_registry_settings
        return cls(
            url=s.url,
            basic_auth=BasicAuth(username=s.username or "", password=s.password or ""),
            use_latest=s.use_latest,
            timeout=s.timeout,
            max_connections=s.max_connections,
        )


class SerdeConfiguration(BaseModel):
    """직렬화/역직렬화 설정.

    - subject_name_strategy: "" | TopicNameStrategy | RecordNameStrategy | TopicRecordNameStrategy
      (알 수 없는 값은 subject 결정 시점에 실패합니다)
    - format: 어떤 포맷 코덱을 쓸지 결정 (값의 타입으로 추론하지 않음)
    - message_name: Protobuf에서 사용할 메시지 (비우면 첫 번째 top-level 메시지)
    """

    subject_name_strategy: str = Field("", alias="subjectNameStrategy")
    schema_registry: SchemaRegistryConfiguration = Field(
        default_factory=SchemaRegistryConfiguration, alias="schemaRegistry"
    )
    format: SchemaFormat = SchemaFormat.AVRO
    message_name: str = Field("", alias="messageName")

    model_config = CONFIGURATION_CONFIG

    @classmethod
    def from_settings(
        cls,
        settings: SerdeSettings | None = None,
        registry_settings: SchemaRegistrySettings | None = None,
    ) -> SerdeConfiguration:
        """환경변수 설정(SERDE_*, SCHEMA_REGISTRY_*)에서 생성합니다."""
        s = settings or serde_settings
        return cls(
            subject_name_strategy=s.subject_name_strategy,
            schema_registry=SchemaRegistryConfiguration.from_settings(registry_settings),
            format=s.format,
        )
