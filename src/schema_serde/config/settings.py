"""Settings 모듈 - 환경변수 기반

설정 우선순위:
    1. 환경변수 (최우선) - export SCHEMA_REGISTRY_URL=...
    2. .env 파일 - config/.env
    3. 코드 기본값 (settings.py 내부)

사용 예시:
    # 로컬 Schema Registry (기본값 사용)
    # → http://localhost:8081

    # 운영 환경 (환경변수 오버라이드)
    export SCHEMA_REGISTRY_URL=https://registry.internal:8081
    export SCHEMA_REGISTRY_USERNAME=svc-loadtest
    export SCHEMA_REGISTRY_PASSWORD=...
    export SERDE_FORMAT=JSON
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from schema_serde.core.types import CONCURRENT_REQUESTS, SchemaFormat

# 설정 파일 경로
config_dir = Path(__file__).parent


def env_settings(prefix: str) -> SettingsConfigDict:
    """환경변수 + .env 통합 설정

    Args:
        prefix: 환경변수 접두사 (예: SCHEMA_REGISTRY_, SERDE_)

    Returns:
        Pydantic 설정 딕셔너리
    """
    return SettingsConfigDict(
        env_prefix=prefix,
        env_file=config_dir / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class SchemaRegistrySettings(BaseSettings):
    """Schema Registry 설정 (환경변수 기반)

    환경변수 오버라이드:
        SCHEMA_REGISTRY_URL: Registry URL (기본: http://localhost:8081)
        SCHEMA_REGISTRY_USERNAME: Basic auth 사용자 (선택)
        SCHEMA_REGISTRY_PASSWORD: Basic auth 비밀번호 (선택, 환경변수 권장)
        SCHEMA_REGISTRY_USE_LATEST: 직렬화 시 최신 스키마 사용 여부 (기본: false)
        SCHEMA_REGISTRY_TIMEOUT: 요청 타임아웃 초 (기본: 30.0)
        SCHEMA_REGISTRY_MAX_CONNECTIONS: 동시 연결 상한 (기본: 16)
    """

    url: str = "http://localhost:8081"
    username: str | None = None
    password: str | None = None
    use_latest: bool = False
    timeout: float = 30.0
    max_connections: int = CONCURRENT_REQUESTS

    model_config = env_settings("SCHEMA_REGISTRY_")


class SerdeSettings(BaseSettings):
    """직렬화 엔진 설정 (환경변수 기반)

    환경변수 오버라이드:
        SERDE_SUBJECT_NAME_STRATEGY: subject 전략 (기본: "" → TopicNameStrategy)
        SERDE_FORMAT: AVRO | JSON | PROTOBUF (기본: AVRO)
        SERDE_LOG_LEVEL: 로그 레벨 (기본: INFO)
        SERDE_LOG_TO_FILE: 파일 로깅 여부 (기본: false)
    """

    subject_name_strategy: str = ""
    format: SchemaFormat = SchemaFormat.AVRO
    log_level: str = "INFO"
    log_to_file: bool = False
    log_dir: str = "logs"

    model_config = env_settings("SERDE_")


# ========================================
# 설정 인스턴스 (싱글톤)
# ========================================

schema_registry_settings = SchemaRegistrySettings()
serde_settings = SerdeSettings()
