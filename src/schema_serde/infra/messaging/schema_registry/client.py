"""
Schema Registry 클라이언트 구현

Confluent Schema Registry REST API와 동기 통신하며, 스키마 조회/등록과 인증(basic auth, TLS)을 담당합니다.
직렬화 호출자가 동기 API이므로 httpx.Client의 커넥션 풀을 공유해 사용합니다.
"""

from __future__ import annotations

import ssl
import threading
from typing import Any
from urllib.parse import quote

import httpx
import orjson

from schema_serde.common.exceptions import SerdeError, SerdeErrorCode
from schema_serde.common.logger import PipelineLogger
from schema_serde.core.dto.internal.schema import SchemaDomain
from schema_serde.core.dto.io.configuration import SchemaRegistryConfiguration
from schema_serde.core.types import CONCURRENT_REQUESTS, SchemaFormat
from schema_serde.infra.messaging.schema_registry.tls import build_ssl_context

logger = PipelineLogger.get_logger("schema_registry", "registry")

CONTENT_TYPE = "application/vnd.schemaregistry.v1+json"


class SchemaRegistryClient:
    """
    Schema Registry 클라이언트

    - 모든 호출은 동기이며 네트워크 I/O 동안 블로킹됩니다
    - transport 동시 연결 수는 `max_connections`(기본 16)로 제한됩니다
    - 실패는 재시도하지 않고 SerdeError로 호출자에게 전파합니다
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8081",
        auth: tuple[str, str] | None = None,
        ssl_context: ssl.SSLContext | None = None,
        max_connections: int = CONCURRENT_REQUESTS,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.auth = auth
        self.timeout = timeout
        self.max_connections = max_connections
        self._client = httpx.Client(
            base_url=self.base_url,
            auth=auth,
            verify=ssl_context if ssl_context is not None else True,
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max_connections,
            ),
            timeout=timeout,
            headers={"Accept": CONTENT_TYPE},
        )

    def __enter__(self) -> SchemaRegistryClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """커넥션 풀을 종료합니다."""
        self._client.close()

    def set_credentials(self, username: str, password: str) -> None:
        """Basic auth 자격 증명을 설정합니다."""
        self.auth = (username, password)
        self._client.auth = self.auth

    def _request(
        self,
        method: str,
        path: str,
        error_code: SerdeErrorCode,
        data: dict[str, Any] | None = None,
    ) -> Any:
        """Schema Registry API 요청을 수행합니다.

        HTTP 에러, 전송 에러, 응답 파싱 에러를 모두 `error_code`의 SerdeError로 변환합니다.
        """
        try:
            response = self._client.request(
                method,
                path,
                content=orjson.dumps(data) if data is not None else None,
                headers={"Content-Type": CONTENT_TYPE} if data is not None else None,
            )
        except httpx.HTTPError as e:
            raise SerdeError(error_code, f"HTTP request failed: {e}", cause=e) from e

        if response.status_code >= 400:
            raise SerdeError(error_code, f"API Error: {self._error_message(response)}")

        try:
            return orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            raise SerdeError(
                error_code,
                f"Invalid response from schema registry (HTTP {response.status_code})",
                cause=e,
            ) from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Registry 에러 응답({"error_code", "message"})에서 메시지를 추출합니다."""
        try:
            body = orjson.loads(response.content)
        except orjson.JSONDecodeError:
            return f"HTTP {response.status_code}: {response.text}"
        if isinstance(body, dict) and "message" in body:
            return f"HTTP {response.status_code}: {body['message']}"
        return f"HTTP {response.status_code}"

    def _fetch(self, path: str, subject: str = "", schema_id: int | None = None) -> SchemaDomain:
        response = self._request("GET", path, SerdeErrorCode.SCHEMA_NOT_FOUND)
        try:
            return SchemaDomain.from_registry_response(
                response, subject=subject, schema_id=schema_id
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise SerdeError(
                SerdeErrorCode.SCHEMA_NOT_FOUND,
                "Failed to get schema from schema registry",
                cause=e,
            ) from e

    def get_latest_schema(self, subject: str) -> SchemaDomain:
        """
        주제의 최신 스키마를 조회합니다.

        Args:
            subject: 스키마 주제명

        Returns:
            최신 SchemaDomain

        Raises:
            SerdeError: SCHEMA_NOT_FOUND
        """
        schema = self._fetch(f"/subjects/{quote(subject, safe='')}/versions/latest", subject)
        logger.debug(f"최신 스키마 조회: subject={subject}, id={schema.id}, version={schema.version}")
        return schema

    def get_schema_by_version(self, subject: str, version: int) -> SchemaDomain:
        """
        주제의 특정 버전 스키마를 조회합니다.

        Args:
            subject: 스키마 주제명
            version: 스키마 버전 (양의 정수)

        Raises:
            SerdeError: SCHEMA_NOT_FOUND
        """
        schema = self._fetch(f"/subjects/{quote(subject, safe='')}/versions/{version}", subject)
        logger.debug(f"스키마 버전 조회: subject={subject}, id={schema.id}, version={version}")
        return schema

    def get_schema_by_id(self, schema_id: int) -> SchemaDomain:
        """
        스키마 ID로 스키마를 조회합니다.
        ID로 조회할 때는 주제/버전 정보가 없습니다.

        Raises:
            SerdeError: SCHEMA_NOT_FOUND
        """
        return self._fetch(f"/schemas/ids/{schema_id}", schema_id=schema_id)

    def create_schema(
        self, subject: str, schema_text: str, schema_format: SchemaFormat = SchemaFormat.AVRO
    ) -> SchemaDomain:
        """
        스키마를 등록하고 등록된 스키마를 반환합니다.
        이미 같은 스키마가 있으면 registry가 기존 ID를 돌려줍니다.

        Args:
            subject: 스키마 주제명
            schema_text: 스키마 원문
            schema_format: 스키마 타입 (AVRO는 registry 기본값이라 생략)

        Raises:
            SerdeError: SCHEMA_CREATION_FAILED
        """
        data: dict[str, Any] = {"schema": schema_text}
        if schema_format != SchemaFormat.AVRO:
            data["schemaType"] = schema_format.value

        path = f"/subjects/{quote(subject, safe='')}"
        response = self._request(
            "POST", f"{path}/versions", SerdeErrorCode.SCHEMA_CREATION_FAILED, data
        )
        if "version" not in response:
            # 등록 응답에는 id만 있으므로 lookup으로 버전을 확인
            response = self._request("POST", path, SerdeErrorCode.SCHEMA_CREATION_FAILED, data)

        try:
            schema = SchemaDomain(
                id=int(response["id"]),
                subject=subject,
                version=int(response["version"]),
                schema_format=schema_format,
                schema_text=schema_text,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise SerdeError(
                SerdeErrorCode.SCHEMA_CREATION_FAILED, "Failed to create schema.", cause=e
            ) from e

        logger.info(f"스키마 등록 완료: subject={subject}, id={schema.id}, version={schema.version}")
        return schema


def create_schema_registry_client(
    configuration: SchemaRegistryConfiguration,
) -> SchemaRegistryClient:
    """
    설정으로부터 Schema Registry 클라이언트를 생성합니다.

    - TLS 미요청(NO_TLS_CONFIG)은 에러가 아니므로 평문 클라이언트로 진행합니다
    - 그 외 TLS 설정 오류는 에러 로그를 남기고 평문 클라이언트로 진행합니다
    - basic auth는 username/password가 모두 있을 때만 설정합니다

    Args:
        configuration: Schema Registry 연결 설정

    Returns:
        설정된 SchemaRegistryClient 인스턴스
    """
    ssl_context: ssl.SSLContext | None = None
    try:
        ssl_context = build_ssl_context(configuration.tls)
    except SerdeError as e:
        if not e.is_informational:
            logger.serde_error("Cannot process TLS config", e)

    client = SchemaRegistryClient(
        base_url=configuration.url,
        ssl_context=ssl_context,
        max_connections=configuration.max_connections,
        timeout=configuration.timeout,
    )

    if configuration.basic_auth.is_set:
        client.set_credentials(
            configuration.basic_auth.username, configuration.basic_auth.password
        )

    return client


_clients: dict[SchemaRegistryConfiguration, SchemaRegistryClient] = {}
_clients_lock = threading.Lock()


def get_registry_client(configuration: SchemaRegistryConfiguration) -> SchemaRegistryClient:
    """설정 단위로 단일 SchemaRegistryClient 인스턴스를 생성/재사용합니다."""
    with _clients_lock:
        client = _clients.get(configuration)
        if client is None:
            client = _clients[configuration] = create_schema_registry_client(configuration)
        return client


def close_registry_clients() -> None:
    """재사용 중인 모든 클라이언트의 커넥션 풀을 종료합니다."""
    with _clients_lock:
        for client in _clients.values():
            client.close()
        _clients.clear()
