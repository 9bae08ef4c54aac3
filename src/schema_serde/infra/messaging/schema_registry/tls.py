"""Schema Registry 연결용 TLS 컨텍스트 생성"""

from __future__ import annotations

import ssl

from schema_serde.common.exceptions import SerdeError, SerdeErrorCode
from schema_serde.core.dto.io.configuration import TLSConfig

_TLS_VERSIONS: dict[str, ssl.TLSVersion] = {
    "TLSv1.0": ssl.TLSVersion.TLSv1,
    "TLSv1.1": ssl.TLSVersion.TLSv1_1,
    "TLSv1.2": ssl.TLSVersion.TLSv1_2,
    "TLSv1.3": ssl.TLSVersion.TLSv1_3,
}


def build_ssl_context(tls: TLSConfig | None) -> ssl.SSLContext:
    """TLSConfig로부터 클라이언트용 SSLContext를 생성합니다.

    Raises:
        SerdeError: NO_TLS_CONFIG (TLS 미요청, 정보성)
        SerdeError: 그 외 코드 (인증서 로드 실패, 알 수 없는 TLS 버전)
    """
    if tls is None or not tls.enable_tls:
        raise SerdeError(SerdeErrorCode.NO_TLS_CONFIG, "No TLS config provided.")

    min_version = _TLS_VERSIONS.get(tls.min_version)
    if min_version is None:
        raise SerdeError(
            SerdeErrorCode.INVALID_TLS_CONFIG,
            f"Unsupported minimum TLS version: {tls.min_version}",
        )

    try:
        context = ssl.create_default_context(cafile=tls.server_ca_pem or None)
        context.minimum_version = min_version
        if tls.insecure_skip_tls_verify:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        if tls.client_cert_pem:
            context.load_cert_chain(
                certfile=tls.client_cert_pem, keyfile=tls.client_key_pem or None
            )
    except (OSError, ssl.SSLError, ValueError) as e:
        raise SerdeError(
            SerdeErrorCode.INVALID_TLS_CONFIG,
            f"Failed to load TLS config: {e}",
            cause=e,
        ) from e

    return context
