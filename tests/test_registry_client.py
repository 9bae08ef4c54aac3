"""SchemaRegistryClient 단위 테스트 (respx mock)"""

from __future__ import annotations

import httpx
import orjson
import pytest
import respx

from schema_serde.common.exceptions import SerdeError, SerdeErrorCode
from schema_serde.core.dto.io.configuration import SchemaRegistryConfiguration
from schema_serde.core.types import SchemaFormat
from schema_serde.infra.messaging.schema_registry.client import (
    SchemaRegistryClient,
    close_registry_clients,
    create_schema_registry_client,
    get_registry_client,
)
from tests.factory_builders import TICKER_AVRO_SCHEMA, TICKER_JSON_SCHEMA

BASE_URL = "http://registry:8081"


def make_client() -> SchemaRegistryClient:
    return SchemaRegistryClient(base_url=BASE_URL)


@respx.mock
def test_get_latest_schema() -> None:
    respx.get(f"{BASE_URL}/subjects/ticker-value/versions/latest").mock(
        return_value=httpx.Response(
            200,
            json={"subject": "ticker-value", "id": 10, "version": 3, "schema": TICKER_AVRO_SCHEMA},
        )
    )
    schema = make_client().get_latest_schema("ticker-value")

    assert schema.id == 10
    assert schema.version == 3
    assert schema.subject == "ticker-value"
    assert schema.schema_format == SchemaFormat.AVRO
    assert schema.schema_text == TICKER_AVRO_SCHEMA


@respx.mock
def test_get_schema_by_version_reads_schema_type() -> None:
    respx.get(f"{BASE_URL}/subjects/ticker-value/versions/2").mock(
        return_value=httpx.Response(
            200,
            json={
                "subject": "ticker-value",
                "id": 11,
                "version": 2,
                "schemaType": "JSON",
                "schema": TICKER_JSON_SCHEMA,
            },
        )
    )
    schema = make_client().get_schema_by_version("ticker-value", 2)

    assert schema.version == 2
    assert schema.schema_format == SchemaFormat.JSON


@respx.mock
def test_get_schema_by_id_has_no_subject_or_version() -> None:
    respx.get(f"{BASE_URL}/schemas/ids/42").mock(
        return_value=httpx.Response(200, json={"schema": TICKER_AVRO_SCHEMA})
    )
    schema = make_client().get_schema_by_id(42)

    assert schema.id == 42
    assert schema.subject == ""
    assert schema.version == -1


@respx.mock
def test_missing_subject_raises_schema_not_found() -> None:
    respx.get(f"{BASE_URL}/subjects/missing-value/versions/latest").mock(
        return_value=httpx.Response(
            404, json={"error_code": 40401, "message": "Subject 'missing-value' not found."}
        )
    )
    with pytest.raises(SerdeError) as exc_info:
        make_client().get_latest_schema("missing-value")

    assert exc_info.value.code == SerdeErrorCode.SCHEMA_NOT_FOUND
    assert "not found" in exc_info.value.message


@respx.mock
def test_transport_error_raises_schema_not_found() -> None:
    respx.get(f"{BASE_URL}/schemas/ids/1").mock(side_effect=httpx.ConnectError("refused"))

    with pytest.raises(SerdeError) as exc_info:
        make_client().get_schema_by_id(1)

    assert exc_info.value.code == SerdeErrorCode.SCHEMA_NOT_FOUND
    assert isinstance(exc_info.value.cause, httpx.ConnectError)


@respx.mock
def test_malformed_response_raises_schema_not_found() -> None:
    respx.get(f"{BASE_URL}/schemas/ids/1").mock(return_value=httpx.Response(200, json={"id": 1}))

    with pytest.raises(SerdeError) as exc_info:
        make_client().get_schema_by_id(1)
    assert exc_info.value.code == SerdeErrorCode.SCHEMA_NOT_FOUND


@respx.mock
def test_create_schema_registers_and_looks_up_version() -> None:
    register = respx.post(f"{BASE_URL}/subjects/ticker-value/versions").mock(
        return_value=httpx.Response(200, json={"id": 21})
    )
    lookup = respx.post(f"{BASE_URL}/subjects/ticker-value").mock(
        return_value=httpx.Response(
            200,
            json={"subject": "ticker-value", "id": 21, "version": 4, "schema": TICKER_JSON_SCHEMA},
        )
    )

    schema = make_client().create_schema("ticker-value", TICKER_JSON_SCHEMA, SchemaFormat.JSON)

    assert (schema.id, schema.version) == (21, 4)
    assert schema.schema_format == SchemaFormat.JSON
    body = orjson.loads(register.calls.last.request.content)
    assert body == {"schema": TICKER_JSON_SCHEMA, "schemaType": "JSON"}
    assert lookup.called


@respx.mock
def test_create_avro_schema_omits_schema_type() -> None:
    register = respx.post(f"{BASE_URL}/subjects/ticker-value/versions").mock(
        return_value=httpx.Response(200, json={"id": 3, "version": 1})
    )
    lookup = respx.post(f"{BASE_URL}/subjects/ticker-value")

    schema = make_client().create_schema("ticker-value", TICKER_AVRO_SCHEMA)

    assert schema.id == 3
    assert orjson.loads(register.calls.last.request.content) == {"schema": TICKER_AVRO_SCHEMA}
    assert not lookup.called


@respx.mock
def test_incompatible_schema_raises_creation_failed() -> None:
    respx.post(f"{BASE_URL}/subjects/ticker-value/versions").mock(
        return_value=httpx.Response(
            409, json={"error_code": 409, "message": "Schema being registered is incompatible"}
        )
    )
    with pytest.raises(SerdeError) as exc_info:
        make_client().create_schema("ticker-value", TICKER_AVRO_SCHEMA)
    assert exc_info.value.code == SerdeErrorCode.SCHEMA_CREATION_FAILED


@respx.mock
def test_basic_auth_header_is_sent() -> None:
    route = respx.get(f"{BASE_URL}/schemas/ids/1").mock(
        return_value=httpx.Response(200, json={"schema": "{}"})
    )
    client = make_client()
    client.set_credentials("svc-loadtest", "secret")
    client.get_schema_by_id(1)

    assert route.calls.last.request.headers["Authorization"].startswith("Basic ")


def test_factory_sets_basic_auth_only_when_complete() -> None:
    with_auth = create_schema_registry_client(
        SchemaRegistryConfiguration.model_validate(
            {"url": BASE_URL, "basicAuth": {"username": "u", "password": "p"}}
        )
    )
    without_password = create_schema_registry_client(
        SchemaRegistryConfiguration.model_validate(
            {"url": BASE_URL, "basicAuth": {"username": "u"}}
        )
    )

    assert with_auth.auth == ("u", "p")
    assert without_password.auth is None
    with_auth.close()
    without_password.close()


def test_factory_falls_back_to_plain_client_on_bad_tls(tmp_path) -> None:
    configuration = SchemaRegistryConfiguration.model_validate(
        {
            "url": BASE_URL,
            "tls": {"enableTls": True, "serverCaPem": str(tmp_path / "missing-ca.pem")},
        }
    )
    with create_schema_registry_client(configuration) as client:
        assert client.base_url == BASE_URL


def test_get_registry_client_reuses_instance_per_configuration() -> None:
    first = SchemaRegistryConfiguration(url=BASE_URL)
    same = SchemaRegistryConfiguration(url=BASE_URL)
    other = SchemaRegistryConfiguration(url="http://other:8081")
    try:
        assert get_registry_client(first) is get_registry_client(same)
        assert get_registry_client(first) is not get_registry_client(other)
    finally:
        close_registry_clients()
