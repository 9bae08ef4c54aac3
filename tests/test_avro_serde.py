from __future__ import annotations

import orjson
import pytest

from schema_serde.common.exceptions import SerdeError, SerdeErrorCode
from schema_serde.core.types import Element
from schema_serde.infra.messaging.schema_registry.wire_format import decode_wire_format
from schema_serde.infra.messaging.serializers.avro import AvroSerde
from tests.factory_builders import (
    TICKER_AVRO_SCHEMA,
    FakeRegistryClient,
    build_configuration,
    build_serde,
)

TICKER = {"symbol": "KRW-BTC", "price": 95_000_000.5, "volume": 12}


def test_round_trip_with_caller_schema() -> None:
    registry = FakeRegistryClient(first_id=100)
    serde = build_serde(AvroSerde, registry)
    config = build_configuration()

    data = serde.serialize(config, "ticker", TICKER, Element.VALUE, TICKER_AVRO_SCHEMA)

    schema_id, _ = decode_wire_format(data)
    assert data[0] == 0
    assert schema_id == 100
    assert serde.deserialize(config, "ticker", data, Element.VALUE) == TICKER


def test_same_caller_schema_is_registered_once() -> None:
    registry = FakeRegistryClient()
    serde = build_serde(AvroSerde, registry)
    config = build_configuration()

    for _ in range(5):
        serde.serialize(config, "ticker", TICKER, Element.VALUE, TICKER_AVRO_SCHEMA)

    assert registry.count("create_schema") == 1
    assert registry.calls[0] == ("create_schema", "ticker-value")


def test_schema_id_lookup_is_cached_on_deserialize() -> None:
    registry = FakeRegistryClient()
    serde = build_serde(AvroSerde, registry)
    config = build_configuration()
    data = serde.serialize(config, "ticker", TICKER, Element.VALUE, TICKER_AVRO_SCHEMA)

    for _ in range(3):
        serde.deserialize(config, "ticker", data, Element.VALUE)

    assert registry.count("get_schema_by_id") == 1


def test_json_text_value_is_accepted() -> None:
    registry = FakeRegistryClient()
    serde = build_serde(AvroSerde, registry)
    config = build_configuration()

    from_text = serde.serialize(
        config, "ticker", orjson.dumps(TICKER).decode(), Element.VALUE, TICKER_AVRO_SCHEMA
    )
    from_dict = serde.serialize(config, "ticker", TICKER, Element.VALUE, TICKER_AVRO_SCHEMA)

    assert from_text == from_dict


def test_use_latest_serializes_with_registry_schema() -> None:
    registry = FakeRegistryClient()
    registered = registry.register("ticker-value", TICKER_AVRO_SCHEMA)
    serde = build_serde(AvroSerde, registry)
    config = build_configuration(schemaRegistry={"useLatest": True})

    data = serde.serialize(config, "ticker", TICKER, Element.VALUE)

    assert decode_wire_format(data)[0] == registered.id
    assert registry.count("create_schema") == 0
    assert registry.count("get_latest_schema") == 1
    assert serde.deserialize(config, "ticker", data, Element.VALUE) == TICKER


def test_empty_schema_text_uses_requested_version() -> None:
    registry = FakeRegistryClient()
    v1 = registry.register("ticker-value", TICKER_AVRO_SCHEMA)
    registry.register("ticker-value", TICKER_AVRO_SCHEMA.replace("Ticker", "TickerV2"))
    serde = build_serde(AvroSerde, registry)

    data = serde.serialize(build_configuration(), "ticker", TICKER, Element.VALUE, version=1)

    assert decode_wire_format(data)[0] == v1.id
    assert registry.count("get_schema_by_version") == 1


def test_key_element_uses_key_subject() -> None:
    registry = FakeRegistryClient()
    serde = build_serde(AvroSerde, registry)

    serde.serialize(build_configuration(), "ticker", TICKER, Element.KEY, TICKER_AVRO_SCHEMA)

    assert registry.calls == [("create_schema", "ticker-key")]


def test_record_name_strategy_subject() -> None:
    registry = FakeRegistryClient()
    serde = build_serde(AvroSerde, registry)
    config = build_configuration(subjectNameStrategy="TopicRecordNameStrategy")

    serde.serialize(config, "ticker", TICKER, "value", TICKER_AVRO_SCHEMA)

    assert registry.calls == [("create_schema", "ticker-com.coin.market.Ticker")]


def test_unknown_strategy_fails_before_registry_call() -> None:
    registry = FakeRegistryClient()
    serde = build_serde(AvroSerde, registry)
    config = build_configuration(subjectNameStrategy="FooStrategy")

    with pytest.raises(SerdeError) as exc_info:
        serde.serialize(config, "ticker", TICKER, Element.VALUE, TICKER_AVRO_SCHEMA)

    assert exc_info.value.code == SerdeErrorCode.UNKNOWN_SUBJECT_NAME_STRATEGY
    assert registry.calls == []


def test_missing_registry_schema_propagates() -> None:
    serde = build_serde(AvroSerde, FakeRegistryClient())
    config = build_configuration(schemaRegistry={"useLatest": True})

    with pytest.raises(SerdeError) as exc_info:
        serde.serialize(config, "ticker", TICKER, Element.VALUE)
    assert exc_info.value.code == SerdeErrorCode.SCHEMA_NOT_FOUND


def test_value_not_matching_schema() -> None:
    serde = build_serde(AvroSerde, FakeRegistryClient())

    with pytest.raises(SerdeError) as exc_info:
        serde.serialize(
            build_configuration(), "ticker", {"symbol": "KRW-BTC"}, Element.VALUE, TICKER_AVRO_SCHEMA
        )
    assert exc_info.value.code == SerdeErrorCode.FAILED_ENCODE_TO_AVRO


def test_invalid_json_value() -> None:
    serde = build_serde(AvroSerde, FakeRegistryClient())

    with pytest.raises(SerdeError) as exc_info:
        serde.serialize(build_configuration(), "ticker", "{oops", Element.VALUE, TICKER_AVRO_SCHEMA)
    assert exc_info.value.code == SerdeErrorCode.FAILED_UNMARSHAL_JSON


def test_invalid_avro_schema() -> None:
    serde = build_serde(AvroSerde, FakeRegistryClient())
    bad_schema = orjson.dumps({"type": "record", "name": "Bad", "fields": [{"name": "x", "type": "nope"}]}).decode()

    with pytest.raises(SerdeError) as exc_info:
        serde.serialize(build_configuration(), "bad", {"x": 1}, Element.VALUE, bad_schema)
    assert exc_info.value.code == SerdeErrorCode.FAILED_CREATE_AVRO_CODEC


def test_deserialize_rejects_broken_envelope() -> None:
    serde = build_serde(AvroSerde, FakeRegistryClient())

    with pytest.raises(SerdeError) as exc_info:
        serde.deserialize(build_configuration(), "ticker", b"\x00\x01", Element.VALUE)

    assert exc_info.value.code == SerdeErrorCode.FAILED_DECODE_FROM_WIRE_FORMAT
    assert exc_info.value.cause.code == SerdeErrorCode.MESSAGE_TOO_SHORT


def test_deserialize_truncated_payload() -> None:
    registry = FakeRegistryClient()
    serde = build_serde(AvroSerde, registry)
    config = build_configuration()
    data = serde.serialize(config, "ticker", TICKER, Element.VALUE, TICKER_AVRO_SCHEMA)

    with pytest.raises(SerdeError) as exc_info:
        serde.deserialize(config, "ticker", data[:5], Element.VALUE)
    assert exc_info.value.code == SerdeErrorCode.FAILED_DECODE_AVRO


def test_deserialize_unknown_schema_id() -> None:
    serde = build_serde(AvroSerde, FakeRegistryClient())

    with pytest.raises(SerdeError) as exc_info:
        serde.deserialize(build_configuration(), "ticker", b"\x00\x00\x00\x00\x09\x02", Element.VALUE)
    assert exc_info.value.code == SerdeErrorCode.SCHEMA_NOT_FOUND


def test_evolved_caller_schema_gets_its_own_id() -> None:
    registry = FakeRegistryClient()
    serde = build_serde(AvroSerde, registry)
    config = build_configuration()
    schema_v2 = orjson.loads(TICKER_AVRO_SCHEMA)
    schema_v2["fields"].append({"name": "exchange", "type": "string", "default": "upbit"})
    ticker_v2 = {**TICKER, "exchange": "bithumb"}

    data_v1 = serde.serialize(config, "ticker", TICKER, Element.VALUE, TICKER_AVRO_SCHEMA)
    data_v2 = serde.serialize(
        config, "ticker", ticker_v2, Element.VALUE, orjson.dumps(schema_v2).decode()
    )

    assert registry.count("create_schema") == 2
    assert decode_wire_format(data_v1)[0] != decode_wire_format(data_v2)[0]
    assert serde.deserialize(config, "ticker", data_v1, Element.VALUE) == TICKER
    assert serde.deserialize(config, "ticker", data_v2, Element.VALUE) == ticker_v2
