import json
from datetime import datetime, timedelta, timezone

import pytest

from rumba.helpers import (
    deserialize_string_or_vec,
    maybe_to_utc,
    to_utc,
    utc_from_milliseconds,
    utc_from_seconds_f,
    utc_to_milliseconds,
)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def test_string_or_vec():
    data = json.loads('{"field": "foo"}')
    assert deserialize_string_or_vec(data["field"]) == ["foo"]

    data = json.loads('{"field": ["foo", "bar"]}')
    assert deserialize_string_or_vec(data["field"]) == ["foo", "bar"]


def test_string_or_vec_rejects_null():
    with pytest.raises(ValueError):
        deserialize_string_or_vec(None)


def test_utc_milliseconds_round_trip():
    value = 1655312049699
    dt = utc_from_milliseconds(value)
    assert dt == EPOCH + timedelta(seconds=1655312049, milliseconds=699)
    assert utc_to_milliseconds(dt) == value


def test_utc_milliseconds_out_of_range():
    with pytest.raises(ValueError, match="in milliseconds"):
        utc_from_milliseconds(1655312049699001)


def test_utc_milliseconds_rejects_float():
    with pytest.raises(ValueError):
        utc_from_milliseconds(1.5)


def test_utc_milliseconds_negative():
    assert utc_from_milliseconds(-2000) == EPOCH - timedelta(seconds=2)
    with pytest.raises(ValueError):
        utc_from_milliseconds(-1500)


def test_utc_seconds_f():
    dt = utc_from_seconds_f(1655312049.5)
    assert dt == EPOCH + timedelta(seconds=1655312049, milliseconds=500)


def test_utc_seconds_integer():
    assert utc_from_seconds_f(1655312049) == EPOCH + timedelta(seconds=1655312049)


def test_utc_seconds_negative_fraction_is_dropped():
    assert utc_from_seconds_f(-1.5) == EPOCH - timedelta(seconds=1)


@pytest.mark.parametrize("value", ["x", True, None, float("inf")])
def test_utc_seconds_invalid(value):
    with pytest.raises(ValueError):
        utc_from_seconds_f(value)


def test_to_utc():
    payload = {"date": to_utc(datetime(1970, 1, 1))}
    assert json.dumps(payload, separators=(",", ":")) == '{"date":"1970-01-01T00:00:00Z"}'


def test_maybe_to_utc():
    payload = {"date": maybe_to_utc(datetime(1970, 1, 1))}
    assert json.dumps(payload, separators=(",", ":")) == '{"date":"1970-01-01T00:00:00Z"}'
    payload = {"date": maybe_to_utc(None)}
    assert json.dumps(payload, separators=(",", ":")) == '{"date":null}'


def test_to_utc_parses_back():
    naive = datetime(2022, 6, 15, 16, 54, 9, 123456)
    text = to_utc(naive)
    assert text.endswith("Z")
    parsed = datetime.fromisoformat(text[:-1])
    assert parsed == naive