"""
Test Suite for Helper Functions
"""

from datetime import datetime, timezone

import pytest

from apilog_dashboard.utils.helpers import (
    coalesce,
    get_nested,
    hour_label,
    parse_ts,
    quantile,
    safe_bool,
    safe_int,
)


def test_parse_ts_variants():
    utc = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
    assert parse_ts("2024-05-01T10:00:00Z") == utc
    assert parse_ts("2024-05-01T10:00:00") == utc
    assert parse_ts("2024-05-01T12:00:00+02:00") == utc
    assert parse_ts(utc.timestamp()) == utc
    assert parse_ts(int(utc.timestamp() * 1000)) == utc
    assert parse_ts(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert parse_ts(datetime(2024, 5, 1, 10, 0)) == utc
    assert parse_ts("yesterday") is None
    assert parse_ts(None) is None


def test_safe_int():
    assert safe_int("12") == 12
    assert safe_int("12.7") == 12
    assert safe_int(None) is None
    assert safe_int("x", default=0) == 0


@pytest.mark.parametrize("value,expected", [(True, True), ("yes", True), ("0", False), ("maybe", None)])
def test_safe_bool(value, expected):
    assert safe_bool(value) is expected


def test_get_nested():
    assert get_nested({"a": {"b": 1}}, ("a", "b")) == 1
    assert get_nested({"a": 1}, ("a", "b")) is None


def test_quantile():
    assert quantile([], 0.5) == 0.0
    assert quantile([7], 0.95) == 7.0
    assert quantile([1, 2, 3, 4], 0.5) == 2.5


def test_hour_label():
    assert hour_label(0) == "00:00"
    assert hour_label(23) == "23:00"


def test_coalesce_keeps_falsy_values():
    assert coalesce(None, 0, 5) == 0
    assert coalesce("", "x") == ""
    assert coalesce(None, None) is None
