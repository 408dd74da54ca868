from __future__ import annotations

import math

import pytest

from core.domain.transforms import (
    MAX_SAFE_INTEGER,
    bytes_to_gigabytes,
    capacity_percent_used,
    counter_to_number,
    kilobytes_to_gigabytes,
    resolve_value,
    sanitize_resource_name,
    share_usage_percent,
    to_bool_or_none,
    to_number_or_none,
    to_string_or_none,
    usage_percent,
)


@pytest.mark.parametrize(
    ("used", "total"),
    [(10, 0), (10, 0.0), ("x", 100), (10, None), (None, 10), (True, 10), (10, float("nan"))],
)
def test_usage_percent_returns_none_on_invalid_input(used, total):
    assert usage_percent(used, total) is None


def test_usage_percent_rounds():
    assert usage_percent(25, 100) == 25.0
    assert usage_percent(1, 3) == 33.33
    assert usage_percent("50", "200") == 25.0


@pytest.mark.parametrize("value", [None, float("inf"), float("-inf"), float("nan"), "abc", {}, []])
def test_unit_converters_return_none_on_invalid_input(value):
    assert kilobytes_to_gigabytes(value) is None
    assert bytes_to_gigabytes(value) is None


def test_unit_converters():
    assert kilobytes_to_gigabytes(1048576) == 1.0
    assert kilobytes_to_gigabytes("2097152") == 2.0
    assert bytes_to_gigabytes(1610612736) == 1.5
    assert bytes_to_gigabytes(0) == 0.0


def test_huge_values_never_produce_infinity():
    assert kilobytes_to_gigabytes(10**400) is None
    assert usage_percent(1e308, 1e-308) is None


def test_counter_to_number():
    assert counter_to_number(12) == 12
    assert counter_to_number("12") == 12
    assert counter_to_number(MAX_SAFE_INTEGER) == MAX_SAFE_INTEGER
    big = counter_to_number(2**60)
    assert isinstance(big, float)
    assert math.isclose(big, 2**60)
    assert counter_to_number(True) is None
    assert counter_to_number(None) is None


def test_scalar_coercions():
    assert to_number_or_none(" 4.5 ") == 4.5
    assert to_number_or_none("") is None
    assert to_number_or_none(False) is None
    assert to_string_or_none(3) == "3"
    assert to_string_or_none(True) == "true"
    assert to_string_or_none({"a": 1}) is None
    assert to_bool_or_none(True) is True
    assert to_bool_or_none("yes") is None


def test_percentages_from_api_shapes():
    assert capacity_percent_used({"kilobytes": {"used": 50, "total": 200}}) == 25.0
    assert capacity_percent_used({"kilobytes": None}) is None
    assert capacity_percent_used(None) is None
    assert share_usage_percent(30, 70) == 30.0
    assert share_usage_percent(0, 0) is None


def test_resolve_value():
    data = {"a": {"b": {"c": 1}}, "x": 5}
    assert resolve_value(data, ("a", "b", "c")) == 1
    assert resolve_value(data, ("a", "missing")) is None
    assert resolve_value(data, ("x", "y")) is None
    assert resolve_value(data, ()) is data


def test_sanitize_resource_name():
    assert sanitize_resource_name("plex") == "plex"
    assert sanitize_resource_name("my-app_2") == "my-app_2"
    assert sanitize_resource_name("my app.v1/ü") == "my_app_v1__"
