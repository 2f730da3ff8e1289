# ============================================================================
# FILE: tests/unit/test_status.py
# ============================================================================
"""
Unit tests for lab value status resolution
"""

import pytest

from labsync.constants.report_types import ParameterStatus
from labsync.extraction.status import (
    NumericStatus,
    Unparseable,
    determine_status,
    get_test_status,
    resolve_status,
    to_number,
)


@pytest.mark.parametrize("value,expected", [
    (3.9, ParameterStatus.LOW),
    (4.0, ParameterStatus.NORMAL),
    (7.5, ParameterStatus.NORMAL),
    (11.0, ParameterStatus.NORMAL),
    (11.1, ParameterStatus.HIGH),
])
def test_simple_mode_bounds_are_inclusive(value, expected):
    """Values on the bounds are normal"""
    assert determine_status(value, 4.0, 11.0) == expected


def test_numeric_strings_are_parsed():
    result = resolve_status("12.5", 4.0, 11.0)
    assert isinstance(result, NumericStatus)
    assert result.value == 12.5
    assert result.status == ParameterStatus.HIGH


@pytest.mark.parametrize("value", ["Positive", "", None, "n/a", float("nan"), True])
def test_non_numeric_values_are_unparseable(value):
    """Non-numeric input never resolves to normal"""
    result = resolve_status(value, 4.0, 11.0)
    assert isinstance(result, Unparseable)
    assert result.status == ParameterStatus.UNPARSEABLE
    assert result.is_numeric is False


def test_missing_bounds_skip_that_side():
    assert determine_status(500, None, None) == ParameterStatus.NORMAL
    assert determine_status(500, 10, None) == ParameterStatus.NORMAL
    assert determine_status(5, 10, None) == ParameterStatus.LOW
    assert determine_status(500, None, 200) == ParameterStatus.HIGH


def test_critical_tiers_at_25_percent():
    """Beyond 25% of a bound escalates to critical"""
    # Low bound 4.0: critical below 3.0
    assert get_test_status(3.5, 4.0, 11.0) == ParameterStatus.LOW
    assert get_test_status(3.0, 4.0, 11.0) == ParameterStatus.LOW
    assert get_test_status(2.9, 4.0, 11.0) == ParameterStatus.CRITICAL_LOW
    # High bound 100: critical above 125
    assert get_test_status(120, 70, 100) == ParameterStatus.HIGH
    assert get_test_status(125, 70, 100) == ParameterStatus.HIGH
    assert get_test_status(126, 70, 100) == ParameterStatus.CRITICAL_HIGH


def test_custom_critical_percent():
    assert resolve_status(115, 70, 100, critical_threshold_percent=10).status == ParameterStatus.CRITICAL_HIGH
    assert resolve_status(115, 70, 100).status == ParameterStatus.HIGH


def test_critical_statuses_count_as_abnormal():
    for status in (ParameterStatus.LOW, ParameterStatus.HIGH,
                   ParameterStatus.CRITICAL_LOW, ParameterStatus.CRITICAL_HIGH):
        assert status.is_abnormal
    assert not ParameterStatus.NORMAL.is_abnormal
    assert not ParameterStatus.UNPARSEABLE.is_abnormal


def test_to_number():
    assert to_number("1,024") == 1024.0
    assert to_number(" 7 ") == 7.0
    assert to_number("7 mg") is None
    assert to_number(float("inf")) is None
    assert to_number(False) is None
