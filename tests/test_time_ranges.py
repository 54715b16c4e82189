from datetime import date

import pytest

from mika.analytics.time_range import parse_time_range


def test_last_7_days_range():
    result = parse_time_range("last_7_days", today=date(2024, 5, 8))
    assert result.start.date() == date(2024, 5, 2)
    assert result.end.date() == date(2024, 5, 8)


def test_last_90_days_range():
    result = parse_time_range("last_90_days", today=date(2024, 5, 8))
    assert result.start.date() == date(2024, 2, 9)
    assert result.end.date() == date(2024, 5, 8)


def test_this_month_range():
    result = parse_time_range("this_month", today=date(2024, 2, 10))
    assert result.start.date() == date(2024, 2, 1)
    assert result.end.date() == date(2024, 2, 29)


def test_bounds_are_naive():
    result = parse_time_range("last_30_days", today=date(2024, 5, 8))
    assert result.start.tzinfo is None
    assert result.end.tzinfo is None


def test_compare_previous_period():
    result = parse_time_range("last_7_days", "previous_period", today=date(2024, 5, 8))
    assert result.compare_start.date() == date(2024, 4, 25)
    assert result.compare_end.date() == date(2024, 5, 1)


def test_custom_range_requires_both_ends():
    with pytest.raises(ValueError):
        parse_time_range("custom", custom_start=date(2024, 5, 1))


def test_unknown_preset_rejected():
    with pytest.raises(ValueError):
        parse_time_range("last_week")
