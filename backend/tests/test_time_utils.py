"""Date parsing used by list filters and reports."""

from datetime import datetime

import pytest

from stockpos.time_utils import day_key, parse_iso_datetime, to_utc_z
from stockpos.validation import ValidationError, parse_date


def test_offset_is_converted_to_naive_utc():
    assert parse_iso_datetime("2026-03-01T12:00:00+03:00") == datetime(2026, 3, 1, 9, 0, 0)
    assert parse_iso_datetime("2026-03-01T12:00:00Z") == datetime(2026, 3, 1, 12, 0, 0)


def test_blank_values_are_none():
    assert parse_iso_datetime(None) is None
    assert parse_iso_datetime("   ") is None


def test_bare_date_start_and_end_of_day():
    assert parse_iso_datetime("2026-03-01") == datetime(2026, 3, 1)
    end = parse_iso_datetime("2026-03-01", end_of_day=True)
    assert end.date() == datetime(2026, 3, 1).date()
    assert end > datetime(2026, 3, 1, 23, 59, 59)


def test_end_of_day_does_not_touch_full_timestamps():
    value = "2026-03-01T08:30:00Z"
    assert parse_iso_datetime(value, end_of_day=True) == datetime(2026, 3, 1, 8, 30)


def test_to_utc_z_and_day_key():
    dt = datetime(2026, 3, 1, 9, 5, 7, 123456)
    assert to_utc_z(dt) == "2026-03-01T09:05:07Z"
    assert to_utc_z(None) is None
    assert day_key(dt) == "2026-03-01"


def test_parse_date_rejects_garbage():
    with pytest.raises(ValidationError):
        parse_date("yesterday", "start_date")
