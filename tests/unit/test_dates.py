"""
Unit tests for business-day helpers.
"""

import pytest
from datetime import date, datetime

from caja.exceptions import ValidationError
from caja.utils.dates import business_day_range, business_date, to_local, parse_day


class TestBusinessDayRange:
    """The business day is a civil day at UTC-03:00, not UTC midnight."""

    def test_range_starts_at_local_midnight(self):
        start, end = business_day_range(date(2026, 1, 12), offset_hours=-3)

        assert start == datetime(2026, 1, 12, 3, 0)
        assert end == datetime(2026, 1, 13, 3, 0)

    def test_range_is_naive_utc(self):
        start, end = business_day_range(date(2026, 1, 12), offset_hours=-3)

        assert start.tzinfo is None
        assert end.tzinfo is None

    def test_late_night_sale_belongs_to_local_day(self):
        """23:30 local on the 12th is 02:30 UTC on the 13th."""
        sale_time = datetime(2026, 1, 13, 2, 30)
        start, end = business_day_range(date(2026, 1, 12), offset_hours=-3)

        assert business_date(sale_time, offset_hours=-3) == date(2026, 1, 12)
        assert start <= sale_time < end

    def test_early_utc_morning_is_previous_day(self):
        assert business_date(datetime(2026, 1, 13, 2, 59), offset_hours=-3) == date(2026, 1, 12)
        assert business_date(datetime(2026, 1, 13, 3, 0), offset_hours=-3) == date(2026, 1, 13)

    def test_default_offset_outside_app_context(self):
        start, _ = business_day_range(date(2026, 3, 1))
        assert start == datetime(2026, 3, 1, 3, 0)


class TestToLocal:

    def test_naive_is_treated_as_utc(self):
        local = to_local(datetime(2026, 1, 12, 18, 30), offset_hours=-3)
        assert local.hour == 15
        assert local.utcoffset().total_seconds() == -3 * 3600

    def test_none(self):
        assert to_local(None) is None


class TestParseDay:

    def test_valid(self):
        assert parse_day('2026-01-12') == date(2026, 1, 12)

    def test_empty_means_today(self):
        assert parse_day('') is None
        assert parse_day(None) is None

    def test_invalid(self):
        with pytest.raises(ValidationError):
            parse_day('12/01/2026')
