"""
Unit Tests - Time Windows
"""
from datetime import date, datetime, timezone

import pytest

from aquametrics.database.models import TimePeriod
from aquametrics.metrics.periods import (
    InvalidPeriod,
    parse_day,
    period_days,
    resolve_cutoff,
    to_period,
)


class TestResolveCutoff:
    """Tests for resolve_cutoff"""

    def test_week_cutoff(self):
        """A week back from 2024-06-30 is 2024-06-23"""
        assert resolve_cutoff("week", date(2024, 6, 30)) == date(2024, 6, 23)

    @pytest.mark.parametrize(
        "token,days",
        [
            ("day", 1),
            ("week", 7),
            ("2 weeks", 14),
            ("month", 30),
            ("quarter", 90),
            ("6 months", 180),
            ("year", 365),
        ],
    )
    def test_fixed_day_counts(self, token, days):
        """Every period is a fixed number of days"""
        assert period_days(token) == days

    def test_month_is_thirty_days(self):
        """Months are not calendar months"""
        assert resolve_cutoff("month", date(2024, 3, 31)) == date(2024, 3, 1)

    def test_datetime_reference(self):
        """Datetime references are reduced to their day"""
        reference = datetime(2024, 6, 30, 23, 59, tzinfo=timezone.utc)
        assert resolve_cutoff(TimePeriod.DAY, reference) == date(2024, 6, 29)

    def test_unknown_token_raises(self):
        """Unknown tokens fail loudly"""
        with pytest.raises(InvalidPeriod):
            resolve_cutoff("fortnight", date(2024, 6, 30))

    def test_invalid_period_is_value_error(self):
        """InvalidPeriod can be caught as ValueError"""
        with pytest.raises(ValueError):
            to_period("decade")

    def test_enum_passthrough(self):
        """TimePeriod members are accepted as-is"""
        assert to_period(TimePeriod.SIX_MONTHS) is TimePeriod.SIX_MONTHS


class TestParseDay:
    """Tests for parse_day"""

    def test_iso_date(self):
        assert parse_day("2024-06-30") == date(2024, 6, 30)

    def test_iso_timestamp_with_zulu(self):
        """Timestamps keep only their calendar day"""
        assert parse_day("2024-06-30T10:15:00Z") == date(2024, 6, 30)

    def test_date_and_datetime_objects(self):
        assert parse_day(date(2024, 1, 2)) == date(2024, 1, 2)
        assert parse_day(datetime(2024, 1, 2, 8, 0)) == date(2024, 1, 2)

    @pytest.mark.parametrize("value", [None, "", "   ", "not a date", "2024-13-45", 20240630])
    def test_unparseable_values(self, value):
        """Anything that is not a date gives None"""
        assert parse_day(value) is None
