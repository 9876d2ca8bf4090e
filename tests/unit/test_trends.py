"""
Unit Tests - Trend Series
"""
from datetime import date, datetime

import pytest

from aquametrics.metrics.periods import InvalidPeriod
from aquametrics.metrics.trends import (
    POPULATION_TREND,
    build_trend_series,
    latest_totals,
    within_window,
)

REFERENCE = date(2024, 6, 30)


class TestWithinWindow:
    """Tests for within_window"""

    def test_cutoff_is_inclusive(self, production_rows):
        kept = within_window(production_rows, "week", REFERENCE)
        assert sorted({row["date"] for row in kept}) == ["2024-06-23", "2024-06-30"]

    def test_missing_dates_dropped_bad_dates_kept(self):
        rows = [{"date": None}, {"date": "  "}, {"date": "not a date"}, {"date": "2024-06-29"}]
        kept = within_window(rows, "day", REFERENCE)
        assert kept == [{"date": "not a date"}, {"date": "2024-06-29"}]

    def test_datetime_reference(self, production_rows):
        kept = within_window(production_rows, "day", datetime(2024, 6, 30, 23, 59))
        assert {row["date"] for row in kept} == {"2024-06-30"}

    def test_invalid_period(self, production_rows):
        with pytest.raises(InvalidPeriod):
            within_window(production_rows, "decade", REFERENCE)


class TestBuildTrendSeries:
    """Tests for build_trend_series"""

    def test_production_series(self, production_rows):
        series = build_trend_series(production_rows, "week", REFERENCE)

        assert [point.date for point in series] == [date(2024, 6, 23), date(2024, 6, 30)]

        first, last = series
        assert first.get("total_biomass") == 315.0
        assert first.get("total_feed") == 15.5
        assert first.get("total_fish") == 5030.0
        assert first.get("total_mortality") == 7.0
        assert first.get("avg_efcr") == pytest.approx(1.3)

        # the null eFCR of system 2 does not count towards the mean
        assert last.get("total_biomass") == 330.0
        assert last.get("total_feed") == 16.5
        assert last.get("total_fish") == 5000.0
        assert last.get("total_mortality") == 13.0
        assert last.get("avg_efcr") == pytest.approx(1.4)

    def test_efcr_without_values_is_zero(self):
        rows = [{"date": "2024-06-30", "efcr_period": None, "total_biomass": 10}]
        series = build_trend_series(rows, "week", REFERENCE)
        assert series[0].get("avg_efcr") == 0.0

    def test_unparseable_dates_do_not_make_points(self):
        rows = [{"date": "yesterday", "total_biomass": 10}, {"date": "2024-06-30", "total_biomass": 5}]
        series = build_trend_series(rows, "week", REFERENCE)

        assert len(series) == 1
        assert series[0].get("total_biomass") == 5.0

    def test_repeat_build_is_identical(self, production_rows):
        """Same rows and reference give the same series, in any row order"""
        first = build_trend_series(production_rows, "month", REFERENCE)
        again = build_trend_series(production_rows, "month", REFERENCE)
        reordered = build_trend_series(list(reversed(production_rows)), "month", REFERENCE)

        assert [point.to_dict() for point in first] == [point.to_dict() for point in again]
        assert [point.to_dict() for point in first] == [point.to_dict() for point in reordered]

    def test_population_series(self, production_rows):
        series = build_trend_series(production_rows, "month", REFERENCE, POPULATION_TREND)

        assert [point.date for point in series] == [
            date(2024, 6, 22), date(2024, 6, 23), date(2024, 6, 30),
        ]
        assert series[0].values == {"total_fish": 1012.0}

    def test_empty_window(self, production_rows):
        series = build_trend_series(production_rows, "day", date(2025, 1, 1))
        assert series == []
        assert latest_totals(series) is None

    def test_point_to_dict(self, production_rows):
        point = latest_totals(build_trend_series(production_rows, "week", REFERENCE))
        data = point.to_dict()

        assert data["date"] == "2024-06-30"
        assert data["total_biomass"] == 330.0
