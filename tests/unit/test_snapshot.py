"""
Unit Tests - Snapshot Selection and KPI Cards
"""
import pytest

from aquametrics.database.models import GrowthStage, TimePeriod
from aquametrics.metrics.periods import InvalidPeriod
from aquametrics.metrics.ratios import ChangeStatus, Trend
from aquametrics.metrics.snapshot import (
    DashboardFilters,
    SnapshotScope,
    SnapshotSelector,
    build_kpi_cards,
)


class TestDashboardFilters:
    """Tests for DashboardFilters.from_params"""

    def test_all_means_no_filter(self):
        filters = DashboardFilters.from_params(system_id="all", growth_stage="all", time_period="month")

        assert filters.system_id is None
        assert filters.growth_stage is None
        assert filters.time_period is TimePeriod.MONTH

    def test_parses_values(self):
        filters = DashboardFilters.from_params(system_id="3", growth_stage="nursing", time_period="2 weeks")

        assert filters.system_id == 3
        assert filters.growth_stage is GrowthStage.NURSING
        assert filters.time_period is TimePeriod.TWO_WEEKS

    def test_bad_period(self):
        with pytest.raises(InvalidPeriod):
            DashboardFilters.from_params(time_period="fortnight")

    def test_with_period(self):
        filters = DashboardFilters(system_id=2).with_period("year")
        assert filters.system_id == 2
        assert filters.time_period is TimePeriod.YEAR


class TestSnapshotSelector:
    """Tests for SnapshotSelector"""

    async def test_consolidated_takes_newest_period(self, fake_source):
        result = await SnapshotSelector(fake_source).select(DashboardFilters())

        assert result.ok
        snapshot = result.snapshot
        assert snapshot.scope is SnapshotScope.FARM
        assert snapshot.efcr.current == 1.5
        assert snapshot.efcr.previous == 1.8
        assert snapshot.period_end.isoformat() == "2024-06-01"

        call = fake_source.calls[-1]
        assert call["collection"] == "dashboard_consolidated"
        assert call["eq"] == {"growth_stage_scope": "all"}
        assert call["order"].column == "input_end_date"
        assert call["order"].ascending is False
        assert call["limit"] == 1

    async def test_growth_stage_selects_scope(self, fake_source):
        filters = DashboardFilters(growth_stage=GrowthStage.NURSING, time_period=TimePeriod.MONTH)
        result = await SnapshotSelector(fake_source).select(filters)

        assert result.ok
        assert result.snapshot is None
        assert fake_source.calls[-1]["eq"] == {"growth_stage_scope": "nursing", "time_period": "month"}

    async def test_system_snapshot(self, fake_source):
        result = await SnapshotSelector(fake_source).select(DashboardFilters(system_id=1))

        assert result.snapshot.scope is SnapshotScope.SYSTEM
        assert result.snapshot.system_id == 1
        assert result.snapshot.efcr.current == 1.4
        assert fake_source.calls[-1]["collection"] == "dashboard"
        assert fake_source.calls[-1]["eq"] == {"system_id": 1}

    async def test_failed_query_is_an_error(self, make_source):
        source = make_source(failing={"dashboard_consolidated"})
        result = await SnapshotSelector(source).select(DashboardFilters())

        assert not result.ok
        assert result.snapshot is None
        assert "Store error" in result.error

    async def test_invalid_row_gives_no_snapshot(self, make_source):
        """A quarantined row is treated like no data"""
        source = make_source({"dashboard": [{"system_id": 1, "growth_stage": "hatchery"}]})
        result = await SnapshotSelector(source).select(DashboardFilters(system_id=1))

        assert result.snapshot is None

    async def test_snapshot_to_dict(self, fake_source):
        result = await SnapshotSelector(fake_source).select(DashboardFilters())
        data = result.snapshot.to_dict()

        assert data["scope"] == "farm"
        assert data["period_start"] == "2024-05-01"
        assert data["average_biomass"] == 330.0
        assert data["prev_mortality_rate"] == 0.02


class TestKpiCards:
    """Tests for build_kpi_cards"""

    async def test_cards_from_snapshot(self, fake_source):
        snapshot = (await SnapshotSelector(fake_source).select(DashboardFilters())).snapshot
        cards = {card.key: card for card in build_kpi_cards(snapshot)}

        assert list(cards) == ["efcr", "mortality", "biomass", "water-quality"]

        efcr = cards["efcr"]
        assert efcr.display == "1.50"
        assert efcr.change.text == "-16.7% from last period"
        assert efcr.change.trend is Trend.DOWN
        assert efcr.change.status is ChangeStatus.POSITIVE

        mortality = cards["mortality"]
        assert mortality.value == pytest.approx(1.5)
        assert mortality.display == "1.5%"
        assert mortality.change.text == "-25.0% from last period"
        assert mortality.change.status is ChangeStatus.POSITIVE

        biomass = cards["biomass"]
        assert biomass.display == "330.0kg"
        assert biomass.change.trend is Trend.UP
        assert biomass.change.status is ChangeStatus.POSITIVE

        assert cards["water-quality"].display == "2.6"

    def test_placeholders_without_snapshot(self):
        cards = build_kpi_cards(None)

        assert len(cards) == 4
        for card in cards:
            assert card.display == "--"
            assert card.value is None
            assert card.caption == "No data"
            assert card.change.text is None
