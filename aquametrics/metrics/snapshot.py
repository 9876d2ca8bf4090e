"""
Snapshot Selector

Picks the KPI snapshot for a set of filters:
- with a system id, the per-system ``dashboard`` row for that system
- without one, the farm-wide ``dashboard_consolidated`` row for the growth
  stage scope, newest period end first

Also turns a snapshot into the four KPI cards (eFCR, mortality, biomass,
water quality) with their period-over-period change indicators.
"""

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import structlog

from aquametrics.database.models import GrowthStage, TimePeriod
from aquametrics.metrics.periods import to_period
from aquametrics.metrics.ratios import (
    NO_CHANGE,
    PLACEHOLDER,
    ChangeIndicator,
    format_change,
    format_metric_value,
    mortality_rate_percent,
)
from aquametrics.sources.base import OrderBy, QueryResult, QueryStatus, RowSource
from aquametrics.sources.records import (
    ConsolidatedDashboardRecord,
    DashboardRecord,
    parse_rows,
)

logger = structlog.get_logger(__name__)

PER_SYSTEM_VIEW = "dashboard"
CONSOLIDATED_VIEW = "dashboard_consolidated"


@dataclass(frozen=True)
class DashboardFilters:
    """
    Filter state for one dashboard request.

    Passed explicitly to every query; nothing is read from shared state.
    """
    system_id: Optional[int] = None
    growth_stage: Optional[GrowthStage] = None
    time_period: Optional[TimePeriod] = None

    @classmethod
    def from_params(
        cls,
        system_id: Optional[Union[int, str]] = None,
        growth_stage: Optional[Union[str, GrowthStage]] = None,
        time_period: Optional[Union[str, TimePeriod]] = None,
    ) -> "DashboardFilters":
        """
        Build filters from loosely-typed request values.

        ``"all"`` and empty strings mean "no filter" for system and stage.

        Raises:
            InvalidPeriod: If time_period is not a supported token
            ValueError: If system_id or growth_stage cannot be parsed
        """
        if isinstance(system_id, str):
            system_id = None if system_id.strip() in ("", "all") else int(system_id)
        if isinstance(growth_stage, str):
            growth_stage = None if growth_stage.strip() in ("", "all") else GrowthStage(growth_stage)
        return cls(
            system_id=system_id,
            growth_stage=growth_stage,
            time_period=to_period(time_period) if time_period else None,
        )

    def with_period(self, time_period: Union[str, TimePeriod]) -> "DashboardFilters":
        return DashboardFilters(self.system_id, self.growth_stage, to_period(time_period))


class SnapshotScope(str, Enum):
    SYSTEM = "system"
    FARM = "farm"


@dataclass(frozen=True)
class MetricPair:
    """A metric's value for the current and the previous period"""
    current: Optional[float] = None
    previous: Optional[float] = None


@dataclass(frozen=True)
class Snapshot:
    """Point-in-time KPI rollup for one system or the whole farm"""
    scope: SnapshotScope
    efcr: MetricPair
    mortality_rate: MetricPair
    biomass: MetricPair
    water_quality: MetricPair
    system_id: Optional[int] = None
    growth_stage: Optional[str] = None
    time_period: Optional[str] = None
    period_start: Optional[dt.date] = None
    period_end: Optional[dt.date] = None

    @classmethod
    def from_system_row(cls, row: DashboardRecord) -> "Snapshot":
        return cls(
            scope=SnapshotScope.SYSTEM,
            system_id=row.system_id,
            growth_stage=row.growth_stage.value if row.growth_stage else None,
            time_period=row.time_period,
            period_start=row.input_start_date,
            period_end=row.input_end_date,
            efcr=MetricPair(row.efcr, row.prev_efcr),
            mortality_rate=MetricPair(row.mortality_rate, row.prev_mortality_rate),
            biomass=MetricPair(row.average_biomass, row.prev_average_biomass),
            water_quality=MetricPair(
                row.water_quality_rating_numeric_average,
                row.prev_water_quality_rating_numeric_average,
            ),
        )

    @classmethod
    def from_consolidated_row(cls, row: ConsolidatedDashboardRecord) -> "Snapshot":
        return cls(
            scope=SnapshotScope.FARM,
            growth_stage=row.growth_stage_scope,
            time_period=row.time_period,
            period_start=row.input_start_date,
            period_end=row.input_end_date,
            efcr=MetricPair(row.efcr_period_consolidated, row.prev_efcr_period_consolidated),
            mortality_rate=MetricPair(row.mortality_rate, row.prev_mortality_rate),
            biomass=MetricPair(row.average_biomass, row.prev_average_biomass),
            water_quality=MetricPair(
                row.water_quality_rating_numeric_average,
                row.prev_water_quality_rating_numeric_average,
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scope": self.scope.value,
            "system_id": self.system_id,
            "growth_stage": self.growth_stage,
            "time_period": self.time_period,
            "period_start": self.period_start.isoformat() if self.period_start else None,
            "period_end": self.period_end.isoformat() if self.period_end else None,
            "efcr": self.efcr.current,
            "prev_efcr": self.efcr.previous,
            "mortality_rate": self.mortality_rate.current,
            "prev_mortality_rate": self.mortality_rate.previous,
            "average_biomass": self.biomass.current,
            "prev_average_biomass": self.biomass.previous,
            "water_quality_rating_numeric_average": self.water_quality.current,
            "prev_water_quality_rating_numeric_average": self.water_quality.previous,
        }


@dataclass
class SnapshotResult:
    """Snapshot lookup outcome; a missing snapshot is not an error"""
    status: QueryStatus
    snapshot: Optional[Snapshot] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == QueryStatus.SUCCESS


class SnapshotSelector:
    """
    Selects the current snapshot for a set of filters.

    Example:
        selector = SnapshotSelector(source)
        result = await selector.select(DashboardFilters(time_period=TimePeriod.MONTH))
        if result.snapshot is None:
            ...  # no data yet, or result.ok is False
    """

    def __init__(self, source: RowSource, consolidated_scope: str = "all"):
        self.source = source
        self.consolidated_scope = consolidated_scope

    async def select(self, filters: DashboardFilters) -> SnapshotResult:
        if filters.system_id is not None:
            return await self._select_system(filters)
        return await self._select_consolidated(filters)

    async def _select_system(self, filters: DashboardFilters) -> SnapshotResult:
        eq: Dict[str, Any] = {"system_id": filters.system_id}
        if filters.growth_stage is not None:
            eq["growth_stage"] = filters.growth_stage.value
        if filters.time_period is not None:
            eq["time_period"] = filters.time_period.value

        result = await self.source.fetch(PER_SYSTEM_VIEW, eq=eq, limit=1)
        return self._first(result, PER_SYSTEM_VIEW, DashboardRecord, Snapshot.from_system_row)

    async def _select_consolidated(self, filters: DashboardFilters) -> SnapshotResult:
        scope = filters.growth_stage.value if filters.growth_stage is not None else self.consolidated_scope
        eq: Dict[str, Any] = {"growth_stage_scope": scope}
        if filters.time_period is not None:
            eq["time_period"] = filters.time_period.value

        result = await self.source.fetch(
            CONSOLIDATED_VIEW,
            eq=eq,
            order=OrderBy.desc("input_end_date"),
            limit=1,
        )
        return self._first(result, CONSOLIDATED_VIEW, ConsolidatedDashboardRecord, Snapshot.from_consolidated_row)

    @staticmethod
    def _first(result: QueryResult, collection: str, model, build) -> SnapshotResult:
        if not result.ok:
            return SnapshotResult(status=QueryStatus.ERROR, error=result.error)

        parsed = parse_rows(model, result.data[:1], collection=collection)
        if not parsed.records:
            return SnapshotResult(status=QueryStatus.SUCCESS)
        return SnapshotResult(status=QueryStatus.SUCCESS, snapshot=build(parsed.records[0]))


# =============================================================================
# KPI CARDS
# =============================================================================

@dataclass
class KpiCard:
    """One KPI tile"""
    key: str
    label: str
    value: Optional[float]
    display: str
    change: ChangeIndicator = NO_CHANGE
    caption: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "value": self.value,
            "display": self.display,
            "change": self.change.to_dict(),
            "caption": self.caption,
        }


@dataclass(frozen=True)
class _CardSpec:
    key: str
    label: str
    unit: str = ""
    decimals: Optional[int] = None
    inverse: bool = False


CARD_SPECS: List[_CardSpec] = [
    _CardSpec("efcr", "eFCR", decimals=2, inverse=True),
    _CardSpec("mortality", "Mortality", unit="%", decimals=1, inverse=True),
    _CardSpec("biomass", "Biomass", unit="kg", decimals=1),
    _CardSpec("water-quality", "Water Quality", decimals=1),
]


def _card_values(snapshot: Snapshot) -> Dict[str, MetricPair]:
    return {
        "efcr": snapshot.efcr,
        "mortality": MetricPair(
            mortality_rate_percent(snapshot.mortality_rate.current),
            mortality_rate_percent(snapshot.mortality_rate.previous),
        ),
        "biomass": snapshot.biomass,
        "water-quality": snapshot.water_quality,
    }


def build_kpi_cards(snapshot: Optional[Snapshot]) -> List[KpiCard]:
    """KPI cards for a snapshot; placeholder cards when there is none"""
    if snapshot is None:
        return [
            KpiCard(key=spec.key, label=spec.label, value=None, display=PLACEHOLDER, caption="No data")
            for spec in CARD_SPECS
        ]

    values = _card_values(snapshot)
    cards = []
    for spec in CARD_SPECS:
        pair = values[spec.key]
        cards.append(
            KpiCard(
                key=spec.key,
                label=spec.label,
                value=pair.current,
                display=format_metric_value(pair.current, spec.unit, spec.decimals),
                change=format_change(pair.current, pair.previous, spec.inverse),
            )
        )
    return cards
