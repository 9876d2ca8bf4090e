"""
View Assembly

Builds the read models behind each dashboard panel from row-source queries:
- KPI cards from the current snapshot
- production and population trend series
- the systems overview table
- the water-quality rating for a window
- the data-entry context (reference lists and recent entries)

Independent queries for one view run concurrently. A failed branch falls
back to its empty default and never takes its siblings down with it.
"""

import asyncio
import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Generic, List, Mapping, Optional, TypeVar

import structlog

from aquametrics.config.settings import get_settings
from aquametrics.database.models import TimePeriod
from aquametrics.metrics.periods import to_period
from aquametrics.metrics.ratios import biomass_density, rating_label, water_quality_rating
from aquametrics.metrics.snapshot import DashboardFilters, KpiCard, Snapshot, build_kpi_cards
from aquametrics.metrics.trends import (
    POPULATION_TREND,
    PRODUCTION_TREND,
    TrendPoint,
    TrendSpec,
    build_trend_series,
    latest_totals,
    within_window,
)
from aquametrics.services.queries import (
    RECENT_ENTRY_COLLECTIONS,
    fetch_dashboard_snapshot,
    fetch_feeds,
    fetch_production_summary,
    fetch_recent_entries,
    fetch_suppliers,
    fetch_systems,
    fetch_systems_list,
    fetch_water_quality_ratings,
)
from aquametrics.sources.base import QueryResult, RowSource
from aquametrics.sources.records import (
    ProductionSummaryRecord,
    WaterQualityRatingRecord,
    parse_rows,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _resolve_period(filters: DashboardFilters) -> TimePeriod:
    return filters.time_period or to_period(get_settings().metrics.default_time_period)


def _today() -> dt.date:
    return dt.date.today()


# =============================================================================
# FAN-OUT / FAN-IN
# =============================================================================

async def gather_with_defaults(
    branches: Mapping[str, Awaitable[Any]],
    defaults: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Await independent branches concurrently.

    A branch that raises, or returns a failed QueryResult, resolves to its
    default (``[]`` unless given). A successful QueryResult resolves to its
    rows; any other value is passed through.
    """
    defaults = defaults or {}
    names = list(branches)
    outcomes = await asyncio.gather(*branches.values(), return_exceptions=True)

    resolved: Dict[str, Any] = {}
    for name, outcome in zip(names, outcomes):
        default = defaults.get(name, [])
        if isinstance(outcome, BaseException):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            logger.warning("View branch failed", branch=name, error=str(outcome))
            resolved[name] = default
        elif isinstance(outcome, QueryResult):
            if not outcome.ok:
                logger.warning("View branch query failed", branch=name, error=outcome.error)
            resolved[name] = outcome.data if outcome.ok else default
        else:
            resolved[name] = outcome
    return resolved


@dataclass
class GenerationResult(Generic[T]):
    """A load's value, flagged stale when a newer load or close superseded it"""
    generation: int
    value: Optional[T] = None
    stale: bool = False


class RequestGeneration:
    """
    Keeps only the newest load's result.

    Every ``run`` starts a new generation and cancels the previous load if it
    is still in flight. A result that comes back after a newer ``run`` or
    after ``close`` is marked stale and must not be applied.

    Example:
        guard = RequestGeneration()
        outcome = await guard.run(lambda: load_kpi_view(source, filters))
        if not outcome.stale:
            render(outcome.value)
    """

    def __init__(self):
        self._generation = 0
        self._task: Optional["asyncio.Task[Any]"] = None
        self._closed = False

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def closed(self) -> bool:
        return self._closed

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    async def run(self, load: Callable[[], Awaitable[T]]) -> GenerationResult[T]:
        if self._closed:
            return GenerationResult(generation=self._generation, stale=True)

        self._generation += 1
        generation = self._generation
        if self._task is not None and not self._task.done():
            self._task.cancel()

        task = asyncio.ensure_future(load())
        self._task = task
        try:
            value = await task
        except asyncio.CancelledError:
            if task.cancelled() and not self._is_current(generation):
                logger.debug("Superseded load cancelled", generation=generation)
                return GenerationResult(generation=generation, stale=True)
            raise

        if not self._is_current(generation):
            logger.debug("Discarding stale load result", generation=generation, current=self._generation)
            return GenerationResult(generation=generation, stale=True)
        return GenerationResult(generation=generation, value=value)

    def close(self) -> None:
        """Mark the consumer gone; in-flight and later results are discarded"""
        self._closed = True
        if self._task is not None and not self._task.done():
            self._task.cancel()


# =============================================================================
# KPI
# =============================================================================

@dataclass
class KpiView:
    snapshot: Optional[Snapshot]
    cards: List[KpiCard]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "snapshot": self.snapshot.to_dict() if self.snapshot else None,
            "cards": [card.to_dict() for card in self.cards],
        }


async def load_kpi_view(source: RowSource, filters: DashboardFilters) -> KpiView:
    snapshot = await fetch_dashboard_snapshot(source, filters)
    return KpiView(snapshot=snapshot, cards=build_kpi_cards(snapshot))


# =============================================================================
# TRENDS
# =============================================================================

@dataclass
class TrendView:
    time_period: TimePeriod
    series: List[TrendPoint]
    latest: Optional[TrendPoint] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time_period": self.time_period.value,
            "series": [point.to_dict() for point in self.series],
            "latest": self.latest.to_dict() if self.latest else None,
        }


async def _load_trend(
    source: RowSource,
    filters: DashboardFilters,
    spec: TrendSpec,
    reference: Optional[dt.date],
) -> TrendView:
    period = _resolve_period(filters)
    result = await fetch_production_summary(
        source,
        filters,
        limit=get_settings().metrics.trend_page_size,
    )
    rows = parse_rows(ProductionSummaryRecord, result.data, collection="production_summary").records
    series = build_trend_series(rows, period, reference or _today(), spec)
    return TrendView(time_period=period, series=series, latest=latest_totals(series))


async def load_production_trend(
    source: RowSource,
    filters: DashboardFilters,
    reference: Optional[dt.date] = None,
) -> TrendView:
    """Biomass, feed, fish, mortality and mean eFCR per date"""
    return await _load_trend(source, filters, PRODUCTION_TREND, reference)


async def load_population_trend(
    source: RowSource,
    filters: DashboardFilters,
    reference: Optional[dt.date] = None,
) -> TrendView:
    """Fish inventory per date"""
    return await _load_trend(source, filters, POPULATION_TREND, reference)


# =============================================================================
# SYSTEMS OVERVIEW
# =============================================================================

@dataclass
class SystemOverviewRow:
    """Latest production state of one system"""
    system_id: int
    name: str
    growth_stage: Optional[str]
    date: Optional[dt.date]
    efcr: Optional[float]
    average_body_weight: Optional[float]
    total_feed: Optional[float]
    daily_mortality: Optional[float]
    biomass_density: Optional[float]
    water_quality: Optional[str]

    @classmethod
    def from_record(cls, record: ProductionSummaryRecord) -> "SystemOverviewRow":
        density = record.biomass_density
        if density is None:
            density = biomass_density(record.total_biomass, record.system_volume)
        label = rating_label(record.water_quality_rating)
        return cls(
            system_id=record.system_id,
            name=record.system_name or str(record.system_id),
            growth_stage=record.growth_stage.value if record.growth_stage else None,
            date=record.day,
            efcr=record.efcr_period,
            average_body_weight=record.average_body_weight,
            total_feed=record.total_feed_amount_period,
            daily_mortality=record.daily_mortality_count,
            biomass_density=density,
            water_quality=label.value if label else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "system_id": self.system_id,
            "name": self.name,
            "growth_stage": self.growth_stage,
            "date": self.date.isoformat() if self.date else None,
            "efcr": self.efcr,
            "average_body_weight": self.average_body_weight,
            "total_feed": self.total_feed,
            "daily_mortality": self.daily_mortality,
            "biomass_density": self.biomass_density,
            "water_quality": self.water_quality,
        }


def latest_per_system(records: List[ProductionSummaryRecord]) -> List[SystemOverviewRow]:
    """
    First row per system from newest-first rows, ordered by system name.

    Rows without a system id are ignored.
    """
    latest: Dict[int, ProductionSummaryRecord] = {}
    for record in records:
        if record.system_id is None:
            continue
        latest.setdefault(record.system_id, record)

    rows = [SystemOverviewRow.from_record(record) for record in latest.values()]
    rows.sort(key=lambda row: (row.name.casefold(), row.system_id))
    return rows


async def load_systems_overview(source: RowSource, filters: DashboardFilters) -> List[SystemOverviewRow]:
    result = await fetch_systems(source, filters)
    records = parse_rows(ProductionSummaryRecord, result.data, collection="production_summary").records
    return latest_per_system(records)


# =============================================================================
# WATER QUALITY
# =============================================================================

@dataclass
class WaterQualityView:
    time_period: TimePeriod
    rating: Optional[float]
    label: Optional[str]
    days: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time_period": self.time_period.value,
            "rating": self.rating,
            "label": self.label,
            "days": self.days,
        }


async def load_water_quality_rating(
    source: RowSource,
    filters: DashboardFilters,
    reference: Optional[dt.date] = None,
) -> WaterQualityView:
    """Mean daily rating over the window; unavailable when no day was rated"""
    period = _resolve_period(filters)
    result = await fetch_water_quality_ratings(source, system_id=filters.system_id)
    records = parse_rows(WaterQualityRatingRecord, result.data, collection="daily_water_quality_rating").records
    in_window = within_window(records, period, reference or _today(), date_field="rating_date")

    rating = water_quality_rating(
        record.rating_numeric if record.rating_numeric is not None else record.rating
        for record in in_window
    )
    label = rating_label(rating)
    return WaterQualityView(
        time_period=period,
        rating=rating,
        label=label.value if label else None,
        days=len(in_window),
    )


# =============================================================================
# COMPOSITE VIEWS
# =============================================================================

@dataclass
class DataEntryContext:
    """Reference lists and recent entries for the data-entry screen"""
    systems: List[Dict[str, Any]] = field(default_factory=list)
    suppliers: List[Dict[str, Any]] = field(default_factory=list)
    feeds: List[Dict[str, Any]] = field(default_factory=list)
    recent_entries: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "systems": self.systems,
            "suppliers": self.suppliers,
            "feeds": self.feeds,
            "recent_entries": self.recent_entries,
        }


async def load_data_entry_context(source: RowSource, limit: Optional[int] = None) -> DataEntryContext:
    """Load the systems, suppliers, feeds and every recent-entry list at once"""
    branches: Dict[str, Awaitable[Any]] = {
        "systems": fetch_systems_list(source),
        "suppliers": fetch_suppliers(source),
        "feeds": fetch_feeds(source),
    }
    for name, collection in RECENT_ENTRY_COLLECTIONS.items():
        branches[f"recent:{name}"] = fetch_recent_entries(source, collection, limit)

    loaded = await gather_with_defaults(branches)
    return DataEntryContext(
        systems=loaded["systems"],
        suppliers=loaded["suppliers"],
        feeds=loaded["feeds"],
        recent_entries={name: loaded[f"recent:{name}"] for name in RECENT_ENTRY_COLLECTIONS},
    )


async def load_dashboard(
    source: RowSource,
    filters: DashboardFilters,
    reference: Optional[dt.date] = None,
) -> Dict[str, Any]:
    """Every dashboard panel for one set of filters"""
    period = _resolve_period(filters)
    loaded = await gather_with_defaults(
        {
            "kpis": load_kpi_view(source, filters),
            "production": load_production_trend(source, filters, reference),
            "population": load_population_trend(source, filters, reference),
            "systems": load_systems_overview(source, filters),
            "water_quality": load_water_quality_rating(source, filters, reference),
        },
        defaults={
            "kpis": KpiView(snapshot=None, cards=build_kpi_cards(None)),
            "production": TrendView(time_period=period, series=[]),
            "population": TrendView(time_period=period, series=[]),
            "systems": [],
            "water_quality": WaterQualityView(time_period=period, rating=None, label=None, days=0),
        },
    )
    return {
        "kpis": loaded["kpis"].to_dict(),
        "production": loaded["production"].to_dict(),
        "population": loaded["population"].to_dict(),
        "systems": [row.to_dict() for row in loaded["systems"]],
        "water_quality": loaded["water_quality"].to_dict(),
    }
