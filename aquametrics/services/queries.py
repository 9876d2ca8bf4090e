"""
Query Functions

The read functions views and endpoints call. Each builds one row-source
request from an explicit filter struct and returns either a QueryResult or a
plain fallback value. None of them raise on a failed query.
"""

from typing import Any, Dict, Mapping, Optional

import structlog

from aquametrics.config.settings import MetricsSettings, get_settings
from aquametrics.metrics.ratios import InvalidComputation, average_body_weight_g
from aquametrics.metrics.snapshot import DashboardFilters, Snapshot, SnapshotSelector
from aquametrics.sources.base import OrderBy, QueryResult, RowSource
from aquametrics.sources.records import StockingEventRecord, WaterQualityMeasurementRecord

logger = structlog.get_logger(__name__)

# Recent-entry lists shown next to the data-entry forms, by list name
RECENT_ENTRY_COLLECTIONS: Dict[str, str] = {
    "mortality": "mortality_events",
    "feeding": "feeding_events",
    "sampling": "sampling_events",
    "transfer": "transfer_events",
    "harvest": "harvest_events",
    "water_quality": "water_quality_events",
    "incoming_feed": "incoming_feed_events",
    "stocking": "stocking_events",
    "systems": "systems",
}

EVENT_DATE_COLUMNS: Dict[str, str] = {
    "stocking_events": "stocking_date",
    "incoming_feed_events": "date_of_arrival",
}

EVENT_SYSTEM_COLUMNS: Dict[str, Optional[str]] = {
    "transfer_events": "origin_system_id",
    "incoming_feed_events": None,
}


def _metrics_settings() -> MetricsSettings:
    return get_settings().metrics


def _filter_eq(filters: Optional[DashboardFilters]) -> Optional[Dict[str, Any]]:
    if filters is None:
        return None
    eq: Dict[str, Any] = {}
    if filters.system_id is not None:
        eq["system_id"] = filters.system_id
    if filters.growth_stage is not None:
        eq["growth_stage"] = filters.growth_stage.value
    return eq or None


# =============================================================================
# DASHBOARD
# =============================================================================

async def fetch_dashboard_snapshot(
    source: RowSource,
    filters: DashboardFilters,
    consolidated_scope: Optional[str] = None,
) -> Optional[Snapshot]:
    """Current snapshot for the filters, or None when there is none or the query failed"""
    scope = consolidated_scope or _metrics_settings().consolidated_scope
    result = await SnapshotSelector(source, consolidated_scope=scope).select(filters)
    if not result.ok:
        logger.warning("Snapshot unavailable", error=result.error, system_id=filters.system_id)
    return result.snapshot


async def fetch_production_summary(
    source: RowSource,
    filters: Optional[DashboardFilters] = None,
    limit: Optional[int] = None,
) -> QueryResult:
    """Production summary rows, newest first"""
    return await source.fetch(
        "production_summary",
        eq=_filter_eq(filters),
        order=OrderBy.desc("date"),
        limit=limit or _metrics_settings().summary_page_size,
    )


async def fetch_systems(
    source: RowSource,
    filters: Optional[DashboardFilters] = None,
    limit: Optional[int] = None,
) -> QueryResult:
    """
    Per-system production rows backing the systems overview, newest first.

    No default limit: the overview needs every system's latest row.
    """
    return await source.fetch(
        "production_summary",
        eq=_filter_eq(filters),
        order=OrderBy.desc("date"),
        limit=limit,
    )


# =============================================================================
# WATER QUALITY
# =============================================================================

async def fetch_water_quality_ratings(
    source: RowSource,
    system_id: Optional[int] = None,
    limit: Optional[int] = None,
) -> QueryResult:
    """Daily water-quality ratings, newest first"""
    return await source.fetch(
        "daily_water_quality_rating",
        eq={"system_id": system_id} if system_id is not None else None,
        order=OrderBy.desc("rating_date"),
        limit=limit or _metrics_settings().rating_page_size,
    )


async def fetch_water_quality_measurements(
    source: RowSource,
    system_id: Optional[int] = None,
    parameter_name: Optional[str] = None,
    limit: Optional[int] = None,
) -> QueryResult:
    """Individual parameter readings, newest first"""
    eq: Dict[str, Any] = {}
    if system_id is not None:
        eq["system_id"] = system_id
    if parameter_name:
        eq["parameter_name"] = parameter_name

    return await source.fetch(
        "water_quality_measurement",
        eq=eq or None,
        order=OrderBy.desc("date"),
        limit=limit or _metrics_settings().measurement_page_size,
    )


async def insert_water_quality_measurement(
    source: RowSource,
    payload: Mapping[str, Any],
) -> QueryResult:
    """Validate and store one parameter reading"""
    try:
        record = WaterQualityMeasurementRecord.model_validate(dict(payload))
    except ValueError as e:
        return QueryResult.failure(f"Invalid water quality measurement: {e}")

    return await source.insert(
        "water_quality_measurement",
        record.model_dump(exclude_none=True),
    )


# =============================================================================
# DATA ENTRY
# =============================================================================

async def fetch_suppliers(source: RowSource) -> QueryResult:
    return await source.fetch("suppliers", order=OrderBy("name"))


async def fetch_feeds(source: RowSource) -> QueryResult:
    return await source.fetch("feeds_metadata", order=OrderBy("feed_name"))


async def fetch_systems_list(source: RowSource) -> QueryResult:
    """Systems for selection lists, by name"""
    return await source.fetch("systems", order=OrderBy("name"))


async def fetch_recent_entries(
    source: RowSource,
    collection: str,
    limit: Optional[int] = None,
) -> QueryResult:
    """Most recently created rows of an event collection"""
    return await source.fetch(
        collection,
        order=OrderBy.desc("created_at"),
        limit=limit or _metrics_settings().recent_entries_limit,
    )


async def fetch_events(
    source: RowSource,
    collection: str,
    system_id: Optional[str] = None,
    limit: Optional[int] = None,
) -> QueryResult:
    """
    Raw events of one collection, newest event date first.

    Transfers are filtered on their origin system; incoming feed has no
    system and ignores ``system_id``.
    """
    date_column = EVENT_DATE_COLUMNS.get(collection, "date")
    system_column = EVENT_SYSTEM_COLUMNS.get(collection, "system_id")
    eq = {system_column: system_id} if system_id is not None and system_column else None

    return await source.fetch(
        collection,
        eq=eq,
        order=OrderBy.desc(date_column),
        limit=limit or _metrics_settings().event_page_size,
    )


async def record_stocking_event(
    source: RowSource,
    payload: Mapping[str, Any],
) -> QueryResult:
    """
    Validate and store a stocking event.

    The average body weight is derived from the batch weight and fish count
    when it is not given.
    """
    try:
        record = StockingEventRecord.model_validate(dict(payload))
    except ValueError as e:
        return QueryResult.failure(f"Invalid stocking event: {e}")

    if record.number_of_fish is None or record.total_weight_kg is None:
        return QueryResult.failure("Invalid stocking event: fish count and batch weight are required")

    row = record.model_dump(exclude_none=True)
    row["number_of_fish"] = int(record.number_of_fish)
    if not record.average_body_weight_g:
        try:
            row["average_body_weight_g"] = round(
                average_body_weight_g(record.total_weight_kg, record.number_of_fish), 2
            )
        except InvalidComputation as e:
            return QueryResult.failure(f"Invalid stocking event: {e}")

    return await source.insert("stocking_events", row)
