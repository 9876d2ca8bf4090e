"""
Validated Row Records

Typed records for every collection the engine reads. Rows arriving from the
persistence boundary are loosely-typed mappings; they are validated here
before any aggregation touches them.

Validation policy:
- Numeric payload fields that are missing, non-numeric or non-finite become
  None (handled downstream by the skip/zero policies).
- Shape or invariant violations (unknown growth stage, non-integer system id,
  negative counts or weights) quarantine the whole row.
- Date fields keep unparseable strings as-is so windowing can decide on them.
"""

import datetime as dt
import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, ClassVar, Dict, Generic, Iterable, List, Mapping, Optional, Tuple, Type, TypeVar, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from aquametrics.database.models import GrowthStage, WaterQualityRating
from aquametrics.metrics.periods import parse_day

logger = structlog.get_logger(__name__)

RecordT = TypeVar("RecordT", bound="Record")

DateValue = Optional[Union[dt.date, str]]


def coerce_number(value: Any) -> Optional[float]:
    """Convert a raw field value to a finite float, or None"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().replace(",", ""))
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def coerce_date(value: Any) -> DateValue:
    """Parse a date value, keeping unparseable text verbatim"""
    if value is None:
        return None
    parsed = parse_day(value)
    if parsed is not None:
        return parsed
    text = str(value).strip()
    return text or None


class Record(BaseModel):
    """Base class for collection records"""

    model_config = ConfigDict(extra="ignore", frozen=True)

    def get(self, name: str, default: Any = None) -> Any:
        return getattr(self, name, default)


# =============================================================================
# DERIVED VIEWS
# =============================================================================

class ProductionSummaryRecord(Record):
    """One system on one day"""

    system_id: Optional[int] = None
    system_name: Optional[str] = None
    growth_stage: Optional[GrowthStage] = None
    date: DateValue = None

    number_of_fish_inventory: Optional[float] = Field(default=None, ge=0)
    total_biomass: Optional[float] = Field(default=None, ge=0)
    total_feed_amount_period: Optional[float] = Field(default=None, ge=0)
    feeding_amount_aggregated: Optional[float] = Field(default=None, ge=0)
    efcr_period: Optional[float] = None
    daily_mortality_count: Optional[float] = Field(default=None, ge=0)
    cumulative_mortality: Optional[float] = Field(default=None, ge=0)
    daily_biomass_gain: Optional[float] = None
    average_body_weight: Optional[float] = Field(default=None, ge=0)
    biomass_density: Optional[float] = Field(default=None, ge=0)
    system_volume: Optional[float] = Field(default=None, ge=0)
    water_quality_rating: Optional[float] = None

    @field_validator(
        "number_of_fish_inventory",
        "total_biomass",
        "total_feed_amount_period",
        "feeding_amount_aggregated",
        "efcr_period",
        "daily_mortality_count",
        "cumulative_mortality",
        "daily_biomass_gain",
        "average_body_weight",
        "biomass_density",
        "system_volume",
        "water_quality_rating",
        mode="before",
    )
    @classmethod
    def coerce_numbers(cls, v: Any) -> Optional[float]:
        return coerce_number(v)

    @field_validator("date", mode="before")
    @classmethod
    def coerce_dates(cls, v: Any) -> DateValue:
        return coerce_date(v)

    @property
    def day(self) -> Optional[dt.date]:
        """The row's date when it parsed, else None"""
        return self.date if isinstance(self.date, dt.date) else None


class _SnapshotFields(Record):
    """Current and previous period values shared by both snapshot views"""

    time_period: Optional[str] = None
    input_start_date: Optional[dt.date] = None
    input_end_date: Optional[dt.date] = None

    mortality_rate: Optional[float] = None
    prev_mortality_rate: Optional[float] = None
    average_biomass: Optional[float] = None
    prev_average_biomass: Optional[float] = None
    water_quality_rating_numeric_average: Optional[float] = None
    prev_water_quality_rating_numeric_average: Optional[float] = None

    @field_validator("input_start_date", "input_end_date", mode="before")
    @classmethod
    def parse_period_bounds(cls, v: Any) -> Optional[dt.date]:
        return parse_day(v)

    @field_validator(
        "mortality_rate", "prev_mortality_rate",
        "average_biomass", "prev_average_biomass",
        "water_quality_rating_numeric_average", "prev_water_quality_rating_numeric_average",
        mode="before",
    )
    @classmethod
    def coerce_shared_numbers(cls, v: Any) -> Optional[float]:
        return coerce_number(v)


class DashboardRecord(_SnapshotFields):
    """Per-system snapshot row"""

    system_id: Optional[int] = None
    growth_stage: Optional[GrowthStage] = None

    efcr: Optional[float] = None
    prev_efcr: Optional[float] = None
    abw: Optional[float] = None
    total_feed: Optional[float] = None
    start_stock: Optional[float] = None

    @field_validator("efcr", "prev_efcr", "abw", "total_feed", "start_stock", mode="before")
    @classmethod
    def coerce_numbers(cls, v: Any) -> Optional[float]:
        return coerce_number(v)


class ConsolidatedDashboardRecord(_SnapshotFields):
    """Farm-wide snapshot row"""

    growth_stage_scope: str = "all"

    efcr_period_consolidated: Optional[float] = None
    prev_efcr_period_consolidated: Optional[float] = None

    @field_validator("efcr_period_consolidated", "prev_efcr_period_consolidated", mode="before")
    @classmethod
    def coerce_numbers(cls, v: Any) -> Optional[float]:
        return coerce_number(v)


class WaterQualityRatingRecord(Record):
    """Daily categorical rating for a system"""

    system_id: int
    rating_date: DateValue = None
    rating: WaterQualityRating
    rating_numeric: Optional[float] = None
    worst_parameter: Optional[str] = None
    worst_parameter_value: Optional[float] = None
    worst_parameter_unit: Optional[str] = None

    @field_validator("rating_numeric", "worst_parameter_value", mode="before")
    @classmethod
    def coerce_numbers(cls, v: Any) -> Optional[float]:
        return coerce_number(v)

    @field_validator("rating_date", mode="before")
    @classmethod
    def coerce_dates(cls, v: Any) -> DateValue:
        return coerce_date(v)


class WaterQualityMeasurementRecord(Record):
    """A single parameter reading"""

    system_id: int
    date: DateValue = None
    time: Optional[str] = None
    parameter_name: str
    parameter_value: Optional[float] = None
    unit: Optional[str] = None

    @field_validator("parameter_value", mode="before")
    @classmethod
    def coerce_numbers(cls, v: Any) -> Optional[float]:
        return coerce_number(v)

    @field_validator("date", mode="before")
    @classmethod
    def coerce_dates(cls, v: Any) -> DateValue:
        return coerce_date(v)


# =============================================================================
# REFERENCE AND EVENT TABLES
# =============================================================================

class SystemRecord(Record):
    """A production unit and its geometry"""

    system_id: str
    name: Optional[str] = None
    system_type: Optional[str] = None
    growth_stage: Optional[GrowthStage] = None
    volume: Optional[float] = Field(default=None, ge=0)
    depth: Optional[float] = Field(default=None, ge=0)
    length: Optional[float] = Field(default=None, ge=0)
    width: Optional[float] = Field(default=None, ge=0)
    diameter: Optional[float] = Field(default=None, ge=0)

    @field_validator("system_id", mode="before")
    @classmethod
    def stringify_system_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    @field_validator("volume", "depth", "length", "width", "diameter", mode="before")
    @classmethod
    def coerce_numbers(cls, v: Any) -> Optional[float]:
        return coerce_number(v)


class EventRecord(Record):
    """
    Fields shared by all data-entry events.

    Subclasses list their numeric and date fields; those are coerced before
    validation with the same rules as the derived views.
    """

    numeric_fields: ClassVar[Tuple[str, ...]] = ()
    date_fields: ClassVar[Tuple[str, ...]] = ("date",)
    id_fields: ClassVar[Tuple[str, ...]] = ("system_id", "origin_system_id", "target_system_id", "feed_id")

    id: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[dt.datetime] = None

    @model_validator(mode="before")
    @classmethod
    def coerce_payload(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for name in cls.numeric_fields:
            if name in data:
                data[name] = coerce_number(data[name])
        for name in cls.date_fields:
            if name in data:
                data[name] = coerce_date(data[name])
        for name in cls.id_fields:
            if isinstance(data.get(name), int) and not isinstance(data[name], bool):
                data[name] = str(data[name])
        return data

    @field_validator("id", "created_by", mode="before")
    @classmethod
    def stringify_ids(cls, v: Any) -> Any:
        return str(v) if v is not None else None


class StockingEventRecord(EventRecord):
    numeric_fields = ("number_of_fish", "total_weight_kg", "average_body_weight_g")
    date_fields = ("stocking_date",)

    system_id: str
    stocking_date: DateValue = None
    number_of_fish: Optional[float] = Field(default=None, ge=0)
    total_weight_kg: Optional[float] = Field(default=None, ge=0)
    average_body_weight_g: Optional[float] = Field(default=None, ge=0)
    source: Optional[str] = None


class FeedingEventRecord(EventRecord):
    numeric_fields = ("amount",)

    system_id: Optional[str] = None
    date: DateValue = None
    amount: Optional[float] = Field(default=None, ge=0)
    feed_id: Optional[str] = None
    feeding_response: Optional[str] = None


class MortalityEventRecord(EventRecord):
    numeric_fields = ("number_of_fish", "total_weight", "average_body_weight")

    system_id: Optional[str] = None
    date: DateValue = None
    number_of_fish: Optional[float] = Field(default=None, ge=0)
    total_weight: Optional[float] = Field(default=None, ge=0)
    average_body_weight: Optional[float] = Field(default=None, ge=0)


class SamplingEventRecord(EventRecord):
    numeric_fields = ("number_of_samples", "total_weight", "average_body_weight")

    system_id: Optional[str] = None
    date: DateValue = None
    number_of_samples: Optional[float] = Field(default=None, ge=0)
    total_weight: Optional[float] = Field(default=None, ge=0)
    average_body_weight: Optional[float] = Field(default=None, ge=0)


class TransferEventRecord(EventRecord):
    numeric_fields = ("number_of_fish", "total_weight", "average_body_weight")

    origin_system_id: Optional[str] = None
    target_system_id: Optional[str] = None
    date: DateValue = None
    number_of_fish: Optional[float] = Field(default=None, ge=0)
    total_weight: Optional[float] = Field(default=None, ge=0)
    average_body_weight: Optional[float] = Field(default=None, ge=0)


class HarvestEventRecord(EventRecord):
    numeric_fields = ("number_of_fish", "total_weight")

    system_id: Optional[str] = None
    date: DateValue = None
    number_of_fish: Optional[float] = Field(default=None, ge=0)
    total_weight: Optional[float] = Field(default=None, ge=0)
    type_of_harvest: Optional[str] = None


class WaterQualityEventRecord(EventRecord):
    numeric_fields = (
        "dissolved_oxygen", "total_ammonia", "no2", "no3",
        "temperature", "ph", "secchi_disk", "salinity",
    )

    system_id: Optional[str] = None
    date: DateValue = None
    dissolved_oxygen: Optional[float] = None
    total_ammonia: Optional[float] = None
    no2: Optional[float] = None
    no3: Optional[float] = None
    temperature: Optional[float] = None
    ph: Optional[float] = None
    secchi_disk: Optional[float] = None
    salinity: Optional[float] = None


class IncomingFeedEventRecord(EventRecord):
    numeric_fields = ("amount",)
    date_fields = ("date_of_arrival",)

    feed_id: Optional[str] = None
    date_of_arrival: DateValue = None
    amount: Optional[float] = Field(default=None, ge=0)


RECORDS_BY_COLLECTION: Dict[str, Type[Record]] = {
    "production_summary": ProductionSummaryRecord,
    "dashboard": DashboardRecord,
    "dashboard_consolidated": ConsolidatedDashboardRecord,
    "daily_water_quality_rating": WaterQualityRatingRecord,
    "water_quality_measurement": WaterQualityMeasurementRecord,
    "systems": SystemRecord,
    "stocking_events": StockingEventRecord,
    "feeding_events": FeedingEventRecord,
    "mortality_events": MortalityEventRecord,
    "sampling_events": SamplingEventRecord,
    "transfer_events": TransferEventRecord,
    "harvest_events": HarvestEventRecord,
    "water_quality_events": WaterQualityEventRecord,
    "incoming_feed_events": IncomingFeedEventRecord,
}


# =============================================================================
# PARSING
# =============================================================================

@dataclass
class QuarantinedRow:
    """A row that failed shape validation"""
    row: Any
    errors: List[str]


@dataclass
class ParsedRows(Generic[RecordT]):
    """Records that validated plus the rows set aside"""
    records: List[RecordT] = field(default_factory=list)
    quarantined: List[QuarantinedRow] = field(default_factory=list)


def parse_rows(
    model: Type[RecordT],
    rows: Iterable[Any],
    collection: Optional[str] = None,
) -> ParsedRows[RecordT]:
    """
    Validate raw rows into records, quarantining the ones that fail.

    Args:
        model: Record type to validate against
        rows: Raw rows from a row source
        collection: Collection name used in log context

    Returns:
        ParsedRows with validated records in input order
    """
    parsed: ParsedRows[RecordT] = ParsedRows()

    for row in rows:
        if not isinstance(row, Mapping):
            parsed.quarantined.append(QuarantinedRow(row=row, errors=["row is not a mapping"]))
            continue
        try:
            parsed.records.append(model.model_validate(dict(row)))
        except ValidationError as e:
            parsed.quarantined.append(
                QuarantinedRow(
                    row=row,
                    errors=[f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()],
                )
            )

    if parsed.quarantined:
        logger.warning(
            "Rows quarantined",
            collection=collection or model.__name__,
            quarantined=len(parsed.quarantined),
            accepted=len(parsed.records),
            first_error=parsed.quarantined[0].errors[:1],
        )

    return parsed
