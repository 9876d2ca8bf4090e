"""
Database Models - Farm Operations Schema

Declares the collections the metrics engine reads from and writes to. The
schema has three groups:

Event Tables (written by data entry, read-only for the engine):
- stocking_events, feeding_events, mortality_events, sampling_events,
  transfer_events, harvest_events, water_quality_events, incoming_feed_events

Reference Tables:
- systems, suppliers, feeds_metadata

Derived Views (materialized upstream, rolled up further by the engine):
- production_summary: per-system-per-day inventory, feed and biomass
- dashboard / dashboard_consolidated: per-system and farm-wide snapshots
- daily_water_quality_rating, water_quality_measurement

The views have no surrogate keys; their primary keys below are the natural
keys and exist only to satisfy the ORM mapping.
"""

import datetime as dt
from enum import Enum
from typing import Optional
import uuid

from sqlalchemy import (
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


def _new_id() -> str:
    return str(uuid.uuid4())


# =============================================================================
# ENUMERATIONS
# =============================================================================

class GrowthStage(str, Enum):
    """Lifecycle phase of a system's stock"""
    NURSING = "nursing"
    GROW_OUT = "grow_out"


class TimePeriod(str, Enum):
    """Selectable reporting windows"""
    DAY = "day"
    WEEK = "week"
    TWO_WEEKS = "2 weeks"
    MONTH = "month"
    QUARTER = "quarter"
    SIX_MONTHS = "6 months"
    YEAR = "year"


class WaterQualityRating(str, Enum):
    """Daily water-quality category, best to worst"""
    OPTIMAL = "optimal"
    ACCEPTABLE = "acceptable"
    CRITICAL = "critical"
    LETHAL = "lethal"


class WaterQualityParameter(str, Enum):
    """Measured water-quality parameters"""
    PH = "pH"
    TEMPERATURE = "temperature"
    DISSOLVED_OXYGEN = "dissolved_oxygen"
    SECCHI_DISK_DEPTH = "secchi_disk_depth"
    NITRITE = "nitrite"
    NITRATE = "nitrate"
    AMMONIA_AMMONIUM = "ammonia_ammonium"
    SALINITY = "salinity"


# =============================================================================
# REFERENCE TABLES
# =============================================================================

class System(Base):
    """
    Production Unit Table

    A cage, pond or tank. Geometry is the denominator for biomass density.
    """
    __tablename__ = "systems"

    system_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(100))
    system_type: Mapped[Optional[str]] = mapped_column(String(30))
    growth_stage: Mapped[Optional[str]] = mapped_column(String(20))
    volume: Mapped[Optional[float]] = mapped_column(Float)
    depth: Mapped[Optional[float]] = mapped_column(Float)
    length: Mapped[Optional[float]] = mapped_column(Float)
    width: Mapped[Optional[float]] = mapped_column(Float)
    diameter: Mapped[Optional[float]] = mapped_column(Float)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, server_default=func.now())


class Supplier(Base):
    """Fingerling and feed suppliers"""
    __tablename__ = "suppliers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, server_default=func.now())


class FeedMetadata(Base):
    """Feed catalog"""
    __tablename__ = "feeds_metadata"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    feed_name: Mapped[str] = mapped_column(String(100), nullable=False)
    feed_category: Mapped[Optional[str]] = mapped_column(String(30))
    pellet_size: Mapped[Optional[str]] = mapped_column(String(20))
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, server_default=func.now())


# =============================================================================
# EVENT TABLES
# =============================================================================

class StockingEvent(Base):
    """Fish stocked into a system"""
    __tablename__ = "stocking_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    system_id: Mapped[str] = mapped_column(String(50), nullable=False)
    stocking_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    number_of_fish: Mapped[int] = mapped_column(Integer, nullable=False)
    total_weight_kg: Mapped[float] = mapped_column(Float, nullable=False)
    average_body_weight_g: Mapped[float] = mapped_column(Float, nullable=False)
    source: Mapped[Optional[str]] = mapped_column(String(100))
    created_by: Mapped[Optional[str]] = mapped_column(String(36))
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        Index("ix_stocking_events_system_date", "system_id", "stocking_date"),
    )


class FeedingEvent(Base):
    """Feed given to a system on a day"""
    __tablename__ = "feeding_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    system_id: Mapped[Optional[str]] = mapped_column(String(50))
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    amount: Mapped[Optional[float]] = mapped_column(Float)  # kg
    feed_id: Mapped[Optional[str]] = mapped_column(String(36))
    feeding_response: Mapped[Optional[str]] = mapped_column(String(20))
    created_by: Mapped[Optional[str]] = mapped_column(String(36))
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        Index("ix_feeding_events_system_date", "system_id", "date"),
    )


class MortalityEvent(Base):
    """Dead fish counted in a system"""
    __tablename__ = "mortality_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    system_id: Mapped[Optional[str]] = mapped_column(String(50))
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    number_of_fish: Mapped[Optional[int]] = mapped_column(Integer)
    total_weight: Mapped[Optional[float]] = mapped_column(Float)
    average_body_weight: Mapped[Optional[float]] = mapped_column(Float)
    created_by: Mapped[Optional[str]] = mapped_column(String(36))
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, server_default=func.now())


class SamplingEvent(Base):
    """Weight sample taken from a system"""
    __tablename__ = "sampling_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    system_id: Mapped[Optional[str]] = mapped_column(String(50))
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    number_of_samples: Mapped[Optional[int]] = mapped_column(Integer)
    total_weight: Mapped[Optional[float]] = mapped_column(Float)
    average_body_weight: Mapped[Optional[float]] = mapped_column(Float)
    created_by: Mapped[Optional[str]] = mapped_column(String(36))
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, server_default=func.now())


class TransferEvent(Base):
    """Fish moved between two systems"""
    __tablename__ = "transfer_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    origin_system_id: Mapped[Optional[str]] = mapped_column(String(50))
    target_system_id: Mapped[Optional[str]] = mapped_column(String(50))
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    number_of_fish: Mapped[Optional[int]] = mapped_column(Integer)
    total_weight: Mapped[Optional[float]] = mapped_column(Float)
    average_body_weight: Mapped[Optional[float]] = mapped_column(Float)
    created_by: Mapped[Optional[str]] = mapped_column(String(36))
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, server_default=func.now())


class HarvestEvent(Base):
    """Fish removed from a system for sale"""
    __tablename__ = "harvest_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    system_id: Mapped[Optional[str]] = mapped_column(String(50))
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    number_of_fish: Mapped[Optional[int]] = mapped_column(Integer)
    total_weight: Mapped[Optional[float]] = mapped_column(Float)
    type_of_harvest: Mapped[Optional[str]] = mapped_column(String(10))
    created_by: Mapped[Optional[str]] = mapped_column(String(36))
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, server_default=func.now())


class WaterQualityEvent(Base):
    """Daily water-quality readings for a system"""
    __tablename__ = "water_quality_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    system_id: Mapped[Optional[str]] = mapped_column(String(50))
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    dissolved_oxygen: Mapped[Optional[float]] = mapped_column(Float)
    total_ammonia: Mapped[Optional[float]] = mapped_column(Float)
    no2: Mapped[Optional[float]] = mapped_column(Float)
    no3: Mapped[Optional[float]] = mapped_column(Float)
    temperature: Mapped[Optional[float]] = mapped_column(Float)
    ph: Mapped[Optional[float]] = mapped_column(Float)
    secchi_disk: Mapped[Optional[float]] = mapped_column(Float)
    salinity: Mapped[Optional[float]] = mapped_column(Float)
    created_by: Mapped[Optional[str]] = mapped_column(String(36))
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, server_default=func.now())


class IncomingFeedEvent(Base):
    """Feed delivered to the farm"""
    __tablename__ = "incoming_feed_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    feed_id: Mapped[Optional[str]] = mapped_column(String(36))
    date_of_arrival: Mapped[dt.date] = mapped_column(Date, nullable=False)
    amount: Mapped[Optional[float]] = mapped_column(Float)
    created_by: Mapped[Optional[str]] = mapped_column(String(36))
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, server_default=func.now())


# =============================================================================
# DERIVED VIEWS
# =============================================================================

class ProductionSummary(Base):
    """
    Per-System Daily Production Rollup

    The finest-grained fact the engine aggregates. One row per system per day.
    """
    __tablename__ = "production_summary"

    system_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    date: Mapped[dt.date] = mapped_column(Date, primary_key=True)
    system_name: Mapped[Optional[str]] = mapped_column(String(100))
    growth_stage: Mapped[Optional[str]] = mapped_column(String(20))
    number_of_fish_inventory: Mapped[Optional[float]] = mapped_column(Float)
    total_biomass: Mapped[Optional[float]] = mapped_column(Float)  # kg
    total_feed_amount_period: Mapped[Optional[float]] = mapped_column(Float)  # kg
    feeding_amount_aggregated: Mapped[Optional[float]] = mapped_column(Float)
    efcr_period: Mapped[Optional[float]] = mapped_column(Float)
    daily_mortality_count: Mapped[Optional[float]] = mapped_column(Float)
    cumulative_mortality: Mapped[Optional[float]] = mapped_column(Float)
    daily_biomass_gain: Mapped[Optional[float]] = mapped_column(Float)
    average_body_weight: Mapped[Optional[float]] = mapped_column(Float)  # g
    biomass_density: Mapped[Optional[float]] = mapped_column(Float)
    system_volume: Mapped[Optional[float]] = mapped_column(Float)
    water_quality_rating: Mapped[Optional[float]] = mapped_column(Float)


class DashboardSnapshot(Base):
    """Per-system KPI snapshot for a time period"""
    __tablename__ = "dashboard"

    system_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    time_period: Mapped[str] = mapped_column(String(20), primary_key=True)
    growth_stage: Mapped[Optional[str]] = mapped_column(String(20))
    input_start_date: Mapped[Optional[dt.date]] = mapped_column(Date)
    input_end_date: Mapped[Optional[dt.date]] = mapped_column(Date)
    efcr: Mapped[Optional[float]] = mapped_column(Float)
    prev_efcr: Mapped[Optional[float]] = mapped_column(Float)
    mortality_rate: Mapped[Optional[float]] = mapped_column(Float)
    prev_mortality_rate: Mapped[Optional[float]] = mapped_column(Float)
    average_biomass: Mapped[Optional[float]] = mapped_column(Float)
    prev_average_biomass: Mapped[Optional[float]] = mapped_column(Float)
    water_quality_rating_numeric_average: Mapped[Optional[float]] = mapped_column(Float)
    prev_water_quality_rating_numeric_average: Mapped[Optional[float]] = mapped_column(Float)
    abw: Mapped[Optional[float]] = mapped_column(Float)
    total_feed: Mapped[Optional[float]] = mapped_column(Float)
    start_stock: Mapped[Optional[float]] = mapped_column(Float)


class DashboardConsolidated(Base):
    """Farm-wide KPI snapshot per growth-stage scope and time period"""
    __tablename__ = "dashboard_consolidated"

    growth_stage_scope: Mapped[str] = mapped_column(String(20), primary_key=True)
    time_period: Mapped[str] = mapped_column(String(20), primary_key=True)
    input_end_date: Mapped[dt.date] = mapped_column(Date, primary_key=True)
    input_start_date: Mapped[Optional[dt.date]] = mapped_column(Date)
    efcr_period_consolidated: Mapped[Optional[float]] = mapped_column(Float)
    prev_efcr_period_consolidated: Mapped[Optional[float]] = mapped_column(Float)
    mortality_rate: Mapped[Optional[float]] = mapped_column(Float)
    prev_mortality_rate: Mapped[Optional[float]] = mapped_column(Float)
    average_biomass: Mapped[Optional[float]] = mapped_column(Float)
    prev_average_biomass: Mapped[Optional[float]] = mapped_column(Float)
    water_quality_rating_numeric_average: Mapped[Optional[float]] = mapped_column(Float)
    prev_water_quality_rating_numeric_average: Mapped[Optional[float]] = mapped_column(Float)

    __table_args__ = (
        Index("ix_dashboard_consolidated_end", "input_end_date"),
    )


class DailyWaterQualityRating(Base):
    """Daily categorical water-quality rating per system"""
    __tablename__ = "daily_water_quality_rating"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    system_id: Mapped[int] = mapped_column(Integer, nullable=False)
    rating_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    rating: Mapped[str] = mapped_column(String(20), nullable=False)
    rating_numeric: Mapped[Optional[float]] = mapped_column(Float)
    worst_parameter: Mapped[Optional[str]] = mapped_column(String(30))
    worst_parameter_value: Mapped[Optional[float]] = mapped_column(Float)
    worst_parameter_unit: Mapped[Optional[str]] = mapped_column(String(10))
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, server_default=func.now())


class WaterQualityMeasurement(Base):
    """Individual parameter readings"""
    __tablename__ = "water_quality_measurement"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    system_id: Mapped[int] = mapped_column(Integer, nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    time: Mapped[Optional[str]] = mapped_column(String(8))
    parameter_name: Mapped[str] = mapped_column(String(30), nullable=False)
    parameter_value: Mapped[Optional[float]] = mapped_column(Float)
    unit: Mapped[Optional[str]] = mapped_column(String(10))
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, server_default=func.now())
