"""
Dashboard API Endpoints

Read-only views over the production metrics. Every endpoint answers with an
empty or placeholder view when the row source fails.
"""

import datetime as dt
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
import structlog

from aquametrics.metrics.snapshot import DashboardFilters
from aquametrics.serving.api.dependencies import get_filters, get_row_source
from aquametrics.services import views
from aquametrics.sources import RowSource

router = APIRouter()
logger = structlog.get_logger(__name__)


class ChangeIndicatorModel(BaseModel):
    text: Optional[str]
    trend: str
    status: str


class KpiCardModel(BaseModel):
    key: str
    label: str
    value: Optional[float]
    display: str
    change: ChangeIndicatorModel
    caption: Optional[str] = None


class KpiResponse(BaseModel):
    """KPI cards and the snapshot they came from"""
    snapshot: Optional[Dict[str, Any]]
    cards: List[KpiCardModel]


class TrendResponse(BaseModel):
    """Chronological series, one point per date"""
    time_period: str
    series: List[Dict[str, Any]]
    latest: Optional[Dict[str, Any]]


class SystemRowModel(BaseModel):
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


class WaterQualityResponse(BaseModel):
    time_period: str
    rating: Optional[float]
    label: Optional[str]
    days: int


class DataEntryContextResponse(BaseModel):
    systems: List[Dict[str, Any]]
    suppliers: List[Dict[str, Any]]
    feeds: List[Dict[str, Any]]
    recent_entries: Dict[str, List[Dict[str, Any]]]


@router.get("/dashboard", response_model=Dict[str, Any])
async def get_dashboard(
    reference_date: Optional[dt.date] = Query(default=None, description="End of the window, defaults to today"),
    filters: DashboardFilters = Depends(get_filters),
    source: RowSource = Depends(get_row_source),
) -> Dict[str, Any]:
    """All dashboard panels in one response"""
    return await views.load_dashboard(source, filters, reference_date)


@router.get("/dashboard/kpis", response_model=KpiResponse)
async def get_kpis(
    filters: DashboardFilters = Depends(get_filters),
    source: RowSource = Depends(get_row_source),
) -> Dict[str, Any]:
    """KPI cards for the current snapshot"""
    view = await views.load_kpi_view(source, filters)
    return view.to_dict()


@router.get("/production/trend", response_model=TrendResponse)
async def get_production_trend(
    reference_date: Optional[dt.date] = Query(default=None, description="End of the window, defaults to today"),
    filters: DashboardFilters = Depends(get_filters),
    source: RowSource = Depends(get_row_source),
) -> Dict[str, Any]:
    """Biomass, feed, fish count, mortality and eFCR per date"""
    view = await views.load_production_trend(source, filters, reference_date)
    return view.to_dict()


@router.get("/production/population", response_model=TrendResponse)
async def get_population_trend(
    reference_date: Optional[dt.date] = Query(default=None, description="End of the window, defaults to today"),
    filters: DashboardFilters = Depends(get_filters),
    source: RowSource = Depends(get_row_source),
) -> Dict[str, Any]:
    """Fish inventory per date"""
    view = await views.load_population_trend(source, filters, reference_date)
    return view.to_dict()


@router.get("/systems", response_model=List[SystemRowModel])
async def get_systems(
    filters: DashboardFilters = Depends(get_filters),
    source: RowSource = Depends(get_row_source),
) -> List[Dict[str, Any]]:
    """Latest production state per system, by name"""
    rows = await views.load_systems_overview(source, filters)
    return [row.to_dict() for row in rows]


@router.get("/water-quality/rating", response_model=WaterQualityResponse)
async def get_water_quality_rating(
    reference_date: Optional[dt.date] = Query(default=None, description="End of the window, defaults to today"),
    filters: DashboardFilters = Depends(get_filters),
    source: RowSource = Depends(get_row_source),
) -> Dict[str, Any]:
    """Mean daily water-quality rating over the window"""
    view = await views.load_water_quality_rating(source, filters, reference_date)
    return view.to_dict()


@router.get("/data-entry/context", response_model=DataEntryContextResponse)
async def get_data_entry_context(
    limit: Optional[int] = Query(default=None, ge=1, le=100, description="Rows per recent-entries list"),
    source: RowSource = Depends(get_row_source),
) -> Dict[str, Any]:
    """Reference lists and recent entries for the data-entry screen"""
    context = await views.load_data_entry_context(source, limit)
    return context.to_dict()
