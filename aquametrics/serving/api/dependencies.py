"""
API Dependencies
"""

from typing import Optional

from fastapi import HTTPException, Query, Request
import structlog

from aquametrics.database.models import GrowthStage, TimePeriod
from aquametrics.metrics.snapshot import DashboardFilters
from aquametrics.sources import RowSource, create_row_source

logger = structlog.get_logger(__name__)


def get_row_source(request: Request) -> RowSource:
    """Row source created at startup, or a fresh one from settings"""
    source = getattr(request.app.state, "row_source", None)
    if source is None:
        try:
            source = create_row_source()
        except RuntimeError as e:
            logger.error("Row source unavailable", error=str(e))
            raise HTTPException(status_code=503, detail="Row source unavailable") from e
        request.app.state.row_source = source
    return source


def get_filters(
    system_id: Optional[int] = Query(default=None, ge=1, description="Restrict to one system"),
    growth_stage: Optional[GrowthStage] = Query(default=None, description="nursing or grow_out"),
    time_period: Optional[TimePeriod] = Query(default=None, description="Reporting window"),
) -> DashboardFilters:
    return DashboardFilters(system_id=system_id, growth_stage=growth_stage, time_period=time_period)
