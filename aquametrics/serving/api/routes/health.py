"""
Health Check Endpoints

Liveness and readiness of the API and its row source.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from aquametrics.config import get_settings
from aquametrics.database.connection import check_database_health
from aquametrics.serving.api.dependencies import get_row_source
from aquametrics.sources import RowSource, SqlRowSource

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


async def _row_source_check(source: RowSource) -> Dict[str, Any]:
    if isinstance(source, SqlRowSource):
        return await check_database_health(source.engine)

    result = await source.fetch("systems", limit=1)
    if result.ok:
        return {"status": "healthy", "backend": "rest"}
    return {"status": "unhealthy", "backend": "rest", "error": result.error}


@router.get("/health", response_model=HealthResponse)
async def health_check(source: RowSource = Depends(get_row_source)) -> HealthResponse:
    """
    Health check endpoint.

    Reports degraded when the row source cannot be reached; the API itself
    keeps answering with empty views in that state.
    """
    settings = get_settings()
    checks = {"row_source": await _row_source_check(source)}
    status = "healthy" if checks["row_source"].get("status") == "healthy" else "degraded"

    return HealthResponse(
        status=status,
        version=settings.version,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """Returns 200 while the process is running."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(response: Response, source: RowSource = Depends(get_row_source)) -> Dict[str, str]:
    """Returns 503 until the row source answers."""
    check = await _row_source_check(source)
    if check.get("status") != "healthy":
        response.status_code = 503
        return {"status": "not_ready", "reason": check.get("error", "row_source_unavailable")}
    return {"status": "ready"}
