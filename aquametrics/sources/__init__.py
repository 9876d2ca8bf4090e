"""
Row Sources

Adapters between the metrics engine and the persistence boundary.
"""
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from aquametrics.config.settings import Settings, get_settings
from aquametrics.sources.base import OrderBy, QueryResult, QueryStatus, RowSource
from aquametrics.sources.rest import RestRowSource
from aquametrics.sources.sql import SqlRowSource


def create_row_source(
    settings: Optional[Settings] = None,
    engine: Optional[AsyncEngine] = None,
) -> RowSource:
    """
    Build the configured row source.

    The SQL backend uses the given engine, or the one initialized by
    ``aquametrics.database.init_database``.
    """
    settings = settings or get_settings()
    row_source = settings.row_source

    if row_source.backend == "rest":
        api_key = row_source.rest_api_key.get_secret_value() if row_source.rest_api_key else None
        return RestRowSource(
            base_url=row_source.rest_url,
            api_key=api_key,
            timeout=row_source.timeout_seconds,
        )

    if engine is None:
        from aquametrics.database import get_engine
        engine = get_engine()
    return SqlRowSource(engine)


__all__ = [
    "OrderBy",
    "QueryResult",
    "QueryStatus",
    "RowSource",
    "RestRowSource",
    "SqlRowSource",
    "create_row_source",
]
