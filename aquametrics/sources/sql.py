"""
SQL Row Source

Serves collections straight from the relational store through the async
SQLAlchemy engine. Collection and column names are resolved against the
declared table metadata, so a typo is a failed query rather than an injected
identifier.
"""

from typing import Any, Mapping, Optional, Sequence, Union

import structlog
from sqlalchemy import Table, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from aquametrics.database.models import Base
from aquametrics.sources.base import OrderBy, QueryResult, as_row_list

logger = structlog.get_logger(__name__)


class SqlRowSource:
    """
    Row source backed by an AsyncEngine.

    Example:
        source = SqlRowSource(get_engine())
        result = await source.fetch(
            "dashboard_consolidated",
            eq={"growth_stage_scope": "all"},
            order=OrderBy.desc("input_end_date"),
            limit=1,
        )
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    def _table(self, collection: str) -> Optional[Table]:
        return Base.metadata.tables.get(collection)

    async def fetch(
        self,
        collection: str,
        eq: Optional[Mapping[str, Any]] = None,
        order: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> QueryResult:
        """Fetch one page of rows"""
        table = self._table(collection)
        if table is None:
            return self._fail(collection, f"Unknown collection: {collection}")

        query = select(table)
        for column, value in (eq or {}).items():
            if column not in table.c:
                return self._fail(collection, f"Unknown column {column!r} in {collection}")
            query = query.where(table.c[column] == value)

        if order is not None:
            if order.column not in table.c:
                return self._fail(collection, f"Unknown column {order.column!r} in {collection}")
            sort_column = table.c[order.column]
            query = query.order_by(sort_column.asc() if order.ascending else sort_column.desc())

        if limit is not None:
            query = query.limit(limit)

        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(query)
                rows = [dict(row) for row in result.mappings().all()]
        except (SQLAlchemyError, OSError) as e:
            return self._fail(collection, str(e))

        logger.debug("Rows fetched", collection=collection, rows=len(rows))
        return QueryResult.success(rows)

    async def insert(
        self,
        collection: str,
        payload: Union[Mapping[str, Any], Sequence[Mapping[str, Any]]],
    ) -> QueryResult:
        """Insert one or many rows and return them as stored"""
        table = self._table(collection)
        if table is None:
            return self._fail(collection, f"Unknown collection: {collection}")

        rows = as_row_list(payload)
        if not rows:
            return self._fail(collection, "Nothing to insert")

        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(insert(table).values(rows).returning(*table.c))
                stored = [dict(row) for row in result.mappings().all()]
        except (SQLAlchemyError, OSError) as e:
            return self._fail(collection, str(e))

        logger.info("Rows inserted", collection=collection, rows=len(stored))
        return QueryResult.success(stored)

    async def close(self) -> None:
        # The engine's lifecycle belongs to aquametrics.database
        return None

    @staticmethod
    def _fail(collection: str, error: str) -> QueryResult:
        logger.error("Row source query failed", backend="sql", collection=collection, error=error)
        return QueryResult.failure(error)
