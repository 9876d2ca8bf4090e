"""
Test Suite Configuration
"""
import os

os.environ.setdefault("APP_ENV", "testing")

from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Union

import pytest
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from aquametrics.database.models import Base
from aquametrics.sources.base import OrderBy, QueryResult, as_row_list
from aquametrics.sources.sql import SqlRowSource


class FakeRowSource:
    """
    In-memory row source.

    Applies equality filters, ordering and limits like the real backends and
    records every call. Collections listed in ``failing`` answer with a
    failed QueryResult; those in ``raising`` raise.
    """

    def __init__(
        self,
        collections: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        failing: Optional[Set[str]] = None,
        raising: Optional[Set[str]] = None,
    ):
        self.collections = {name: list(rows) for name, rows in (collections or {}).items()}
        self.failing = failing or set()
        self.raising = raising or set()
        self.calls: List[Dict[str, Any]] = []
        self.inserted: Dict[str, List[Dict[str, Any]]] = {}

    async def fetch(
        self,
        collection: str,
        eq: Optional[Mapping[str, Any]] = None,
        order: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> QueryResult:
        self.calls.append({"collection": collection, "eq": dict(eq or {}), "order": order, "limit": limit})
        if collection in self.raising:
            raise ConnectionError(f"{collection} unreachable")
        if collection in self.failing:
            return QueryResult.failure(f"Store error 500: {collection} failed")

        rows = [
            row for row in self.collections.get(collection, [])
            if all(row.get(column) == value for column, value in (eq or {}).items())
        ]
        if order is not None:
            rows.sort(key=lambda row: str(row.get(order.column) or ""), reverse=not order.ascending)
        if limit is not None:
            rows = rows[:limit]
        return QueryResult.success([dict(row) for row in rows])

    async def insert(
        self,
        collection: str,
        payload: Union[Mapping[str, Any], Sequence[Mapping[str, Any]]],
    ) -> QueryResult:
        rows = as_row_list(payload)
        self.inserted.setdefault(collection, []).extend(rows)
        return QueryResult.success(rows)

    async def close(self) -> None:
        return None


@pytest.fixture
async def test_engine():
    """In-memory SQLite engine with the declared schema"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def sql_source(test_engine) -> SqlRowSource:
    return SqlRowSource(test_engine)


@pytest.fixture
def production_rows() -> List[Dict[str, Any]]:
    """Production summary rows for two systems over four days"""
    return [
        {
            "system_id": 1, "system_name": "Cage B", "growth_stage": "grow_out", "date": "2024-06-30",
            "number_of_fish_inventory": 1000, "total_biomass": 250.0, "total_feed_amount_period": 12.5,
            "efcr_period": 1.4, "daily_mortality_count": 3, "average_body_weight": 250.0,
            "biomass_density": None, "system_volume": 50.0, "water_quality_rating": 2.8,
        },
        {
            "system_id": 2, "system_name": "Cage A", "growth_stage": "nursing", "date": "2024-06-30",
            "number_of_fish_inventory": 4000, "total_biomass": 80.0, "total_feed_amount_period": 4.0,
            "efcr_period": None, "daily_mortality_count": 10, "average_body_weight": 20.0,
            "biomass_density": 4.0, "system_volume": 20.0, "water_quality_rating": 1.2,
        },
        {
            "system_id": 1, "system_name": "Cage B", "growth_stage": "grow_out", "date": "2024-06-23",
            "number_of_fish_inventory": 1010, "total_biomass": 240.0, "total_feed_amount_period": 12.0,
            "efcr_period": 1.6, "daily_mortality_count": 2, "average_body_weight": 237.6,
            "biomass_density": 4.8, "system_volume": 50.0, "water_quality_rating": 3.0,
        },
        {
            "system_id": 2, "system_name": "Cage A", "growth_stage": "nursing", "date": "2024-06-23",
            "number_of_fish_inventory": 4020, "total_biomass": 75.0, "total_feed_amount_period": 3.5,
            "efcr_period": 1.0, "daily_mortality_count": 5, "average_body_weight": 18.7,
            "biomass_density": 3.75, "system_volume": 20.0, "water_quality_rating": 2.0,
        },
        {
            "system_id": 1, "system_name": "Cage B", "growth_stage": "grow_out", "date": "2024-06-22",
            "number_of_fish_inventory": 1012, "total_biomass": 238.0, "total_feed_amount_period": 11.8,
            "efcr_period": 1.5, "daily_mortality_count": 1, "average_body_weight": 235.2,
            "biomass_density": 4.76, "system_volume": 50.0, "water_quality_rating": 3.0,
        },
    ]


@pytest.fixture
def consolidated_rows() -> List[Dict[str, Any]]:
    """Farm-wide snapshots for two consecutive periods"""
    return [
        {
            "growth_stage_scope": "all", "time_period": "month",
            "input_start_date": "2024-04-01", "input_end_date": "2024-05-01",
            "efcr_period_consolidated": 1.8, "prev_efcr_period_consolidated": 2.0,
            "mortality_rate": 0.02, "prev_mortality_rate": 0.01,
            "average_biomass": 300.0, "prev_average_biomass": 280.0,
            "water_quality_rating_numeric_average": 2.4,
            "prev_water_quality_rating_numeric_average": 2.5,
        },
        {
            "growth_stage_scope": "all", "time_period": "month",
            "input_start_date": "2024-05-01", "input_end_date": "2024-06-01",
            "efcr_period_consolidated": 1.5, "prev_efcr_period_consolidated": 1.8,
            "mortality_rate": 0.015, "prev_mortality_rate": 0.02,
            "average_biomass": 330.0, "prev_average_biomass": 300.0,
            "water_quality_rating_numeric_average": 2.6,
            "prev_water_quality_rating_numeric_average": 2.4,
        },
    ]


@pytest.fixture
def dashboard_rows() -> List[Dict[str, Any]]:
    """Per-system snapshots"""
    return [
        {
            "system_id": 1, "growth_stage": "grow_out", "time_period": "week",
            "input_start_date": "2024-06-23", "input_end_date": "2024-06-30",
            "efcr": 1.4, "prev_efcr": 1.6, "mortality_rate": 0.003, "prev_mortality_rate": 0.002,
            "average_biomass": 250.0, "prev_average_biomass": 240.0,
            "water_quality_rating_numeric_average": 2.9,
            "prev_water_quality_rating_numeric_average": 3.0,
            "abw": 250.0, "total_feed": 87.5, "start_stock": 1012,
        },
    ]


@pytest.fixture
def rating_rows() -> List[Dict[str, Any]]:
    return [
        {"system_id": 1, "rating_date": "2024-06-30", "rating": "optimal", "rating_numeric": None},
        {"system_id": 1, "rating_date": "2024-06-29", "rating": "acceptable", "rating_numeric": 2},
        {"system_id": 1, "rating_date": "2024-06-28", "rating": "critical", "rating_numeric": None},
        {"system_id": 1, "rating_date": "2024-06-01", "rating": "lethal", "rating_numeric": 0},
    ]


@pytest.fixture
def fake_source(production_rows, consolidated_rows, dashboard_rows, rating_rows) -> FakeRowSource:
    return FakeRowSource(
        {
            "production_summary": production_rows,
            "dashboard_consolidated": consolidated_rows,
            "dashboard": dashboard_rows,
            "daily_water_quality_rating": rating_rows,
            "systems": [{"system_id": "1", "name": "Cage B"}, {"system_id": "2", "name": "Cage A"}],
            "suppliers": [{"id": "s1", "name": "Hatchery One"}],
            "feeds_metadata": [{"id": "f1", "feed_name": "Grower 4mm"}],
            "mortality_events": [
                {"id": "m1", "system_id": "1", "date": "2024-06-30", "number_of_fish": 3,
                 "created_at": "2024-06-30T08:00:00"},
            ],
        }
    )


@pytest.fixture
def seed(test_engine):
    """Insert raw rows into a table, parsing ISO date strings"""
    def convert(value: Any) -> Any:
        if isinstance(value, str) and len(value) == 10 and value[4] == "-" and value[7] == "-":
            return date.fromisoformat(value)
        return value

    async def _seed(table: str, rows: List[Dict[str, Any]]) -> None:
        async with test_engine.begin() as conn:
            await conn.execute(
                insert(Base.metadata.tables[table]),
                [{key: convert(value) for key, value in row.items()} for row in rows],
            )

    return _seed


@pytest.fixture
def make_source():
    """Factory for FakeRowSource instances with custom contents"""
    return FakeRowSource
