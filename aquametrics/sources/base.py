"""
Row Source Interface

The persistence boundary of the engine: fetch a bounded, ordered,
equality-filtered page of rows from a named collection, or insert rows.

Failures never escape as exceptions. Every call returns a QueryResult whose
status distinguishes an empty successful page from a failed query.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Union

Row = Dict[str, Any]


class QueryStatus(str, Enum):
    """Outcome of a row source call"""
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class OrderBy:
    """Single-column sort"""
    column: str
    ascending: bool = True

    @classmethod
    def desc(cls, column: str) -> "OrderBy":
        return cls(column=column, ascending=False)


@dataclass
class QueryResult:
    """Rows returned by a row source, or the reason there are none"""
    status: QueryStatus
    data: List[Row] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == QueryStatus.SUCCESS

    @property
    def is_empty(self) -> bool:
        """True for a successful query that matched no rows"""
        return self.ok and not self.data

    @classmethod
    def success(cls, rows: Sequence[Row]) -> "QueryResult":
        return cls(status=QueryStatus.SUCCESS, data=list(rows))

    @classmethod
    def failure(cls, error: str) -> "QueryResult":
        return cls(status=QueryStatus.ERROR, data=[], error=error)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "rows": len(self.data),
            "error": self.error,
        }


class RowSource(Protocol):
    """Anything that can serve rows by collection name"""

    async def fetch(
        self,
        collection: str,
        eq: Optional[Mapping[str, Any]] = None,
        order: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> QueryResult:
        ...

    async def insert(
        self,
        collection: str,
        payload: Union[Mapping[str, Any], Sequence[Mapping[str, Any]]],
    ) -> QueryResult:
        ...

    async def close(self) -> None:
        ...


def as_row_list(
    payload: Union[Mapping[str, Any], Sequence[Mapping[str, Any]]],
) -> List[Row]:
    """Normalize an insert payload to a list of rows"""
    if isinstance(payload, Mapping):
        return [dict(payload)]
    return [dict(item) for item in payload]
