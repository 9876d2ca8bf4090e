"""
Per-Key Aggregator

Groups rows by a caller-supplied key and accumulates, per group:
- sums of configured fields (missing, null or non-numeric values add 0)
- running totals and non-null counts for mean fields, so ratios can be taken
  as the unweighted mean of per-row values

Grouping runs on polars. Rows are put in a canonical order before the
group-by, so the totals for a key do not depend on the order rows arrived in.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping, Optional, Tuple

import polars as pl
import structlog

from aquametrics.metrics.periods import parse_day
from aquametrics.sources.records import coerce_number

logger = structlog.get_logger(__name__)

KeyFn = Callable[[Any], Optional[Hashable]]

_KEY = "_key"
_ROWS = "_rows"


def field_value(row: Any, name: str) -> Any:
    """Read a field from a mapping or a record"""
    if isinstance(row, Mapping):
        return row.get(name)
    return getattr(row, name, None)


# =============================================================================
# KEY FUNCTIONS
# =============================================================================

def date_key_on(field_name: str) -> KeyFn:
    """Key rows by the calendar day in ``field_name``; unparseable days give None"""
    def key(row: Any) -> Optional[date]:
        return parse_day(field_value(row, field_name))
    return key


date_key = date_key_on("date")


def date_system_key(row: Any) -> Optional[Tuple[date, Any]]:
    """Key rows by ``(date, system_id)``"""
    day = date_key(row)
    system_id = field_value(row, "system_id")
    if day is None or system_id is None:
        return None
    return day, system_id


# =============================================================================
# ACCUMULATION
# =============================================================================

def _ordering(key: Any) -> Any:
    """Sort key that orders mixed-type keys by type name first"""
    if isinstance(key, tuple):
        return tuple(_ordering(part) for part in key)
    if isinstance(key, (int, float)) and not isinstance(key, bool):
        return ("number", key)
    return (type(key).__name__, key)


@dataclass(frozen=True)
class AggregationSpec:
    """
    Which fields to accumulate.

    Both mappings go from output name to source field, e.g.
    ``sums={"total_feed": "total_feed_amount_period"}``.
    """
    sums: Mapping[str, str] = field(default_factory=dict)
    means: Mapping[str, str] = field(default_factory=dict)

    @property
    def source_fields(self) -> List[str]:
        seen: Dict[str, None] = {}
        for source in list(self.sums.values()) + list(self.means.values()):
            seen.setdefault(source, None)
        return list(seen)


@dataclass
class GroupTotals:
    """Accumulated totals for one key"""
    rows: int = 0
    sums: Dict[str, float] = field(default_factory=dict)
    mean_totals: Dict[str, float] = field(default_factory=dict)
    mean_counts: Dict[str, int] = field(default_factory=dict)

    def mean(self, name: str, default: Optional[float] = None) -> Optional[float]:
        """Unweighted mean of the non-null contributions, or ``default``"""
        count = self.mean_counts.get(name, 0)
        if not count:
            return default
        return self.mean_totals[name] / count


def aggregate(
    rows: Iterable[Any],
    key_fn: KeyFn,
    spec: AggregationSpec,
) -> Dict[Hashable, GroupTotals]:
    """
    Group rows by key and accumulate the configured fields.

    Args:
        rows: Mappings or records
        key_fn: Returns the group key for a row, or None to skip the row
        spec: Sum and mean fields to accumulate

    Returns:
        Totals per key, keys in ascending order
    """
    keyed: List[Tuple[Hashable, Any]] = []
    skipped = 0
    for row in rows:
        key = key_fn(row)
        if key is None:
            skipped += 1
            continue
        keyed.append((key, row))

    if skipped:
        logger.debug("Rows skipped without a key", skipped=skipped)

    if not keyed:
        return {}

    keys = sorted({key for key, _ in keyed}, key=_ordering)
    index = {key: position for position, key in enumerate(keys)}
    sources = spec.source_fields

    data: Dict[str, List[Any]] = {_KEY: [index[key] for key, _ in keyed]}
    for source in sources:
        data[source] = [coerce_number(field_value(row, source)) for _, row in keyed]

    schema = {_KEY: pl.Int64, **{source: pl.Float64 for source in sources}}
    frame = pl.DataFrame(data, schema=schema).sort([_KEY, *sources], nulls_last=True)

    expressions = [pl.len().alias(_ROWS)]
    for output, source in spec.sums.items():
        expressions.append(pl.col(source).sum().alias(f"sum:{output}"))
    for output, source in spec.means.items():
        expressions.append(pl.col(source).drop_nulls().sum().alias(f"mean_total:{output}"))
        expressions.append(pl.col(source).is_not_null().sum().alias(f"mean_count:{output}"))

    grouped = frame.group_by(_KEY, maintain_order=True).agg(expressions)

    result: Dict[Hashable, GroupTotals] = {}
    for group in grouped.iter_rows(named=True):
        result[keys[group[_KEY]]] = GroupTotals(
            rows=int(group[_ROWS]),
            sums={output: float(group[f"sum:{output}"] or 0.0) for output in spec.sums},
            mean_totals={output: float(group[f"mean_total:{output}"] or 0.0) for output in spec.means},
            mean_counts={output: int(group[f"mean_count:{output}"] or 0) for output in spec.means},
        )

    return result
