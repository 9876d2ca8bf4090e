"""
Trend Series Builder

Turns production rows into a chronological, one-point-per-date series for
charting. Rows are first cut to the reporting window, then grouped by date
through the aggregator.

Window rule: a row whose date is present but unparseable is kept by the
window check. It is still dropped at grouping, where it has no date key.
"""

import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import structlog

from aquametrics.database.models import TimePeriod
from aquametrics.metrics.aggregator import AggregationSpec, GroupTotals, aggregate, date_key_on, field_value
from aquametrics.metrics.periods import parse_day, resolve_cutoff
from aquametrics.metrics.ratios import period_efcr

logger = structlog.get_logger(__name__)

Derivation = Callable[[GroupTotals], Optional[float]]


@dataclass(frozen=True)
class TrendSpec:
    """
    What a trend series carries per date.

    ``derived`` maps an output name to a function of the group totals; mean
    outputs without a derivation use the plain mean (None when empty).
    """
    aggregation: AggregationSpec
    derived: Mapping[str, Derivation] = field(default_factory=dict)
    date_field: str = "date"


PRODUCTION_TREND = TrendSpec(
    aggregation=AggregationSpec(
        sums={
            "total_biomass": "total_biomass",
            "total_feed": "total_feed_amount_period",
            "total_fish": "number_of_fish_inventory",
            "total_mortality": "daily_mortality_count",
        },
        means={"avg_efcr": "efcr_period"},
    ),
    derived={"avg_efcr": period_efcr},
)

POPULATION_TREND = TrendSpec(
    aggregation=AggregationSpec(sums={"total_fish": "number_of_fish_inventory"}),
)


@dataclass(frozen=True)
class TrendPoint:
    """One date in a trend series"""
    date: dt.date
    values: Mapping[str, Optional[float]]

    def get(self, name: str, default: Optional[float] = None) -> Optional[float]:
        return self.values.get(name, default)

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date.isoformat(), **self.values}


def within_window(
    rows: Iterable[Any],
    period: Union[str, TimePeriod],
    reference: Union[dt.date, dt.datetime],
    date_field: str = "date",
) -> List[Any]:
    """
    Keep the rows inside the reporting window.

    Rows dated on or after the cutoff are kept; rows without a date are
    dropped; rows whose date does not parse are kept. Those kept rows still
    never reach a trend series, since grouping skips rows without a date key.

    Raises:
        InvalidPeriod: If the period token is not supported
    """
    cutoff = resolve_cutoff(period, reference)
    kept = []
    for row in rows:
        raw = field_value(row, date_field)
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            continue
        day = parse_day(raw)
        if day is not None and day < cutoff:
            continue
        kept.append(row)
    return kept


def build_trend_series(
    rows: Sequence[Any],
    period: Union[str, TimePeriod],
    reference: Union[dt.date, dt.datetime],
    spec: TrendSpec = PRODUCTION_TREND,
) -> List[TrendPoint]:
    """
    Build a trend series over a reporting window.

    Args:
        rows: Production rows (mappings or records)
        period: Window token such as "week" or "6 months"
        reference: End of the window
        spec: Fields carried per point

    Returns:
        One TrendPoint per distinct date, oldest first
    """
    windowed = within_window(rows, period, reference, spec.date_field)
    groups = aggregate(windowed, date_key_on(spec.date_field), spec.aggregation)

    series = []
    for day, totals in groups.items():
        values: Dict[str, Optional[float]] = dict(totals.sums)
        for name in spec.aggregation.means:
            derive = spec.derived.get(name)
            values[name] = derive(totals) if derive else totals.mean(name)
        for name, derive in spec.derived.items():
            if name not in values:
                values[name] = derive(totals)
        series.append(TrendPoint(date=day, values=values))

    logger.debug(
        "Trend series built",
        period=str(getattr(period, "value", period)),
        rows=len(rows),
        windowed=len(windowed),
        points=len(series),
    )
    return series


def latest_totals(series: Sequence[TrendPoint]) -> Optional[TrendPoint]:
    """The most recent point of a series, if any"""
    if not series:
        return None
    return series[-1]
