"""
Ratio & Rate Calculator

Derived production ratios. Every ratio guards its denominator before doing
arithmetic; None means "unavailable" and is rendered as a placeholder.
"""

import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Union

from aquametrics.database.models import WaterQualityRating
from aquametrics.metrics.aggregator import GroupTotals

PLACEHOLDER = "--"

RATING_SCALE: Dict[WaterQualityRating, int] = {
    WaterQualityRating.OPTIMAL: 3,
    WaterQualityRating.ACCEPTABLE: 2,
    WaterQualityRating.CRITICAL: 1,
    WaterQualityRating.LETHAL: 0,
}


class InvalidComputation(ValueError):
    """Raised when a ratio is asked for with inputs that have no meaning"""


class Trend(str, Enum):
    UP = "up"
    DOWN = "down"
    FLAT = "flat"


class ChangeStatus(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class ChangeIndicator:
    """Period-over-period change as shown under a KPI value"""
    text: Optional[str]
    trend: Trend
    status: ChangeStatus

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["trend"] = self.trend.value
        data["status"] = self.status.value
        return data


NO_CHANGE = ChangeIndicator(text=None, trend=Trend.FLAT, status=ChangeStatus.NEUTRAL)


def _finite(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


# =============================================================================
# PRODUCTION RATIOS
# =============================================================================

def period_efcr(totals: Optional[GroupTotals], name: str = "avg_efcr") -> float:
    """
    Period eFCR for a group: the unweighted mean of per-row period eFCR.

    A group with no contributing rows yields 0.0, which reads the same as a
    perfect conversion ratio; callers that need to tell them apart should
    check ``totals.mean_counts`` first.
    """
    if totals is None:
        return 0.0
    return totals.mean(name, default=0.0)


def mortality_rate_percent(rate: Any) -> Any:
    """Mortality rate as a percentage; non-numeric values pass through unchanged"""
    if _finite(rate):
        return rate * 100
    return rate


def average_body_weight_g(total_weight_kg: float, number_of_fish: float) -> float:
    """
    Average body weight in grams from a weighed batch.

    Raises:
        InvalidComputation: If the fish count is zero or negative
    """
    if number_of_fish is None or number_of_fish <= 0:
        raise InvalidComputation("Average body weight needs a positive fish count")
    return total_weight_kg * 1000 / number_of_fish


def biomass_density(total_biomass: Optional[float], system_volume: Optional[float]) -> Optional[float]:
    """Biomass per unit of system volume, or None when either side is unavailable"""
    if not _finite(total_biomass) or not _finite(system_volume) or system_volume == 0:
        return None
    return total_biomass / system_volume


# =============================================================================
# WATER QUALITY
# =============================================================================

def rating_value(rating: Union[str, WaterQualityRating, None]) -> Optional[int]:
    """Numeric value of a rating category, or None if it is not one"""
    if rating is None:
        return None
    try:
        return RATING_SCALE[WaterQualityRating(str(getattr(rating, "value", rating)).lower())]
    except ValueError:
        return None


def water_quality_rating(values: Iterable[Any]) -> Optional[float]:
    """
    Mean water-quality rating.

    Accepts category names or numeric ratings; anything else is ignored.
    Returns None when nothing usable is left.
    """
    scores = []
    for value in values:
        if _finite(value):
            scores.append(float(value))
            continue
        score = rating_value(value)
        if score is not None:
            scores.append(float(score))
    if not scores:
        return None
    return sum(scores) / len(scores)


def rating_label(numeric: Optional[float]) -> Optional[WaterQualityRating]:
    """Category closest to a numeric rating"""
    if not _finite(numeric):
        return None
    return min(RATING_SCALE, key=lambda rating: (abs(RATING_SCALE[rating] - numeric), -RATING_SCALE[rating]))


# =============================================================================
# DISPLAY
# =============================================================================

def format_change(current: Optional[float], previous: Optional[float], inverse: bool = False) -> ChangeIndicator:
    """
    Describe the change between two period values.

    Args:
        current: This period's value
        previous: Last period's value
        inverse: True for metrics where a decrease is good (eFCR, mortality)

    Returns:
        ChangeIndicator; NO_CHANGE when either value is missing or previous is 0
    """
    if not _finite(current) or not _finite(previous) or previous == 0:
        return NO_CHANGE

    diff = (current - previous) / previous * 100
    if diff > 0:
        trend = Trend.UP
    elif diff < 0:
        trend = Trend.DOWN
    else:
        trend = Trend.FLAT

    text = f"{'+' if diff > 0 else ''}{diff:.1f}% from last period"

    if trend is Trend.FLAT:
        status = ChangeStatus.NEUTRAL
    elif (trend is Trend.UP) != inverse:
        status = ChangeStatus.POSITIVE
    else:
        status = ChangeStatus.NEGATIVE

    return ChangeIndicator(text=text, trend=trend, status=status)


def format_metric_value(value: Any, unit: str = "", decimals: Optional[int] = None) -> str:
    """Render a metric value with its unit; missing values render as a placeholder"""
    if value is None:
        return PLACEHOLDER
    if decimals is not None and _finite(value):
        return f"{value:.{decimals}f}{unit}"
    return f"{value}{unit}"
