"""
Time Windows

Maps reporting-period tokens to concrete cutoff dates. Periods are fixed day
counts (a "month" is always 30 days), not calendar months or quarters.
"""

from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional, Union

from aquametrics.database.models import TimePeriod

DAYS_BY_PERIOD: Dict[TimePeriod, int] = {
    TimePeriod.DAY: 1,
    TimePeriod.WEEK: 7,
    TimePeriod.TWO_WEEKS: 14,
    TimePeriod.MONTH: 30,
    TimePeriod.QUARTER: 90,
    TimePeriod.SIX_MONTHS: 180,
    TimePeriod.YEAR: 365,
}


class InvalidPeriod(ValueError):
    """Raised for a period token outside the supported set"""


def to_period(token: Union[str, TimePeriod]) -> TimePeriod:
    """Coerce a token such as ``"2 weeks"`` to a TimePeriod"""
    try:
        return TimePeriod(token)
    except ValueError:
        raise InvalidPeriod(f"Unknown time period: {token!r}") from None


def period_days(token: Union[str, TimePeriod]) -> int:
    """Number of days covered by a period token"""
    return DAYS_BY_PERIOD[to_period(token)]


def resolve_cutoff(
    period: Union[str, TimePeriod],
    reference: Union[date, datetime],
) -> date:
    """
    Resolve the first day included in a reporting window.

    Args:
        period: Period token (day, week, "2 weeks", month, quarter, "6 months", year)
        reference: The instant the window ends at; datetimes are reduced to their date

    Returns:
        The cutoff date; rows dated on or after it are inside the window

    Raises:
        InvalidPeriod: If the token is not a supported period
    """
    days = period_days(period)
    if isinstance(reference, datetime):
        reference = reference.date()
    return reference - timedelta(days=days)


def parse_day(value: Any) -> Optional[date]:
    """
    Parse a row's date value into a calendar day.

    Accepts date/datetime objects and ISO-8601 strings (date-only or with a
    time part). Returns None for anything else.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None
