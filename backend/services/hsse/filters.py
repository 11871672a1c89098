"""
Window & filter resolution for the HSSE dashboard.

Every request is reduced to one immutable HSSEFilter before anything else
happens. The cache key, every aggregator and the report echo all read this
one object, so two requests that mean the same thing are indistinguishable
downstream.

Rules:
    - end_date missing    -> today (UTC)
    - start_date missing  -> end_date - 1 year (Feb 29 clamps to Feb 28)
    - start_date > end_date -> ValidationError (the only rejected input)
    - ""/whitespace department or location -> None ("all")
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from utils.normalize import ValidationError, to_bool, to_date, to_str


@dataclass(frozen=True)
class HSSEFilter:
    """Canonical, immutable request window and organisational filter."""
    start_date: date
    end_date: date
    department: Optional[str] = None
    location: Optional[str] = None
    include_trends: bool = True
    include_comparisons: bool = True

    def window_bounds(self) -> Tuple[datetime, datetime]:
        """
        (inclusive start, exclusive end) as naive UTC datetimes.

        RULE: Always use exclusive upper bound.
            WHERE ts >= :start AND ts < :end_exclusive
        so every record on end_date is included regardless of time of day.
        """
        start = datetime.combine(self.start_date, time.min)
        end_exclusive = datetime.combine(self.end_date + timedelta(days=1), time.min)
        return start, end_exclusive

    def as_dict(self) -> Dict[str, Any]:
        return {
            'start_date': self.start_date,
            'end_date': self.end_date,
            'department': self.department,
            'location': self.location,
            'include_trends': self.include_trends,
            'include_comparisons': self.include_comparisons,
        }


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def one_year_before(value: date) -> date:
    """Same calendar day one year earlier; Feb 29 maps to Feb 28."""
    try:
        return value.replace(year=value.year - 1)
    except ValueError:
        return value.replace(year=value.year - 1, day=28)


def resolve_filter(
    start_date=None,
    end_date=None,
    department: Optional[str] = None,
    location: Optional[str] = None,
    include_trends=True,
    include_comparisons=True,
    *,
    today: Optional[date] = None,
) -> HSSEFilter:
    """
    Normalize raw request values into an HSSEFilter.

    Args:
        start_date: date, datetime, ISO string or None
        end_date: date, datetime, ISO string or None
        department: optional department name ("" is treated as unset)
        location: optional location name ("" is treated as unset)
        include_trends: bool or bool-like string
        include_comparisons: bool or bool-like string
        today: clock override (defaults to the current UTC date)

    Raises:
        ValidationError: unparseable dates, or start_date after end_date
    """
    start = to_date(start_date, field='startDate')
    end = to_date(end_date, field='endDate')

    if end is None:
        end = today or utc_today()
    if start is None:
        start = one_year_before(end)

    if start > end:
        raise ValidationError(
            f"startDate ({start.isoformat()}) must not be after endDate ({end.isoformat()})",
            field='startDate',
            received_value=start.isoformat(),
        )

    return HSSEFilter(
        start_date=start,
        end_date=end,
        department=to_str(department),
        location=to_str(location),
        include_trends=to_bool(include_trends, default=True, field='includeTrends'),
        include_comparisons=to_bool(include_comparisons, default=True, field='includeComparisons'),
    )
