"""
Rollup Reader Service - Read-only access to pre-aggregated HSSE rollups.

Rollups are time-bucketed (month / year) per-domain counters written by an
out-of-band refresh job into `hsse_rollups`. The dashboard only reads them,
and only when a request window lines up exactly with whole buckets that the
table actually covers (see select_rollup_path).
"""

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func

from constants import ROLLUP_PERIOD_MONTH, ROLLUP_PERIOD_YEAR
from models.rollup import HSSERollup


@dataclass(frozen=True)
class RollupRow:
    """One pre-aggregated bucket for one (department, location, category)."""
    domain: str
    period: str
    period_start: date
    department: Optional[str]
    location: Optional[str]
    category: Optional[str]
    metrics: Dict[str, float] = field(default_factory=dict)
    computed_at: Optional[datetime] = None

    @property
    def is_final(self) -> bool:
        """True once the bucket had ended before the refresh that wrote it."""
        if self.computed_at is None:
            return False
        return period_end(self.period_start, self.period) < self.computed_at.date()

    def metric(self, name: str) -> float:
        return self.metrics.get(name, 0) or 0


@dataclass(frozen=True)
class RollupCoverage:
    """The span of buckets a domain's rollups cover."""
    domain: str
    granularity: str
    first_period_start: Optional[date] = None
    last_period_end: Optional[date] = None
    row_count: int = 0
    last_computed_at: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return self.row_count == 0 or self.first_period_start is None

    def as_dict(self) -> Dict[str, Any]:
        return {
            'domain': self.domain,
            'granularity': self.granularity,
            'first_period_start': self.first_period_start.isoformat() if self.first_period_start else None,
            'last_period_end': self.last_period_end.isoformat() if self.last_period_end else None,
            'row_count': self.row_count,
            'last_computed_at': self.last_computed_at.isoformat() if self.last_computed_at else None,
        }


def period_end(period_start: date, granularity: str) -> date:
    """Last calendar day of the bucket starting at period_start."""
    if granularity == ROLLUP_PERIOD_YEAR:
        return date(period_start.year, 12, 31)
    last_day = calendar.monthrange(period_start.year, period_start.month)[1]
    return date(period_start.year, period_start.month, last_day)


def is_bucket_aligned(start: date, end: date, granularity: str) -> bool:
    if granularity == ROLLUP_PERIOD_MONTH:
        return start.day == 1 and end == period_end(end, ROLLUP_PERIOD_MONTH)
    if granularity == ROLLUP_PERIOD_YEAR:
        return (start.month, start.day) == (1, 1) and (end.month, end.day) == (12, 31)
    return False


def select_rollup_path(filt, coverage: Optional[RollupCoverage], granularity: str,
                       *, enabled: bool = True) -> bool:
    """
    Decide whether a request window may be served from rollups.

    All must hold:
        1. rollups enabled
        2. coverage exists and is non-empty
        3. window aligned to whole buckets of `granularity`
        4. window inside [first_period_start, last_period_end]
        5. window ended before the latest refresh
    """
    if not enabled:
        return False
    if coverage is None or coverage.is_empty:
        return False
    if not is_bucket_aligned(filt.start_date, filt.end_date, granularity):
        return False
    if not (coverage.first_period_start <= filt.start_date and filt.end_date <= coverage.last_period_end):
        return False
    return coverage.last_computed_at is not None and filt.end_date < coverage.last_computed_at.date()


class RollupReader:
    """
    Read-only service for pre-aggregated rollups.

    Stateless: every call takes the caller's session, so concurrent
    aggregator tasks never share one.
    """

    def coverage(self, session, domain: str, granularity: str) -> RollupCoverage:
        row = (
            session.query(
                func.min(HSSERollup.period_start).label('first_start'),
                func.max(HSSERollup.period_start).label('last_start'),
                func.count(HSSERollup.id).label('row_count'),
                func.max(HSSERollup.computed_at).label('last_computed_at'),
            )
            .filter(HSSERollup.domain == domain, HSSERollup.period == granularity)
            .one()
        )
        if not row.row_count:
            return RollupCoverage(domain=domain, granularity=granularity)
        return RollupCoverage(
            domain=domain,
            granularity=granularity,
            first_period_start=row.first_start,
            last_period_end=period_end(row.last_start, granularity),
            row_count=row.row_count,
            last_computed_at=row.last_computed_at,
        )

    def fetch(self, session, domain: str, granularity: str, filt) -> List[RollupRow]:
        """Buckets starting inside the filter window, narrowed by department/location."""
        query = session.query(HSSERollup).filter(
            HSSERollup.domain == domain,
            HSSERollup.period == granularity,
            HSSERollup.period_start >= filt.start_date,
            HSSERollup.period_start <= filt.end_date,
        )
        if filt.department:
            query = query.filter(HSSERollup.department == filt.department)
        if filt.location:
            query = query.filter(HSSERollup.location == filt.location)
        query = query.order_by(
            HSSERollup.period_start, HSSERollup.category, HSSERollup.department, HSSERollup.location
        )
        return [
            RollupRow(
                domain=record.domain,
                period=record.period,
                period_start=record.period_start,
                department=record.department,
                location=record.location,
                category=record.category,
                metrics=record.get_metrics(),
                computed_at=record.computed_at,
            )
            for record in query.all()
        ]

    def status(self, session) -> List[Dict[str, Any]]:
        """Coverage of every (domain, granularity) present in the table."""
        pairs = (
            session.query(HSSERollup.domain, HSSERollup.period)
            .distinct()
            .order_by(HSSERollup.domain, HSSERollup.period)
            .all()
        )
        return [self.coverage(session, domain, period).as_dict() for domain, period in pairs]


# Singleton instance
_reader = None


def get_rollup_reader() -> RollupReader:
    """Get singleton RollupReader instance"""
    global _reader
    if _reader is None:
        _reader = RollupReader()
    return _reader
