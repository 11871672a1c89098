"""
HSSE Aggregator Base - Shared infrastructure for all domain aggregators.

Core components:
- AggregatorSpec: everything needed to compute one report slot
- AggregationContext: per-task session, filter, clock and settings
- percentage() / per_hours(): the two rate policies
- apply_scope(): canonical window + department/location predicate
- execute_aggregator(): rollup-first, live-fallback execution of one spec

Usage:
    from services.hsse.base import AggregatorSpec, apply_scope, percentage

    def compute(ctx):
        query = apply_scope(ctx.session.query(...), ctx.filter, Hazard.created_at, ...)
        ...

    SPEC = AggregatorSpec(slot='hazard_statistics', title='Hazard Statistics',
                          tier=TIER_CORE, compute=compute)
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, List, Optional

from sqlalchemy import case, func
from sqlalchemy.exc import SQLAlchemyError

from constants import (
    CERTIFICATION_EXPIRY_WINDOW_DAYS,
    COMPLIANCE_EMPTY_RATE,
    DEFAULT_ANNUAL_WORKING_HOURS,
    FREQUENCY_RATE_BASE,
    NON_CONFORMANCE_LIMIT,
    RATE_DECIMALS,
    TOP_RESPONSIBLE_ACTIONS_LIMIT,
    TOP_UNSAFE_CONDITIONS_LIMIT,
    TREND_YEARS,
)
from services.hsse.filters import HSSEFilter
from services.rollup_reader import RollupReader, RollupRow, select_rollup_path

logger = logging.getLogger('hsse')
rollup_logger = logging.getLogger('hsse.rollup')

SLOW_OPERATION_MS = 1000


# =============================================================================
# ERRORS
# =============================================================================

class DashboardError(Exception):
    """Base class for dashboard orchestration errors."""
    retryable = False


class DashboardUnavailableError(DashboardError):
    """
    The composite could not be produced (timeout, assembly failure, ...).

    Nothing was cached; the caller may retry.
    """
    retryable = True

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason or message


class DashboardCancelledError(DashboardError):
    """The caller cancelled the request before the composite was assembled."""


class AggregationCancelled(Exception):
    """Raised inside an aggregator task when cancellation or the deadline is observed."""


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class AggregationSettings:
    """Numeric policies shared by every aggregator. Built from Config."""
    annual_working_hours: int = DEFAULT_ANNUAL_WORKING_HOURS
    ppe_empty_compliance_rate: float = COMPLIANCE_EMPTY_RATE
    rollups_enabled: bool = True
    top_unsafe_conditions_limit: int = TOP_UNSAFE_CONDITIONS_LIMIT
    non_conformance_limit: int = NON_CONFORMANCE_LIMIT
    top_actions_limit: int = TOP_RESPONSIBLE_ACTIONS_LIMIT
    certification_expiry_window_days: int = CERTIFICATION_EXPIRY_WINDOW_DAYS
    trend_years: int = TREND_YEARS


@dataclass
class AggregationContext:
    """
    Everything one aggregator task may touch.

    One context per task: the session is never shared between threads.
    """
    session: Any
    filter: HSSEFilter
    now: datetime  # naive UTC, same convention as the record store columns
    settings: AggregationSettings = field(default_factory=AggregationSettings)
    rollup_reader: Optional[RollupReader] = None
    cancel_event: Optional[threading.Event] = None
    deadline: Optional[float] = None  # time.monotonic() value

    def check_cancelled(self) -> None:
        """Raise AggregationCancelled if the request was cancelled or ran out of time."""
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise AggregationCancelled("request cancelled")
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise AggregationCancelled("request deadline exceeded")

    @property
    def window(self):
        return self.filter.window_bounds()


@dataclass(frozen=True)
class RollupSupport:
    """
    Declares that a slot can be served from pre-aggregated rollups.

    combine(ctx, rows) must build the same statistics model as the live path.
    """
    domain: str
    granularity: str
    combine: Callable[[AggregationContext, List[RollupRow]], Any]


@dataclass
class AggregatorSpec:
    """
    Aggregator specification - everything needed to compute one report slot.

    Each domain file exports one of these as SPEC.
    """
    slot: str
    title: str
    tier: str
    compute: Callable[[AggregationContext], Any]  # live path
    rollup: Optional[RollupSupport] = None


# =============================================================================
# RATE HELPERS
# =============================================================================

def percentage(numerator, denominator, default: float) -> float:
    """
    numerator / denominator as a percentage, rounded and clamped to [0, 100].

    `default` is returned when the denominator is zero; pass
    INCIDENCE_EMPTY_RATE or COMPLIANCE_EMPTY_RATE so the empty case is an
    explicit policy rather than an accident.
    """
    if not denominator:
        return float(default)
    value = float(numerator) / float(denominator) * 100
    return round(min(100.0, max(0.0, value)), RATE_DECIMALS)


def per_hours(count, hours) -> float:
    """Frequency rate normalised to FREQUENCY_RATE_BASE exposure hours (0 when hours is 0)."""
    if not hours or hours <= 0:
        return 0.0
    return round(float(count) / float(hours) * FREQUENCY_RATE_BASE, RATE_DECIMALS)


def count_if(condition):
    """SQL expression counting rows where `condition` holds (0 on empty input)."""
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


# =============================================================================
# FILTER HELPERS
# =============================================================================

def apply_scope(query, filt: HSSEFilter, date_col, department_col=None, location_col=None):
    """
    Apply the canonical window and organisational filter to a query.

    RULE: Always use exclusive upper bound.
        WHERE date_col >= :start AND date_col < :end_exclusive

    department_col / location_col may be None for domains that do not carry
    that dimension; the corresponding filter is then ignored.
    """
    start, end_exclusive = filt.window_bounds()
    query = query.filter(date_col >= start, date_col < end_exclusive)
    return apply_org_scope(query, filt, department_col, location_col)


def apply_org_scope(query, filt: HSSEFilter, department_col=None, location_col=None):
    """Department/location equality only. Trend series use this: they span years, not the window."""
    if filt.department and department_col is not None:
        query = query.filter(department_col == filt.department)
    if filt.location and location_col is not None:
        query = query.filter(location_col == filt.location)
    return query


def trend_year_bounds(ctx):
    """(first_year, last_year, start_inclusive, end_exclusive) for the trend series."""
    last_year = ctx.now.year
    first_year = last_year - ctx.settings.trend_years + 1
    return first_year, last_year, datetime(first_year, 1, 1), datetime(last_year + 1, 1, 1)


# =============================================================================
# TIMING
# =============================================================================

def log_timing(operation: str):
    """Decorator to log operation timing."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
                elapsed = (time.perf_counter() - start) * 1000
                logger.info(f"{operation} completed in {elapsed:.1f}ms")
                if elapsed > SLOW_OPERATION_MS:
                    logger.warning(f"SLOW OPERATION: {operation} took {elapsed:.1f}ms")
                return result
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                logger.error(f"{operation} failed after {elapsed:.1f}ms: {e}")
                raise
        return wrapper
    return decorator


# =============================================================================
# EXECUTION
# =============================================================================

def _try_rollup(spec: AggregatorSpec, ctx: AggregationContext):
    """
    Serve a slot from rollups, or return None to fall back to the live path.

    Falls back when the window is not bucket-aligned or not covered, when the
    rollup table is unreadable, when the covered buckets hold no rows (cold
    start), or when any bucket was written before its period ended.
    """
    support = spec.rollup
    reader = ctx.rollup_reader
    try:
        coverage = reader.coverage(ctx.session, support.domain, support.granularity)
        if not select_rollup_path(ctx.filter, coverage, support.granularity,
                                  enabled=ctx.settings.rollups_enabled):
            return None
        rows = reader.fetch(ctx.session, support.domain, support.granularity, ctx.filter)
    except SQLAlchemyError as e:
        rollup_logger.warning(f"Rollup read for {spec.slot} failed, using live path: {e}")
        ctx.session.rollback()
        return None

    if not rows:
        rollup_logger.info(f"No rollup rows for {spec.slot} in window, using live path")
        return None
    open_buckets = [row.period_start for row in rows if not row.is_final]
    if open_buckets:
        rollup_logger.info(
            f"Rollup buckets {sorted(set(open_buckets))} for {spec.slot} were written before "
            f"they closed, using live path"
        )
        return None

    ctx.check_cancelled()
    rollup_logger.debug(f"{spec.slot} served from {len(rows)} rollup rows")
    return support.combine(ctx, rows)


def execute_aggregator(spec: AggregatorSpec, ctx: AggregationContext):
    """
    Execute a single aggregator spec.

    Steps:
        1. Check cancellation
        2. Rollup path, when the spec supports it and the window qualifies
        3. Live path otherwise

    Exceptions propagate; the registry turns them into DomainUnavailable.
    """
    ctx.check_cancelled()
    if spec.rollup is not None and ctx.rollup_reader is not None and ctx.settings.rollups_enabled:
        result = _try_rollup(spec, ctx)
        if result is not None:
            return result
    ctx.check_cancelled()
    return spec.compute(ctx)
