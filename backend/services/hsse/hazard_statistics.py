"""
Aggregator: Hazard Statistics

Headline hazard counters for the window.

Methodology:
- near miss  = category name contains "near miss" (case-insensitive)
- accident   = severity Major or Catastrophic
- closed     = status Resolved or Closed; open = total - closed

Formula:
  Completion Rate (%) = closed / total × 100   (0 when there are no hazards)

Rollups: domain "hazards", monthly, metrics {total, near_miss, accidents, closed}.
"""

from sqlalchemy import func

from constants import (
    ACCIDENT_SEVERITIES,
    HAZARD_CLOSED_STATUSES,
    INCIDENCE_EMPTY_RATE,
    NEAR_MISS_MARKER,
    ROLLUP_DOMAIN_HAZARDS,
    ROLLUP_PERIOD_MONTH,
    TIER_CORE,
)
from models.hazard import Hazard
from schemas.hsse_report import HazardStatistics
from services.hsse.base import AggregatorSpec, RollupSupport, apply_scope, count_if, percentage


def build_statistics(total: int, near_miss: int, accidents: int, closed: int,
                     source: str = 'live') -> HazardStatistics:
    return HazardStatistics(
        source=source,
        total_hazards=total,
        near_miss=near_miss,
        accidents=accidents,
        open_cases=total - closed,
        closed_cases=closed,
        completion_rate=percentage(closed, total, INCIDENCE_EMPTY_RATE),
    )


def compute(ctx) -> HazardStatistics:
    query = ctx.session.query(
        func.count(Hazard.id).label('total'),
        count_if(func.lower(Hazard.category).like(f"%{NEAR_MISS_MARKER}%")).label('near_miss'),
        count_if(Hazard.severity.in_(ACCIDENT_SEVERITIES)).label('accidents'),
        count_if(Hazard.status.in_(HAZARD_CLOSED_STATUSES)).label('closed'),
    )
    row = apply_scope(query, ctx.filter, Hazard.created_at, Hazard.department, Hazard.location).one()
    return build_statistics(int(row.total), int(row.near_miss), int(row.accidents), int(row.closed))


def combine(ctx, rows) -> HazardStatistics:
    return build_statistics(
        total=int(sum(r.metric('total') for r in rows)),
        near_miss=int(sum(r.metric('near_miss') for r in rows)),
        accidents=int(sum(r.metric('accidents') for r in rows)),
        closed=int(sum(r.metric('closed') for r in rows)),
        source='rollup',
    )


SPEC = AggregatorSpec(
    slot='hazard_statistics',
    title='Hazard Statistics',
    tier=TIER_CORE,
    compute=compute,
    rollup=RollupSupport(domain=ROLLUP_DOMAIN_HAZARDS, granularity=ROLLUP_PERIOD_MONTH, combine=combine),
)
