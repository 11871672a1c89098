"""
Aggregator: Hazard Case Status

Open vs closed hazard cases for the window, echoing the window itself.
Closed means Resolved or Closed, the same rule as Hazard Statistics.
"""

from sqlalchemy import func

from constants import (
    HAZARD_CLOSED_STATUSES,
    INCIDENCE_EMPTY_RATE,
    ROLLUP_DOMAIN_HAZARDS,
    ROLLUP_PERIOD_MONTH,
    TIER_CORE,
)
from models.hazard import Hazard
from schemas.hsse_report import HazardCaseStatus
from services.hsse.base import AggregatorSpec, RollupSupport, apply_scope, count_if, percentage


def build_status(filt, total: int, closed: int, source: str = 'live') -> HazardCaseStatus:
    open_cases = total - closed
    return HazardCaseStatus(
        source=source,
        total_cases=total,
        open_cases=open_cases,
        closed_cases=closed,
        open_percentage=percentage(open_cases, total, INCIDENCE_EMPTY_RATE),
        closed_percentage=percentage(closed, total, INCIDENCE_EMPTY_RATE),
        start_date=filt.start_date,
        end_date=filt.end_date,
    )


def compute(ctx) -> HazardCaseStatus:
    query = ctx.session.query(
        func.count(Hazard.id).label('total'),
        count_if(Hazard.status.in_(HAZARD_CLOSED_STATUSES)).label('closed'),
    )
    row = apply_scope(query, ctx.filter, Hazard.created_at, Hazard.department, Hazard.location).one()
    return build_status(ctx.filter, int(row.total), int(row.closed))


def combine(ctx, rows) -> HazardCaseStatus:
    return build_status(
        ctx.filter,
        total=int(sum(r.metric('total') for r in rows)),
        closed=int(sum(r.metric('closed') for r in rows)),
        source='rollup',
    )


SPEC = AggregatorSpec(
    slot='case_status',
    title='Hazard Case Status',
    tier=TIER_CORE,
    compute=compute,
    rollup=RollupSupport(domain=ROLLUP_DOMAIN_HAZARDS, granularity=ROLLUP_PERIOD_MONTH, combine=combine),
)
