"""
Aggregator: Responsible Action Summary

Hazard mitigation actions created in the window. Department/location scope
comes from the parent hazard.

- open     = status is not Completed
- overdue  = open and target_date already passed
- top_actions: the open actions with the nearest target dates (undated last)

Formula:
  Completion Rate (%) = closed / total × 100   (0 when there are no actions)
"""

from sqlalchemy import func

from constants import INCIDENCE_EMPTY_RATE, MITIGATION_STATUS_COMPLETED, TIER_CORE
from models.hazard import Hazard, HazardMitigationAction
from schemas.hsse_report import ResponsibleActionItem, ResponsibleActionSummary
from services.hsse.base import AggregatorSpec, apply_scope, count_if, percentage


def _scoped(ctx, query):
    query = query.join(Hazard, HazardMitigationAction.hazard_id == Hazard.id)
    return apply_scope(query, ctx.filter, HazardMitigationAction.created_at, Hazard.department, Hazard.location)


def compute(ctx) -> ResponsibleActionSummary:
    is_open = HazardMitigationAction.status != MITIGATION_STATUS_COMPLETED
    totals = _scoped(ctx, ctx.session.query(
        func.count(HazardMitigationAction.id).label('total'),
        count_if(is_open).label('open'),
        count_if(is_open & (HazardMitigationAction.target_date < ctx.now)).label('overdue'),
    )).one()

    ctx.check_cancelled()

    # NULL target dates sort last on every backend
    top = _scoped(ctx, ctx.session.query(HazardMitigationAction)).filter(is_open).order_by(
        HazardMitigationAction.target_date.is_(None),
        HazardMitigationAction.target_date,
        HazardMitigationAction.id,
    ).limit(ctx.settings.top_actions_limit).all()

    total, open_count = int(totals.total), int(totals.open)
    closed = total - open_count
    return ResponsibleActionSummary(
        total_actions=total,
        open_actions=open_count,
        closed_actions=closed,
        overdue_actions=int(totals.overdue),
        completion_rate=percentage(closed, total, INCIDENCE_EMPTY_RATE),
        top_actions=[
            ResponsibleActionItem(
                id=action.id,
                description=action.description,
                status=action.status,
                due_date=action.target_date,
                assigned_to=action.assigned_to,
                priority=action.priority,
            )
            for action in top
        ],
    )


SPEC = AggregatorSpec(
    slot='responsible_actions',
    title='Responsible Actions',
    tier=TIER_CORE,
    compute=compute,
)
