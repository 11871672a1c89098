"""
Aggregator: Work Permit Safety

Permits created in the window.

- active     = Approved or InProgress
- compliant  = active and the safety induction was completed
- overdue    = active and planned end already passed
- violations = Suspended permits

Formula:
  Safety Compliance (%) = compliant / active × 100   (100 when nothing is active)
"""

from sqlalchemy import func

from constants import (
    COMPLIANCE_EMPTY_RATE,
    PERMIT_ACTIVE_STATUSES,
    PERMIT_STATUS_SUSPENDED,
    PERMIT_TYPE_CONFINED_SPACE,
    PERMIT_TYPE_HOT_WORK,
    TIER_EXTENDED,
)
from models.work_permit import WorkPermit
from schemas.hsse_report import PermitSafety
from services.hsse.base import AggregatorSpec, apply_scope, count_if, percentage


def compute(ctx) -> PermitSafety:
    is_active = WorkPermit.status.in_(PERMIT_ACTIVE_STATUSES)
    inducted = WorkPermit.safety_induction_completed.is_(True)
    query = ctx.session.query(
        count_if(is_active).label('active'),
        count_if(is_active & inducted).label('compliant'),
        count_if(is_active & (WorkPermit.planned_end_date < ctx.now)).label('overdue'),
        count_if(WorkPermit.status == PERMIT_STATUS_SUSPENDED).label('violations'),
        count_if(WorkPermit.type == PERMIT_TYPE_HOT_WORK).label('hot_work'),
        count_if(WorkPermit.type == PERMIT_TYPE_CONFINED_SPACE).label('confined_space'),
        count_if(inducted).label('inductions'),
    ).select_from(WorkPermit)
    row = apply_scope(query, ctx.filter, WorkPermit.created_at, WorkPermit.department, WorkPermit.location).one()

    active, compliant = int(row.active), int(row.compliant)
    return PermitSafety(
        total_active_permits=active,
        safety_compliant_permits=compliant,
        safety_compliance_rate=percentage(compliant, active, COMPLIANCE_EMPTY_RATE),
        overdue_permits=int(row.overdue),
        safety_violations=int(row.violations),
        hot_work_permits=int(row.hot_work),
        confined_space_permits=int(row.confined_space),
        completed_safety_inductions=int(row.inductions),
    )


SPEC = AggregatorSpec(
    slot='permit_safety',
    title='Work Permit Safety',
    tier=TIER_EXTENDED,
    compute=compute,
)
