"""
Aggregator: PPE Compliance

PPE items currently assigned, whose assignment started inside the window.

Methodology:
- compliant   = condition is neither Damaged nor Expired
- overdue     = expiry date already passed (inspection/replacement overdue)
- defective   = condition Damaged
- per-category compliance, categories ordered by name

Empty window: compliance rate is a policy knob
(AggregationSettings.ppe_empty_compliance_rate, default 100: nothing
assigned means nothing is out of compliance).
"""

from sqlalchemy import func

from constants import (
    PPE_CONDITION_DAMAGED,
    PPE_NON_COMPLIANT_CONDITIONS,
    PPE_STATUS_ASSIGNED,
    TIER_EXTENDED,
    UNKNOWN_CATEGORY,
)
from models.ppe import PPEItem
from schemas.hsse_report import PPECategoryCompliance, PPECompliance
from services.hsse.base import AggregatorSpec, apply_scope, count_if, percentage


def _assigned(ctx, query):
    query = query.filter(PPEItem.status == PPE_STATUS_ASSIGNED)
    return apply_scope(query, ctx.filter, PPEItem.assigned_at, PPEItem.department, PPEItem.location)


def compute(ctx) -> PPECompliance:
    empty_rate = ctx.settings.ppe_empty_compliance_rate
    is_compliant = ~PPEItem.condition.in_(PPE_NON_COMPLIANT_CONDITIONS)

    totals = _assigned(ctx, ctx.session.query(
        func.count(PPEItem.id).label('total'),
        count_if(is_compliant).label('compliant'),
        count_if(PPEItem.expiry_date < ctx.now).label('overdue'),
        count_if(PPEItem.condition == PPE_CONDITION_DAMAGED).label('defective'),
    )).one()

    ctx.check_cancelled()

    category = func.coalesce(func.nullif(PPEItem.category, ''), UNKNOWN_CATEGORY)
    by_category = _assigned(ctx, ctx.session.query(
        category.label('category'),
        func.count(PPEItem.id).label('total'),
        count_if(is_compliant).label('compliant'),
    )).group_by(category).order_by(category).all()

    total, compliant = int(totals.total), int(totals.compliant)
    return PPECompliance(
        total_ppe_assignments=total,
        compliance_count=compliant,
        compliance_rate=percentage(compliant, total, empty_rate),
        overdue_inspections=int(totals.overdue),
        non_compliant_users=total - compliant,
        defective_equipment=int(totals.defective),
        category_compliance=[
            PPECategoryCompliance(
                category=r.category,
                total_assigned=int(r.total),
                compliant_count=int(r.compliant),
                compliance_rate=percentage(int(r.compliant), int(r.total), empty_rate),
            )
            for r in by_category
        ],
    )


SPEC = AggregatorSpec(
    slot='ppe_compliance',
    title='PPE Compliance',
    tier=TIER_EXTENDED,
    compute=compute,
)
