"""
Aggregator: Inspection Safety

Inspections created in the window and the findings raised on the SAFETY ones.

Formulas:
  Correction Rate (%)       = closed corrective actions / corrective actions × 100   (empty: 0)
  Inspection Compliance (%) = (inspections - critical findings) / inspections × 100 (empty: 100)
"""

from sqlalchemy import func

from constants import (
    COMPLIANCE_EMPTY_RATE,
    FINDING_CLOSED_STATUSES,
    FINDING_SEVERITY_CRITICAL,
    FINDING_SEVERITY_MAJOR,
    INCIDENCE_EMPTY_RATE,
    INSPECTION_TYPE_SAFETY,
    TIER_EXTENDED,
)
from models.inspection import Inspection, InspectionFinding
from schemas.hsse_report import InspectionSafety
from services.hsse.base import AggregatorSpec, apply_scope, count_if, percentage


def _scoped(ctx, query):
    return apply_scope(query, ctx.filter, Inspection.created_at, Inspection.department, Inspection.location)


def compute(ctx) -> InspectionSafety:
    inspections = _scoped(ctx, ctx.session.query(
        func.count(Inspection.id).label('total'),
        count_if(Inspection.type == INSPECTION_TYPE_SAFETY).label('safety'),
    )).one()

    ctx.check_cancelled()

    has_action = InspectionFinding.corrective_action.isnot(None) & (InspectionFinding.corrective_action != '')
    findings_query = ctx.session.query(
        func.count(InspectionFinding.id).label('total'),
        count_if(InspectionFinding.severity == FINDING_SEVERITY_CRITICAL).label('critical'),
        count_if(InspectionFinding.severity == FINDING_SEVERITY_MAJOR).label('major'),
        count_if(has_action).label('actions'),
        count_if(has_action & InspectionFinding.status.in_(FINDING_CLOSED_STATUSES)).label('completed'),
    ).select_from(InspectionFinding).join(Inspection, InspectionFinding.inspection_id == Inspection.id)
    findings = _scoped(ctx, findings_query.filter(Inspection.type == INSPECTION_TYPE_SAFETY)).one()

    total = int(inspections.total)
    critical = int(findings.critical)
    actions, completed = int(findings.actions), int(findings.completed)
    return InspectionSafety(
        total_inspections=total,
        safety_inspections=int(inspections.safety),
        total_findings=int(findings.total),
        critical_findings=critical,
        high_priority_findings=int(findings.major),
        corrective_actions=actions,
        completed_actions=completed,
        correction_rate=percentage(completed, actions, INCIDENCE_EMPTY_RATE),
        inspection_compliance_rate=percentage(total - critical, total, COMPLIANCE_EMPTY_RATE),
    )


SPEC = AggregatorSpec(
    slot='inspection_safety',
    title='Inspection Safety',
    tier=TIER_EXTENDED,
    compute=compute,
)
