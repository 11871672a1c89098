"""
Aggregator: Audit Findings

Audits created in the window and every finding raised against them.

Formulas:
  Action Completion (%)  = closed required actions / required actions × 100   (empty: 0)
  Audit Compliance Score = max(0, 100 - (10 × major + 5 × minor))              (no findings: 100)
"""

from sqlalchemy import func

from constants import (
    AUDIT_MAJOR_PENALTY,
    AUDIT_MINOR_PENALTY,
    AUDIT_TYPE_SAFETY,
    COMPLIANCE_EMPTY_RATE,
    FINDING_CLOSED_STATUSES,
    FINDING_SEVERITY_MAJOR,
    FINDING_SEVERITY_MINOR,
    INCIDENCE_EMPTY_RATE,
    TIER_EXTENDED,
)
from models.audit import Audit, AuditFinding
from schemas.hsse_report import AuditFindings
from services.hsse.base import AggregatorSpec, apply_scope, count_if, percentage


def compliance_score(findings: int, major: int, minor: int) -> float:
    if findings == 0:
        return COMPLIANCE_EMPTY_RATE
    return float(max(0, 100 - (major * AUDIT_MAJOR_PENALTY + minor * AUDIT_MINOR_PENALTY)))


def _scoped(ctx, query):
    return apply_scope(query, ctx.filter, Audit.created_at, Audit.department, Audit.location)


def compute(ctx) -> AuditFindings:
    audits = _scoped(ctx, ctx.session.query(
        func.count(Audit.id).label('total'),
        count_if(Audit.type == AUDIT_TYPE_SAFETY).label('safety'),
    )).one()

    ctx.check_cancelled()

    required = AuditFinding.corrective_action_required.is_(True)
    findings = _scoped(ctx, ctx.session.query(
        func.count(AuditFinding.id).label('total'),
        count_if(AuditFinding.severity == FINDING_SEVERITY_MAJOR).label('major'),
        count_if(AuditFinding.severity == FINDING_SEVERITY_MINOR).label('minor'),
        count_if(required).label('actions'),
        count_if(required & AuditFinding.status.in_(FINDING_CLOSED_STATUSES)).label('completed'),
    ).select_from(AuditFinding).join(Audit, AuditFinding.audit_id == Audit.id)).one()

    total_findings, major, minor = int(findings.total), int(findings.major), int(findings.minor)
    actions, completed = int(findings.actions), int(findings.completed)
    return AuditFindings(
        total_audits=int(audits.total),
        safety_audits=int(audits.safety),
        total_findings=total_findings,
        major_non_conformities=major,
        minor_non_conformities=minor,
        corrective_actions=actions,
        completed_actions=completed,
        action_completion_rate=percentage(completed, actions, INCIDENCE_EMPTY_RATE),
        audit_compliance_score=compliance_score(total_findings, major, minor),
    )


SPEC = AggregatorSpec(
    slot='audit_findings',
    title='Audit Findings',
    tier=TIER_EXTENDED,
    compute=compute,
)
