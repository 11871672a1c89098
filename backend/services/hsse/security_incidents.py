"""
Aggregator: Security Incidents

Physical and information security incidents that occurred inside the window.

Formulas:
  Resolution Rate (%)     = resolved / total × 100              (empty: 0)
  Security Compliance (%) = (total - critical) / total × 100    (empty: 100)

Rollups: domain "security", monthly, metrics
{total, physical, information, resolved, critical, violations}.
"""

from sqlalchemy import func

from constants import (
    COMPLIANCE_EMPTY_RATE,
    INCIDENCE_EMPTY_RATE,
    ROLLUP_DOMAIN_SECURITY,
    ROLLUP_PERIOD_MONTH,
    SECURITY_RESOLVED_STATUSES,
    SECURITY_SEVERITY_CRITICAL,
    SECURITY_TYPE_INFORMATION,
    SECURITY_TYPE_PHYSICAL,
    SECURITY_VIOLATION_TYPES,
    TIER_EXTENDED,
)
from models.security_incident import SecurityIncident
from schemas.hsse_report import SecurityIncidents
from services.hsse.base import AggregatorSpec, RollupSupport, apply_scope, count_if, percentage


def build_statistics(counts, source: str = 'live') -> SecurityIncidents:
    total = counts['total']
    return SecurityIncidents(
        source=source,
        total_security_incidents=total,
        physical_security_incidents=counts['physical'],
        data_security_incidents=counts['information'],
        resolved_incidents=counts['resolved'],
        resolution_rate=percentage(counts['resolved'], total, INCIDENCE_EMPTY_RATE),
        critical_security_incidents=counts['critical'],
        security_violations=counts['violations'],
        security_compliance_rate=percentage(total - counts['critical'], total, COMPLIANCE_EMPTY_RATE),
    )


METRICS = ('total', 'physical', 'information', 'resolved', 'critical', 'violations')


def compute(ctx) -> SecurityIncidents:
    query = ctx.session.query(
        func.count(SecurityIncident.id).label('total'),
        count_if(SecurityIncident.incident_type == SECURITY_TYPE_PHYSICAL).label('physical'),
        count_if(SecurityIncident.incident_type == SECURITY_TYPE_INFORMATION).label('information'),
        count_if(SecurityIncident.status.in_(SECURITY_RESOLVED_STATUSES)).label('resolved'),
        count_if(SecurityIncident.severity == SECURITY_SEVERITY_CRITICAL).label('critical'),
        count_if(SecurityIncident.incident_type.in_(SECURITY_VIOLATION_TYPES)).label('violations'),
    )
    row = apply_scope(
        query, ctx.filter, SecurityIncident.incident_datetime,
        SecurityIncident.department, SecurityIncident.location,
    ).one()
    return build_statistics({name: int(getattr(row, name)) for name in METRICS})


def combine(ctx, rows) -> SecurityIncidents:
    counts = {name: int(sum(r.metric(name) for r in rows)) for name in METRICS}
    return build_statistics(counts, source='rollup')


SPEC = AggregatorSpec(
    slot='security_incidents',
    title='Security Incidents',
    tier=TIER_EXTENDED,
    compute=compute,
    rollup=RollupSupport(domain=ROLLUP_DOMAIN_SECURITY, granularity=ROLLUP_PERIOD_MONTH, combine=combine),
)
