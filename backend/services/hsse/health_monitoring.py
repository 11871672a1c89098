"""
Aggregator: Health Monitoring

Health incidents and surveillance records inside the window.

- occupational cases: Injury or Illness
- compliance issue: hospitalisation required but no notification sent

Formula:
  Health Compliance (%) = (total - compliance issues) / total × 100   (empty: 100)
"""

from sqlalchemy import func

from constants import (
    COMPLIANCE_EMPTY_RATE,
    HEALTH_TYPE_EMERGENCY,
    HEALTH_TYPE_SURVEILLANCE,
    OCCUPATIONAL_HEALTH_TYPES,
    TIER_EXTENDED,
)
from models.health import HealthIncident
from schemas.hsse_report import HealthMonitoring
from services.hsse.base import AggregatorSpec, apply_scope, count_if, percentage


def compute(ctx) -> HealthMonitoring:
    query = ctx.session.query(
        func.count(HealthIncident.id).label('total'),
        count_if(HealthIncident.type.in_(OCCUPATIONAL_HEALTH_TYPES)).label('occupational'),
        count_if(HealthIncident.type == HEALTH_TYPE_SURVEILLANCE).label('surveillance'),
        count_if(HealthIncident.type == HEALTH_TYPE_EMERGENCY).label('emergencies'),
        count_if(
            HealthIncident.required_hospitalization.is_(True) & HealthIncident.notification_sent.is_(False)
        ).label('issues'),
        count_if(HealthIncident.preventive_action_taken.is_(True)).label('preventive'),
    )
    row = apply_scope(
        query, ctx.filter, HealthIncident.incident_datetime, HealthIncident.department, HealthIncident.location
    ).one()

    total, issues = int(row.total), int(row.issues)
    return HealthMonitoring(
        total_health_incidents=total,
        occupational_health_cases=int(row.occupational),
        health_surveillance_records=int(row.surveillance),
        medical_emergencies=int(row.emergencies),
        health_compliance_issues=issues,
        health_compliance_rate=percentage(total - issues, total, COMPLIANCE_EMPTY_RATE),
        preventive_measures_implemented=int(row.preventive),
    )


SPEC = AggregatorSpec(
    slot='health_monitoring',
    title='Health Monitoring',
    tier=TIER_EXTENDED,
    compute=compute,
)
