"""
Aggregator: Lost Time Injury (trend)

Incidents in the window where an injury was sustained AND medical treatment
was provided. `year` is the year of the window's end date.

Rates use the same 200,000-hour normalisation as the frequency rates.
"""

from sqlalchemy import func

from constants import INJURY_TYPE_NONE, RELATED_TO_STUDY, RELATED_TO_WORK, TIER_TREND
from models.incident import Incident
from schemas.hsse_report import LostTimeInjury
from services.hsse.base import AggregatorSpec, apply_scope, count_if, per_hours


def compute(ctx) -> LostTimeInjury:
    query = ctx.session.query(
        func.count(Incident.id).label('total'),
        count_if(Incident.related_to == RELATED_TO_STUDY).label('study'),
        count_if(Incident.related_to == RELATED_TO_WORK).label('work'),
    ).filter(
        Incident.injury_type != INJURY_TYPE_NONE,
        Incident.medical_treatment_provided.is_(True),
    )
    row = apply_scope(query, ctx.filter, Incident.incident_date, Incident.department, Incident.location).one()

    hours = ctx.settings.annual_working_hours
    total, study, work = int(row.total), int(row.study), int(row.work)
    return LostTimeInjury(
        year=ctx.filter.end_date.year,
        total_lti_cases=total,
        study_related_cases=study,
        work_related_cases=work,
        lti_study_related_rate=per_hours(study, hours),
        lti_work_related_rate=per_hours(work, hours),
        total_lti_case_rate=per_hours(total, hours),
    )


SPEC = AggregatorSpec(
    slot='lost_time_injury',
    title='Lost Time Injury',
    tier=TIER_TREND,
    compute=compute,
)
