"""
Aggregator: Incident Frequency Rates (trend)

Exactly one row per year for the current year and the 5 before it, oldest
first. Years without incidents are zero rows, never missing.

Formulas (per FREQUENCY_RATE_BASE = 200,000 exposure hours):
  TRIFR = incidents      / annual working hours × 200,000
  TRSR  = lost work days / annual working hours × 200,000
  Study / work variants use only incidents related to study / work.

Annual working hours come from AggregationSettings (default 2080 × 100).
"""

from collections import defaultdict

from sqlalchemy import extract, func

from constants import RELATED_TO_STUDY, RELATED_TO_WORK, TIER_TREND
from models.incident import Incident
from schemas.hsse_report import FrequencyRateRow, FrequencyRateSeries
from services.hsse.base import AggregatorSpec, apply_org_scope, per_hours, trend_year_bounds


def compute(ctx) -> FrequencyRateSeries:
    first_year, last_year, start, end_exclusive = trend_year_bounds(ctx)
    year_col = extract('year', Incident.incident_date)

    query = ctx.session.query(
        year_col.label('year'),
        Incident.related_to.label('related_to'),
        func.count(Incident.id).label('incidents'),
        func.coalesce(func.sum(Incident.lost_work_days), 0).label('lost_days'),
    ).filter(Incident.incident_date >= start, Incident.incident_date < end_exclusive)
    query = apply_org_scope(query, ctx.filter, Incident.department, Incident.location)
    rows = query.group_by(year_col, Incident.related_to).all()

    # year -> related_to -> [incidents, lost_days]
    counts = defaultdict(lambda: defaultdict(lambda: [0, 0]))
    for r in rows:
        bucket = counts[int(r.year)][r.related_to]
        bucket[0] += int(r.incidents)
        bucket[1] += int(r.lost_days)

    hours = ctx.settings.annual_working_hours
    items = []
    for year in range(first_year, last_year + 1):
        by_relation = counts.get(year, {})
        incidents = sum(v[0] for v in by_relation.values())
        lost_days = sum(v[1] for v in by_relation.values())
        study = by_relation.get(RELATED_TO_STUDY, [0, 0])
        work = by_relation.get(RELATED_TO_WORK, [0, 0])
        items.append(FrequencyRateRow(
            year=year,
            incident_count=incidents,
            lost_work_days=lost_days,
            total_recordable_incident_frequency_rate=per_hours(incidents, hours),
            total_recordable_severity_rate=per_hours(lost_days, hours),
            study_related_ifr=per_hours(study[0], hours),
            work_related_ifr=per_hours(work[0], hours),
            study_related_sr=per_hours(study[1], hours),
            work_related_sr=per_hours(work[1], hours),
        ))
    return FrequencyRateSeries(items=items)


SPEC = AggregatorSpec(
    slot='frequency_rates',
    title='Incident Frequency Rates',
    tier=TIER_TREND,
    compute=compute,
)
