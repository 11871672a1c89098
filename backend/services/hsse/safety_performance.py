"""
Aggregator: Safety Performance (trend)

Six yearly rows (current year - 5 .. current year) combining hazard volume
with incident frequency rates, each classified into a performance band:

  total IFR < 2  -> Excellent / Green
  total IFR < 5  -> Good / LightGreen
  otherwise      -> Average / Yellow
"""

from collections import defaultdict

from sqlalchemy import extract, func

from constants import (
    ACCIDENT_SEVERITIES,
    NEAR_MISS_MARKER,
    RELATED_TO_STUDY,
    RELATED_TO_WORK,
    TIER_TREND,
    classify_performance,
)
from models.hazard import Hazard
from models.incident import Incident
from schemas.hsse_report import SafetyPerformanceRow, SafetyPerformanceSeries
from services.hsse.base import AggregatorSpec, apply_org_scope, count_if, per_hours, trend_year_bounds


def _hazards_by_year(ctx, start, end_exclusive):
    year_col = extract('year', Hazard.created_at)
    query = ctx.session.query(
        year_col.label('year'),
        func.count(Hazard.id).label('hazards'),
        count_if(func.lower(Hazard.category).like(f"%{NEAR_MISS_MARKER}%")).label('near_miss'),
        count_if(Hazard.severity.in_(ACCIDENT_SEVERITIES)).label('accidents'),
    ).filter(Hazard.created_at >= start, Hazard.created_at < end_exclusive)
    query = apply_org_scope(query, ctx.filter, Hazard.department, Hazard.location)
    return {
        int(r.year): (int(r.hazards), int(r.near_miss), int(r.accidents))
        for r in query.group_by(year_col).all()
    }


def _incidents_by_year(ctx, start, end_exclusive):
    year_col = extract('year', Incident.incident_date)
    query = ctx.session.query(
        year_col.label('year'),
        Incident.related_to.label('related_to'),
        func.count(Incident.id).label('incidents'),
    ).filter(Incident.incident_date >= start, Incident.incident_date < end_exclusive)
    query = apply_org_scope(query, ctx.filter, Incident.department, Incident.location)
    counts = defaultdict(dict)
    for r in query.group_by(year_col, Incident.related_to).all():
        counts[int(r.year)][r.related_to] = int(r.incidents)
    return counts


def compute(ctx) -> SafetyPerformanceSeries:
    first_year, last_year, start, end_exclusive = trend_year_bounds(ctx)
    hazards = _hazards_by_year(ctx, start, end_exclusive)
    ctx.check_cancelled()
    incidents = _incidents_by_year(ctx, start, end_exclusive)

    hours = ctx.settings.annual_working_hours
    items = []
    for year in range(first_year, last_year + 1):
        hazard_count, near_miss, accidents = hazards.get(year, (0, 0, 0))
        by_relation = incidents.get(year, {})
        total_ifr = per_hours(sum(by_relation.values()), hours)
        level, color = classify_performance(total_ifr)
        items.append(SafetyPerformanceRow(
            year=year,
            near_miss=near_miss,
            hazards=hazard_count,
            accidents=accidents,
            ifr_study_related=per_hours(by_relation.get(RELATED_TO_STUDY, 0), hours),
            ifr_work_related=per_hours(by_relation.get(RELATED_TO_WORK, 0), hours),
            total_ifr=total_ifr,
            performance_level=level,
            color_code=color,
        ))
    return SafetyPerformanceSeries(items=items)


SPEC = AggregatorSpec(
    slot='safety_performance',
    title='Safety Performance',
    tier=TIER_TREND,
    compute=compute,
)
