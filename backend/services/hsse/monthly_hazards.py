"""
Aggregator: Monthly Hazard Trend

One row per calendar month touched by the window, oldest first. Months with
no hazards are emitted with zero counts so the series never has gaps.

risk_level: > 10 hazards High, > 5 Medium, else Low.
"""

import calendar
from collections import defaultdict
from datetime import date
from typing import Dict, Iterator, Tuple

from sqlalchemy import extract, func

from constants import (
    ACCIDENT_SEVERITIES,
    NEAR_MISS_MARKER,
    ROLLUP_DOMAIN_HAZARDS,
    ROLLUP_PERIOD_MONTH,
    TIER_CORE,
    classify_risk_level,
)
from models.hazard import Hazard
from schemas.hsse_report import MonthlyHazardRow, MonthlyHazardTrend
from services.hsse.base import AggregatorSpec, RollupSupport, apply_scope, count_if


def iter_months(start: date, end: date) -> Iterator[Tuple[int, int]]:
    """(year, month) for every month from start's month to end's month inclusive."""
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        yield year, month
        month += 1
        if month > 12:
            year, month = year + 1, 1


def month_label(year: int, month: int) -> str:
    return f"{calendar.month_abbr[month]} {year}"


def build_trend(filt, counts: Dict[Tuple[int, int], Tuple[int, int, int]],
                source: str = 'live') -> MonthlyHazardTrend:
    items = []
    for year, month in iter_months(filt.start_date, filt.end_date):
        hazard_count, near_miss, accidents = counts.get((year, month), (0, 0, 0))
        items.append(MonthlyHazardRow(
            year=year,
            month=month,
            month_name=month_label(year, month),
            hazard_count=hazard_count,
            near_miss_count=near_miss,
            accident_count=accidents,
            risk_level=classify_risk_level(hazard_count),
        ))
    return MonthlyHazardTrend(source=source, items=items)


def compute(ctx) -> MonthlyHazardTrend:
    year_col = extract('year', Hazard.created_at)
    month_col = extract('month', Hazard.created_at)
    query = ctx.session.query(
        year_col.label('year'),
        month_col.label('month'),
        func.count(Hazard.id).label('hazard_count'),
        count_if(func.lower(Hazard.category).like(f"%{NEAR_MISS_MARKER}%")).label('near_miss'),
        count_if(Hazard.severity.in_(ACCIDENT_SEVERITIES)).label('accidents'),
    )
    query = apply_scope(query, ctx.filter, Hazard.created_at, Hazard.department, Hazard.location)
    rows = query.group_by(year_col, month_col).all()

    counts = {
        (int(r.year), int(r.month)): (int(r.hazard_count), int(r.near_miss), int(r.accidents))
        for r in rows
    }
    return build_trend(ctx.filter, counts)


def combine(ctx, rows) -> MonthlyHazardTrend:
    totals = defaultdict(lambda: [0, 0, 0])
    for r in rows:
        bucket = totals[(r.period_start.year, r.period_start.month)]
        bucket[0] += int(r.metric('total'))
        bucket[1] += int(r.metric('near_miss'))
        bucket[2] += int(r.metric('accidents'))
    return build_trend(ctx.filter, {k: tuple(v) for k, v in totals.items()}, source='rollup')


SPEC = AggregatorSpec(
    slot='monthly_hazards',
    title='Monthly Hazard Trend',
    tier=TIER_CORE,
    compute=compute,
    rollup=RollupSupport(domain=ROLLUP_DOMAIN_HAZARDS, granularity=ROLLUP_PERIOD_MONTH, combine=combine),
)
