"""
Aggregator: Waste & Environmental

Waste reports generated inside the window.

Formulas:
  Waste Compliance (%)       = (reports - pending disposal) / reports × 100    (empty: 100)
  Environmental Impact Score = max(0, 100 - 10 × hazardous reports)            (empty: 100)

Rollups: domain "waste", monthly, metrics
{total, hazardous, pending, spills, reductions}.
"""

from sqlalchemy import func

from constants import (
    COMPLIANCE_EMPTY_RATE,
    ROLLUP_DOMAIN_WASTE,
    ROLLUP_PERIOD_MONTH,
    TIER_EXTENDED,
    WASTE_CATEGORY_HAZARDOUS,
    WASTE_DISPOSAL_PENDING,
    WASTE_HAZARDOUS_PENALTY,
)
from models.waste import WasteReport
from schemas.hsse_report import WasteEnvironmental
from services.hsse.base import AggregatorSpec, RollupSupport, apply_scope, count_if, percentage


def impact_score(total: int, hazardous: int) -> float:
    if total == 0:
        return COMPLIANCE_EMPTY_RATE
    return float(max(0, 100 - hazardous * WASTE_HAZARDOUS_PENALTY))


def build_statistics(total: int, hazardous: int, pending: int, spills: int, reductions: int,
                     source: str = 'live') -> WasteEnvironmental:
    return WasteEnvironmental(
        source=source,
        total_waste_reports=total,
        environmental_incidents=spills,
        compliance_issues=pending,
        waste_compliance_rate=percentage(total - pending, total, COMPLIANCE_EMPTY_RATE),
        hazardous_waste_reports=hazardous,
        waste_reduction_initiatives=reductions,
        environmental_impact_score=impact_score(total, hazardous),
    )


def compute(ctx) -> WasteEnvironmental:
    query = ctx.session.query(
        func.count(WasteReport.id).label('total'),
        count_if(WasteReport.category == WASTE_CATEGORY_HAZARDOUS).label('hazardous'),
        count_if(WasteReport.disposal_status == WASTE_DISPOSAL_PENDING).label('pending'),
        count_if(WasteReport.spill_reported.is_(True)).label('spills'),
        count_if(WasteReport.reduction_initiative.is_(True)).label('reductions'),
    )
    row = apply_scope(
        query, ctx.filter, WasteReport.generated_date, WasteReport.department, WasteReport.location
    ).one()
    return build_statistics(
        int(row.total), int(row.hazardous), int(row.pending), int(row.spills), int(row.reductions)
    )


def combine(ctx, rows) -> WasteEnvironmental:
    def total_of(name):
        return int(sum(r.metric(name) for r in rows))

    return build_statistics(
        total_of('total'), total_of('hazardous'), total_of('pending'),
        total_of('spills'), total_of('reductions'), source='rollup',
    )


SPEC = AggregatorSpec(
    slot='waste_environmental',
    title='Waste & Environmental',
    tier=TIER_EXTENDED,
    compute=compute,
    rollup=RollupSupport(domain=ROLLUP_DOMAIN_WASTE, granularity=ROLLUP_PERIOD_MONTH, combine=combine),
)
