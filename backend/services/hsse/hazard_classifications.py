"""
Aggregator: Hazard Classification Breakdown

Hazards grouped by category name ("Unknown" when missing), each with its
share of the window total and a fixed chart colour.

Ordering: count descending, ties by category name ascending.
"""

from collections import Counter
from typing import Dict

from sqlalchemy import func

from constants import (
    INCIDENCE_EMPTY_RATE,
    ROLLUP_DOMAIN_HAZARDS,
    ROLLUP_PERIOD_MONTH,
    TIER_CORE,
    UNKNOWN_CATEGORY,
    get_category_color,
)
from models.hazard import Hazard
from schemas.hsse_report import HazardClassificationBreakdown, HazardClassificationRow
from services.hsse.base import AggregatorSpec, RollupSupport, apply_scope, percentage


def build_breakdown(counts: Dict[str, int], source: str = 'live') -> HazardClassificationBreakdown:
    total = sum(counts.values())
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    items = [
        HazardClassificationRow(
            type=name,
            count=count,
            percentage=percentage(count, total, INCIDENCE_EMPTY_RATE),
            color=get_category_color(name),
        )
        for name, count in ordered
    ]
    return HazardClassificationBreakdown(source=source, total=total, items=items)


def compute(ctx) -> HazardClassificationBreakdown:
    category = func.coalesce(func.nullif(Hazard.category, ''), UNKNOWN_CATEGORY)
    query = ctx.session.query(category.label('category'), func.count(Hazard.id).label('count'))
    query = apply_scope(query, ctx.filter, Hazard.created_at, Hazard.department, Hazard.location)
    rows = query.group_by(category).all()
    return build_breakdown({r.category: int(r.count) for r in rows})


def combine(ctx, rows) -> HazardClassificationBreakdown:
    counts = Counter()
    for r in rows:
        counts[r.category or UNKNOWN_CATEGORY] += int(r.metric('total'))
    return build_breakdown({name: count for name, count in counts.items() if count > 0}, source='rollup')


SPEC = AggregatorSpec(
    slot='hazard_classifications',
    title='Hazard Classification',
    tier=TIER_CORE,
    compute=compute,
    rollup=RollupSupport(domain=ROLLUP_DOMAIN_HAZARDS, granularity=ROLLUP_PERIOD_MONTH, combine=combine),
)
