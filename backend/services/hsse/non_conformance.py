"""
Aggregator: Non-Conformance Criteria

Hazard-related non-conformances grouped by location ("Unknown" when missing).
Top 5 locations by count; ties by location name.
"""

from sqlalchemy import func

from constants import NON_CONFORMANCE_DESCRIPTION, TIER_CORE, UNKNOWN_CATEGORY
from models.hazard import Hazard
from schemas.hsse_report import NonConformanceCriteria, NonConformanceRow
from services.hsse.base import AggregatorSpec, apply_scope


def compute(ctx) -> NonConformanceCriteria:
    location = func.coalesce(func.nullif(Hazard.location, ''), UNKNOWN_CATEGORY)
    query = ctx.session.query(location.label('location'), func.count(Hazard.id).label('count'))
    query = apply_scope(query, ctx.filter, Hazard.created_at, Hazard.department, Hazard.location)
    rows = query.group_by(location).all()

    ordered = sorted(rows, key=lambda r: (-int(r.count), r.location))
    items = [
        NonConformanceRow(
            category=r.location,
            count=int(r.count),
            description=NON_CONFORMANCE_DESCRIPTION,
            location=r.location,
        )
        for r in ordered[:ctx.settings.non_conformance_limit]
    ]
    return NonConformanceCriteria(items=items)


SPEC = AggregatorSpec(
    slot='non_conformance',
    title='Non-Conformance Criteria',
    tier=TIER_CORE,
    compute=compute,
)
