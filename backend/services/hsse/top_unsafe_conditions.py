"""
Aggregator: Top Unsafe Conditions

Hazards grouped by title, ranked by how often the same condition was reported.

Methodology:
- Ranking: count descending, ties by title ascending. GROUP BY yields no
  defined order, so title is the tie-break rather than grouping order
- Top N (default 10), rank is 1..N with no gaps
- Percentage is the group's share of ALL hazards in the window, not of the top N
- Severity is the highest severity reported for that condition
"""

from collections import defaultdict

from sqlalchemy import func

from constants import INCIDENCE_EMPTY_RATE, TIER_CORE, get_severity_rank
from models.hazard import Hazard
from schemas.hsse_report import TopUnsafeConditions, UnsafeConditionRow
from services.hsse.base import AggregatorSpec, apply_scope, percentage


def compute(ctx) -> TopUnsafeConditions:
    query = ctx.session.query(
        Hazard.title.label('title'),
        Hazard.severity.label('severity'),
        func.count(Hazard.id).label('count'),
    )
    query = apply_scope(query, ctx.filter, Hazard.created_at, Hazard.department, Hazard.location)
    rows = query.group_by(Hazard.title, Hazard.severity).all()

    counts = defaultdict(int)
    worst = {}
    for r in rows:
        counts[r.title] += int(r.count)
        if r.title not in worst or get_severity_rank(r.severity) > get_severity_rank(worst[r.title]):
            worst[r.title] = r.severity

    total = sum(counts.values())
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    items = [
        UnsafeConditionRow(
            rank=rank,
            description=title,
            count=count,
            percentage=percentage(count, total, INCIDENCE_EMPTY_RATE),
            severity=worst[title],
        )
        for rank, (title, count) in enumerate(ordered[:ctx.settings.top_unsafe_conditions_limit], start=1)
    ]
    return TopUnsafeConditions(items=items)


SPEC = AggregatorSpec(
    slot='top_unsafe_conditions',
    title='Top Unsafe Conditions',
    tier=TIER_CORE,
    compute=compute,
)
