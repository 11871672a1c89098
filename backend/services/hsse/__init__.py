"""
HSSE domain aggregators.

One module per report slot, each exporting SPEC (an AggregatorSpec).
The registry owns ordering and the concurrent fan-out; callers should go
through services.hsse_dashboard_service rather than individual modules.
"""

from services.hsse.base import AggregatorSpec, AggregationContext, AggregationSettings
from services.hsse.filters import HSSEFilter, resolve_filter
from services.hsse.registry import (
    AGGREGATOR_ORDER,
    get_spec,
    list_sections,
    run_aggregators,
    specs_for_filter,
)

__all__ = [
    'AggregatorSpec',
    'AggregationContext',
    'AggregationSettings',
    'HSSEFilter',
    'resolve_filter',
    'AGGREGATOR_ORDER',
    'get_spec',
    'list_sections',
    'run_aggregators',
    'specs_for_filter',
]
