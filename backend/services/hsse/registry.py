"""
HSSE Aggregator Registry - Central runner for all domain aggregators.

The orchestrator calls this, not individual aggregator files.

Usage:
    from services.hsse.registry import run_aggregators, specs_for_filter

    results = run_aggregators(specs_for_filter(filt), filt, session_factory=Session, ...)
    # {slot: DomainStatistics | DomainUnavailable}

Fan-out:
    One ThreadPoolExecutor task per aggregator, bounded by max_workers.
    Each task opens (and closes) its own Session. The join polls in short
    slices so the caller's cancel event and the request deadline are noticed
    promptly; on either, pending tasks are cancelled, in-flight tasks see
    ctx.check_cancelled() raise, and completed results are discarded.
"""

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from constants import TIER_TREND
from schemas.hsse_report import DomainUnavailable
from services.hsse.base import (
    AggregationCancelled,
    AggregationContext,
    AggregationSettings,
    AggregatorSpec,
    DashboardCancelledError,
    DashboardUnavailableError,
    execute_aggregator,
    utc_now,
)
from services.hsse.filters import HSSEFilter
from services.rollup_reader import RollupReader

logger = logging.getLogger('hsse.registry')

DEFAULT_POLL_INTERVAL = 0.05


# =============================================================================
# AGGREGATOR REGISTRY
# =============================================================================

# Import all aggregator specs
from services.hsse.hazard_statistics import SPEC as hazard_statistics_spec
from services.hsse.monthly_hazards import SPEC as monthly_hazards_spec
from services.hsse.hazard_classifications import SPEC as hazard_classifications_spec
from services.hsse.non_conformance import SPEC as non_conformance_spec
from services.hsse.top_unsafe_conditions import SPEC as top_unsafe_conditions_spec
from services.hsse.responsible_actions import SPEC as responsible_actions_spec
from services.hsse.case_status import SPEC as case_status_spec
from services.hsse.ppe_compliance import SPEC as ppe_compliance_spec
from services.hsse.training_safety import SPEC as training_safety_spec
from services.hsse.inspection_safety import SPEC as inspection_safety_spec
from services.hsse.permit_safety import SPEC as permit_safety_spec
from services.hsse.waste_environmental import SPEC as waste_environmental_spec
from services.hsse.security_incidents import SPEC as security_incidents_spec
from services.hsse.health_monitoring import SPEC as health_monitoring_spec
from services.hsse.audit_findings import SPEC as audit_findings_spec
from services.hsse.frequency_rates import SPEC as frequency_rates_spec
from services.hsse.safety_performance import SPEC as safety_performance_spec
from services.hsse.lost_time_injury import SPEC as lost_time_injury_spec


# Explicit order - report field order and log output rely on this
AGGREGATOR_ORDER = [
    # Core
    'hazard_statistics',
    'monthly_hazards',
    'hazard_classifications',
    'non_conformance',
    'top_unsafe_conditions',
    'responsible_actions',
    'case_status',
    # Extended
    'ppe_compliance',
    'training_safety',
    'inspection_safety',
    'permit_safety',
    'waste_environmental',
    'security_incidents',
    'health_monitoring',
    'audit_findings',
    # Trend
    'frequency_rates',
    'safety_performance',
    'lost_time_injury',
]

# Registry by slot for lookup
AGGREGATOR_REGISTRY = {
    spec.slot: spec
    for spec in (
        hazard_statistics_spec,
        monthly_hazards_spec,
        hazard_classifications_spec,
        non_conformance_spec,
        top_unsafe_conditions_spec,
        responsible_actions_spec,
        case_status_spec,
        ppe_compliance_spec,
        training_safety_spec,
        inspection_safety_spec,
        permit_safety_spec,
        waste_environmental_spec,
        security_incidents_spec,
        health_monitoring_spec,
        audit_findings_spec,
        frequency_rates_spec,
        safety_performance_spec,
        lost_time_injury_spec,
    )
}

ENABLED_AGGREGATORS = [AGGREGATOR_REGISTRY[slot] for slot in AGGREGATOR_ORDER]


def specs_for_filter(filt: HSSEFilter) -> List[AggregatorSpec]:
    """Core and extended always run; trend aggregators only when trends were requested."""
    return [
        spec for spec in ENABLED_AGGREGATORS
        if spec.tier != TIER_TREND or filt.include_trends
    ]


def get_spec(slot: str) -> AggregatorSpec:
    spec = AGGREGATOR_REGISTRY.get(slot)
    if spec is None:
        raise KeyError(f"Unknown section: {slot}. Available: {AGGREGATOR_ORDER}")
    return spec


def list_sections() -> List[Dict[str, Any]]:
    """List all registered slots with their titles and tiers."""
    return [
        {
            'slot': spec.slot,
            'title': spec.title,
            'tier': spec.tier,
            'rollup_domain': spec.rollup.domain if spec.rollup else None,
        }
        for spec in ENABLED_AGGREGATORS
    ]


# =============================================================================
# EXECUTION
# =============================================================================

def run_aggregator(spec: AggregatorSpec, ctx: AggregationContext):
    """
    Run a single aggregator safely.

    Any failure becomes DomainUnavailable for this slot only. Cancellation is
    not a failure and propagates so the whole request stops.
    """
    try:
        return execute_aggregator(spec, ctx)
    except AggregationCancelled:
        raise
    except Exception as e:
        logger.error(f"Aggregator {spec.slot} failed: {e}", exc_info=True)
        return DomainUnavailable(reason=f"{spec.title} unavailable ({type(e).__name__})")


def run_aggregators(
    specs: List[AggregatorSpec],
    filt: HSSEFilter,
    *,
    session_factory: Callable[[], Any],
    settings: Optional[AggregationSettings] = None,
    rollup_reader: Optional[RollupReader] = None,
    now: Optional[datetime] = None,
    max_workers: int = 4,
    timeout: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> Dict[str, Any]:
    """
    Run aggregators concurrently and return results keyed by slot.

    Each aggregator runs independently - one failure doesn't affect others.

    Raises:
        DashboardCancelledError: cancel_event was set before all tasks finished
        DashboardUnavailableError: the deadline passed before all tasks finished
    """
    settings = settings or AggregationSettings()
    now = now or utc_now()
    deadline = time.monotonic() + timeout if timeout else None
    stop = threading.Event()

    def _task(spec: AggregatorSpec):
        session = session_factory()
        try:
            ctx = AggregationContext(
                session=session,
                filter=filt,
                now=now,
                settings=settings,
                rollup_reader=rollup_reader,
                cancel_event=stop,
                deadline=deadline,
            )
            return run_aggregator(spec, ctx)
        finally:
            session.close()

    executor = ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix='hsse-agg')
    futures = {executor.submit(_task, spec): spec for spec in specs}
    pending = set(futures)
    try:
        while pending:
            if cancel_event is not None and cancel_event.is_set():
                stop.set()
                raise DashboardCancelledError("Dashboard request cancelled")
            wait_for = poll_interval
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    stop.set()
                    raise DashboardUnavailableError(
                        f"Dashboard aggregation timed out after {timeout}s",
                        reason='timeout',
                    )
                wait_for = min(poll_interval, remaining)
            _, pending = wait(pending, timeout=wait_for, return_when=FIRST_COMPLETED)
    finally:
        for future in pending:
            future.cancel()
        executor.shutdown(wait=False, cancel_futures=True)

    results = {}
    errors = []
    for future, spec in futures.items():
        slot = spec.slot
        try:
            result = future.result()
        except AggregationCancelled as e:
            # A task observed the deadline before the join loop did
            if cancel_event is not None and cancel_event.is_set():
                raise DashboardCancelledError("Dashboard request cancelled") from e
            raise DashboardUnavailableError(f"Aggregator {slot} stopped: {e}", reason='timeout') from e
        except Exception as e:
            # Session factory failures land here; still isolated per slot
            logger.error(f"Aggregator {slot} failed before running: {e}", exc_info=True)
            result = DomainUnavailable(reason=f"{spec.title} unavailable ({type(e).__name__})")
        if isinstance(result, DomainUnavailable):
            errors.append({'slot': slot, 'reason': result.reason})
        results[slot] = result

    # Log summary if any errors occurred
    if errors:
        logger.warning(f"Aggregation completed with {len(errors)} unavailable slots: {errors}")

    return results
