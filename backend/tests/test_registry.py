"""
Aggregator registry tests.

- slot order and lookup
- trend tier toggled by include_trends
- per-slot failure isolation
- cancellation and deadline handling in the fan-out join
"""

import threading
import time
from datetime import date

import pytest

from constants import TIER_CORE, TIER_TREND
from schemas.hsse_report import CompositeReport, DomainUnavailable
from services.hsse.base import (
    AggregatorSpec,
    DashboardCancelledError,
    DashboardUnavailableError,
)
from services.hsse.filters import resolve_filter
from services.hsse.registry import (
    AGGREGATOR_ORDER,
    AGGREGATOR_REGISTRY,
    get_spec,
    list_sections,
    run_aggregators,
    specs_for_filter,
)
from factories import FIXED_NOW_NAIVE, FIXED_TODAY, hazard


def _filter(**kw):
    kw.setdefault('start_date', date(2024, 1, 1))
    kw.setdefault('end_date', date(2024, 12, 31))
    return resolve_filter(today=FIXED_TODAY, **kw)


def _spec(slot, compute, tier=TIER_CORE):
    return AggregatorSpec(slot=slot, title=slot.replace('_', ' ').title(), tier=tier, compute=compute)


def _boom(ctx):
    raise ZeroDivisionError("bad data")


def _slow(ctx):
    while True:
        ctx.check_cancelled()
        time.sleep(0.01)


# =============================================================================
# REGISTRY CONTENTS
# =============================================================================

class TestRegistry:
    def test_every_report_slot_is_registered_in_order(self):
        assert AGGREGATOR_ORDER == CompositeReport.slot_names()
        assert set(AGGREGATOR_REGISTRY) == set(AGGREGATOR_ORDER)

    def test_get_spec_unknown_slot(self):
        with pytest.raises(KeyError):
            get_spec('nonexistent')

    def test_list_sections_reports_rollup_domains(self):
        sections = {s['slot']: s for s in list_sections()}
        assert sections['hazard_statistics']['rollup_domain'] == 'hazards'
        assert sections['case_status']['rollup_domain'] == 'hazards'
        assert sections['responsible_actions']['rollup_domain'] is None
        assert sections['frequency_rates']['tier'] == TIER_TREND

    def test_trends_only_when_requested(self):
        with_trends = [s.slot for s in specs_for_filter(_filter())]
        without = [s.slot for s in specs_for_filter(_filter(include_trends=False))]

        assert len(with_trends) == 18
        assert len(without) == 15
        assert 'frequency_rates' not in without
        assert without == [slot for slot in with_trends if get_spec(slot).tier != TIER_TREND]


# =============================================================================
# FAN-OUT
# =============================================================================

class TestRunAggregators:
    def test_real_specs_return_every_slot(self, add_records, session_factory):
        add_records(hazard())
        results = run_aggregators(
            specs_for_filter(_filter()), _filter(),
            session_factory=session_factory, now=FIXED_NOW_NAIVE, max_workers=4, timeout=10,
        )
        assert list(results) == AGGREGATOR_ORDER
        assert results['hazard_statistics'].total_hazards == 1
        assert not any(isinstance(r, DomainUnavailable) for r in results.values())

    def test_failure_is_isolated_to_its_slot(self, session_factory):
        specs = [_spec('broken', _boom), get_spec('hazard_statistics')]
        results = run_aggregators(specs, _filter(), session_factory=session_factory, now=FIXED_NOW_NAIVE)

        assert isinstance(results['broken'], DomainUnavailable)
        assert 'ZeroDivisionError' in results['broken'].reason
        assert results['hazard_statistics'].status == 'ok'

    def test_session_factory_failure_is_isolated(self):
        def broken_factory():
            raise RuntimeError("no database")

        results = run_aggregators([_spec('any', lambda ctx: None)], _filter(), session_factory=broken_factory)
        assert isinstance(results['any'], DomainUnavailable)
        assert 'RuntimeError' in results['any'].reason

    def test_each_task_gets_its_own_session(self, session_factory):
        seen = []
        lock = threading.Lock()

        def record_session(ctx):
            with lock:
                seen.append(id(ctx.session))
            time.sleep(0.05)
            return None

        specs = [_spec(f"slot_{i}", record_session) for i in range(4)]
        run_aggregators(specs, _filter(), session_factory=session_factory, max_workers=4)
        assert len(set(seen)) == 4

    def test_runs_concurrently_up_to_max_workers(self, session_factory):
        lock = threading.Lock()
        running = 0
        peak = 0

        def busy(ctx):
            nonlocal running, peak
            with lock:
                running += 1
                peak = max(peak, running)
            time.sleep(0.2)
            with lock:
                running -= 1
            return None

        specs = [_spec(f"slot_{i}", busy) for i in range(6)]
        started = time.monotonic()
        results = run_aggregators(specs, _filter(), session_factory=session_factory,
                                  max_workers=2, timeout=10)
        elapsed = time.monotonic() - started

        assert list(results) == [s.slot for s in specs]
        assert peak == 2
        # One after another would take 6 x 0.2s
        assert elapsed < 1.0

    def test_cancel_event_raises_cancelled(self, session_factory):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(DashboardCancelledError):
            run_aggregators([_spec('slow', _slow)], _filter(), session_factory=session_factory,
                            cancel_event=cancel, timeout=5)

    def test_cancel_mid_flight(self, session_factory):
        cancel = threading.Event()
        threading.Timer(0.1, cancel.set).start()
        started = time.monotonic()
        with pytest.raises(DashboardCancelledError):
            run_aggregators([_spec('slow', _slow)], _filter(), session_factory=session_factory,
                            cancel_event=cancel, timeout=5)
        assert time.monotonic() - started < 2

    def test_deadline_raises_unavailable(self, session_factory):
        with pytest.raises(DashboardUnavailableError) as exc_info:
            run_aggregators([_spec('slow', _slow)], _filter(), session_factory=session_factory, timeout=0.2)
        assert exc_info.value.reason == 'timeout'
        assert exc_info.value.retryable is True
