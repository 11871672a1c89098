"""
HSSE Dashboard Service - composite HSSE report with cache → rollup → live layering.

This service turns one dashboard request into one CompositeReport:

    ResolveFilter → BuildKey → CacheLookup ─ HIT ─────────────────────────────→ return
                                           └ MISS → Compute → Serialize → Store → return

Key Features:
- Canonical filter resolution (one validation boundary)
- Versioned, deterministic cache keys
- Bounded-concurrency fan-out with per-slot failure isolation
- Rollup-first aggregation where a window lines up with pre-aggregated buckets
- Single-flight per cache key (concurrent misses share one computation)
- Cancellation and request deadline; neither ever writes to the cache

Usage:
    from services.hsse_dashboard_service import HSSEDashboardService

    service = HSSEDashboardService.from_config(app.config, session_factory)
    report, meta = service.handle_with_meta({'startDate': '2024-01-01', 'department': 'Ops'})
"""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from api.contracts.pydantic_models.hsse_dashboard import DashboardParams
from config import get_aggregation_settings
from constants import HSSE_REPORT_SCHEMA_VERSION
from schemas.hsse_report import CompositeReport, ReportFilter
from services.hsse.base import (
    AggregationSettings,
    DashboardCancelledError,
    DashboardUnavailableError,
    log_timing,
)
from services.hsse.filters import HSSEFilter, resolve_filter
from services.hsse.registry import get_spec, list_sections, run_aggregators, specs_for_filter
from services.report_cache import ReportCache, build_cache_backend
from services.rollup_reader import RollupReader, get_rollup_reader
from utils.cache_key import build_cache_prefix, build_dashboard_cache_key
from utils.normalize import ValidationError

logger = logging.getLogger('hsse.dashboard')

LOCK_POLL_INTERVAL = 0.05


def _utc_clock() -> datetime:
    return datetime.now(timezone.utc)


def params_from_request(request) -> DashboardParams:
    """
    Accept DashboardParams, a raw mapping (camelCase or snake_case) or None.

    Raises:
        ValidationError: the mapping could not be coerced
    """
    if request is None:
        return DashboardParams()
    if isinstance(request, DashboardParams):
        return request
    if isinstance(request, Mapping):
        try:
            return DashboardParams.model_validate(dict(request))
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = '.'.join(str(part) for part in first.get('loc', ())) or None
            raise ValidationError(
                first.get('msg', str(e)),
                field=field,
                received_value=first.get('input'),
            ) from e
    raise TypeError(f"Unsupported dashboard request type: {type(request).__name__}")


class HSSEDashboardService:
    """Aggregation orchestrator for the HSSE composite dashboard."""

    def __init__(
        self,
        session_factory: Callable[[], Any],
        cache: ReportCache,
        *,
        settings: Optional[AggregationSettings] = None,
        rollup_reader: Optional[RollupReader] = None,
        namespace: str = 'hsse:dashboard',
        schema_version: str = HSSE_REPORT_SCHEMA_VERSION,
        ttl: Optional[int] = None,
        max_workers: int = 4,
        timeout: Optional[float] = 30.0,
        single_flight: bool = True,
        cache_partial_reports: bool = False,
        clock: Callable[[], datetime] = _utc_clock,
    ):
        self._session_factory = session_factory
        self._cache = cache
        self._settings = settings or AggregationSettings()
        self._rollup_reader = rollup_reader if rollup_reader is not None else get_rollup_reader()
        self._prefix = build_cache_prefix(namespace, schema_version)
        self._schema_version = schema_version
        self._ttl = ttl
        self._max_workers = max_workers
        self._timeout = timeout
        self._single_flight = single_flight
        self._cache_partial_reports = cache_partial_reports
        self._clock = clock

        # Locks for cache stampede prevention: key -> [lock, requests holding or waiting]
        self._key_locks = {}
        self._key_locks_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: Mapping[str, Any], session_factory: Callable[[], Any],
                    cache: Optional[ReportCache] = None, **overrides) -> 'HSSEDashboardService':
        """Build the service from a Flask app.config (or any mapping of Config names)."""
        ttl = int(config.get('HSSE_CACHE_TTL_SECONDS', 900))
        if cache is None:
            cache = ReportCache(build_cache_backend(config), default_ttl=ttl)
        options = dict(
            settings=get_aggregation_settings(dict(config)),
            namespace=config.get('HSSE_CACHE_NAMESPACE', 'hsse:dashboard'),
            schema_version=config.get('HSSE_REPORT_SCHEMA_VERSION', HSSE_REPORT_SCHEMA_VERSION),
            ttl=ttl,
            max_workers=int(config.get('HSSE_MAX_WORKERS', 4)),
            timeout=float(config.get('HSSE_REQUEST_TIMEOUT_SECONDS', 30)) or None,
            single_flight=bool(config.get('HSSE_SINGLE_FLIGHT', True)),
            cache_partial_reports=bool(config.get('HSSE_CACHE_PARTIAL_REPORTS', False)),
        )
        options.update(overrides)
        return cls(session_factory, cache, **options)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, request=None) -> Tuple[HSSEFilter, DashboardParams]:
        params = params_from_request(request)
        filt = resolve_filter(
            start_date=params.start_date,
            end_date=params.end_date,
            department=params.department,
            location=params.location,
            include_trends=params.include_trends,
            include_comparisons=params.include_comparisons,
            today=self._clock().date(),
        )
        return filt, params

    def cache_key(self, filt: HSSEFilter) -> str:
        return build_dashboard_cache_key(self._prefix, filt)

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def handle(self, request=None, *, cancel_event: Optional[threading.Event] = None,
               skip_cache: bool = False) -> CompositeReport:
        report, _ = self.handle_with_meta(request, cancel_event=cancel_event, skip_cache=skip_cache)
        return report

    def handle_with_meta(self, request=None, *, cancel_event: Optional[threading.Event] = None,
                         skip_cache: bool = False) -> Tuple[CompositeReport, Dict[str, Any]]:
        """
        Produce the composite report plus a meta block.

        Raises:
            ValidationError: bad request values (start after end, bad dates, ...)
            DashboardCancelledError: cancel_event was set before the report was assembled
            DashboardUnavailableError: orchestration failure or timeout (retryable)
        """
        started = time.perf_counter()
        filt, params = self.resolve(request)
        skip_cache = skip_cache or params.skip_cache
        key = self.cache_key(filt)

        if not skip_cache:
            cached = self._cache.get(key)
            if cached is not None:
                logger.debug(f"Cache hit for {key}")
                return cached, self._meta(key, True, started, cached)

        if self._single_flight:
            deadline = time.monotonic() + self._timeout if self._timeout else None
            lock = self._checkout_key_lock(key)
            try:
                self._acquire(lock, cancel_event, deadline)
                try:
                    if not skip_cache:
                        # Double-check: another request may have filled it while we waited
                        cached = self._cache.get(key)
                        if cached is not None:
                            return cached, self._meta(key, True, started, cached)
                    report = self._compute_and_store(filt, key, cancel_event)
                finally:
                    lock.release()
            finally:
                self._return_key_lock(key)
        else:
            report = self._compute_and_store(filt, key, cancel_event)

        return report, self._meta(key, False, started, report)

    @log_timing("hsse_dashboard_compute")
    def _compute_and_store(self, filt: HSSEFilter, key: str,
                           cancel_event: Optional[threading.Event]) -> CompositeReport:
        results = self._run(specs_for_filter(filt), filt, cancel_event)
        self._check_cancelled(cancel_event)

        try:
            report = CompositeReport(
                schema_version=self._schema_version,
                generated_at=self._clock(),
                filter=ReportFilter(**filt.as_dict()),
                **results,
            )
            payload = report.to_json_bytes()
            # Hand back exactly what a later cache hit will return
            report = CompositeReport.from_json_bytes(payload)
        except Exception as e:
            logger.error(f"Dashboard report assembly failed for {key}: {e}", exc_info=True)
            raise DashboardUnavailableError("Dashboard report could not be assembled", reason='assembly') from e

        self._check_cancelled(cancel_event)

        unavailable = report.unavailable_slots()
        if unavailable and not self._cache_partial_reports:
            logger.warning(f"Not caching {key}: unavailable slots {unavailable}")
        else:
            self._cache.set(key, payload, self._ttl)
        return report

    def _run(self, specs, filt: HSSEFilter, cancel_event: Optional[threading.Event]) -> Dict[str, Any]:
        try:
            return run_aggregators(
                specs,
                filt,
                session_factory=self._session_factory,
                settings=self._settings,
                rollup_reader=self._rollup_reader,
                now=self._clock().astimezone(timezone.utc).replace(tzinfo=None),
                max_workers=self._max_workers,
                timeout=self._timeout,
                cancel_event=cancel_event,
            )
        except (DashboardCancelledError, DashboardUnavailableError):
            raise
        except Exception as e:
            logger.error(f"Dashboard aggregation failed: {e}", exc_info=True)
            raise DashboardUnavailableError("Dashboard aggregation failed", reason=type(e).__name__) from e

    # ------------------------------------------------------------------
    # Sections / admin
    # ------------------------------------------------------------------

    def compute_section(self, slot: str, request=None, *,
                        cancel_event: Optional[threading.Event] = None):
        """
        Compute one report slot, uncached.

        Raises:
            KeyError: unknown slot
        """
        spec = get_spec(slot)
        filt, _ = self.resolve(request)
        return self._run([spec], filt, cancel_event)[slot]

    def list_sections(self):
        return list_sections()

    def rollup_status(self):
        session = self._session_factory()
        try:
            return self._rollup_reader.status(session)
        finally:
            session.close()

    def invalidate(self, request=None) -> str:
        filt, _ = self.resolve(request)
        key = self.cache_key(filt)
        self._cache.invalidate(key)
        return key

    def clear_cache(self) -> None:
        self._cache.clear()

    def cache_stats(self) -> Dict[str, Any]:
        stats = dict(self._cache.stats())
        stats['prefix'] = self._prefix
        return stats

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _checkout_key_lock(self, key: str) -> threading.Lock:
        with self._key_locks_lock:
            entry = self._key_locks.get(key)
            if entry is None:
                entry = self._key_locks[key] = [threading.Lock(), 0]
            entry[1] += 1
            return entry[0]

    def _return_key_lock(self, key: str) -> None:
        """Drop the key's lock once no request holds or waits on it."""
        with self._key_locks_lock:
            entry = self._key_locks.get(key)
            if entry is None:
                return
            entry[1] -= 1
            if entry[1] <= 0:
                del self._key_locks[key]

    def _acquire(self, lock: threading.Lock, cancel_event: Optional[threading.Event],
                 deadline: Optional[float]) -> None:
        while not lock.acquire(timeout=LOCK_POLL_INTERVAL):
            self._check_cancelled(cancel_event)
            if deadline is not None and time.monotonic() >= deadline:
                raise DashboardUnavailableError(
                    "Timed out waiting for an in-flight dashboard computation", reason='timeout'
                )

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise DashboardCancelledError("Dashboard request cancelled")

    def _meta(self, key: str, cache_hit: bool, started: float, report: CompositeReport) -> Dict[str, Any]:
        return {
            'cache_hit': cache_hit,
            'cache_key': key,
            'elapsed_ms': round((time.perf_counter() - started) * 1000, 2),
            'schema_version': report.schema_version,
            'unavailable': report.unavailable_slots(),
        }
