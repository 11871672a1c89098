"""
Request logging middleware - sampled access log for the HSSE API.

One `api_request` line per logged request on the `api.request` logger:

    api_request path=/api/hsse/dashboard method=GET status=200 duration_ms=41.3 cache_hit=True request_id=...

Which requests are logged:
    - paths under REQUEST_LOG_ENDPOINTS (comma-separated prefixes): always
    - any other /api path: with probability REQUEST_LOG_SAMPLE_RATE
    - nothing at all when REQUEST_LOG_ENABLED is false

Requests slower than REQUEST_LOG_SLOW_MS are logged at WARNING regardless of
sampling, so slow cache misses always show up.
"""

import logging
import random
import time
from dataclasses import dataclass
from typing import Tuple

from flask import Flask, g, request

logger = logging.getLogger("api.request")

DEFAULT_SLOW_MS = 5000


@dataclass(frozen=True)
class RequestSampler:
    always: Tuple[str, ...] = ()
    rate: float = 0.0

    @classmethod
    def from_config(cls, config) -> "RequestSampler":
        raw = config.get("REQUEST_LOG_ENDPOINTS") or ""
        parts = raw if isinstance(raw, (list, tuple)) else raw.split(",")
        try:
            rate = float(config.get("REQUEST_LOG_SAMPLE_RATE", 0.0))
        except (TypeError, ValueError):
            rate = 0.0
        return cls(
            always=tuple(p.strip() for p in parts if p and p.strip()),
            rate=min(1.0, max(0.0, rate)),
        )

    def wants(self, path: str) -> bool:
        if self.always and path.startswith(self.always):
            return True
        return self.rate > 0 and random.random() < self.rate


def setup_request_logging_middleware(app: Flask) -> None:
    """Attach the sampled access log to `app` (no-op when REQUEST_LOG_ENABLED is false)."""
    if not app.config.get("REQUEST_LOG_ENABLED", True):
        return

    sampler = RequestSampler.from_config(app.config)
    slow_ms = float(app.config.get("REQUEST_LOG_SLOW_MS", DEFAULT_SLOW_MS))

    @app.before_request
    def _mark_start():
        g.request_started = time.perf_counter()

    @app.after_request
    def _access_log(response):
        if not request.path.startswith("/api"):
            return response

        started = getattr(g, "request_started", None)
        duration_ms = round((time.perf_counter() - started) * 1000, 2) if started is not None else None
        slow = duration_ms is not None and duration_ms >= slow_ms
        if not slow and not sampler.wants(request.path):
            return response

        logger.log(
            logging.WARNING if slow else logging.INFO,
            "api_request path=%s method=%s status=%s duration_ms=%s cache_hit=%s request_id=%s",
            request.path,
            request.method,
            response.status_code,
            duration_ms,
            getattr(g, "cache_hit", None),
            getattr(g, "request_id", None),
        )
        return response
