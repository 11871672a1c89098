"""
HSSE Dashboard Routes - Thin controllers over HSSEDashboardService

Endpoints:
- GET    /api/hsse/dashboard            - Composite report (cache → rollup → live)
- GET    /api/hsse/sections             - Registered report slots
- GET    /api/hsse/sections/<slot>      - One slot, uncached (selective refresh)
- GET    /api/hsse/rollups/status       - Rollup coverage per domain/granularity
- GET    /api/hsse/dashboard/cache      - Cache backend statistics
- DELETE /api/hsse/dashboard/cache      - Drop one report (with filter params) or all

Query params (dashboard, sections/<slot>, DELETE cache):
    startDate, endDate    YYYY-MM-DD or ISO 8601; default last year up to today (UTC)
    department, location  exact match; empty means all
    includeTrends         default true
    includeComparisons    default true
    skipCache             dashboard only; bypasses the cache read

ValidationError (400), DashboardUnavailableError (503) and
DashboardCancelledError (503) are rendered by api.middleware.error_envelope.
"""

from flask import Blueprint, current_app, g, jsonify, request

from api.middleware.error_envelope import make_error_response

hsse_bp = Blueprint('hsse', __name__)


def get_dashboard_service():
    return current_app.extensions['hsse_dashboard']


@hsse_bp.route("/dashboard", methods=["GET"])
def dashboard():
    """
    Composite HSSE report for one window and organisational filter.

    Returns:
    {
        "data": {
            "schemaVersion": "v2",
            "generatedAt": "...",
            "filter": {...},
            "hazardStatistics": {"status": "ok", "source": "live", ...},
            "ppeCompliance": {"status": "unavailable", "reason": "..."},
            ...
        },
        "meta": {"cacheHit": false, "cacheKey": "...", "elapsedMs": 41.3, ...}
    }
    """
    service = get_dashboard_service()
    report, meta = service.handle_with_meta(request.args.to_dict())
    g.cache_hit = meta['cache_hit']

    return jsonify({
        "data": report.to_response(),
        "meta": {
            "cacheHit": meta['cache_hit'],
            "cacheKey": meta['cache_key'],
            "elapsedMs": meta['elapsed_ms'],
            "schemaVersion": meta['schema_version'],
            "unavailable": meta['unavailable'],
            "requestId": getattr(g, 'request_id', None),
        }
    })


@hsse_bp.route("/sections", methods=["GET"])
def sections():
    """List registered report slots in report order."""
    return jsonify({"sections": get_dashboard_service().list_sections()})


@hsse_bp.route("/sections/<slot>", methods=["GET"])
def section(slot: str):
    """
    Compute one slot without touching the cache.

    A failing aggregator still answers 200 with {"status": "unavailable"};
    only an unknown slot is an error.
    """
    service = get_dashboard_service()
    try:
        result = service.compute_section(slot, request.args.to_dict())
    except KeyError:
        return make_error_response(
            "UNKNOWN_SECTION",
            f"Unknown section: {slot}",
            details={"available": [s['slot'] for s in service.list_sections()]},
        )

    return jsonify({
        "slot": slot,
        "data": result.model_dump(mode='json', by_alias=True),
    })


@hsse_bp.route("/rollups/status", methods=["GET"])
def rollup_status():
    """Rollup coverage, plus which slots can be served from each domain."""
    service = get_dashboard_service()
    coverage = service.rollup_status()
    served_by = {}
    for item in service.list_sections():
        if item['rollup_domain']:
            served_by.setdefault(item['rollup_domain'], []).append(item['slot'])
    return jsonify({"coverage": coverage, "slots_by_domain": served_by})


@hsse_bp.route("/dashboard/cache", methods=["GET"])
def cache_stats():
    return jsonify(get_dashboard_service().cache_stats())


@hsse_bp.route("/dashboard/cache", methods=["DELETE"])
def clear_cache():
    """
    With filter params, invalidate that one report; without, clear everything.
    """
    service = get_dashboard_service()
    if request.args:
        key = service.invalidate(request.args.to_dict())
        return jsonify({"status": "invalidated", "cache_key": key})
    service.clear_cache()
    return jsonify({"status": "cleared"})
