"""
Root pytest configuration for backend tests.

Provides:
- File-backed SQLite app per test (tables created by create_app in TESTING)
- session_factory for aggregator/orchestrator tests (one Session per task)
- add_records helper for seeding record-store rows
- fixed_clock (factories.FIXED_NOW) so windows, trends and overdue checks are deterministic
"""

import sys
from pathlib import Path

# Add backend directory to Python path so imports like
# `from services.hsse.filters import ...` and `from utils.normalize import ...` work
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

import pytest
from sqlalchemy.orm import sessionmaker

from factories import FIXED_NOW_NAIVE, FIXED_TODAY, fixed_clock


@pytest.fixture
def app(tmp_path):
    """Create test Flask application backed by a throwaway SQLite file."""
    from app import create_app
    from models.database import db

    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'hsse_test.db'}",
        'REDIS_URL': None,
        'HSSE_REQUEST_TIMEOUT_SECONDS': 10,
        'REQUEST_LOG_ENABLED': False,
    })
    yield app

    with app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def session_factory(app):
    from models.database import db

    with app.app_context():
        return sessionmaker(bind=db.engine)


@pytest.fixture
def add_records(session_factory):
    """
    Persist record-store rows.

    Usage:
        add_records(Hazard(...), Hazard(...))
    """
    def _add(*records):
        session = session_factory()
        try:
            session.add_all(records)
            session.commit()
        finally:
            session.close()
    return _add


@pytest.fixture
def dashboard_service(session_factory):
    """Dashboard service with an in-memory cache and the fixed clock."""
    from services.hsse_dashboard_service import HSSEDashboardService
    from services.report_cache import ReportCache, TTLCache

    def _build(**overrides):
        cache = overrides.pop('cache', None) or ReportCache(TTLCache(maxsize=50, ttl=60), default_ttl=60)
        options = dict(ttl=60, max_workers=4, timeout=10, clock=fixed_clock)
        options.update(overrides)
        return HSSEDashboardService(session_factory, cache, **options)
    return _build


@pytest.fixture
def run_slot(session_factory):
    """
    Run one aggregator's full path (rollup-first, live fallback) and return its block.

    Usage:
        stats = run_slot('hazard_statistics', start_date=date(2024, 1, 1), end_date=date(2024, 12, 31))
    """
    from services.hsse.base import AggregationContext, AggregationSettings, execute_aggregator
    from services.hsse.filters import resolve_filter
    from services.hsse.registry import get_spec
    from services.rollup_reader import get_rollup_reader

    def _run(slot, settings=None, rollup_reader=None, **filter_kwargs):
        filter_kwargs.setdefault('today', FIXED_TODAY)
        filt = resolve_filter(**filter_kwargs)
        session = session_factory()
        try:
            ctx = AggregationContext(
                session=session,
                filter=filt,
                now=FIXED_NOW_NAIVE,
                settings=settings or AggregationSettings(),
                rollup_reader=rollup_reader or get_rollup_reader(),
            )
            return execute_aggregator(get_spec(slot), ctx)
        finally:
            session.close()
    return _run
