"""
Rollup path tests.

Rollups may serve a slot only when the window is bucket-aligned, inside
coverage, and every bucket in it had ended before it was computed. Anything
else (cold start, missing table, partial window, month still running) must
fall back to the live path and give the same numbers.
"""

from datetime import date, datetime
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from services.hsse.base import AggregationSettings
from services.hsse.filters import resolve_filter
from services.rollup_reader import (
    RollupCoverage,
    get_rollup_reader,
    is_bucket_aligned,
    period_end,
    select_rollup_path,
)
from factories import FIXED_TODAY, YEAR_2024, hazard, rollup, twelve_hazards

HAZARD_MONTH = {'total': 4, 'near_miss': 1, 'accidents': 1, 'closed': 3}
YEAR_2023 = dict(start_date=date(2023, 1, 1), end_date=date(2023, 12, 31))


def _covered_2024():
    return RollupCoverage(
        domain='hazards', granularity='month',
        first_period_start=date(2024, 1, 1), last_period_end=date(2024, 12, 31),
        row_count=12, last_computed_at=datetime(2025, 1, 2),
    )


def _filter(start, end):
    return resolve_filter(start_date=start, end_date=end, today=FIXED_TODAY)


# =============================================================================
# PATH SELECTION
# =============================================================================

class TestBucketAlignment:
    @pytest.mark.parametrize("start,end,granularity,aligned", [
        (date(2024, 1, 1), date(2024, 1, 31), 'month', True),
        (date(2024, 2, 1), date(2024, 2, 29), 'month', True),
        (date(2024, 1, 1), date(2024, 12, 31), 'month', True),
        (date(2024, 1, 2), date(2024, 1, 31), 'month', False),
        (date(2024, 1, 1), date(2024, 1, 30), 'month', False),
        (date(2023, 1, 1), date(2024, 12, 31), 'year', True),
        (date(2024, 1, 1), date(2024, 6, 30), 'year', False),
        (date(2024, 1, 1), date(2024, 1, 31), 'week', False),
    ])
    def test_alignment(self, start, end, granularity, aligned):
        assert is_bucket_aligned(start, end, granularity) is aligned

    def test_period_end(self):
        assert period_end(date(2023, 2, 1), 'month') == date(2023, 2, 28)
        assert period_end(date(2024, 2, 1), 'month') == date(2024, 2, 29)
        assert period_end(date(2024, 1, 1), 'year') == date(2024, 12, 31)


class TestSelectRollupPath:
    def test_aligned_and_covered(self):
        assert select_rollup_path(_filter(date(2024, 3, 1), date(2024, 5, 31)), _covered_2024(), 'month')

    def test_disabled(self):
        assert not select_rollup_path(_filter(date(2024, 3, 1), date(2024, 5, 31)), _covered_2024(), 'month',
                                      enabled=False)

    def test_empty_or_missing_coverage(self):
        filt = _filter(date(2024, 3, 1), date(2024, 5, 31))
        assert not select_rollup_path(filt, None, 'month')
        assert not select_rollup_path(filt, RollupCoverage(domain='hazards', granularity='month'), 'month')

    def test_unaligned_window(self):
        assert not select_rollup_path(_filter(date(2024, 3, 2), date(2024, 5, 31)), _covered_2024(), 'month')

    def test_window_outside_coverage(self):
        assert not select_rollup_path(_filter(date(2023, 12, 1), date(2024, 5, 31)), _covered_2024(), 'month')
        assert not select_rollup_path(_filter(date(2024, 12, 1), date(2025, 1, 31)), _covered_2024(), 'month')

    def test_window_not_closed_at_last_refresh(self):
        refreshed_june = RollupCoverage(
            domain='hazards', granularity='month', first_period_start=date(2024, 1, 1),
            last_period_end=date(2024, 6, 30), row_count=6, last_computed_at=datetime(2024, 6, 1),
        )
        assert select_rollup_path(_filter(date(2024, 5, 1), date(2024, 5, 31)), refreshed_june, 'month')
        assert not select_rollup_path(_filter(date(2024, 6, 1), date(2024, 6, 30)), refreshed_june, 'month')

    def test_unknown_refresh_time(self):
        undated = RollupCoverage(
            domain='hazards', granularity='month', first_period_start=date(2024, 1, 1),
            last_period_end=date(2024, 12, 31), row_count=12,
        )
        assert not select_rollup_path(_filter(date(2024, 3, 1), date(2024, 3, 31)), undated, 'month')


# =============================================================================
# READER
# =============================================================================

class TestRollupReader:
    def test_coverage_and_status(self, add_records, session_factory):
        add_records(
            rollup('hazards', date(2024, 1, 1), HAZARD_MONTH),
            rollup('hazards', date(2024, 2, 1), HAZARD_MONTH),
            rollup('waste', date(2024, 1, 1), {'total': 1}),
        )
        session = session_factory()
        try:
            reader = get_rollup_reader()
            coverage = reader.coverage(session, 'hazards', 'month')
            status = reader.status(session)
        finally:
            session.close()

        assert coverage.first_period_start == date(2024, 1, 1)
        assert coverage.last_period_end == date(2024, 2, 29)
        assert coverage.row_count == 2
        assert [(s['domain'], s['row_count']) for s in status] == [('hazards', 2), ('waste', 1)]

    def test_empty_table_has_empty_coverage(self, session_factory):
        session = session_factory()
        try:
            assert get_rollup_reader().coverage(session, 'hazards', 'month').is_empty
        finally:
            session.close()


# =============================================================================
# EXECUTION (rollup-first, live fallback)
# =============================================================================

class TestRollupExecution:
    def test_served_from_rollups_when_aligned_and_covered(self, add_records, run_slot):
        add_records(*[rollup('hazards', date(2023, m, 1), HAZARD_MONTH) for m in range(1, 13)])

        stats = run_slot('hazard_statistics', **YEAR_2023)

        assert stats.source == 'rollup'
        assert stats.total_hazards == 48
        assert stats.closed_cases == 36
        assert stats.completion_rate == 75.0

    def test_month_still_running_uses_live(self, add_records, run_slot):
        add_records(
            rollup('hazards', date(2024, 6, 1), {'total': 0}, computed_at=datetime(2024, 6, 1)),
            hazard(created_at=datetime(2024, 6, 10, 8, 0)),
            hazard(created_at=datetime(2024, 6, 12, 8, 0)),
        )

        stats = run_slot('hazard_statistics', start_date=date(2024, 6, 1), end_date=date(2024, 6, 30))

        assert stats.source == 'live'
        assert stats.total_hazards == 2

    def test_bucket_written_before_it_closed_uses_live(self, add_records, run_slot):
        # A later refresh of January does not make the February bucket final
        add_records(
            rollup('hazards', date(2024, 1, 1), HAZARD_MONTH, computed_at=datetime(2024, 6, 1)),
            rollup('hazards', date(2024, 2, 1), {'total': 0}, computed_at=datetime(2024, 2, 10)),
            hazard(created_at=datetime(2024, 2, 20, 8, 0)),
        )

        stats = run_slot('hazard_statistics', start_date=date(2024, 2, 1), end_date=date(2024, 2, 29))

        assert stats.source == 'live'
        assert stats.total_hazards == 1

    def test_department_narrows_rollup_rows(self, add_records, run_slot):
        add_records(
            rollup('hazards', date(2024, 1, 1), HAZARD_MONTH),
            rollup('hazards', date(2024, 1, 1), {'total': 10}, department='Maintenance'),
        )
        stats = run_slot('hazard_statistics', start_date=date(2024, 1, 1), end_date=date(2024, 1, 31),
                         department='Maintenance')
        assert stats.source == 'rollup'
        assert stats.total_hazards == 10

    def test_empty_table_uses_live(self, add_records, run_slot):
        add_records(*twelve_hazards())
        stats = run_slot('hazard_statistics', department='Operations', **YEAR_2024)
        assert stats.source == 'live'
        assert stats.total_hazards == 12

    def test_unaligned_window_uses_live(self, add_records, run_slot):
        add_records(
            *[rollup('hazards', date(2024, m, 1), HAZARD_MONTH) for m in range(1, 13)],
            *twelve_hazards(),
        )
        stats = run_slot('hazard_statistics', department='Operations',
                         start_date=date(2024, 1, 1), end_date=date(2024, 12, 30))
        assert stats.source == 'live'
        # Noise exposure on 12-31 falls outside this window
        assert stats.total_hazards == 11

    def test_covered_but_no_rows_for_scope_uses_live(self, add_records, run_slot):
        add_records(rollup('hazards', date(2024, 1, 1), HAZARD_MONTH), *twelve_hazards())
        stats = run_slot('hazard_statistics', start_date=date(2024, 1, 1), end_date=date(2024, 1, 31),
                         location='Plant Z')
        assert stats.source == 'live'
        assert stats.total_hazards == 0

    def test_disabled_by_settings(self, add_records, run_slot):
        add_records(*[rollup('hazards', date(2023, m, 1), HAZARD_MONTH) for m in range(1, 13)])
        stats = run_slot('hazard_statistics', settings=AggregationSettings(rollups_enabled=False), **YEAR_2023)
        assert stats.source == 'live'
        assert stats.total_hazards == 0

    def test_missing_table_uses_live(self, app, add_records, run_slot):
        from models.database import db
        from models.rollup import HSSERollup

        add_records(*twelve_hazards())
        with app.app_context():
            HSSERollup.__table__.drop(db.engine)

        stats = run_slot('hazard_statistics', department='Operations', **YEAR_2024)
        assert stats.source == 'live'
        assert stats.total_hazards == 12

    def test_reader_error_uses_live(self, add_records, run_slot):
        reader = MagicMock()
        reader.coverage.side_effect = OperationalError("SELECT", {}, Exception("connection lost"))
        add_records(*twelve_hazards())

        stats = run_slot('hazard_statistics', rollup_reader=reader, department='Operations', **YEAR_2024)
        assert stats.source == 'live'
        assert stats.total_hazards == 12

    def test_rollup_backed_extended_domains(self, add_records, run_slot):
        add_records(
            rollup('waste', date(2024, 3, 1), {'total': 4, 'hazardous': 2, 'pending': 1,
                                               'spills': 1, 'reductions': 1}),
            rollup('security', date(2024, 3, 1), {'total': 2, 'resolved': 1}),
        )
        window = dict(start_date=date(2024, 3, 1), end_date=date(2024, 3, 31))

        waste = run_slot('waste_environmental', **window)
        security = run_slot('security_incidents', **window)

        assert waste.source == 'rollup'
        assert waste.waste_compliance_rate == 75.0
        assert security.source == 'rollup'
        assert security.resolution_rate == 50.0
