"""
Trend aggregator tests.

FIXED_NOW is 2024-06-15, so every yearly series is 2019..2024 regardless of
the request window; lost-time injury follows the window instead.
"""

from datetime import date, datetime

import pytest

from constants import classify_performance
from services.hsse.base import AggregationSettings
from factories import YEAR_2024, hazard, incident

EXPECTED_YEARS = [2019, 2020, 2021, 2022, 2023, 2024]


class TestFrequencyRates:
    def test_always_six_rows_even_when_empty(self, run_slot):
        series = run_slot('frequency_rates', **YEAR_2024)
        assert [row.year for row in series.items] == EXPECTED_YEARS
        assert all(row.incident_count == 0 for row in series.items)
        assert all(row.total_recordable_incident_frequency_rate == 0.0 for row in series.items)

    def test_rates_per_200k_hours(self, add_records, run_slot):
        add_records(
            incident(incident_date=datetime(2022, 4, 1), related_to='Work', lost_work_days=3),
            incident(incident_date=datetime(2022, 8, 1), related_to='Study', lost_work_days=1),
            incident(incident_date=datetime(2018, 8, 1)),                  # before the series
        )
        settings = AggregationSettings(annual_working_hours=100000)
        series = run_slot('frequency_rates', settings=settings, **YEAR_2024)
        row_2022 = next(r for r in series.items if r.year == 2022)

        assert row_2022.incident_count == 2
        assert row_2022.lost_work_days == 4
        assert row_2022.total_recordable_incident_frequency_rate == 4.0
        assert row_2022.total_recordable_severity_rate == 8.0
        assert row_2022.work_related_ifr == 2.0
        assert row_2022.study_related_ifr == 2.0
        assert row_2022.work_related_sr == 6.0
        assert row_2022.study_related_sr == 2.0

    def test_department_scope_applies(self, add_records, run_slot):
        add_records(
            incident(incident_date=datetime(2023, 1, 1), department='Operations'),
            incident(incident_date=datetime(2023, 1, 1), department='Maintenance'),
        )
        series = run_slot('frequency_rates', department='Maintenance', **YEAR_2024)
        assert sum(r.incident_count for r in series.items) == 1

    def test_zero_hours_gives_zero_rate(self, add_records, run_slot):
        add_records(incident(incident_date=datetime(2024, 2, 1)))
        series = run_slot('frequency_rates', settings=AggregationSettings(annual_working_hours=0), **YEAR_2024)
        assert series.items[-1].incident_count == 1
        assert series.items[-1].total_recordable_incident_frequency_rate == 0.0


class TestSafetyPerformance:
    def test_six_rows_with_hazards_and_levels(self, add_records, run_slot):
        add_records(
            hazard(created_at=datetime(2021, 3, 1), category='Near Miss'),
            hazard(created_at=datetime(2021, 3, 2), severity='Major'),
            *[incident(incident_date=datetime(2023, 5, 1)) for _ in range(6)],
        )
        series = run_slot('safety_performance', **YEAR_2024)
        by_year = {row.year: row for row in series.items}

        assert list(by_year) == EXPECTED_YEARS
        assert (by_year[2021].hazards, by_year[2021].near_miss, by_year[2021].accidents) == (2, 1, 1)
        # 6 incidents / 208,000 h × 200,000 = 5.77
        assert by_year[2023].total_ifr == 5.77
        assert (by_year[2023].performance_level, by_year[2023].color_code) == ('Average', 'Yellow')
        assert (by_year[2020].performance_level, by_year[2020].color_code) == ('Excellent', 'Green')

    @pytest.mark.parametrize("ifr,expected", [
        (0.0, ('Excellent', 'Green')),
        (1.99, ('Excellent', 'Green')),
        (2.0, ('Good', 'LightGreen')),
        (4.99, ('Good', 'LightGreen')),
        (5.0, ('Average', 'Yellow')),
    ])
    def test_performance_bands(self, ifr, expected):
        assert classify_performance(ifr) == expected


class TestLostTimeInjury:
    def test_counts_injuries_with_treatment_in_window(self, add_records, run_slot):
        add_records(
            incident(related_to='Work'),
            incident(related_to='Study'),
            incident(related_to='Work', injury_type='None'),                  # no injury
            incident(related_to='Work', medical_treatment_provided=False),    # no treatment
            incident(incident_date=datetime(2023, 3, 1)),                     # outside window
        )
        lti = run_slot('lost_time_injury', settings=AggregationSettings(annual_working_hours=200000), **YEAR_2024)

        assert lti.year == 2024
        assert lti.total_lti_cases == 2
        assert lti.work_related_cases == 1
        assert lti.study_related_cases == 1
        assert lti.total_lti_case_rate == 2.0
        assert lti.lti_work_related_rate == 1.0

    def test_year_follows_window_end(self, run_slot):
        lti = run_slot('lost_time_injury', start_date=date(2022, 1, 1), end_date=date(2022, 12, 31))
        assert lti.year == 2022
        assert lti.total_lti_cases == 0
