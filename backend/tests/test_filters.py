"""
Window & filter resolution tests.

One request shape in, one canonical HSSEFilter out:
- defaults (end = today UTC, start = end - 1 year)
- start > end is the only rejected window
- empty organisational filters collapse to "all"
"""

import pytest
from dataclasses import FrozenInstanceError
from datetime import date, datetime, timedelta, timezone

from services.hsse.filters import HSSEFilter, one_year_before, resolve_filter
from utils.normalize import ValidationError


TODAY = date(2024, 6, 15)


class TestDefaults:
    def test_no_dates_means_last_year_up_to_today(self):
        filt = resolve_filter(today=TODAY)
        assert filt.start_date == date(2023, 6, 15)
        assert filt.end_date == TODAY

    def test_start_defaults_relative_to_explicit_end(self):
        filt = resolve_filter(end_date="2024-03-31", today=TODAY)
        assert filt.start_date == date(2023, 3, 31)

    def test_leap_day_clamps_to_feb_28(self):
        assert one_year_before(date(2024, 2, 29)) == date(2023, 2, 28)
        filt = resolve_filter(end_date=date(2024, 2, 29), today=TODAY)
        assert filt.start_date == date(2023, 2, 28)

    def test_flags_default_true(self):
        filt = resolve_filter(today=TODAY)
        assert filt.include_trends is True
        assert filt.include_comparisons is True

    def test_flag_strings(self):
        filt = resolve_filter(include_trends="false", include_comparisons="0", today=TODAY)
        assert filt.include_trends is False
        assert filt.include_comparisons is False


class TestValidation:
    def test_start_after_end_rejected(self):
        with pytest.raises(ValidationError) as exc:
            resolve_filter(start_date="2024-12-31", end_date="2024-01-01", today=TODAY)
        assert exc.value.field == "startDate"

    def test_single_day_window_allowed(self):
        filt = resolve_filter(start_date="2024-05-01", end_date="2024-05-01", today=TODAY)
        assert filt.start_date == filt.end_date

    def test_unparseable_date_rejected(self):
        with pytest.raises(ValidationError) as exc:
            resolve_filter(end_date="yesterday", today=TODAY)
        assert exc.value.field == "endDate"

    def test_bad_flag_rejected(self):
        with pytest.raises(ValidationError):
            resolve_filter(include_trends="sometimes", today=TODAY)


class TestOrganisationalFilter:
    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty_department_is_all(self, value):
        assert resolve_filter(department=value, today=TODAY).department is None

    def test_values_are_stripped(self):
        filt = resolve_filter(department=" Operations ", location="Plant A ", today=TODAY)
        assert filt.department == "Operations"
        assert filt.location == "Plant A"


class TestWindowBounds:
    def test_exclusive_upper_bound(self):
        filt = HSSEFilter(start_date=date(2024, 1, 1), end_date=date(2024, 12, 31))
        start, end_exclusive = filt.window_bounds()
        assert start == datetime(2024, 1, 1)
        assert end_exclusive == datetime(2025, 1, 1)

    def test_aware_input_uses_utc_day(self):
        # 2024-07-01 02:00 +08:00 is 2024-06-30 in UTC
        value = datetime(2024, 7, 1, 2, 0, tzinfo=timezone(timedelta(hours=8)))
        filt = resolve_filter(end_date=value, today=TODAY)
        assert filt.end_date == date(2024, 6, 30)

    def test_filter_is_frozen(self):
        filt = resolve_filter(today=TODAY)
        with pytest.raises(FrozenInstanceError):
            filt.department = "Ops"
