"""
Unit Tests - Reporting Windows
"""
from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from analytics_engine.database.models import DailyCounter, Review
from analytics_engine.errors import ValidationError
from analytics_engine.insights.window import DateWindow


class TestDateWindowParse:
    """Tests for DateWindow.parse"""

    def test_open_window(self):
        window = DateWindow.parse()

        assert window.start is None
        assert window.end is None
        assert not window.is_bounded
        assert window.period() == {"start_date": "all-time", "end_date": "now"}

    def test_empty_strings_are_missing(self):
        window = DateWindow.parse("", "")
        assert window.start is None and window.end is None

    def test_date_only_end_covers_whole_day(self):
        window = DateWindow.parse("2024-03-01", "2024-03-31")

        assert window.start == datetime(2024, 3, 1, 0, 0)
        assert window.end == datetime(2024, 3, 31, 23, 59, 59, 999999)
        assert window.start_day == date(2024, 3, 1)
        assert window.end_day == date(2024, 3, 31)

    def test_aware_datetime_normalised_to_utc(self):
        window = DateWindow.parse("2024-03-01T10:00:00+02:00")
        assert window.start == datetime(2024, 3, 1, 8, 0)

    def test_z_suffix(self):
        window = DateWindow.parse(end_date="2024-03-01T10:00:00Z")
        assert window.end == datetime(2024, 3, 1, 10, 0)

    def test_naive_datetime_read_in_zone(self):
        window = DateWindow.parse("2024-03-01T09:00:00", zone=ZoneInfo("Asia/Tokyo"))
        assert window.start == datetime(2024, 3, 1, 0, 0)
        assert window.start_day == date(2024, 3, 1)

    def test_echoes_raw_strings(self):
        window = DateWindow.parse("2024-03-01", None)
        assert window.period() == {"start_date": "2024-03-01", "end_date": "now"}

    @pytest.mark.parametrize("raw", ["yesterday", "2024-13-01", "03/01/2024"])
    def test_malformed_bound(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            DateWindow.parse(raw)
        assert exc_info.value.status_code == 422
        assert exc_info.value.details["field"] == "startDate"

    def test_start_after_end(self):
        with pytest.raises(ValidationError):
            DateWindow.parse("2024-03-10", "2024-03-01")

    def test_same_day_is_valid(self):
        window = DateWindow.parse("2024-03-01", "2024-03-01")
        assert window.start < window.end


class TestDateWindowFilters:
    """Tests for derived bounds"""

    def test_previous_window_has_equal_length(self):
        window = DateWindow.parse("2024-03-01", "2024-03-31")
        previous = window.previous()

        assert previous.end < window.start
        assert previous.end - previous.start == window.end - window.start

    def test_previous_requires_both_bounds(self):
        assert DateWindow.parse("2024-03-01").previous() is None

    def test_filters_only_for_given_bounds(self):
        window = DateWindow.parse(start_date="2024-03-01")

        assert len(window.timestamp_filter(Review.created_at)) == 1
        assert len(window.day_filter(DailyCounter.date)) == 1
        assert DateWindow.parse().timestamp_filter(Review.created_at) == []

    def test_cache_key_distinguishes_windows(self):
        assert DateWindow.parse("2024-03-01").cache_key() != DateWindow.parse("2024-03-02").cache_key()
        assert DateWindow.parse().cache_key() == "all-time:now"


class TestDateWindowCalendarEdges:
    """Bounds at the ends of the supported datetime range"""

    def test_previous_of_window_starting_at_year_one(self):
        window = DateWindow.parse("0001-01-01", "2024-12-31")

        assert window.is_bounded
        assert window.previous() is None

    def test_end_shifted_past_year_9999_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            DateWindow.parse(end_date="9999-12-31", zone=ZoneInfo("America/New_York"))

        assert exc_info.value.status_code == 422
        assert exc_info.value.details["field"] == "endDate"

    def test_start_shifted_before_year_one_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            DateWindow.parse("0001-01-01", zone=ZoneInfo("Asia/Tokyo"))
        assert exc_info.value.details["field"] == "startDate"

    def test_year_9999_in_utc_is_accepted(self):
        window = DateWindow.parse(end_date="9999-12-31")
        assert window.end == datetime(9999, 12, 31, 23, 59, 59, 999999)


class TestDateWindowResolve:
    """Tests for closing open windows"""

    NOW = datetime(2024, 3, 20, 12, 0)

    def test_open_window_covers_default_days(self):
        window = DateWindow.parse().resolve(self.NOW, default_days=30)

        assert window.end == self.NOW
        assert window.start == datetime(2024, 2, 19, 12, 0)

    def test_given_bounds_are_kept(self):
        window = DateWindow.parse("2024-03-01", "2024-03-31").resolve(self.NOW, default_days=30)

        assert window.start == datetime(2024, 3, 1)
        assert window.end == datetime(2024, 3, 31, 23, 59, 59, 999999)
        assert window.start_raw == "2024-03-01"

    def test_start_defaults_relative_to_given_end(self):
        window = DateWindow.parse(end_date="2024-01-10").resolve(self.NOW, default_days=9)
        assert window.start == datetime(2024, 1, 1, 23, 59, 59, 999999)

    def test_default_start_clamped_to_calendar(self):
        window = DateWindow.parse(end_date="0001-01-05").resolve(self.NOW, default_days=30)
        assert window.start == datetime.min
