"""
Unit Tests - Insight Metrics
"""
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from analytics_engine.database.models import AppointmentStatus
from analytics_engine.transformation.metrics import (
    AppointmentFunnel,
    appointment_funnel,
    average_rating,
    conversion_rate,
    format_hour_range,
    growth_rate,
    peak_hours,
    rating_distribution,
    round_half_up,
    share_percent,
)


def _at(hour: int, day: int = 1) -> datetime:
    return datetime(2024, 3, day, hour, 0)


class TestPeakHours:
    """Tests for peak hour ranking"""

    def test_ranks_busiest_hours_first(self):
        hours = peak_hours([_at(9), _at(9), _at(9), _at(14), _at(14), _at(20)])

        assert [(h.hour, h.count) for h in hours] == [(9, 3), (14, 2), (20, 1)]
        assert hours[0].time_range == "9:00 - 10:00"

    def test_limit(self):
        hours = peak_hours([_at(h) for h in range(8, 16)], limit=3)
        assert len(hours) == 3

    def test_ties_broken_by_earlier_hour(self):
        hours = peak_hours([_at(15), _at(11), _at(15), _at(11), _at(8)])
        assert [h.hour for h in hours] == [11, 15, 8]

    def test_empty(self):
        assert peak_hours([]) == []

    def test_hour_read_in_zone(self):
        # 23:30 UTC is 08:30 the next morning in Tokyo
        hours = peak_hours([datetime(2024, 3, 1, 23, 30)], zone=ZoneInfo("Asia/Tokyo"))
        assert hours[0].hour == 8

    def test_aware_timestamps(self):
        ts = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
        assert peak_hours([ts])[0].hour == 9

    def test_from_dataframe(self, sample_appointments_df):
        hours = peak_hours(sample_appointments_df["date"].to_list())
        assert [(h.hour, h.count) for h in hours] == [(9, 3), (14, 2), (20, 1)]

    def test_format_last_hour(self):
        assert format_hour_range(23) == "23:00 - 24:00"


class TestAppointmentFunnel:
    """Tests for the status funnel and conversion rate"""

    def test_counts_by_status(self, sample_appointments_df):
        funnel = appointment_funnel(sample_appointments_df["status"].to_list())

        assert funnel == AppointmentFunnel(
            total=6, confirmed=1, pending=1, canceled=1, completed=2, no_show=1
        )

    def test_accepts_enum_members(self):
        funnel = appointment_funnel([AppointmentStatus.CONFIRMED, AppointmentStatus.CONFIRMED])
        assert funnel.confirmed == 2
        assert funnel.total == 2

    def test_conversion_rate(self, sample_appointments_df):
        funnel = appointment_funnel(sample_appointments_df["status"].to_list())
        assert conversion_rate(funnel) == 50.0

    def test_conversion_rate_zero_appointments(self):
        funnel = appointment_funnel([])
        assert funnel.total == 0
        assert conversion_rate(funnel) == 0.0

    def test_conversion_rate_rounds_half_up(self):
        funnel = AppointmentFunnel(total=3, confirmed=2)
        assert conversion_rate(funnel) == 66.67


class TestRatings:
    """Tests for rating distribution and average"""

    def test_distribution_has_every_star(self):
        distribution = rating_distribution([5, 5, 4, 1])
        assert distribution == {1: 1, 2: 0, 3: 0, 4: 1, 5: 2}

    def test_distribution_sums_to_valid_ratings(self):
        ratings = [1, 2, 3, 4, 5, 5, 0, 6]
        distribution = rating_distribution(ratings)
        assert sum(distribution.values()) == 6

    def test_distribution_empty(self):
        assert rating_distribution([]) == {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}

    def test_average(self):
        assert average_rating([5, 4]) == 4.5
        assert average_rating([5, 4, 4]) == 4.33

    def test_average_empty_is_zero(self):
        assert average_rating([]) == 0.0


class TestGrowthRate:
    """Tests for period-over-period growth"""

    @pytest.mark.parametrize(
        "current,previous,expected",
        [
            (10, 5, 100.0),
            (5, 10, -50.0),
            (3, 0, 100.0),
            (0, 0, 0.0),
            (1, 3, -66.67),
        ],
    )
    def test_growth_rate(self, current, previous, expected):
        assert growth_rate(current, previous) == expected


def test_round_half_up():
    assert round_half_up(2.345) == 2.35
    assert round_half_up(2.5, places=0) == 3.0


@pytest.mark.parametrize(
    "part, whole, expected",
    [(1, 3, 33.33), (2, 2, 100.0), (0, 0, 0.0), (0, 5, 0.0)],
)
def test_share_percent(part, whole, expected):
    assert share_percent(part, whole) == expected
