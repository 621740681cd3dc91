"""
Unit Tests - Business Insights
"""
from datetime import date

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import create_async_engine

from analytics_engine.database.connection import build_session_factory
from analytics_engine.errors import NotFoundError
from analytics_engine.insights import BusinessInsightCalculator, DateWindow
from analytics_engine.insights.fanout import run_reads

MARCH = DateWindow.parse("2024-03-01", "2024-03-31")


@pytest.fixture
def calculator(session_factory, analytics_settings) -> BusinessInsightCalculator:
    return BusinessInsightCalculator(session_factory, analytics_settings)


class TestBusinessAnalytics:
    """Tests for get_business_analytics"""

    async def test_totals_and_series(self, calculator, seeded):
        analytics = await calculator.get_business_analytics(seeded["lopez"], DateWindow.parse())

        assert analytics.totals.views == 15
        assert analytics.totals.searches == 3
        assert analytics.totals.messages == 1
        assert analytics.totals.bookings == 1
        assert [row.date for row in analytics.daily_series] == [date(2024, 3, 2), date(2024, 3, 1)]
        assert analytics.period.start_date == "all-time"

    async def test_summary_counts_related_rows(self, calculator, seeded):
        summary = (await calculator.get_business_analytics(seeded["lopez"], DateWindow.parse())).business

        assert summary.slug == "lopez-hair-studio"
        assert summary.rating == 4.5
        assert (summary.review_count, summary.favorite_count, summary.appointment_count) == (2, 2, 6)

    async def test_window_restricts_days(self, calculator, seeded):
        analytics = await calculator.get_business_analytics(seeded["lopez"], DateWindow.parse("2024-03-02"))

        assert analytics.totals.views == 5
        assert len(analytics.daily_series) == 1

    async def test_series_limit(self, session_factory, analytics_settings, seeded):
        settings = analytics_settings.model_copy(update={"daily_series_limit": 1})
        calculator = BusinessInsightCalculator(session_factory, settings)

        analytics = await calculator.get_business_analytics(seeded["lopez"], DateWindow.parse())

        assert [row.date for row in analytics.daily_series] == [date(2024, 3, 2)]
        assert analytics.totals.views == 15

    async def test_no_counters_is_zero(self, calculator, seeded):
        analytics = await calculator.get_business_analytics(seeded["iron"], DateWindow.parse())

        assert analytics.totals.views == 0
        assert analytics.daily_series == []

    async def test_unknown_business(self, calculator, seeded):
        with pytest.raises(NotFoundError):
            await calculator.get_business_analytics("biz-missing", DateWindow.parse())


class TestBusinessInsights:
    """Tests for get_business_insights"""

    async def test_derived_metrics(self, calculator, seeded):
        insights = await calculator.get_business_insights(seeded["lopez"], MARCH)

        assert [(h.hour, h.count) for h in insights.peak_hours] == [(9, 3), (14, 2), (20, 1)]
        assert insights.peak_hours[0].time_range == "9:00 - 10:00"
        assert insights.appointment_funnel.total == 6
        assert insights.appointment_funnel.completed == 2
        assert insights.conversion_rate == 50.0
        assert insights.rating_distribution == {1: 0, 2: 0, 3: 0, 4: 1, 5: 1}
        assert insights.average_rating == 4.5
        assert insights.favorite_count == 2

    async def test_empty_window(self, calculator, seeded):
        insights = await calculator.get_business_insights(
            seeded["lopez"], DateWindow.parse("2025-01-01", "2025-01-31")
        )

        assert insights.peak_hours == []
        assert insights.appointment_funnel.total == 0
        assert insights.conversion_rate == 0.0
        assert insights.average_rating == 0.0
        assert sum(insights.rating_distribution.values()) == 0

    async def test_appointments_windowed_by_date(self, calculator, seeded):
        insights = await calculator.get_business_insights(
            seeded["lopez"], DateWindow.parse("2024-03-06", "2024-03-06")
        )
        assert insights.appointment_funnel.total == 2

    async def test_distribution_matches_review_count(self, calculator, seeded):
        insights = await calculator.get_business_insights(seeded["lopez"], DateWindow.parse())
        assert sum(insights.rating_distribution.values()) == 2

    async def test_unknown_business(self, calculator, seeded):
        with pytest.raises(NotFoundError):
            await calculator.get_business_insights("biz-missing", MARCH)


class TestFanOut:
    """Tests for concurrent reads"""

    async def test_results_keyed_by_name(self, session_factory):
        async def one(session):
            return 1

        async def two(session):
            return 2

        assert await run_reads(session_factory, "test", {"a": one, "b": two}) == {"a": 1, "b": 2}

    async def test_first_failure_is_raised_unwrapped(self, session_factory):
        async def ok(session):
            return 1

        async def broken(session):
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await run_reads(session_factory, "test", {"ok": ok, "broken": broken})

    async def test_store_errors_propagate(self, tmp_path, analytics_settings):
        # no schema: every query fails
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
        calculator = BusinessInsightCalculator(build_session_factory(engine), analytics_settings)
        try:
            with pytest.raises(OperationalError):
                await calculator.get_business_insights("biz-lopez", MARCH)
        finally:
            await engine.dispose()
