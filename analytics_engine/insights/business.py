"""
Business Insight Calculator

Per-business reads over a window:
- Counter totals and the recent daily series from the day-bucket table
- Peak appointment hours, appointment funnel and conversion rate
- Rating distribution and average rating
- Favorites gained
"""

import structlog

from analytics_engine.database import queries
from analytics_engine.insights.base import InsightService
from analytics_engine.insights.schemas import (
    AppointmentFunnelRead,
    BusinessAnalytics,
    BusinessInsights,
    BusinessSummary,
    CounterTotals,
    DailyCounterRead,
    PeakHourEntry,
    Period,
)
from analytics_engine.insights.window import DateWindow
from analytics_engine.transformation import metrics

logger = structlog.get_logger(__name__)


class BusinessInsightCalculator(InsightService):
    """
    Derives per-business analytics and insights.

    Example:
        calculator = BusinessInsightCalculator(session_factory)
        insights = await calculator.get_business_insights(business_id, DateWindow.parse("2024-01-01"))
    """

    async def get_business_analytics(self, business_id: str, window: DateWindow) -> BusinessAnalytics:
        """
        Counter totals and the most recent daily rows within the window.

        Raises:
            NotFoundError: If the business does not exist
        """
        business = await self.require_business(business_id)
        limit = self.settings.daily_series_limit

        results = await self.read_all("business_analytics", {
            "daily": lambda s: queries.recent_daily_counters(s, business_id, window, limit),
            "totals": lambda s: queries.sum_daily_counters(s, business_id, window),
            "related": lambda s: queries.count_business_relations(s, business_id),
        })
        related = results["related"]

        analytics = BusinessAnalytics(
            business=BusinessSummary(
                id=business.id,
                name=business.name,
                slug=business.slug,
                rating=business.rating,
                review_count=related["reviews"],
                favorite_count=related["favorites"],
                appointment_count=related["appointments"],
            ),
            period=Period(**window.period()),
            totals=CounterTotals(**results["totals"]),
            daily_series=[DailyCounterRead.model_validate(row) for row in results["daily"]],
        )

        logger.info(
            "Business analytics computed",
            business_id=business_id,
            days=len(analytics.daily_series),
            views=analytics.totals.views,
        )
        return analytics

    async def get_business_insights(self, business_id: str, window: DateWindow) -> BusinessInsights:
        """
        Peak hours, rating distribution, appointment funnel, conversion rate,
        favorites and average rating for one business.

        Appointments are windowed by appointment date, reviews and favorites
        by creation date.

        Raises:
            NotFoundError: If the business does not exist
        """
        await self.require_business(business_id)

        results = await self.read_all("business_insights", {
            "appointments": lambda s: queries.fetch_appointments(s, business_id, window),
            "reviews": lambda s: queries.fetch_reviews(s, business_id, window),
            "favorites": lambda s: queries.count_favorites(s, business_id, window),
        })
        appointments = results["appointments"]
        ratings = [review.rating for review in results["reviews"]]

        hours = metrics.peak_hours(
            [appointment.date for appointment in appointments],
            zone=self.settings.zone,
            limit=self.settings.peak_hours_limit,
        )
        funnel = metrics.appointment_funnel([appointment.status for appointment in appointments])

        insights = BusinessInsights(
            business_id=business_id,
            period=Period(**window.period()),
            peak_hours=[
                PeakHourEntry(hour=h.hour, count=h.count, time_range=h.time_range) for h in hours
            ],
            rating_distribution=metrics.rating_distribution(ratings),
            appointment_funnel=AppointmentFunnelRead(**funnel.to_dict()),
            conversion_rate=metrics.conversion_rate(funnel),
            favorite_count=results["favorites"],
            average_rating=metrics.average_rating(ratings),
        )

        logger.info(
            "Business insights computed",
            business_id=business_id,
            appointments=funnel.total,
            reviews=len(ratings),
            conversion_rate=insights.conversion_rate,
        )
        return insights
