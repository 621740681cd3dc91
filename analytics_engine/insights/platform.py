"""
Platform Trend Aggregator

Platform-wide reads for the admin dashboard and trend views:
- All-time totals, newest businesses and top rated businesses
- Category popularity
- Growth counts (and growth against the preceding window)
- Most engaged users
- Windowed platform reports (business performance, appointments, reviews)
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

import structlog

from analytics_engine.database import queries
from analytics_engine.database.models import Appointment, AppointmentStatus, Business, Review, User
from analytics_engine.errors import ValidationError
from analytics_engine.insights.base import InsightService
from analytics_engine.insights.schemas import (
    AppointmentAnalyticsSummary,
    BusinessPerformanceSummary,
    CategoryPopularity,
    DashboardOverview,
    EngagedUser,
    GrowthCounts,
    GrowthRates,
    Period,
    PlatformDashboard,
    PlatformReport,
    PlatformTrends,
    RatingCount,
    RecentBusiness,
    ReportPeriod,
    ReviewSummaryStats,
    StatusCount,
    TopBusiness,
)
from analytics_engine.insights.window import DateWindow
from analytics_engine.transformation.metrics import RATING_STARS, growth_rate, round_half_up, share_percent

logger = structlog.get_logger(__name__)


class PlatformReportType(str, Enum):
    """Windowed admin reports over the whole platform"""
    BUSINESS_PERFORMANCE = "business-performance"
    APPOINTMENT_ANALYTICS = "appointment-analytics"
    REVIEW_SUMMARY = "review-summary"

    @classmethod
    def parse(cls, raw: str) -> "PlatformReportType":
        """
        Raises:
            ValidationError: If the report type is unknown
        """
        try:
            return cls(raw.lower())
        except ValueError:
            raise ValidationError(
                f"Unknown report type {raw!r}",
                details={"type": raw, "allowed": [t.value for t in cls]},
            )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class PlatformTrendAggregator(InsightService):
    """Aggregates across all businesses, users, categories and reviews."""

    async def get_platform_dashboard(self) -> PlatformDashboard:
        """All-time totals plus recent and top rated businesses."""
        recent_limit = self.settings.recent_businesses_limit
        top_limit = self.settings.top_businesses_limit

        results = await self.read_all("platform_dashboard", {
            "businesses": lambda s: queries.count_rows(s, Business),
            "users": lambda s: queries.count_rows(s, User),
            "reviews": lambda s: queries.count_rows(s, Review),
            "appointments": lambda s: queries.count_rows(s, Appointment),
            "recent": lambda s: queries.recent_businesses(s, recent_limit),
            "top": lambda s: queries.top_rated_businesses(s, top_limit),
        })

        dashboard = PlatformDashboard(
            overview=DashboardOverview(
                total_businesses=results["businesses"],
                total_users=results["users"],
                total_reviews=results["reviews"],
                total_appointments=results["appointments"],
            ),
            recent_businesses=[RecentBusiness.model_validate(b) for b in results["recent"]],
            top_businesses=[
                TopBusiness(
                    id=business.id,
                    name=business.name,
                    slug=business.slug,
                    rating=business.rating,
                    review_count=review_count,
                    favorite_count=favorite_count,
                    category=business.category.name,
                )
                for business, review_count, favorite_count in results["top"]
            ],
        )

        logger.info(
            "Platform dashboard computed",
            businesses=dashboard.overview.total_businesses,
            users=dashboard.overview.total_users,
        )
        return dashboard

    async def get_platform_trends(self, window: DateWindow) -> PlatformTrends:
        """
        Category popularity, growth within the window and top engaged users.

        When the window has both bounds, growth is also compared with the
        preceding window of the same length.
        """
        reads = {
            "categories": lambda s: queries.category_popularity(s, self.settings.top_categories_limit),
            "new_businesses": lambda s: queries.count_rows(s, Business, window),
            "new_users": lambda s: queries.count_rows(s, User, window),
            "new_reviews": lambda s: queries.count_rows(s, Review, window),
            "users": lambda s: queries.top_engaged_users(s, self.settings.top_users_limit),
        }

        previous = window.previous()
        if previous is not None:
            reads.update({
                "prev_businesses": lambda s: queries.count_rows(s, Business, previous),
                "prev_users": lambda s: queries.count_rows(s, User, previous),
                "prev_reviews": lambda s: queries.count_rows(s, Review, previous),
            })

        results = await self.read_all("platform_trends", reads)

        growth_rates = None
        if previous is not None:
            growth_rates = GrowthRates(
                businesses=growth_rate(results["new_businesses"], results["prev_businesses"]),
                users=growth_rate(results["new_users"], results["prev_users"]),
                reviews=growth_rate(results["new_reviews"], results["prev_reviews"]),
            )

        trends = PlatformTrends(
            period=Period(**window.period()),
            growth=GrowthCounts(
                new_businesses=results["new_businesses"],
                new_users=results["new_users"],
                new_reviews=results["new_reviews"],
            ),
            growth_rates=growth_rates,
            top_categories=[CategoryPopularity(**row) for row in results["categories"]],
            top_engaged_users=[EngagedUser(**row) for row in results["users"]],
        )

        logger.info(
            "Platform trends computed",
            categories=len(trends.top_categories),
            new_businesses=trends.growth.new_businesses,
        )
        return trends

    async def generate_platform_report(
        self,
        report_type: PlatformReportType,
        window: DateWindow,
        now: Optional[datetime] = None,
    ) -> PlatformReport:
        """
        Summarise one slice of platform activity for rows created in the window.

        An open end runs through ``now``; an open start reaches back
        ``report_default_days`` from the end.
        """
        window = window.resolve(now or _utcnow(), self.settings.report_default_days)

        if report_type == PlatformReportType.BUSINESS_PERFORMANCE:
            summary: Any = await self._business_performance(window)
        elif report_type == PlatformReportType.APPOINTMENT_ANALYTICS:
            summary = await self._appointment_analytics(window)
        else:
            summary = await self._review_summary(window)

        logger.info(
            "Platform report generated",
            report_type=report_type.value,
            start=window.start.isoformat(),
            end=window.end.isoformat(),
        )
        return PlatformReport(
            type=report_type.value,
            period=ReportPeriod(
                start=window.start.replace(tzinfo=timezone.utc),
                end=window.end.replace(tzinfo=timezone.utc),
            ),
            summary=summary,
        )

    async def _business_performance(self, window: DateWindow) -> BusinessPerformanceSummary:
        results = await self.read_all("business_performance_report", {
            "new": lambda s: queries.count_rows(s, Business, window),
            "verified": lambda s: queries.count_verified_businesses(s, window),
            "categories": lambda s: queries.category_popularity(s, self.settings.top_categories_limit, window),
        })
        return BusinessPerformanceSummary(
            new_businesses=results["new"],
            verified_businesses=results["verified"],
            verification_rate=share_percent(results["verified"], results["new"]),
            businesses_by_category=[CategoryPopularity(**row) for row in results["categories"]],
        )

    async def _appointment_analytics(self, window: DateWindow) -> AppointmentAnalyticsSummary:
        results = await self.read_all("appointment_analytics_report", {
            "statuses": lambda s: queries.count_grouped(s, Appointment, Appointment.status, window),
        })
        counts = {AppointmentStatus(key).value: count for key, count in results["statuses"].items()}
        return AppointmentAnalyticsSummary(
            total_appointments=sum(counts.values()),
            appointments_by_status=[
                StatusCount(status=status.value, count=counts.get(status.value, 0))
                for status in AppointmentStatus
            ],
        )

    async def _review_summary(self, window: DateWindow) -> ReviewSummaryStats:
        results = await self.read_all("review_summary_report", {
            "total": lambda s: queries.count_rows(s, Review, window),
            "ratings": lambda s: queries.count_grouped(s, Review, Review.rating, window),
            "average": lambda s: queries.average_review_rating(s, window),
        })
        average = results["average"]
        return ReviewSummaryStats(
            total_reviews=results["total"],
            average_rating=round_half_up(average) if average is not None else 0.0,
            reviews_by_rating=[
                RatingCount(rating=star, count=results["ratings"].get(star, 0))
                for star in RATING_STARS
            ],
        )
