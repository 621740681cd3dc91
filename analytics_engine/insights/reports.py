"""
Report Compiler

Combines one business's reviews, appointments, favorites and day-bucket
rows for a window into a single report, serialised as a JSON document or
as flat CSV text.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

import structlog

from analytics_engine.database import queries
from analytics_engine.errors import ValidationError
from analytics_engine.insights.base import InsightService
from analytics_engine.insights.csv_export import report_to_csv
from analytics_engine.insights.schemas import (
    Period,
    Report,
    ReportAppointment,
    ReportBusiness,
    ReportMetadata,
    ReportReview,
    ReportSummary,
)
from analytics_engine.insights.window import DateWindow
from analytics_engine.transformation.metrics import average_rating

logger = structlog.get_logger(__name__)


class ReportFormat(str, Enum):
    """Supported report serialisations"""
    JSON = "json"
    CSV = "csv"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "ReportFormat":
        """
        Resolve a format selector; missing means JSON.

        Raises:
            ValidationError: If the selector is not a known format
        """
        if raw is None or raw == "":
            return cls.JSON
        try:
            return cls(raw.lower())
        except ValueError:
            raise ValidationError(
                f"Unsupported report format {raw!r}",
                details={"format": raw, "allowed": [f.value for f in cls]},
            )


@dataclass
class RenderedReport:
    """A compiled report and its serialised body"""
    format: ReportFormat
    report: Report
    data: Union[Dict[str, Any], str]

    @property
    def media_type(self) -> str:
        return "text/csv" if self.format == ReportFormat.CSV else "application/json"


def _as_utc(value: datetime) -> datetime:
    """Stored timestamps are naive UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ReportCompiler(InsightService):
    """
    Builds business reports.

    Example:
        compiler = ReportCompiler(session_factory)
        rendered = await compiler.generate_report(business_id, window, ReportFormat.CSV)
        print(rendered.data)
    """

    async def compile(self, business_id: str, window: DateWindow) -> Report:
        """
        Gather everything in the window into a structured report.

        Reviews, favorites and counter rows are windowed by creation date,
        appointments by appointment date. ``totalAnalyticsEvents`` counts
        day-bucket rows, not individual events.

        Raises:
            NotFoundError: If the business does not exist
        """
        business = await self.require_business(business_id, with_relations=True)

        results = await self.read_all("business_report", {
            "reviews": lambda s: queries.fetch_reviews(s, business_id, window, with_user=True),
            "appointments": lambda s: queries.fetch_appointments(s, business_id, window),
            "favorites": lambda s: queries.count_favorites(s, business_id, window),
            "counters": lambda s: queries.count_daily_counters_created(s, business_id, window),
        })
        reviews = results["reviews"]
        appointments = results["appointments"]

        return Report(
            metadata=ReportMetadata(
                generated_at=datetime.now(timezone.utc),
                period=Period(**window.period()),
            ),
            business=ReportBusiness(
                id=business.id,
                name=business.name,
                slug=business.slug,
                category=business.category.name,
                rating=business.rating,
                review_count=business.review_count,
                verified=business.verified,
                owner=business.owner.display_name,
            ),
            summary=ReportSummary(
                total_reviews=len(reviews),
                average_rating=average_rating([r.rating for r in reviews]),
                total_appointments=len(appointments),
                total_favorites=results["favorites"],
                total_analytics_events=results["counters"],
            ),
            reviews=[
                ReportReview(
                    id=r.id,
                    rating=r.rating,
                    title=r.title,
                    comment=r.comment,
                    user=r.user.display_name,
                    created_at=_as_utc(r.created_at),
                )
                for r in reviews
            ],
            appointments=[
                ReportAppointment(
                    id=a.id,
                    date=_as_utc(a.date),
                    status=a.status.value,
                    duration=a.duration,
                )
                for a in appointments
            ],
        )

    async def generate_report(
        self,
        business_id: str,
        window: DateWindow,
        format: ReportFormat = ReportFormat.JSON,
    ) -> RenderedReport:
        """Compile a report and serialise it in the requested format."""
        report = await self.compile(business_id, window)

        if format == ReportFormat.CSV:
            data: Union[Dict[str, Any], str] = report_to_csv(report)
        else:
            data = report.model_dump(by_alias=True, mode="json")

        logger.info(
            "Report generated",
            business_id=business_id,
            format=format.value,
            reviews=report.summary.total_reviews,
            appointments=report.summary.total_appointments,
        )
        return RenderedReport(format=format, report=report, data=data)
