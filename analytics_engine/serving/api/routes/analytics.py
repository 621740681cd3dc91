"""
Analytics API Endpoints

REST API for event tracking, business insights, platform dashboards and
business reports.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
import structlog

from analytics_engine.config import AnalyticsSettings, get_settings
from analytics_engine.database.connection import get_session_factory
from analytics_engine.ingestion import EventIngestor
from analytics_engine.insights import (
    BusinessInsightCalculator,
    DateWindow,
    PlatformReportType,
    PlatformTrendAggregator,
    ReportCompiler,
    ReportFormat,
)
from analytics_engine.insights.schemas import (
    BusinessAnalytics,
    BusinessInsights,
    CamelModel,
    DailyCounterRead,
    PlatformDashboard,
    PlatformReport,
    PlatformTrends,
)
from analytics_engine.serving.cache import analytics_cache

router = APIRouter()
logger = structlog.get_logger(__name__)

SessionFactory = async_sessionmaker[AsyncSession]


class TrackEventRequest(CamelModel):
    """Engagement event posted by a client"""
    business_id: str
    event_type: str
    metadata: Optional[Dict[str, Any]] = None


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_analytics_settings() -> AnalyticsSettings:
    return get_settings().analytics


def get_window(
    start_date: Optional[str] = Query(None, alias="startDate", description="ISO-8601 date or datetime"),
    end_date: Optional[str] = Query(None, alias="endDate", description="ISO-8601 date or datetime"),
    settings: AnalyticsSettings = Depends(get_analytics_settings),
) -> DateWindow:
    return DateWindow.parse(start_date, end_date, zone=settings.zone)


# =============================================================================
# EVENTS
# =============================================================================

@router.post("/events", response_model=DailyCounterRead, status_code=status.HTTP_201_CREATED)
async def track_event(
    body: TrackEventRequest,
    session_factory: SessionFactory = Depends(get_session_factory),
    settings: AnalyticsSettings = Depends(get_analytics_settings),
) -> DailyCounterRead:
    """Increment today's counter for the business the event refers to."""
    ingestor = EventIngestor(session_factory, settings)
    return await ingestor.track_event(body.business_id, body.event_type, body.metadata)


# =============================================================================
# BUSINESS
# =============================================================================

@router.get("/business/{business_id}", response_model=BusinessAnalytics)
async def get_business_analytics(
    business_id: str,
    window: DateWindow = Depends(get_window),
    session_factory: SessionFactory = Depends(get_session_factory),
    settings: AnalyticsSettings = Depends(get_analytics_settings),
) -> BusinessAnalytics:
    """Counter totals and the most recent daily rows for one business."""
    calculator = BusinessInsightCalculator(session_factory, settings)
    return await calculator.get_business_analytics(business_id, window)


@router.get("/business/{business_id}/insights", response_model=BusinessInsights)
async def get_business_insights(
    business_id: str,
    window: DateWindow = Depends(get_window),
    session_factory: SessionFactory = Depends(get_session_factory),
    settings: AnalyticsSettings = Depends(get_analytics_settings),
) -> BusinessInsights:
    """Peak hours, rating distribution and appointment funnel."""
    calculator = BusinessInsightCalculator(session_factory, settings)
    return await calculator.get_business_insights(business_id, window)


@router.get("/business/{business_id}/report")
async def get_business_report(
    business_id: str,
    format: Optional[str] = Query(None, description="json (default) or csv"),
    window: DateWindow = Depends(get_window),
    session_factory: SessionFactory = Depends(get_session_factory),
    settings: AnalyticsSettings = Depends(get_analytics_settings),
):
    """
    Full business report.

    JSON is wrapped as ``{"format": "json", "data": {...}}``; CSV is
    returned as an attachment.
    """
    report_format = ReportFormat.parse(format)
    compiler = ReportCompiler(session_factory, settings)
    rendered = await compiler.generate_report(business_id, window, report_format)

    if rendered.format == ReportFormat.CSV:
        filename = f"report-{rendered.report.business.slug}.csv"
        return Response(
            content=rendered.data,
            media_type=rendered.media_type,
            headers={
                "Content-Disposition": f'attachment; filename="{filename}"',
                "X-Report-Format": ReportFormat.CSV.value,
            },
        )

    return {"format": ReportFormat.JSON.value, "data": rendered.data}


# =============================================================================
# PLATFORM
# =============================================================================

@router.get("/dashboard", response_model=PlatformDashboard)
async def get_platform_dashboard(
    session_factory: SessionFactory = Depends(get_session_factory),
    settings: AnalyticsSettings = Depends(get_analytics_settings),
):
    """All-time platform totals with recent and top rated businesses."""
    aggregator = PlatformTrendAggregator(session_factory, settings)

    async def compute() -> Dict[str, Any]:
        dashboard = await aggregator.get_platform_dashboard()
        return dashboard.model_dump(by_alias=True, mode="json")

    return await analytics_cache.get_or_set("dashboard", compute, ttl=settings.dashboard_cache_ttl)


@router.get("/trends", response_model=PlatformTrends)
async def get_platform_trends(
    window: DateWindow = Depends(get_window),
    session_factory: SessionFactory = Depends(get_session_factory),
    settings: AnalyticsSettings = Depends(get_analytics_settings),
):
    """Category popularity, growth counts and most engaged users."""
    aggregator = PlatformTrendAggregator(session_factory, settings)

    async def compute() -> Dict[str, Any]:
        trends = await aggregator.get_platform_trends(window)
        return trends.model_dump(by_alias=True, mode="json")

    return await analytics_cache.get_or_set(
        f"trends:{window.cache_key()}",
        compute,
        ttl=settings.dashboard_cache_ttl,
    )


@router.get("/reports/{report_type}", response_model=PlatformReport)
async def get_platform_report(
    report_type: str,
    window: DateWindow = Depends(get_window),
    session_factory: SessionFactory = Depends(get_session_factory),
    settings: AnalyticsSettings = Depends(get_analytics_settings),
) -> PlatformReport:
    """
    Windowed platform report: business-performance, appointment-analytics
    or review-summary. Without bounds it covers the last 30 days.
    """
    aggregator = PlatformTrendAggregator(session_factory, settings)
    return await aggregator.generate_platform_report(PlatformReportType.parse(report_type), window)
