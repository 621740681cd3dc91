"""
Response Models

Pydantic models for every payload the engine returns. Field names are
snake_case in Python and camelCase on the wire.
"""

from datetime import date, datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialising to camelCase keys"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Period(CamelModel):
    """Requested window as echoed back; 'all-time' / 'now' when open"""
    start_date: str
    end_date: str


# =============================================================================
# EVENT INGESTION
# =============================================================================

class DailyCounterRead(CamelModel):
    """One day-bucket row"""
    id: str
    business_id: str
    date: date
    views: int
    searches: int
    messages: int
    bookings: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# BUSINESS ANALYTICS / INSIGHTS
# =============================================================================

class BusinessSummary(CamelModel):
    id: str
    name: str
    slug: str
    rating: Optional[float]
    review_count: int
    favorite_count: int
    appointment_count: int


class CounterTotals(CamelModel):
    views: int = 0
    searches: int = 0
    messages: int = 0
    bookings: int = 0


class BusinessAnalytics(CamelModel):
    """Counter totals and the most recent daily rows for one business"""
    business: BusinessSummary
    period: Period
    totals: CounterTotals
    daily_series: List[DailyCounterRead]


class PeakHourEntry(CamelModel):
    hour: int
    count: int
    time_range: str


class AppointmentFunnelRead(CamelModel):
    total: int
    confirmed: int
    pending: int
    canceled: int
    completed: int
    no_show: int


class BusinessInsights(CamelModel):
    """Derived operational metrics for one business"""
    business_id: str
    period: Period
    peak_hours: List[PeakHourEntry]
    rating_distribution: Dict[int, int]
    appointment_funnel: AppointmentFunnelRead
    conversion_rate: float
    favorite_count: int
    average_rating: float


# =============================================================================
# PLATFORM DASHBOARD / TRENDS
# =============================================================================

class DashboardOverview(CamelModel):
    total_businesses: int
    total_users: int
    total_reviews: int
    total_appointments: int


class OwnerSummary(CamelModel):
    id: str
    email: str
    first_name: str
    last_name: str


class CategorySummary(CamelModel):
    id: str
    name: str
    slug: str


class RecentBusiness(CamelModel):
    id: str
    name: str
    slug: str
    rating: Optional[float]
    verified: bool
    created_at: Optional[datetime]
    owner: OwnerSummary
    category: CategorySummary


class TopBusiness(CamelModel):
    id: str
    name: str
    slug: str
    rating: Optional[float]
    review_count: int
    favorite_count: int
    category: str


class PlatformDashboard(CamelModel):
    overview: DashboardOverview
    recent_businesses: List[RecentBusiness]
    top_businesses: List[TopBusiness]


class CategoryPopularity(CamelModel):
    name: str
    slug: str
    business_count: int


class GrowthCounts(CamelModel):
    new_businesses: int
    new_users: int
    new_reviews: int


class GrowthRates(CamelModel):
    """Percent change against the preceding window of equal length"""
    businesses: float
    users: float
    reviews: float


class EngagedUser(CamelModel):
    id: str
    name: str
    email: str
    review_count: int
    appointment_count: int
    favorite_count: int


class PlatformTrends(CamelModel):
    period: Period
    growth: GrowthCounts
    growth_rates: Optional[GrowthRates] = None
    top_categories: List[CategoryPopularity]
    top_engaged_users: List[EngagedUser]


# =============================================================================
# REPORTS
# =============================================================================

class ReportMetadata(CamelModel):
    generated_at: datetime
    period: Period


class ReportBusiness(CamelModel):
    id: str
    name: str
    slug: str
    category: str
    rating: Optional[float]
    review_count: int
    verified: bool
    owner: str


class ReportSummary(CamelModel):
    total_reviews: int
    average_rating: float
    total_appointments: int
    total_favorites: int
    total_analytics_events: int


class ReportReview(CamelModel):
    id: str
    rating: int
    title: Optional[str]
    comment: Optional[str]
    user: str
    created_at: datetime


class ReportAppointment(CamelModel):
    id: str
    date: datetime
    status: str
    duration: int


class Report(CamelModel):
    """Full business report; rendered as JSON or CSV"""
    metadata: ReportMetadata
    business: ReportBusiness
    summary: ReportSummary
    reviews: List[ReportReview]
    appointments: List[ReportAppointment]


# =============================================================================
# PLATFORM REPORTS
# =============================================================================

class ReportPeriod(CamelModel):
    """Resolved bounds a platform report covers"""
    start: datetime
    end: datetime


class BusinessPerformanceSummary(CamelModel):
    new_businesses: int
    verified_businesses: int
    verification_rate: float
    businesses_by_category: List[CategoryPopularity]


class StatusCount(CamelModel):
    status: str
    count: int


class AppointmentAnalyticsSummary(CamelModel):
    total_appointments: int
    appointments_by_status: List[StatusCount]


class RatingCount(CamelModel):
    rating: int
    count: int


class ReviewSummaryStats(CamelModel):
    total_reviews: int
    average_rating: float
    reviews_by_rating: List[RatingCount]


class PlatformReport(CamelModel):
    type: str
    period: ReportPeriod
    summary: Union[BusinessPerformanceSummary, AppointmentAnalyticsSummary, ReviewSummaryStats]
