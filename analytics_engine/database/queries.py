"""
Read Queries

Every read the insight, trend and report operations issue. Each function
takes its own session so callers can run several of them concurrently,
one session per query.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple, Type, TYPE_CHECKING

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from analytics_engine.database.models import (
    Appointment,
    Base,
    Business,
    Category,
    DailyCounter,
    Favorite,
    Review,
    User,
)

if TYPE_CHECKING:
    from analytics_engine.insights.window import DateWindow


# =============================================================================
# BUSINESS LOOKUPS
# =============================================================================

async def fetch_business(
    session: AsyncSession,
    business_id: str,
    with_relations: bool = False,
) -> Optional[Business]:
    """Business by id, optionally with owner and category loaded."""
    query = select(Business).where(Business.id == business_id)
    if with_relations:
        query = query.options(selectinload(Business.owner), selectinload(Business.category))
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def count_business_relations(session: AsyncSession, business_id: str) -> Dict[str, int]:
    """All-time review, favorite and appointment counts for one business."""
    result = await session.execute(
        select(
            select(func.count(Review.id)).where(Review.business_id == business_id).scalar_subquery().label("reviews"),
            select(func.count(Favorite.id)).where(Favorite.business_id == business_id).scalar_subquery().label("favorites"),
            select(func.count(Appointment.id)).where(Appointment.business_id == business_id).scalar_subquery().label("appointments"),
        )
    )
    row = result.one()
    return {
        "reviews": row.reviews or 0,
        "favorites": row.favorites or 0,
        "appointments": row.appointments or 0,
    }


# =============================================================================
# PER-BUSINESS RECORDS
# =============================================================================

async def fetch_appointments(
    session: AsyncSession,
    business_id: str,
    window: "DateWindow",
) -> Sequence[Appointment]:
    """Appointments whose start time falls in the window, oldest first."""
    result = await session.execute(
        select(Appointment)
        .where(and_(Appointment.business_id == business_id, *window.timestamp_filter(Appointment.date)))
        .order_by(Appointment.date.asc(), Appointment.id.asc())
    )
    return result.scalars().all()


async def fetch_reviews(
    session: AsyncSession,
    business_id: str,
    window: "DateWindow",
    with_user: bool = False,
) -> Sequence[Review]:
    """Reviews created in the window, oldest first."""
    query = (
        select(Review)
        .where(and_(Review.business_id == business_id, *window.timestamp_filter(Review.created_at)))
        .order_by(Review.created_at.asc(), Review.id.asc())
    )
    if with_user:
        query = query.options(selectinload(Review.user))
    result = await session.execute(query)
    return result.scalars().all()


async def count_favorites(session: AsyncSession, business_id: str, window: "DateWindow") -> int:
    result = await session.execute(
        select(func.count(Favorite.id)).where(
            and_(Favorite.business_id == business_id, *window.timestamp_filter(Favorite.created_at))
        )
    )
    return result.scalar_one()


# =============================================================================
# DAILY COUNTERS
# =============================================================================

async def recent_daily_counters(
    session: AsyncSession,
    business_id: str,
    window: "DateWindow",
    limit: int = 30,
) -> Sequence[DailyCounter]:
    """Newest counter rows by calendar day within the window."""
    result = await session.execute(
        select(DailyCounter)
        .where(and_(DailyCounter.business_id == business_id, *window.day_filter(DailyCounter.date)))
        .order_by(DailyCounter.date.desc())
        .limit(limit)
    )
    return result.scalars().all()


async def sum_daily_counters(session: AsyncSession, business_id: str, window: "DateWindow") -> Dict[str, int]:
    """Per-field sums over the window; 0 where there is no data."""
    result = await session.execute(
        select(
            func.sum(DailyCounter.views).label("views"),
            func.sum(DailyCounter.searches).label("searches"),
            func.sum(DailyCounter.messages).label("messages"),
            func.sum(DailyCounter.bookings).label("bookings"),
        ).where(and_(DailyCounter.business_id == business_id, *window.day_filter(DailyCounter.date)))
    )
    row = result.one()
    return {
        "views": int(row.views or 0),
        "searches": int(row.searches or 0),
        "messages": int(row.messages or 0),
        "bookings": int(row.bookings or 0),
    }


async def count_daily_counters_created(session: AsyncSession, business_id: str, window: "DateWindow") -> int:
    """Counter rows first created inside the window."""
    result = await session.execute(
        select(func.count(DailyCounter.id)).where(
            and_(DailyCounter.business_id == business_id, *window.timestamp_filter(DailyCounter.created_at))
        )
    )
    return result.scalar_one()


# =============================================================================
# PLATFORM-WIDE
# =============================================================================

async def count_rows(
    session: AsyncSession,
    model: Type[Base],
    window: Optional["DateWindow"] = None,
) -> int:
    """Row count of a table, optionally restricted to rows created in the window."""
    query = select(func.count()).select_from(model)
    if window is not None:
        conditions = window.timestamp_filter(model.created_at)
        if conditions:
            query = query.where(*conditions)
    result = await session.execute(query)
    return result.scalar_one()


async def recent_businesses(session: AsyncSession, limit: int = 5) -> Sequence[Business]:
    result = await session.execute(
        select(Business)
        .options(selectinload(Business.owner), selectinload(Business.category))
        .order_by(Business.created_at.desc(), Business.id.asc())
        .limit(limit)
    )
    return result.scalars().all()


def _count_by(column: Any, label: str):
    return (
        select(column.label("key"), func.count().label(label))
        .group_by(column)
        .subquery()
    )


async def top_rated_businesses(session: AsyncSession, limit: int = 10) -> List[Tuple[Business, int, int]]:
    """
    Rated businesses, best first, with live review and favorite counts.

    Equal ratings are ordered by review count, then id.
    """
    reviews = _count_by(Review.business_id, "review_count")
    favorites = _count_by(Favorite.business_id, "favorite_count")
    review_count = func.coalesce(reviews.c.review_count, 0)
    favorite_count = func.coalesce(favorites.c.favorite_count, 0)

    result = await session.execute(
        select(Business, review_count, favorite_count)
        .outerjoin(reviews, reviews.c.key == Business.id)
        .outerjoin(favorites, favorites.c.key == Business.id)
        .options(selectinload(Business.category))
        .where(Business.rating.is_not(None))
        .order_by(Business.rating.desc(), review_count.desc(), Business.id.asc())
        .limit(limit)
    )
    return [(row[0], row[1], row[2]) for row in result.all()]


async def category_popularity(
    session: AsyncSession,
    limit: int = 10,
    window: Optional["DateWindow"] = None,
) -> List[Dict[str, Any]]:
    """
    Categories with the most businesses, ties broken by name.

    With a window only businesses created inside it are counted.
    """
    business_count = func.count(Business.id).label("business_count")
    query = (
        select(Category.name, Category.slug, business_count)
        .join(Business, Business.category_id == Category.id)
        .group_by(Category.id, Category.name, Category.slug)
        .order_by(business_count.desc(), Category.name.asc())
        .limit(limit)
    )
    if window is not None:
        conditions = window.timestamp_filter(Business.created_at)
        if conditions:
            query = query.where(*conditions)
    result = await session.execute(query)
    return [
        {"name": row.name, "slug": row.slug, "business_count": row.business_count}
        for row in result.all()
    ]


async def top_engaged_users(session: AsyncSession, limit: int = 10) -> List[Dict[str, Any]]:
    """
    Users ranked by number of reviews written.

    Appointment and favorite counts ride along for display and play no part
    in the ranking. Ties go to the longest-registered user.
    """
    reviews = _count_by(Review.user_id, "review_count")
    appointments = _count_by(Appointment.user_id, "appointment_count")
    favorites = _count_by(Favorite.user_id, "favorite_count")
    review_count = func.coalesce(reviews.c.review_count, 0)

    result = await session.execute(
        select(
            User.id,
            User.first_name,
            User.last_name,
            User.email,
            review_count.label("review_count"),
            func.coalesce(appointments.c.appointment_count, 0).label("appointment_count"),
            func.coalesce(favorites.c.favorite_count, 0).label("favorite_count"),
        )
        .outerjoin(reviews, reviews.c.key == User.id)
        .outerjoin(appointments, appointments.c.key == User.id)
        .outerjoin(favorites, favorites.c.key == User.id)
        .order_by(review_count.desc(), User.created_at.asc(), User.id.asc())
        .limit(limit)
    )
    return [
        {
            "id": row.id,
            "name": f"{row.first_name} {row.last_name}",
            "email": row.email,
            "review_count": row.review_count,
            "appointment_count": row.appointment_count,
            "favorite_count": row.favorite_count,
        }
        for row in result.all()
    ]


# =============================================================================
# PLATFORM REPORTS
# =============================================================================

def _created_in(model: Type[Base], window: "DateWindow") -> List[Any]:
    return window.timestamp_filter(model.created_at)


async def count_verified_businesses(session: AsyncSession, window: "DateWindow") -> int:
    """Verified businesses among those created in the window."""
    result = await session.execute(
        select(func.count())
        .select_from(Business)
        .where(Business.verified.is_(True), *_created_in(Business, window))
    )
    return result.scalar_one()


async def count_grouped(
    session: AsyncSession,
    model: Type[Base],
    column: Any,
    window: "DateWindow",
) -> Dict[Any, int]:
    """Rows created in the window, counted per distinct value of ``column``."""
    result = await session.execute(
        select(column, func.count())
        .select_from(model)
        .where(*_created_in(model, window))
        .group_by(column)
    )
    return {key: count for key, count in result.all()}


async def average_review_rating(session: AsyncSession, window: "DateWindow") -> Optional[float]:
    """Mean rating of reviews created in the window; None without reviews."""
    result = await session.execute(
        select(func.avg(Review.rating)).where(*_created_in(Review, window))
    )
    value = result.scalar_one()
    return float(value) if value is not None else None
