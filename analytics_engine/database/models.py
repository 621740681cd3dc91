"""
Database Models

The analytics engine reads the marketplace's transactional tables and owns
exactly one table of its own:

Marketplace Tables (owned by other services, read-only here):
- Category: Business categories
- User: Platform users (customers and business owners)
- Business: Business profiles
- Review: Customer reviews of businesses
- Appointment: Bookings made with businesses
- Favorite: Businesses saved by users

Analytics Aggregates (owned here):
- DailyCounter: One engagement counter row per business per calendar day
"""

from datetime import datetime, date
from enum import Enum
from typing import Optional, List
import uuid

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# =============================================================================
# ENUMERATIONS
# =============================================================================

class AppointmentStatus(str, Enum):
    """Appointment status enumeration"""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELED = "CANCELED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"


class CounterField(str, Enum):
    """Engagement counters stored on a DailyCounter row"""
    VIEWS = "views"
    SEARCHES = "searches"
    MESSAGES = "messages"
    BOOKINGS = "bookings"


# =============================================================================
# MARKETPLACE TABLES
# =============================================================================

class Category(Base):
    """Business category"""
    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)

    businesses: Mapped[List["Business"]] = relationship(back_populates="category")


class User(Base):
    """Platform user"""
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    businesses: Mapped[List["Business"]] = relationship(back_populates="owner")

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    __table_args__ = (
        Index("ix_users_created_at", "created_at"),
    )


class Business(Base):
    """
    Business Profile

    ``rating`` and ``review_count`` are denormalised by the reviews service;
    null rating means the business has not been rated yet.
    """
    __tablename__ = "businesses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(220), unique=True, nullable=False)
    category_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("categories.id"), nullable=False
    )
    owner_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    rating: Mapped[Optional[float]] = mapped_column(Float)
    review_count: Mapped[int] = mapped_column(Integer, default=0)
    verified: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    category: Mapped["Category"] = relationship(back_populates="businesses")
    owner: Mapped["User"] = relationship(back_populates="businesses")

    __table_args__ = (
        Index("ix_businesses_category", "category_id"),
        Index("ix_businesses_rating", "rating"),
        Index("ix_businesses_created_at", "created_at"),
    )


class Review(Base):
    """Customer review, rating is an integer 1-5"""
    __tablename__ = "reviews"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    business_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("businesses.id"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(200))
    comment: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    user: Mapped["User"] = relationship()

    __table_args__ = (
        Index("ix_reviews_business_created", "business_id", "created_at"),
        Index("ix_reviews_user", "user_id"),
    )


class Appointment(Base):
    """Appointment booked by a user with a business; ``date`` is the start time"""
    __tablename__ = "appointments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    business_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("businesses.id"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[AppointmentStatus] = mapped_column(
        SQLEnum(AppointmentStatus), default=AppointmentStatus.PENDING
    )
    duration: Mapped[int] = mapped_column(Integer, nullable=False)  # minutes
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_appointments_business_date", "business_id", "date"),
        Index("ix_appointments_user", "user_id"),
    )


class Favorite(Base):
    """Business saved by a user"""
    __tablename__ = "favorites"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    business_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("businesses.id"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("user_id", "business_id", name="uq_favorites_user_business"),
        Index("ix_favorites_business_created", "business_id", "created_at"),
    )


# =============================================================================
# ANALYTICS AGGREGATES
# =============================================================================

class DailyCounter(Base):
    """
    Daily Engagement Counter

    Grain: one row per business per calendar day (in the configured
    analytics time zone). Rows are created and incremented only through
    the atomic upsert in ``analytics_engine.ingestion.event_ingestor``.
    """
    __tablename__ = "daily_counters"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    business_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("businesses.id"), nullable=False
    )
    date: Mapped[date] = mapped_column(Date, nullable=False)

    # Measures
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    searches: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    messages: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bookings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Audit
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("business_id", "date", name="uq_daily_counters_business_date"),
        Index("ix_daily_counters_business_date", "business_id", "date"),
    )
