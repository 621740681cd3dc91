"""
Test Suite Configuration
"""
from datetime import date, datetime
from typing import Any, AsyncGenerator, Dict

import pytest
import polars as pl
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from analytics_engine.config import AnalyticsSettings
from analytics_engine.database.connection import build_session_factory
from analytics_engine.database.models import (
    Appointment,
    AppointmentStatus,
    Base,
    Business,
    Category,
    DailyCounter,
    Favorite,
    Review,
    User,
)


@pytest.fixture
def analytics_settings() -> AnalyticsSettings:
    """Analytics settings pinned to UTC"""
    return AnalyticsSettings(timezone="UTC")


@pytest.fixture
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """SQLite database in a per-test file, so several sessions can share it"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'analytics.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(test_engine)


@pytest.fixture
async def seeded(session_factory) -> Dict[str, Any]:
    """
    Small marketplace with known numbers.

    - Two salons and one spa; the spa and the first salon are rated 4.5
    - lopez-hair-studio: 2 reviews, 6 appointments in March 2024,
      2 favorites and 2 daily counter rows
    - calm-spa: 1 review, 1 favorite
    - iron-chair: unrated, created in March 2024
    """
    ids = {
        "salons": "cat-salons",
        "spas": "cat-spas",
        "fitness": "cat-fitness",
        "ana": "user-ana",
        "ben": "user-ben",
        "chen": "user-chen",
        "dana": "user-dana",
        "lopez": "biz-lopez",
        "spa": "biz-spa",
        "iron": "biz-iron",
    }

    async with session_factory() as session:
        session.add_all([
            Category(id=ids["salons"], name="Hair Salons", slug="hair-salons"),
            Category(id=ids["spas"], name="Spas", slug="spas"),
            Category(id=ids["fitness"], name="Fitness", slug="fitness"),
            User(id=ids["ana"], email="ana@example.com", first_name="Ana", last_name="Lopez",
                 created_at=datetime(2023, 1, 1)),
            User(id=ids["ben"], email="ben@example.com", first_name="Ben", last_name="Okafor",
                 created_at=datetime(2023, 2, 1)),
            User(id=ids["chen"], email="chen@example.com", first_name="Chen", last_name="Wu",
                 created_at=datetime(2023, 3, 1)),
            User(id=ids["dana"], email="dana@example.com", first_name="Dana", last_name="Kim",
                 created_at=datetime(2022, 12, 1)),
        ])
        await session.flush()

        session.add_all([
            Business(id=ids["lopez"], name="Lopez Hair Studio", slug="lopez-hair-studio",
                     category_id=ids["salons"], owner_id=ids["dana"], rating=4.5, review_count=2,
                     verified=True, created_at=datetime(2024, 1, 10)),
            Business(id=ids["spa"], name="Calm Spa", slug="calm-spa",
                     category_id=ids["spas"], owner_id=ids["dana"], rating=4.5, review_count=1,
                     verified=False, created_at=datetime(2024, 2, 1)),
            Business(id=ids["iron"], name="Iron Chair Barbers", slug="iron-chair",
                     category_id=ids["salons"], owner_id=ids["dana"], rating=None, review_count=0,
                     verified=False, created_at=datetime(2024, 3, 1)),
        ])
        await session.flush()

        session.add_all([
            Review(id="rev-1", business_id=ids["lopez"], user_id=ids["ana"], rating=5, title="Great cut",
                   comment='Loved it, will "definitely" return', created_at=datetime(2024, 3, 1, 10, 0)),
            Review(id="rev-2", business_id=ids["lopez"], user_id=ids["ben"], rating=4, title=None,
                   comment=None, created_at=datetime(2024, 3, 5, 12, 0)),
            Review(id="rev-3", business_id=ids["spa"], user_id=ids["ana"], rating=3, title="Okay",
                   comment="Fine", created_at=datetime(2024, 3, 10, 9, 0)),
            Appointment(id="apt-1", business_id=ids["lopez"], user_id=ids["ana"],
                        date=datetime(2024, 3, 4, 9, 0), status=AppointmentStatus.COMPLETED, duration=60),
            Appointment(id="apt-2", business_id=ids["lopez"], user_id=ids["ben"],
                        date=datetime(2024, 3, 5, 9, 30), status=AppointmentStatus.CONFIRMED, duration=30),
            Appointment(id="apt-3", business_id=ids["lopez"], user_id=ids["chen"],
                        date=datetime(2024, 3, 6, 9, 15), status=AppointmentStatus.CANCELED, duration=45),
            Appointment(id="apt-4", business_id=ids["lopez"], user_id=ids["ana"],
                        date=datetime(2024, 3, 6, 14, 0), status=AppointmentStatus.PENDING, duration=30),
            Appointment(id="apt-5", business_id=ids["lopez"], user_id=ids["ben"],
                        date=datetime(2024, 3, 7, 14, 30), status=AppointmentStatus.NO_SHOW, duration=30),
            Appointment(id="apt-6", business_id=ids["lopez"], user_id=ids["chen"],
                        date=datetime(2024, 3, 8, 20, 0), status=AppointmentStatus.COMPLETED, duration=90),
            Favorite(id="fav-1", business_id=ids["lopez"], user_id=ids["ana"], created_at=datetime(2024, 3, 2)),
            Favorite(id="fav-2", business_id=ids["lopez"], user_id=ids["chen"], created_at=datetime(2024, 3, 3)),
            Favorite(id="fav-3", business_id=ids["spa"], user_id=ids["ben"], created_at=datetime(2024, 3, 4)),
            DailyCounter(id="dc-1", business_id=ids["lopez"], date=date(2024, 3, 1),
                         views=10, searches=2, messages=1, bookings=0, created_at=datetime(2024, 3, 1, 8, 0)),
            DailyCounter(id="dc-2", business_id=ids["lopez"], date=date(2024, 3, 2),
                         views=5, searches=1, messages=0, bookings=1, created_at=datetime(2024, 3, 2, 8, 0)),
        ])
        await session.commit()

    return ids


@pytest.fixture
def sample_appointments_df() -> pl.DataFrame:
    """Appointment start times and statuses for metric tests"""
    return pl.DataFrame({
        "date": [
            datetime(2024, 3, 4, 9, 0),
            datetime(2024, 3, 5, 9, 30),
            datetime(2024, 3, 6, 9, 15),
            datetime(2024, 3, 6, 14, 0),
            datetime(2024, 3, 7, 14, 30),
            datetime(2024, 3, 8, 20, 0),
        ],
        "status": ["COMPLETED", "CONFIRMED", "CANCELED", "PENDING", "NO_SHOW", "COMPLETED"],
    })
