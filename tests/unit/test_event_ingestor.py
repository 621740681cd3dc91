"""
Unit Tests - Event Ingestion
"""
import asyncio
from datetime import date, datetime, timezone

import pytest
from sqlalchemy import func, select

from analytics_engine.config import AnalyticsSettings
from analytics_engine.database.models import CounterField, DailyCounter
from analytics_engine.errors import NotFoundError
from analytics_engine.ingestion.event_ingestor import (
    EngagementEventType,
    EventIngestor,
    bucket_date,
    counter_field_for,
)

FIXED_NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def ingestor(session_factory, analytics_settings) -> EventIngestor:
    return EventIngestor(session_factory, analytics_settings, clock=lambda: FIXED_NOW)


async def _counter_rows(session_factory, business_id):
    async with session_factory() as session:
        result = await session.execute(select(DailyCounter).where(DailyCounter.business_id == business_id))
        return result.scalars().all()


class TestEventTypes:
    """Tests for event type resolution"""

    @pytest.mark.parametrize("raw", ["BUSINESS_VIEW", "VIEW", "view", " business_view "])
    def test_aliases_resolve(self, raw):
        assert EngagementEventType.resolve(raw) is EngagementEventType.VIEW

    def test_unknown_is_none(self):
        assert EngagementEventType.resolve("BUSINESS_SHARE") is None
        assert EngagementEventType.resolve(None) is None

    @pytest.mark.parametrize(
        "event_type,field",
        [
            (EngagementEventType.VIEW, CounterField.VIEWS),
            (EngagementEventType.SEARCH, CounterField.SEARCHES),
            (EngagementEventType.CONTACT, CounterField.MESSAGES),
            (EngagementEventType.DIRECTION, CounterField.VIEWS),
            (EngagementEventType.WEBSITE_CLICK, CounterField.VIEWS),
            (None, CounterField.VIEWS),
        ],
    )
    def test_counter_field(self, event_type, field):
        assert counter_field_for(event_type) is field

    def test_bucket_date_uses_zone(self):
        late = datetime(2024, 3, 15, 23, 30, tzinfo=timezone.utc)
        assert bucket_date(late, AnalyticsSettings(timezone="UTC").zone) == date(2024, 3, 15)
        assert bucket_date(late, AnalyticsSettings(timezone="Asia/Tokyo").zone) == date(2024, 3, 16)


class TestTrackEvent:
    """Tests for EventIngestor.track_event"""

    async def test_first_event_creates_row(self, ingestor, seeded):
        row = await ingestor.track_event(seeded["spa"], "BUSINESS_VIEW")

        assert row.business_id == seeded["spa"]
        assert row.date == date(2024, 3, 15)
        assert (row.views, row.searches, row.messages, row.bookings) == (1, 0, 0, 0)

    async def test_second_event_increments_same_row(self, ingestor, seeded, session_factory):
        first = await ingestor.track_event(seeded["spa"], "VIEW")
        second = await ingestor.track_event(seeded["spa"], "BUSINESS_SEARCH")

        assert second.id == first.id
        assert second.views == 1
        assert second.searches == 1
        assert len(await _counter_rows(session_factory, seeded["spa"])) == 1

    async def test_unrecognized_event_counts_as_view(self, ingestor, seeded):
        row = await ingestor.track_event(seeded["spa"], "BUSINESS_SHARE", metadata={"source": "email"})
        assert row.views == 1

    async def test_contact_counts_as_message(self, ingestor, seeded):
        row = await ingestor.track_event(seeded["spa"], EngagementEventType.CONTACT)
        assert row.messages == 1
        assert row.views == 0

    async def test_unknown_business_writes_nothing(self, ingestor, seeded, session_factory):
        with pytest.raises(NotFoundError) as exc_info:
            await ingestor.track_event("biz-missing", "BUSINESS_VIEW")

        assert exc_info.value.code == "BusinessNotFound"
        async with session_factory() as session:
            total = await session.scalar(select(func.count()).select_from(DailyCounter))
        # only the two seeded rows
        assert total == 2

    async def test_next_day_gets_new_row(self, session_factory, analytics_settings, seeded):
        days = iter([
            datetime(2024, 3, 15, 23, 59, tzinfo=timezone.utc),
            datetime(2024, 3, 16, 0, 1, tzinfo=timezone.utc),
        ])
        ingestor = EventIngestor(session_factory, analytics_settings, clock=lambda: next(days))

        first = await ingestor.track_event(seeded["spa"], "VIEW")
        second = await ingestor.track_event(seeded["spa"], "VIEW")

        assert first.id != second.id
        assert (first.date, second.date) == (date(2024, 3, 15), date(2024, 3, 16))

    async def test_concurrent_events_are_not_lost(self, ingestor, seeded, session_factory):
        await asyncio.gather(*[
            ingestor.track_event(seeded["spa"], "BUSINESS_VIEW") for _ in range(10)
        ])

        rows = await _counter_rows(session_factory, seeded["spa"])
        assert len(rows) == 1
        assert rows[0].views == 10
