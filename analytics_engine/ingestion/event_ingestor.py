"""
Engagement Event Ingestor

Turns an engagement event (view, search, contact, ...) for a business into
an increment of one field on that business's counter row for today.

The increment is a single ``INSERT ... ON CONFLICT DO UPDATE`` against the
(business, day) unique key, so concurrent events for the same key never
lose updates and no counter state is held in process memory.
"""

import time
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union
from zoneinfo import ZoneInfo

import structlog
from prometheus_client import Counter, Histogram
from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from analytics_engine.config import AnalyticsSettings, get_settings
from analytics_engine.database import queries
from analytics_engine.database.models import CounterField, DailyCounter
from analytics_engine.errors import NotFoundError
from analytics_engine.insights.schemas import DailyCounterRead

logger = structlog.get_logger(__name__)


# =============================================================================
# METRICS
# =============================================================================

EVENTS_TRACKED = Counter(
    "analytics_events_tracked_total",
    "Engagement events applied to daily counters",
    ["event_type", "field"],
)

COUNTER_UPSERT_SECONDS = Histogram(
    "analytics_counter_upsert_seconds",
    "Time spent on the counter increment-or-create",
)


# =============================================================================
# EVENT TYPES
# =============================================================================

class EngagementEventType(str, Enum):
    """Engagement events accepted from clients"""
    VIEW = "BUSINESS_VIEW"
    SEARCH = "BUSINESS_SEARCH"
    CONTACT = "BUSINESS_CONTACT"
    DIRECTION = "BUSINESS_DIRECTION"
    WEBSITE_CLICK = "BUSINESS_WEBSITE"

    @classmethod
    def resolve(cls, raw: Union[str, "EngagementEventType", None]) -> Optional["EngagementEventType"]:
        """
        Match a wire value (``BUSINESS_VIEW``) or short name (``VIEW``),
        case-insensitively. Returns None for anything unrecognized.
        """
        if raw is None:
            return None
        if isinstance(raw, cls):
            return raw
        key = str(raw).strip().upper()
        for member in cls:
            if key in (member.value, member.name):
                return member
        return None


EVENT_COUNTER_FIELDS: Dict[EngagementEventType, CounterField] = {
    EngagementEventType.VIEW: CounterField.VIEWS,
    EngagementEventType.SEARCH: CounterField.SEARCHES,
    EngagementEventType.CONTACT: CounterField.MESSAGES,
    EngagementEventType.DIRECTION: CounterField.VIEWS,
    EngagementEventType.WEBSITE_CLICK: CounterField.VIEWS,
}

# Unrecognized events are still engagement with the listing
DEFAULT_COUNTER_FIELD = CounterField.VIEWS


def counter_field_for(event_type: Optional[EngagementEventType]) -> CounterField:
    if event_type is None:
        return DEFAULT_COUNTER_FIELD
    return EVENT_COUNTER_FIELDS[event_type]


def bucket_date(now: datetime, zone: ZoneInfo) -> date:
    """Calendar day in ``zone`` that ``now`` falls on; naive means UTC."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(zone).date()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def build_increment(session: AsyncSession, business_id: str, day: date, field: CounterField):
    """
    Increment-or-create statement for one (business, day) counter row.

    A new row starts with ``field`` at 1 and every other counter at 0; an
    existing row has only ``field`` incremented.
    """
    dialect = session.bind.dialect.name
    try:
        insert = _INSERTS[dialect]
    except KeyError:
        raise NotImplementedError(f"Counter upsert not supported on {dialect}")

    table = DailyCounter.__table__
    stmt = insert(table).values(business_id=business_id, date=day, **{field.value: 1})
    return stmt.on_conflict_do_update(
        index_elements=[table.c.business_id, table.c.date],
        set_={
            field.value: table.c[field.value] + 1,
            "updated_at": func.now(),
        },
    ).returning(*table.c)


class EventIngestor:
    """
    Applies engagement events to the day-bucket store.

    Example:
        ingestor = EventIngestor(session_factory)
        row = await ingestor.track_event(business_id, "BUSINESS_VIEW")
        assert row.views >= 1
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Optional[AnalyticsSettings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.session_factory = session_factory
        self.settings = settings or get_settings().analytics
        self.clock = clock

    async def track_event(
        self,
        business_id: str,
        event_type: Union[str, EngagementEventType, None],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> DailyCounterRead:
        """
        Record one engagement event against today's counter row.

        Args:
            business_id: Business the event is attributed to
            event_type: Event discriminator; unrecognized values count as views
            metadata: Free-form client context, logged only

        Returns:
            The counter row after the increment

        Raises:
            NotFoundError: If the business does not exist (nothing is written)
        """
        resolved = EngagementEventType.resolve(event_type)
        field = counter_field_for(resolved)
        day = bucket_date(self.clock(), self.settings.zone)

        async with self.session_factory() as session:
            async with session.begin():
                if await queries.fetch_business(session, business_id) is None:
                    logger.info("Event for unknown business dropped", business_id=business_id, event_type=str(event_type))
                    raise NotFoundError.business(business_id)

                started = time.perf_counter()
                result = await session.execute(build_increment(session, business_id, day, field))
                row = result.mappings().one()
                COUNTER_UPSERT_SECONDS.observe(time.perf_counter() - started)

        EVENTS_TRACKED.labels(
            event_type=resolved.value if resolved else "UNRECOGNIZED",
            field=field.value,
        ).inc()

        if resolved is None:
            logger.warning("Unrecognized event type counted as view", business_id=business_id, event_type=str(event_type))

        logger.info(
            "Event tracked",
            business_id=business_id,
            event_type=resolved.value if resolved else str(event_type),
            field=field.value,
            day=day.isoformat(),
            value=row[field.value],
            metadata=metadata or {},
        )
        return DailyCounterRead.model_validate(dict(row))
