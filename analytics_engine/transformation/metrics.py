"""
Insight Metrics

Pure derivations over rows fetched for one business:
- Peak appointment hours
- Appointment status funnel and conversion rate
- Rating distribution and average rating
- Period-over-period growth

All functions build a polars DataFrame from plain Python values and never
touch the database, so they are deterministic for a given input.
"""

from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence
from zoneinfo import ZoneInfo

import polars as pl

from analytics_engine.database.models import AppointmentStatus

RATING_STARS = (1, 2, 3, 4, 5)
CONVERTED_STATUSES = (AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED)


@dataclass
class PeakHour:
    """One ranked hour of the day"""
    hour: int  # 0-23
    count: int
    time_range: str


@dataclass
class AppointmentFunnel:
    """Appointment counts by status"""
    total: int = 0
    confirmed: int = 0
    pending: int = 0
    canceled: int = 0
    completed: int = 0
    no_show: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def round_half_up(value: float, places: int = 2) -> float:
    """Round like a person would: 2.345 -> 2.35, never banker's rounding."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def local_hour(timestamp: datetime, zone: ZoneInfo) -> int:
    """Hour of day in ``zone``; naive timestamps are stored UTC."""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(zone).hour


def format_hour_range(hour: int) -> str:
    return f"{hour}:00 - {hour + 1}:00"


def peak_hours(
    timestamps: Iterable[datetime],
    zone: Optional[ZoneInfo] = None,
    limit: int = 3,
) -> List[PeakHour]:
    """
    Rank hours of the day by number of appointment starts.

    Ties on count are broken by the earlier hour so the ranking is stable.

    Args:
        timestamps: Appointment start times
        zone: Zone the hour is read in (UTC when omitted)
        limit: Number of hours to return

    Returns:
        At most ``limit`` PeakHour entries, busiest first
    """
    zone = zone or ZoneInfo("UTC")
    hours = pl.DataFrame(
        {"hour": [local_hour(ts, zone) for ts in timestamps]},
        schema={"hour": pl.Int64},
    )

    ranked = (
        hours.group_by("hour")
        .agg(pl.len().alias("count"))
        .sort(["count", "hour"], descending=[True, False])
        .head(limit)
    )

    return [
        PeakHour(hour=row["hour"], count=row["count"], time_range=format_hour_range(row["hour"]))
        for row in ranked.iter_rows(named=True)
    ]


def _status_value(status: object) -> str:
    return status.value if isinstance(status, Enum) else str(status)


def appointment_funnel(statuses: Sequence[object]) -> AppointmentFunnel:
    """Count appointments per status; unknown statuses only count toward total."""
    frame = pl.DataFrame(
        {"status": [_status_value(s) for s in statuses]},
        schema={"status": pl.Utf8},
    )
    counts = dict(frame.group_by("status").agg(pl.len()).iter_rows())

    return AppointmentFunnel(
        total=frame.height,
        confirmed=counts.get(AppointmentStatus.CONFIRMED.value, 0),
        pending=counts.get(AppointmentStatus.PENDING.value, 0),
        canceled=counts.get(AppointmentStatus.CANCELED.value, 0),
        completed=counts.get(AppointmentStatus.COMPLETED.value, 0),
        no_show=counts.get(AppointmentStatus.NO_SHOW.value, 0),
    )


def conversion_rate(funnel: AppointmentFunnel) -> float:
    """
    Share of appointments that were confirmed or completed, as a percentage.

    Defined as 0 when there are no appointments.
    """
    if funnel.total == 0:
        return 0.0
    return round_half_up((funnel.confirmed + funnel.completed) / funnel.total * 100)


def rating_distribution(ratings: Sequence[int]) -> Dict[int, int]:
    """Bucket counts for 1-5 stars; ratings outside that range are ignored."""
    frame = pl.DataFrame({"rating": list(ratings)}, schema={"rating": pl.Int64})
    counts = dict(
        frame.filter(pl.col("rating").is_between(1, 5))
        .group_by("rating")
        .agg(pl.len())
        .iter_rows()
    )
    return {star: counts.get(star, 0) for star in RATING_STARS}


def average_rating(ratings: Sequence[int]) -> float:
    """Mean rating to 2 decimals; 0 when there are no ratings."""
    if not ratings:
        return 0.0
    mean = pl.Series("rating", list(ratings), dtype=pl.Float64).mean()
    return round_half_up(mean)


def growth_rate(current: int, previous: int) -> float:
    """
    Percentage change from ``previous`` to ``current``.

    With no previous activity any current activity counts as 100% growth.
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round_half_up((current - previous) / previous * 100)


def share_percent(part: int, whole: int) -> float:
    """``part`` as a percentage of ``whole``; 0 when ``whole`` is empty."""
    if whole <= 0:
        return 0.0
    return round_half_up(part / whole * 100)
