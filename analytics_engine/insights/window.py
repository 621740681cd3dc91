"""
Reporting windows.

Every read operation accepts an optional inclusive ``startDate``/``endDate``
pair of ISO-8601 strings. ``DateWindow`` parses them once, rejects malformed
input and exposes the bounds in the two shapes the queries need: naive UTC
timestamps for timestamp columns and local calendar days for the daily
counter table.
"""

from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from analytics_engine.errors import ValidationError

ALL_TIME = "all-time"
NOW = "now"


def _parse_bound(raw: str, field: str, zone: ZoneInfo, end_of_day: bool) -> Tuple[datetime, date]:
    """Parse one bound into (naive UTC timestamp, local calendar day)."""
    value = raw.strip()
    try:
        day = date.fromisoformat(value)
    except ValueError:
        day = None

    if day is not None:
        local = datetime.combine(day, time.max if end_of_day else time.min, tzinfo=zone)
    else:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            raise ValidationError(
                f"{field} must be an ISO-8601 date or datetime, got {raw!r}",
                details={"field": field, "value": raw},
            )
        local = parsed.replace(tzinfo=zone) if parsed.tzinfo is None else parsed

    # Bounds at the edges of the calendar can fall outside datetime range once shifted
    try:
        local = local.astimezone(zone)
        utc = local.astimezone(timezone.utc).replace(tzinfo=None)
    except OverflowError:
        raise ValidationError(
            f"{field} is out of the supported date range, got {raw!r}",
            details={"field": field, "value": raw},
        )
    return utc, local.date()


@dataclass(frozen=True)
class DateWindow:
    """
    Inclusive time window.

    A missing start means "since the beginning of history", a missing end
    means "through now". ``start``/``end`` are naive UTC, matching how
    timestamps are stored; ``start_day``/``end_day`` are calendar days in
    the analytics time zone.
    """

    start: Optional[datetime] = None
    end: Optional[datetime] = None
    start_day: Optional[date] = None
    end_day: Optional[date] = None
    start_raw: Optional[str] = None
    end_raw: Optional[str] = None

    @classmethod
    def parse(
        cls,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        zone: Optional[ZoneInfo] = None,
    ) -> "DateWindow":
        """
        Build a window from request strings.

        A date-only end bound covers the whole of that day. Naive datetimes
        are read in ``zone`` (UTC when omitted).

        Raises:
            ValidationError: If a bound is malformed or start is after end
        """
        zone = zone or ZoneInfo("UTC")
        start_date = start_date or None
        end_date = end_date or None

        start = start_day = end = end_day = None
        if start_date is not None:
            start, start_day = _parse_bound(start_date, "startDate", zone, end_of_day=False)
        if end_date is not None:
            end, end_day = _parse_bound(end_date, "endDate", zone, end_of_day=True)

        if start is not None and end is not None and start > end:
            raise ValidationError(
                "startDate must not be after endDate",
                details={"startDate": start_date, "endDate": end_date},
            )

        return cls(
            start=start,
            end=end,
            start_day=start_day,
            end_day=end_day,
            start_raw=start_date,
            end_raw=end_date,
        )

    @property
    def is_bounded(self) -> bool:
        return self.start is not None and self.end is not None

    def period(self) -> Dict[str, str]:
        """Window as echoed back in responses."""
        return {
            "start_date": self.start_raw or ALL_TIME,
            "end_date": self.end_raw or NOW,
        }

    def cache_key(self) -> str:
        return f"{self.start.isoformat() if self.start else ALL_TIME}:{self.end.isoformat() if self.end else NOW}"

    def timestamp_filter(self, column: Any) -> List[Any]:
        """Conditions restricting a timestamp column to the window."""
        conditions = []
        if self.start is not None:
            conditions.append(column >= self.start)
        if self.end is not None:
            conditions.append(column <= self.end)
        return conditions

    def day_filter(self, column: Any) -> List[Any]:
        """Conditions restricting a calendar-day column to the window."""
        conditions = []
        if self.start_day is not None:
            conditions.append(column >= self.start_day)
        if self.end_day is not None:
            conditions.append(column <= self.end_day)
        return conditions

    def previous(self) -> Optional["DateWindow"]:
        """The window of equal length ending just before this one starts."""
        if not self.is_bounded:
            return None
        length = self.end - self.start
        try:
            prev_end = self.start - timedelta(microseconds=1)
            prev_start = prev_end - length
        except OverflowError:
            # Nothing can precede a window reaching back to the start of the calendar
            return None
        return DateWindow(start=prev_start, end=prev_end)

    def resolve(self, now: datetime, default_days: int) -> "DateWindow":
        """
        Close an open window: a missing end becomes ``now`` (naive UTC) and a
        missing start lies ``default_days`` before the end.
        """
        end = self.end if self.end is not None else now
        start = self.start
        if start is None:
            try:
                start = end - timedelta(days=default_days)
            except OverflowError:
                start = datetime.min
        return replace(self, start=start, end=end)
