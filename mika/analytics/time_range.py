"""Time range utilities for analytics."""
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from mika.models.base import utcnow

_ROLLING_DAYS = {"last_7_days": 7, "last_30_days": 30, "last_90_days": 90}


@dataclass(frozen=True)
class TimeRangeResult:
    start: datetime
    end: datetime
    compare_start: datetime | None
    compare_end: datetime | None

    def as_dict(self) -> dict:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "compareStart": self.compare_start.isoformat() if self.compare_start else None,
            "compareEnd": self.compare_end.isoformat() if self.compare_end else None,
        }


# Stored timestamps are naive UTC, so bounds are too.
def _day_start(day: date) -> datetime:
    return datetime.combine(day, datetime.min.time())


def _day_end(day: date) -> datetime:
    return datetime.combine(day, datetime.max.time())


def _resolve_primary(preset: str, today: date) -> tuple[date, date]:
    preset = preset.lower()
    if preset in _ROLLING_DAYS:
        return today - timedelta(days=_ROLLING_DAYS[preset] - 1), today
    if preset == "this_month":
        start_day = date(today.year, today.month, 1)
        end_day = date(today.year, today.month, calendar.monthrange(today.year, today.month)[1])
        return start_day, end_day
    raise ValueError(f"Unknown time range preset: {preset}")


def _previous_period(primary_start: date, primary_end: date) -> tuple[date, date]:
    delta = (primary_end - primary_start) + timedelta(days=1)
    compare_end = primary_start - timedelta(days=1)
    return compare_end - delta + timedelta(days=1), compare_end


def parse_time_range(
    preset: str,
    compare_preset: str | None = None,
    *,
    today: date | None = None,
    custom_start: date | None = None,
    custom_end: date | None = None,
) -> TimeRangeResult:
    """Return UTC time range for analytics queries."""
    today = today or utcnow().date()
    if preset == "custom":
        if not (custom_start and custom_end):
            raise ValueError("custom_start and custom_end required for custom preset")
        if custom_end < custom_start:
            raise ValueError("custom_end must not be before custom_start")
        primary_start, primary_end = custom_start, custom_end
    else:
        primary_start, primary_end = _resolve_primary(preset, today)

    compare_start_day = compare_end_day = None
    if compare_preset:
        if compare_preset != "previous_period":
            raise ValueError(f"Unknown compare preset: {compare_preset}")
        compare_start_day, compare_end_day = _previous_period(primary_start, primary_end)

    return TimeRangeResult(
        start=_day_start(primary_start),
        end=_day_end(primary_end),
        compare_start=_day_start(compare_start_day) if compare_start_day else None,
        compare_end=_day_end(compare_end_day) if compare_end_day else None,
    )
