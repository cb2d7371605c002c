"""Publish-time planning for scheduled uploads."""
from __future__ import annotations

import datetime as dt
import math
import re
from typing import Optional, Union

from .models import DailyBatches, FixedInterval, Immediate, ScheduleConfig, SheetUploadError

SCHEDULE_TYPES = ('none', 'interval', 'daily')

# Upper bound for interval and spacing minutes (one leap year).
MAX_GAP_MINUTES = 366 * 24 * 60

_TIME_RE = re.compile(r"^(?P<hour>\d{1,2}):(?P<minute>\d{2})$")


class ScheduleConfigError(SheetUploadError, ValueError):
    """Raised when schedule options cannot form a valid ScheduleConfig."""


def publish_at(slot: int, config: ScheduleConfig) -> Optional[dt.datetime]:
    """Return the publish instant for the *slot*-th scheduled upload, or None for immediate."""

    if slot < 0:
        raise ValueError(f"slot must be >= 0, got {slot}")
    if isinstance(config, Immediate):
        return None
    try:
        if isinstance(config, FixedInterval):
            return config.start_at + dt.timedelta(minutes=slot * config.interval_minutes)
        if isinstance(config, DailyBatches):
            # Local wall-clock base, then plain duration arithmetic.
            base = dt.datetime.combine(config.start_date, config.time_of_day).astimezone()
            day_offset, index_in_day = divmod(slot, config.per_day)
            return base + dt.timedelta(days=day_offset, minutes=index_in_day * config.spacing_minutes)
    except (OverflowError, ValueError) as exc:
        raise ScheduleConfigError(f"Publish time for slot {slot} is out of range: {exc}") from exc
    raise TypeError(f"Unknown schedule config: {config!r}")


# ----------------------------------------------------------------------
# Builders
# ----------------------------------------------------------------------
def parse_instant(value: Union[str, dt.datetime]) -> dt.datetime:
    """Parse an ISO-8601 instant; naive values are taken as local time."""

    if isinstance(value, dt.datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith(('Z', 'z')):
            text = text[:-1] + '+00:00'
        try:
            parsed = dt.datetime.fromisoformat(text)
        except ValueError as exc:
            raise ScheduleConfigError(f"Invalid start time {value!r}; expected ISO 8601") from exc
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def parse_date(value: Union[str, dt.date]) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    try:
        return dt.datetime.strptime(str(value).strip(), '%Y-%m-%d').date()
    except ValueError as exc:
        raise ScheduleConfigError(f"Invalid start date {value!r}; expected YYYY-MM-DD") from exc


def parse_time_of_day(value: Union[str, dt.time]) -> dt.time:
    if isinstance(value, dt.time):
        return value
    match = _TIME_RE.match(str(value).strip())
    if not match:
        raise ScheduleConfigError(f"Invalid time of day {value!r}; expected HH:MM")
    hour, minute = int(match.group('hour')), int(match.group('minute'))
    if hour > 23 or minute > 59:
        raise ScheduleConfigError(f"Invalid time of day {value!r}; expected HH:MM")
    return dt.time(hour, minute)


def _non_negative(value: Union[str, float, int], label: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ScheduleConfigError(f"{label} must be a number, got {value!r}") from exc
    if not math.isfinite(number) or number < 0 or number > MAX_GAP_MINUTES:
        raise ScheduleConfigError(f"{label} must be between 0 and {MAX_GAP_MINUTES}, got {value!r}")
    return number


def fixed_interval(start_at: Union[str, dt.datetime], interval_minutes: Union[str, float, int]) -> FixedInterval:
    return FixedInterval(
        start_at=parse_instant(start_at),
        interval_minutes=_non_negative(interval_minutes, 'interval_minutes'),
    )


def daily_batches(
    start_date: Union[str, dt.date],
    time_of_day: Union[str, dt.time],
    per_day: Union[str, int],
    spacing_minutes: Union[str, float, int],
) -> DailyBatches:
    try:
        per_day_value = float(per_day)
    except (TypeError, ValueError) as exc:
        raise ScheduleConfigError(f"per_day must be a positive integer, got {per_day!r}") from exc
    if per_day_value <= 0 or not per_day_value.is_integer():
        raise ScheduleConfigError(f"per_day must be a positive integer, got {per_day!r}")
    return DailyBatches(
        start_date=parse_date(start_date),
        time_of_day=parse_time_of_day(time_of_day),
        per_day=int(per_day_value),
        spacing_minutes=_non_negative(spacing_minutes, 'spacing_minutes'),
    )


def build_schedule(schedule_type: str, **options) -> ScheduleConfig:
    """Create a ScheduleConfig from a CLI-style type name and its options."""

    kind = (schedule_type or 'none').strip().lower()
    if kind == 'none':
        return Immediate()
    if kind == 'interval':
        return fixed_interval(options.get('start_at'), options.get('interval_minutes', 10))
    if kind == 'daily':
        return daily_batches(
            options.get('start_date'),
            options.get('time_of_day', '10:00'),
            options.get('per_day', 1),
            options.get('spacing_minutes', 1),
        )
    raise ScheduleConfigError(f"Unknown schedule type {schedule_type!r}; expected one of {', '.join(SCHEDULE_TYPES)}")


def describe_schedule(config: ScheduleConfig) -> str:
    if isinstance(config, FixedInterval):
        return f"start {config.start_at.isoformat()} every {config.interval_minutes:g} min"
    if isinstance(config, DailyBatches):
        return (
            f"daily from {config.start_date.isoformat()} at {config.time_of_day.strftime('%H:%M')}, "
            f"{config.per_day}/day spaced {config.spacing_minutes:g} min"
        )
    return 'publish immediately'
