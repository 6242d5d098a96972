#!/usr/bin/env python3
"""
Time-of-day resolution for the daily sleep and wake events.

A stored setting is either ``HH:MM`` local wall-clock time or a full ISO
date-time (only its local hour and minute are used). ``resolve_next`` turns it
into the next concrete instant after ``now``.
"""

from __future__ import annotations

import datetime
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

TIME_PATTERN = re.compile(r'^([0-1]?[0-9]|2[0-3]):([0-5][0-9])(?::([0-5][0-9]))?$')

SATURDAY = 5
SUNDAY = 6


class InvalidTimeFormat(ValueError):
    """Raised when a time-of-day string is neither HH:MM nor an ISO date-time."""

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"Invalid time format: {value!r} (expected HH:MM or ISO date-time)")


def parse_time_of_day(value: Any, tz: Optional[datetime.tzinfo] = None) -> Tuple[int, int]:
    """Return ``(hour, minute)`` for ``value``.

    ISO date-times carrying an offset (including a trailing ``Z``) are converted
    to ``tz`` first, or to host local time when ``tz`` is None.
    """
    if not isinstance(value, str):
        raise InvalidTimeFormat(value)
    text = value.strip()

    match = TIME_PATTERN.match(text)
    if match:
        return int(match.group(1)), int(match.group(2))

    if "T" not in text:
        raise InvalidTimeFormat(value)
    try:
        parsed = datetime.datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise InvalidTimeFormat(value) from None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(tz) if tz is not None else parsed.astimezone()
    return parsed.hour, parsed.minute


def _normalize(target: datetime.datetime) -> datetime.datetime:
    """Adjust for DST gaps/overlaps by round-tripping through UTC."""
    if target.tzinfo is None:
        return target
    roundtrip = target.astimezone(datetime.timezone.utc).astimezone(target.tzinfo)
    if (
        roundtrip.hour != target.hour
        or roundtrip.minute != target.minute
        or roundtrip.second != target.second
        or roundtrip.fold != target.fold
    ):
        return roundtrip
    return target


def _candidate_on(day: datetime.date, hour: int, minute: int, tzinfo: Optional[datetime.tzinfo]) -> datetime.datetime:
    return _normalize(datetime.datetime(day.year, day.month, day.day, hour, minute, tzinfo=tzinfo))


def resolve_next(time_of_day: str, now: datetime.datetime) -> datetime.datetime:
    """Return the next instant strictly after ``now`` at ``time_of_day``.

    The candidate is built on ``now``'s calendar date; if it is at or before
    ``now`` it moves one calendar day forward (wall-clock, not +24h).

    Raises:
        InvalidTimeFormat: ``time_of_day`` cannot be parsed.
    """
    hour, minute = parse_time_of_day(time_of_day, now.tzinfo)
    target = _candidate_on(now.date(), hour, minute, now.tzinfo)
    if target <= now:
        target = _candidate_on(now.date() + datetime.timedelta(days=1), hour, minute, now.tzinfo)
    return target


@dataclass(frozen=True)
class ScheduleConfig:
    """Time-of-day for one event, with optional weekend overrides."""

    time: str
    saturday: Optional[str] = None
    sunday: Optional[str] = None

    @classmethod
    def from_config(cls, config: Mapping[str, Any], event: str) -> "ScheduleConfig":
        """Build from ``<event>_time`` / ``<event>_time_saturday`` / ``<event>_time_sunday``."""
        return cls(
            time=config.get(f"{event}_time") or "",
            saturday=config.get(f"{event}_time_saturday") or None,
            sunday=config.get(f"{event}_time_sunday") or None,
        )

    def time_for(self, day: datetime.date) -> str:
        weekday = day.weekday()
        if weekday == SATURDAY and self.saturday:
            return self.saturday
        if weekday == SUNDAY and self.sunday:
            return self.sunday
        return self.time


def resolve_next_for_schedule(schedule: ScheduleConfig, now: datetime.datetime) -> datetime.datetime:
    """Like ``resolve_next`` but honouring the day type of each candidate date."""
    today = now.date()
    hour, minute = parse_time_of_day(schedule.time_for(today), now.tzinfo)
    target = _candidate_on(today, hour, minute, now.tzinfo)
    if target > now:
        return target

    tomorrow = today + datetime.timedelta(days=1)
    hour, minute = parse_time_of_day(schedule.time_for(tomorrow), now.tzinfo)
    return _candidate_on(tomorrow, hour, minute, now.tzinfo)


def seconds_until(target: datetime.datetime, now: datetime.datetime) -> float:
    """Non-negative delay from ``now`` to ``target``.

    Naive datetimes are treated as host local time, so the host's DST rules apply.
    """
    return max(0.0, target.timestamp() - now.timestamp())


def format_time_until(target: Optional[datetime.datetime], now: datetime.datetime) -> str:
    """Return human-readable delta until ``target``."""
    if target is None:
        return "Not scheduled"
    total = int(seconds_until(target, now))
    hours, remainder = divmod(total, 3600)
    minutes = remainder // 60
    if hours > 0:
        return f"in {hours}h {minutes}m"
    if minutes > 0:
        return f"in {minutes}m"
    return "in less than a minute"
