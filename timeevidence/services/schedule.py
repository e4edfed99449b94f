"""
Work-schedule parsing: weekday sets and daily time windows.

Schedules are stored as two text columns. Weekdays may be names
("Monday"), numeric codes (Sunday = 0 .. Saturday = 6) or a mix of both.
Time windows are stored as a JSON list of ``{"start", "end"}`` objects,
with a fallback for the legacy ``HH:MM:SS-HH:MM:SS`` text form.

Nothing here raises on malformed input: unrecognised pieces are dropped.
Windows are opaque ``(start, end)`` pairs; no ordering is enforced, so an
inverted window simply never contains any time of day.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import datetime, time
from enum import IntEnum


class Weekday(IntEnum):
    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def of(cls, moment: datetime) -> Weekday:
        """Weekday of a datetime (``datetime.weekday`` counts from Monday)."""
        return cls((moment.weekday() + 1) % 7)


@dataclass(frozen=True)
class TimeWindow:
    start: time
    end: time

    def contains(self, moment: time) -> bool:
        return self.start <= moment <= self.end

    @property
    def display_text(self) -> str:
        return f"{self.start:%H:%M} - {self.end:%H:%M}"


_DAY_SPLIT_RE = re.compile(r"[,;|\s]+")
_WINDOW_SPLIT_RE = re.compile(r"[;|,]")
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2})(?:\.\d+)?)?$")

_START_KEYS = ("start", "start_time", "StartTime", "startTime")
_END_KEYS = ("end", "end_time", "EndTime", "endTime")


# ── Weekdays ────────────────────────────────────────────────────────
def _parse_weekday(token: str) -> Weekday | None:
    try:
        return Weekday[token.upper()]
    except KeyError:
        pass
    try:
        return Weekday(int(token))
    except ValueError:
        return None


def parse_weekdays(raw: str | None) -> frozenset[Weekday]:
    """Parse a delimited list of weekday names and/or numeric codes."""
    if not raw or not raw.strip():
        return frozenset()
    days = set()
    for token in _DAY_SPLIT_RE.split(raw.strip()):
        if not token:
            continue
        day = _parse_weekday(token)
        if day is not None:
            days.add(day)
    return frozenset(days)


def serialize_weekdays(days) -> str:
    return ",".join(day.label for day in sorted(set(days)))


# ── Time windows ────────────────────────────────────────────────────
def parse_time(value: object) -> time | None:
    """Parse ``H:MM``, ``HH:MM`` or ``HH:MM:SS``; ``None`` when invalid."""
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        return None
    match = _TIME_RE.match(value.strip())
    if match is None:
        return None
    hour, minute, second = (int(g) if g is not None else 0 for g in match.groups())
    if hour > 23 or minute > 59 or second > 59:
        return None
    return time(hour, minute, second)


def _first_present(item: dict, keys: tuple[str, ...]) -> object:
    for key in keys:
        if key in item:
            return item[key]
    return None


def _parse_structured(raw: str) -> list[TimeWindow]:
    try:
        decoded = json.loads(raw)
    except ValueError:
        return []
    if isinstance(decoded, dict):
        decoded = [decoded]
    if not isinstance(decoded, list):
        return []

    windows = []
    for item in decoded:
        if not isinstance(item, dict):
            continue
        start = parse_time(_first_present(item, _START_KEYS))
        end = parse_time(_first_present(item, _END_KEYS))
        if start is not None and end is not None:
            windows.append(TimeWindow(start, end))
    return windows


def _parse_delimited(raw: str) -> list[TimeWindow]:
    windows = []
    for chunk in _WINDOW_SPLIT_RE.split(raw):
        parts = [p.strip() for p in chunk.split("-") if p.strip()]
        if len(parts) != 2:
            continue
        start, end = parse_time(parts[0]), parse_time(parts[1])
        if start is not None and end is not None:
            windows.append(TimeWindow(start, end))
    return windows


def parse_time_windows(raw: str | None) -> list[TimeWindow]:
    """Parse stored time windows, JSON first, then the delimited text form."""
    if not raw or not raw.strip():
        return []
    return _parse_structured(raw) or _parse_delimited(raw)


def serialize_time_windows(windows) -> str:
    return json.dumps(
        [{"start": w.start.strftime("%H:%M:%S"), "end": w.end.strftime("%H:%M:%S")} for w in windows]
    )
