"""
Compliance evaluator — schedule validation and late / early detection.

The swipe time is the device timestamp when it parses, otherwise the
server receipt time; the chosen source is reported alongside the result.
Weekdays and time-of-day are judged in the configured local zone.

An empty weekday set places no restriction on the day. That is how the
existing data has always been read, both for schedule validation and for
the late / early triggers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, time, timezone, tzinfo
from enum import Enum
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from timeevidence.core.config import settings
from timeevidence.models.employee import Employee
from timeevidence.models.swipe_event import (STATUS_SCHEDULE_VIOLATION,
                                             STATUS_SUCCESS)
from timeevidence.models.work_schedule import WorkSchedule
from timeevidence.services.schedule import Weekday

logger = logging.getLogger(__name__)

ACTION_LOGIN = "LOGIN"
ACTION_LOGOUT = "LOGOUT"


class TimestampSource(str, Enum):
    DEVICE = "device"
    SERVER = "server"


class ComplianceOutcome(str, Enum):
    SUCCESS = STATUS_SUCCESS
    SCHEDULE_VIOLATION = STATUS_SCHEDULE_VIOLATION


class DeviationKind(str, Enum):
    LATE_ARRIVAL = "late_arrival"
    EARLY_DEPARTURE = "early_departure"


@dataclass(frozen=True)
class SwipeMoment:
    value: datetime  # aware, in the local zone
    source: TimestampSource


@dataclass(frozen=True)
class ScheduleDeviation:
    kind: DeviationKind
    actual: datetime
    scheduled: time  # earliest start for late arrival, latest end for early departure


@dataclass(frozen=True)
class ComplianceFinding:
    outcome: ComplianceOutcome
    moment: SwipeMoment
    deviation: ScheduleDeviation | None = None


@lru_cache(maxsize=8)
def _zone(name: str) -> tzinfo:
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown TIMEZONE %r, falling back to UTC", name)
        return timezone.utc


def local_timezone() -> tzinfo:
    return _zone(settings.TIMEZONE)


# ── Timestamp source ────────────────────────────────────────────────
def parse_device_timestamp(raw: str | None) -> datetime | None:
    if not raw or not raw.strip():
        return None
    try:
        return datetime.fromisoformat(raw.strip())
    except ValueError:
        return None


def resolve_swipe_moment(
    device_timestamp: str | None, received_at: datetime, tz: tzinfo | None = None
) -> SwipeMoment:
    """Pick the device timestamp when usable, else the server receipt time.

    Naive device timestamps are read as local wall-clock time.
    """
    zone = tz or local_timezone()
    parsed = parse_device_timestamp(device_timestamp)
    if parsed is not None:
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=zone)
        try:
            return SwipeMoment(parsed.astimezone(zone), TimestampSource.DEVICE)
        except (ValueError, OverflowError):
            # Offsets can push a valid date past datetime.min / datetime.max.
            logger.debug("Device timestamp %r out of range in %s", device_timestamp, zone)

    if device_timestamp:
        logger.debug("Unparseable device timestamp %r, using server time", device_timestamp)
    if received_at.tzinfo is None:
        received_at = received_at.replace(tzinfo=timezone.utc)
    return SwipeMoment(received_at.astimezone(zone), TimestampSource.SERVER)


# ── Schedule checks ─────────────────────────────────────────────────
def day_allowed(schedule: WorkSchedule, moment: datetime) -> bool:
    days = schedule.get_weekdays()
    return not days or Weekday.of(moment) in days


def check_schedule(schedule: WorkSchedule | None, moment: datetime) -> ComplianceOutcome:
    """SUCCESS when the swipe falls on an allowed day inside any window (inclusive)."""
    if schedule is None:
        return ComplianceOutcome.SUCCESS
    if not day_allowed(schedule, moment):
        return ComplianceOutcome.SCHEDULE_VIOLATION
    now = moment.time()
    if any(window.contains(now) for window in schedule.get_time_windows()):
        return ComplianceOutcome.SUCCESS
    return ComplianceOutcome.SCHEDULE_VIOLATION


def detect_deviation(
    employee: Employee | None, action: str | None, moment: datetime
) -> ScheduleDeviation | None:
    """Late LOGIN after the earliest start, or LOGOUT before the latest end."""
    if employee is None or employee.supervisor is None:
        return None
    schedule = employee.work_schedule
    if schedule is None:
        return None
    windows = schedule.get_time_windows()
    if not windows or not day_allowed(schedule, moment):
        return None

    kind = (action or "").strip().upper()
    now = moment.time()
    if kind == ACTION_LOGIN:
        earliest_start = min(w.start for w in windows)
        if now > earliest_start:
            return ScheduleDeviation(DeviationKind.LATE_ARRIVAL, moment, earliest_start)
    elif kind == ACTION_LOGOUT:
        latest_end = max(w.end for w in windows)
        if now < latest_end:
            return ScheduleDeviation(DeviationKind.EARLY_DEPARTURE, moment, latest_end)
    return None


def evaluate_compliance(
    employee: Employee, action: str | None, moment: SwipeMoment
) -> ComplianceFinding:
    outcome = check_schedule(employee.work_schedule, moment.value)
    deviation = detect_deviation(employee, action, moment.value)
    return ComplianceFinding(outcome, moment, deviation)
