"""Pydantic schemas for employees, cards, supervisors and work schedules."""

from __future__ import annotations

from datetime import datetime, time

from pydantic import BaseModel, Field, field_validator, model_validator

from timeevidence.models.supervisor import CHANNEL_NONE, NOTIFICATION_CHANNELS
from timeevidence.services.schedule import (TimeWindow, parse_time_windows,
                                            parse_weekdays,
                                            serialize_time_windows,
                                            serialize_weekdays)


def _required_text(v: str, field: str, max_len: int) -> str:
    v = v.strip()
    if not v:
        raise ValueError(f"{field} must not be empty")
    if len(v) > max_len:
        raise ValueError(f"{field} must not exceed {max_len} characters")
    return v


# ── Employee ────────────────────────────────────────────────────────
class EmployeeCreate(BaseModel):
    name: str
    surname: str
    position: str = "Tester"
    supervisor_id: int | None = None
    work_schedule_id: int | None = None
    access: bool = False

    @field_validator("name", "surname")
    @classmethod
    def _names(cls, v: str) -> str:
        return _required_text(v, "Name", 50)


class EmployeeUpdate(BaseModel):
    """Card id is deliberately absent: cards change only via assign / unassign."""

    name: str | None = None
    surname: str | None = None
    position: str | None = None
    supervisor_id: int | None = None
    work_schedule_id: int | None = None
    access: bool | None = None


class EmployeeRead(BaseModel):
    id: int
    name: str
    surname: str
    full_name: str
    position: str
    supervisor_id: int | None
    work_schedule_id: int | None
    card_id: str | None
    access: bool
    access_status: str
    is_card_assigned: bool
    created_at: datetime | None
    updated_at: datetime | None

    model_config = {"from_attributes": True}


# ── Cards ───────────────────────────────────────────────────────────
class CardAssignRequest(BaseModel):
    employee_id: int
    card_id: str
    grant_access: bool = True

    @field_validator("card_id")
    @classmethod
    def _card(cls, v: str) -> str:
        return _required_text(v, "Card id", 20)


class CardAssignResponse(BaseModel):
    message: str
    employee: EmployeeRead


class CardAssignmentRead(BaseModel):
    id: int
    card_id: str
    employee_id: int
    assigned_at: datetime | None
    assigned_by: str | None
    unassigned_at: datetime | None
    unassigned_by: str | None
    is_active: bool

    model_config = {"from_attributes": True}


class CardHolder(BaseModel):
    id: int
    full_name: str
    position: str
    access_status: str


class CardStatusResponse(BaseModel):
    card_id: str
    is_assigned: bool
    access_granted: bool
    message: str
    employee: CardHolder | None = None
    last_access_level: str | None = None
    last_status: str | None = None
    last_seen: datetime | None = None


# ── Supervisor ──────────────────────────────────────────────────────
class SupervisorCreate(BaseModel):
    name: str
    surname: str
    position: str = "Manager"
    email: str
    phone_number: str | None = None
    notification_channel: str = CHANNEL_NONE

    @field_validator("name", "surname")
    @classmethod
    def _names(cls, v: str) -> str:
        return _required_text(v, "Name", 50)

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v

    @field_validator("notification_channel")
    @classmethod
    def _channel(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in NOTIFICATION_CHANNELS:
            raise ValueError(f"Channel must be one of: {NOTIFICATION_CHANNELS}")
        return v


class SupervisorUpdate(BaseModel):
    name: str | None = None
    surname: str | None = None
    position: str | None = None
    email: str | None = None
    phone_number: str | None = None
    notification_channel: str | None = None

    @field_validator("notification_channel")
    @classmethod
    def _channel(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip().lower()
        if v not in NOTIFICATION_CHANNELS:
            raise ValueError(f"Channel must be one of: {NOTIFICATION_CHANNELS}")
        return v


class SupervisorRead(BaseModel):
    id: int
    name: str
    surname: str
    full_name: str
    position: str
    email: str
    phone_number: str | None
    notification_channel: str

    model_config = {"from_attributes": True}


# ── Work schedule ───────────────────────────────────────────────────
class TimeWindowSchema(BaseModel):
    start: time
    end: time


class WorkScheduleBase(BaseModel):
    """Days and windows accept either structured lists or the legacy text forms."""

    selected_days: list[str | int] | str | None = None
    time_ranges: list[TimeWindowSchema] | str | None = None

    def weekdays_text(self) -> str | None:
        if self.selected_days is None:
            return None
        if isinstance(self.selected_days, str):
            return serialize_weekdays(parse_weekdays(self.selected_days))
        raw = ",".join(str(d) for d in self.selected_days)
        return serialize_weekdays(parse_weekdays(raw))

    def windows_text(self) -> str | None:
        if self.time_ranges is None:
            return None
        if isinstance(self.time_ranges, str):
            return serialize_time_windows(parse_time_windows(self.time_ranges))
        return serialize_time_windows(TimeWindow(w.start, w.end) for w in self.time_ranges)


class WorkScheduleCreate(WorkScheduleBase):
    schedule_name: str

    @field_validator("schedule_name")
    @classmethod
    def _name(cls, v: str) -> str:
        return _required_text(v, "Schedule name", 100)


class WorkScheduleUpdate(WorkScheduleBase):
    schedule_name: str | None = None


class WorkScheduleRead(BaseModel):
    id: int
    schedule_name: str
    selected_days: list[str] = Field(default_factory=list)
    time_ranges: list[TimeWindowSchema] = Field(default_factory=list)
    display: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _from_orm_row(cls, data: object) -> object:
        if hasattr(data, "get_weekdays"):
            windows = data.get_time_windows()
            return {
                "id": data.id,
                "schedule_name": data.schedule_name,
                "selected_days": [d.label for d in sorted(data.get_weekdays())],
                "time_ranges": [{"start": w.start, "end": w.end} for w in windows],
                "display": [w.display_text for w in windows],
            }
        return data


# ── Generic ─────────────────────────────────────────────────────────
class MessageResponse(BaseModel):
    success: bool = True
    message: str

