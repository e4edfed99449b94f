"""Pydantic schemas for terminal swipes and ledger read views."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, field_validator


# ── Ingest ──────────────────────────────────────────────────────────
class SwipeIn(BaseModel):
    """Payload posted by a terminal. Every field is optional on the wire."""

    system_id: str | None = None
    action: str | None = None
    card_id: str | None = None
    status: str | None = None
    timestamp_iso: str | None = None
    timestamp_local: str | None = None
    active_sessions: int | None = None
    system_uptime: int | None = None
    wifi_connected: bool | None = None

    @field_validator("system_id", "action", "card_id")
    @classmethod
    def _strip(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("card_id")
    @classmethod
    def _card_length(cls, v: str | None) -> str | None:
        if v is not None and len(v) > 64:
            raise ValueError("card_id must not exceed 64 characters")
        return v


class SwipeResponse(BaseModel):
    message: str = "Data received successfully"
    access_granted: bool = False
    employee_name: str | None = None
    employee_surname: str | None = None
    position: str | None = None
    access_level: str = "Unknown"
    status: str | None = None
    timestamp: datetime
    timestamp_source: str
    system_message: str | None = None
    event_id: int


# ── Ledger ──────────────────────────────────────────────────────────
class SwipeEventRead(BaseModel):
    id: int
    system_id: str | None
    action: str | None
    card_id: str | None
    status: str | None
    timestamp_iso: str | None
    timestamp_local: str | None
    parsed_timestamp: datetime | None
    timestamp_source: str
    active_sessions: int | None
    system_uptime: int | None
    uptime_formatted: str
    wifi_connected: bool | None
    received_at: datetime | None
    employee_id: int | None
    employee_name: str | None
    access_level: str | None
    is_authorized: bool

    model_config = {"from_attributes": True}


class LedgerStatsResponse(BaseModel):
    total_records: int
    active_sessions: int
    last_system_id: str | None = None
    last_action: str | None = None
    last_received: datetime | None = None


class ClearResponse(BaseModel):
    message: str
    removed: int


# ── Health ──────────────────────────────────────────────────────────
class HealthResponse(BaseModel):
    db: bool
