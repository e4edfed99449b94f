"""
SwipeEvent model — the append-only ledger of processed badge swipes.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import Boolean, BigInteger, Column, DateTime, Integer, String

from timeevidence.db.base import Base

# Access levels
ACCESS_AUTHORIZED = "Authorized"
ACCESS_UNAUTHORIZED = "Unauthorized"
ACCESS_UNKNOWN = "Unknown"

# Status codes
STATUS_SUCCESS = "SUCCESS"
STATUS_SCHEDULE_VIOLATION = "SCHEDULE_VIOLATION"
STATUS_ACCESS_DENIED = "ACCESS_DENIED"
STATUS_CARD_NOT_ASSIGNED = "CARD_NOT_ASSIGNED"
STATUS_NO_CARD = "NO_CARD"


class SwipeEvent(Base):
    __tablename__ = "swipe_events"
    # AUTOINCREMENT keeps SQLite from reusing ids after a clear-all.
    __table_args__ = {"sqlite_autoincrement": True}

    id: int = Column(Integer, primary_key=True)  # type: ignore[assignment]
    system_id: str | None = Column(String(64), nullable=True, index=True)  # type: ignore[assignment]
    action: str | None = Column(String(20), nullable=True)  # type: ignore[assignment]
    # LOGIN | LOGOUT | other
    card_id: str | None = Column(String(64), nullable=True, index=True)  # type: ignore[assignment]
    status: str | None = Column(String(30), nullable=True)  # type: ignore[assignment]
    timestamp_iso: str | None = Column(String(64), nullable=True)  # type: ignore[assignment]
    timestamp_local: str | None = Column(String(64), nullable=True)  # type: ignore[assignment]
    timestamp_source: str = Column(String(10), nullable=False, default="server")  # type: ignore[assignment]
    active_sessions: int | None = Column(Integer, nullable=True)  # type: ignore[assignment]
    system_uptime: int | None = Column(BigInteger, nullable=True)  # type: ignore[assignment]
    wifi_connected: bool | None = Column(Boolean, nullable=True)  # type: ignore[assignment]
    received_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    employee_id: int | None = Column(Integer, nullable=True)  # type: ignore[assignment]
    employee_name: str | None = Column(String(101), nullable=True)  # type: ignore[assignment]
    access_level: str | None = Column(String(20), nullable=True)  # type: ignore[assignment]

    @property
    def parsed_timestamp(self) -> datetime | None:
        if not self.timestamp_iso:
            return None
        try:
            return datetime.fromisoformat(self.timestamp_iso.strip())
        except ValueError:
            return None

    @property
    def uptime_formatted(self) -> str:
        if self.system_uptime is None:
            return "N/A"
        span = timedelta(seconds=self.system_uptime)
        hours, rest = divmod(span.seconds, 3600)
        minutes, seconds = divmod(rest, 60)
        return f"{span.days:02d}.{hours:02d}:{minutes:02d}:{seconds:02d}"

    @property
    def is_authorized(self) -> bool:
        return self.access_level == ACCESS_AUTHORIZED
