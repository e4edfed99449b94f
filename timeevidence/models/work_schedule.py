"""
WorkSchedule model — weekday set plus daily time windows, stored as text.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text

from timeevidence.db.base import Base
from timeevidence.services.schedule import (TimeWindow, Weekday,
                                            parse_time_windows,
                                            parse_weekdays,
                                            serialize_time_windows,
                                            serialize_weekdays)


class WorkSchedule(Base):
    __tablename__ = "work_schedules"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    schedule_name: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    selected_days: str = Column(String(200), nullable=False, default="")  # type: ignore[assignment]
    time_ranges: str = Column(Text, nullable=False, default="")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def get_weekdays(self) -> frozenset[Weekday]:
        return parse_weekdays(self.selected_days)

    def set_weekdays(self, days) -> None:
        self.selected_days = serialize_weekdays(days)

    def get_time_windows(self) -> list[TimeWindow]:
        return parse_time_windows(self.time_ranges)

    def set_time_windows(self, windows) -> None:
        self.time_ranges = serialize_time_windows(windows)
