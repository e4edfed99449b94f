"""
Supervisor model — recipient of late-arrival / early-departure notices.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from timeevidence.db.base import Base

# Selected notification channel
CHANNEL_NONE = "none"
CHANNEL_EMAIL = "email"
CHANNEL_SMS = "sms"
NOTIFICATION_CHANNELS = (CHANNEL_NONE, CHANNEL_EMAIL, CHANNEL_SMS)


class Supervisor(Base):
    __tablename__ = "supervisors"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(50), nullable=False)  # type: ignore[assignment]
    surname: str = Column(String(50), nullable=False)  # type: ignore[assignment]
    position: str = Column(String(50), nullable=False, default="Manager")  # type: ignore[assignment]
    email: str = Column(String(100), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    phone_number: str | None = Column(String(30), nullable=True)  # type: ignore[assignment]
    notification_channel: str = Column(  # type: ignore[assignment]
        String(10),
        nullable=False,
        default=CHANNEL_NONE,
        server_default=CHANNEL_NONE,
    )  # none | email | sms
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.surname}"
