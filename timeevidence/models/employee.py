"""
Employee & CardAssignment models — card binding and its audit history.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (Boolean, Column, DateTime, ForeignKey, Index, Integer,
                        String, false, true)
from sqlalchemy.orm import relationship

from timeevidence.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Employee(Base):
    __tablename__ = "employees"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(50), nullable=False)  # type: ignore[assignment]
    surname: str = Column(String(50), nullable=False)  # type: ignore[assignment]
    position: str = Column(String(50), nullable=False, default="Tester")  # type: ignore[assignment]
    supervisor_id: int | None = Column(  # type: ignore[assignment]
        Integer, ForeignKey("supervisors.id", ondelete="SET NULL"), nullable=True
    )
    work_schedule_id: int | None = Column(  # type: ignore[assignment]
        Integer, ForeignKey("work_schedules.id", ondelete="SET NULL"), nullable=True
    )
    # Unique across employees; only the card registry writes this column.
    card_id: str | None = Column(String(20), unique=True, nullable=True, index=True)  # type: ignore[assignment]
    access: bool = Column(Boolean, nullable=False, default=False, server_default=false())  # type: ignore[assignment]
    created_at: datetime = Column(DateTime(timezone=True), default=_utcnow)  # type: ignore[assignment]
    updated_at: datetime = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)  # type: ignore[assignment]

    # Read-through joins needed by the classifier and compliance evaluator.
    supervisor = relationship("Supervisor", lazy="selectin")
    work_schedule = relationship("WorkSchedule", lazy="selectin")

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.surname}"

    @property
    def access_status(self) -> str:
        return "Authorized" if self.access else "Unauthorized"

    @property
    def is_card_assigned(self) -> bool:
        return bool(self.card_id)


class CardAssignment(Base):
    """Append-only history of card bindings; rows are closed, never deleted."""

    __tablename__ = "card_assignments"
    __table_args__ = (Index("ix_card_assignment_card_active", "card_id", "is_active"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    card_id: str = Column(String(20), nullable=False, index=True)  # type: ignore[assignment]
    # No foreign key: history must outlive the employee row.
    employee_id: int = Column(Integer, nullable=False, index=True)  # type: ignore[assignment]
    assigned_at: datetime = Column(DateTime(timezone=True), default=_utcnow)  # type: ignore[assignment]
    assigned_by: str | None = Column(String(50), nullable=True)  # type: ignore[assignment]
    unassigned_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    unassigned_by: str | None = Column(String(50), nullable=True)  # type: ignore[assignment]
    is_active: bool = Column(Boolean, nullable=False, default=True, server_default=true())  # type: ignore[assignment]

    def close(self, actor: str, when: datetime | None = None) -> None:
        self.is_active = False
        self.unassigned_at = when or _utcnow()
        self.unassigned_by = actor
