"""
Card registry — the only writer of ``Employee.card_id``.

Every mutation runs under a per-card ``asyncio.Lock`` so two concurrent
assignments cannot both see "no current holder". The unique constraint
on ``employees.card_id`` remains the backstop; a violation is reported
as a ``CardConflictError`` naming the holder.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from timeevidence.core.config import settings
from timeevidence.core.exceptions import CardConflictError, InvalidCardError
from timeevidence.models.employee import CardAssignment, Employee

logger = logging.getLogger(__name__)


class CardLocks:
    """Per-card locks, discarded as soon as nobody holds or awaits them."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: Counter[str] = Counter()

    @asynccontextmanager
    async def hold(self, *card_ids: str | None) -> AsyncIterator[None]:
        # Sorted acquisition order keeps multi-card holders deadlock free.
        keys = sorted({c for c in card_ids if c})
        entries = []
        for key in keys:
            entries.append(self._locks.setdefault(key, asyncio.Lock()))
            self._users[key] += 1

        acquired: list[asyncio.Lock] = []
        try:
            for lock in entries:
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for key in keys:
                self._users[key] -= 1
                if self._users[key] <= 0:
                    del self._users[key]
                    self._locks.pop(key, None)

    def __len__(self) -> int:
        return len(self._locks)


card_locks = CardLocks()


def normalize_card_id(card_id: str | None) -> str | None:
    """Trim surrounding whitespace; blank ids become ``None``."""
    if card_id is None:
        return None
    return card_id.strip() or None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def _owner_of_card(
    db: AsyncSession, card_id: str, exclude_employee_id: int | None = None
) -> Employee | None:
    query = select(Employee).where(Employee.card_id == card_id)
    if exclude_employee_id is not None:
        query = query.where(Employee.id != exclude_employee_id)
    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none()


async def _close_active_assignments(
    db: AsyncSession,
    *,
    actor: str,
    when: datetime,
    card_id: str | None = None,
    employee_id: int | None = None,
) -> int:
    query = select(CardAssignment).where(CardAssignment.is_active.is_(True))
    if card_id is not None:
        query = query.where(CardAssignment.card_id == card_id)
    if employee_id is not None:
        query = query.where(CardAssignment.employee_id == employee_id)
    result = await db.execute(query)
    rows = list(result.scalars().all())
    for row in rows:
        row.close(actor, when)
    return len(rows)


@asynccontextmanager
async def _locked_employee(
    db: AsyncSession, employee_id: int, *card_ids: str | None
) -> AsyncIterator[Employee | None]:
    """Yield the employee with its current card and ``card_ids`` locked.

    The row is re-read once the locks are held; if its card changed while
    waiting, the locks are released and the cycle starts over.
    """
    while True:
        employee = await db.get(Employee, employee_id)
        if employee is None:
            yield None
            return
        current_card = employee.card_id
        async with card_locks.hold(current_card, *card_ids):
            employee = await db.get(
                Employee, employee_id, with_for_update=True, populate_existing=True
            )
            if employee is None or employee.card_id == current_card:
                yield employee
                return
        logger.debug("Card of employee %d changed while waiting for its lock; retrying", employee_id)


# ── Lookups ─────────────────────────────────────────────────────────
async def resolve_by_card(db: AsyncSession, card_id: str | None) -> Employee | None:
    """Exact, case-sensitive match on the trimmed card id.

    The employee comes back with its supervisor and work schedule loaded.
    """
    normalized = normalize_card_id(card_id)
    if normalized is None:
        return None
    return await _owner_of_card(db, normalized)


async def is_card_assigned(db: AsyncSession, card_id: str | None) -> bool:
    return await resolve_by_card(db, card_id) is not None


async def list_unassigned_employees(db: AsyncSession) -> list[Employee]:
    result = await db.execute(
        select(Employee)
        .where((Employee.card_id.is_(None)) | (Employee.card_id == ""))
        .order_by(Employee.surname, Employee.name)
    )
    return list(result.scalars().all())


async def card_history(
    db: AsyncSession, *, card_id: str | None = None, employee_id: int | None = None
) -> list[CardAssignment]:
    query = select(CardAssignment).order_by(CardAssignment.assigned_at.desc(), CardAssignment.id.desc())
    if card_id is not None:
        query = query.where(CardAssignment.card_id == card_id.strip())
    if employee_id is not None:
        query = query.where(CardAssignment.employee_id == employee_id)
    result = await db.execute(query)
    return list(result.scalars().all())


# ── Mutations ───────────────────────────────────────────────────────
async def assign_card(
    db: AsyncSession,
    employee_id: int,
    card_id: str | None,
    grant_access: bool = True,
    actor: str | None = None,
) -> Employee | None:
    """Bind ``card_id`` to the employee.

    Returns ``None`` when the employee does not exist and raises
    ``CardConflictError`` when the card belongs to someone else.
    Re-assigning the card an employee already holds keeps the existing
    active history row.
    """
    normalized = normalize_card_id(card_id)
    if normalized is None:
        raise InvalidCardError("Card id cannot be empty")
    actor = actor or settings.SYSTEM_ACTOR

    async with _locked_employee(db, employee_id, normalized) as employee:
        if employee is None:
            return None

        owner = await _owner_of_card(db, normalized, exclude_employee_id=employee.id)
        if owner is not None:
            logger.warning(
                "Card %s requested for employee %d but held by %s",
                normalized,
                employee.id,
                owner.full_name,
            )
            raise CardConflictError(normalized, owner.full_name)

        existing = await db.execute(
            select(CardAssignment)
            .where(
                CardAssignment.card_id == normalized,
                CardAssignment.employee_id == employee.id,
                CardAssignment.is_active.is_(True),
            )
            .limit(1)
        )
        current_assignment = existing.scalar_one_or_none()

        now = _utcnow()
        previous_card = employee.card_id
        if previous_card and previous_card != normalized:
            closed = await _close_active_assignments(
                db, actor=settings.SYSTEM_ACTOR, when=now, card_id=previous_card, employee_id=employee.id
            )
            logger.info(
                "Closed %d assignment(s) of card %s for employee %d", closed, previous_card, employee.id
            )

        employee.card_id = normalized
        employee.access = grant_access
        employee.updated_at = now
        if current_assignment is None:
            db.add(
                CardAssignment(
                    card_id=normalized,
                    employee_id=employee.id,
                    assigned_at=now,
                    assigned_by=actor,
                    is_active=True,
                )
            )

        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            holder = await _owner_of_card(db, normalized, exclude_employee_id=employee_id)
            holder_name = holder.full_name if holder is not None else "another employee"
            logger.warning("Unique constraint rejected card %s for employee %d", normalized, employee_id)
            raise CardConflictError(normalized, holder_name) from None

    logger.info(
        "Assigned card %s to employee %d (%s), access=%s",
        normalized,
        employee.id,
        employee.full_name,
        grant_access,
    )
    return employee


async def unassign_card(db: AsyncSession, card_id: str | None, actor: str | None = None) -> bool:
    """Unbind a card. Returns ``False`` (and changes nothing) when it is not bound."""
    normalized = normalize_card_id(card_id)
    if normalized is None:
        return False
    actor = actor or settings.SYSTEM_ACTOR

    async with card_locks.hold(normalized):
        employee = await _owner_of_card(db, normalized)
        if employee is None:
            return False

        now = _utcnow()
        employee.card_id = None
        employee.updated_at = now
        closed = await _close_active_assignments(db, actor=actor, when=now, card_id=normalized)
        await db.commit()

    logger.info("Unassigned card %s from employee %d (%d history row(s) closed)", normalized, employee.id, closed)
    return True


async def release_all_for_employee(
    db: AsyncSession, employee_id: int, actor: str | None = None
) -> int:
    """Close every active assignment of an employee and clear its card.

    Called before an employee is deleted so the history stays consistent.
    Returns the number of history rows closed.
    """
    actor = actor or settings.SYSTEM_ACTOR

    async with _locked_employee(db, employee_id) as employee:
        if employee is None:
            return 0
        now = _utcnow()
        closed = await _close_active_assignments(db, actor=actor, when=now, employee_id=employee_id)
        if employee.card_id:
            employee.card_id = None
            employee.updated_at = now
        await db.commit()

    if closed:
        logger.info("Released %d card assignment(s) of employee %d", closed, employee_id)
    return closed
