"""
Event ledger — append-only store of processed swipes plus its read views.

Subscribers registered with ``subscribe`` are called after the write has
committed, in registration order. A failing subscriber is logged and the
remaining subscribers still run.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from sqlalchemy import delete as sa_delete
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from timeevidence.core.config import settings
from timeevidence.models.swipe_event import SwipeEvent

logger = logging.getLogger(__name__)

AddedHandler = Callable[[SwipeEvent], "Awaitable[None] | None"]
ClearedHandler = Callable[[], "Awaitable[None] | None"]

_NEWEST_FIRST = (SwipeEvent.received_at.desc(), SwipeEvent.id.desc())


async def _call(handler: Callable[..., Any], *args: Any) -> None:
    try:
        result = handler(*args)
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.exception("Ledger subscriber %r failed", handler)


class EventLedger:
    def __init__(self) -> None:
        self._on_added: list[AddedHandler] = []
        self._on_cleared: list[ClearedHandler] = []

    # ── Subscribers ─────────────────────────────────────────────────
    def subscribe(
        self,
        on_added: AddedHandler | None = None,
        on_cleared: ClearedHandler | None = None,
    ) -> None:
        if on_added is not None:
            self._on_added.append(on_added)
        if on_cleared is not None:
            self._on_cleared.append(on_cleared)

    def unsubscribe(
        self,
        on_added: AddedHandler | None = None,
        on_cleared: ClearedHandler | None = None,
    ) -> None:
        if on_added in self._on_added:
            self._on_added.remove(on_added)
        if on_cleared in self._on_cleared:
            self._on_cleared.remove(on_cleared)

    # ── Writes ──────────────────────────────────────────────────────
    async def append(self, db: AsyncSession, event: SwipeEvent) -> SwipeEvent:
        db.add(event)
        await db.commit()
        await db.refresh(event)
        for handler in list(self._on_added):
            await _call(handler, event)
        return event

    async def clear(self, db: AsyncSession) -> int:
        """Delete every ledger row (administrative bulk clear)."""
        result = await db.execute(sa_delete(SwipeEvent))
        await db.commit()
        removed = result.rowcount or 0
        logger.info("Cleared %d swipe event(s) from the ledger", removed)
        for handler in list(self._on_cleared):
            await _call(handler)
        return removed

    # ── Reads ───────────────────────────────────────────────────────
    async def recent(self, db: AsyncSession, limit: int | None = None) -> list[SwipeEvent]:
        result = await db.execute(
            select(SwipeEvent).order_by(*_NEWEST_FIRST).limit(limit or settings.LEDGER_RECENT_LIMIT)
        )
        return list(result.scalars().all())

    async def latest(self, db: AsyncSession) -> SwipeEvent | None:
        result = await db.execute(select(SwipeEvent).order_by(*_NEWEST_FIRST).limit(1))
        return result.scalar_one_or_none()

    async def latest_for_card(self, db: AsyncSession, card_id: str) -> SwipeEvent | None:
        result = await db.execute(
            select(SwipeEvent)
            .where(SwipeEvent.card_id == card_id.strip())
            .order_by(*_NEWEST_FIRST)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def count(self, db: AsyncSession) -> int:
        result = await db.execute(select(func.count(SwipeEvent.id)))
        return result.scalar_one()

    async def by_action(self, db: AsyncSession, action: str | None) -> list[SwipeEvent]:
        if not action or not action.strip():
            return []
        result = await db.execute(
            select(SwipeEvent)
            .where(func.lower(SwipeEvent.action) == action.strip().lower())
            .order_by(*_NEWEST_FIRST)
            .limit(settings.LEDGER_ACTION_LIMIT)
        )
        return list(result.scalars().all())

    async def by_system(self, db: AsyncSession, system_id: str | None) -> list[SwipeEvent]:
        if not system_id or not system_id.strip():
            return []
        result = await db.execute(
            select(SwipeEvent)
            .where(SwipeEvent.system_id == system_id)
            .order_by(*_NEWEST_FIRST)
            .limit(settings.LEDGER_TERMINAL_LIMIT)
        )
        return list(result.scalars().all())

    async def active_sessions(self, db: AsyncSession) -> int:
        """Most recent session count reported by any terminal, or 0."""
        result = await db.execute(
            select(SwipeEvent.active_sessions)
            .order_by(*_NEWEST_FIRST)
            .limit(settings.LEDGER_SESSION_SCAN_LIMIT)
        )
        return next((value for value in result.scalars() if value is not None), 0)

    async def stats(self, db: AsyncSession) -> dict[str, Any]:
        latest = await self.latest(db)
        return {
            "total_records": await self.count(db),
            "active_sessions": await self.active_sessions(db),
            "last_system_id": latest.system_id if latest else None,
            "last_action": latest.action if latest else None,
            "last_received": latest.received_at if latest else None,
        }


ledger = EventLedger()
