"""
Terminal ingest + ledger read views.

- POST /timetracker/data records one swipe and answers the terminal.
- GET endpoints are read-only snapshots of the ledger.
- DELETE /timetracker/data clears the ledger.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from timeevidence.api.v1.deps import get_db, get_dispatcher, get_ledger
from timeevidence.schemas.swipe import (ClearResponse, LedgerStatsResponse,
                                        SwipeEventRead, SwipeIn,
                                        SwipeResponse)
from timeevidence.services.ingestion import SwipeOutcome, process_swipe
from timeevidence.services.ledger import EventLedger
from timeevidence.services.notifications import NotificationDispatcher

router = APIRouter(prefix="/timetracker", tags=["timetracker"])
logger = logging.getLogger(__name__)


def _terminal_response(outcome: SwipeOutcome) -> SwipeResponse:
    """Build the answer shown on the terminal display."""
    decision = outcome.decision
    response = SwipeResponse(
        access_granted=decision.granted,
        access_level=decision.access_level,
        status=outcome.event.status,
        timestamp=datetime.now(timezone.utc),
        timestamp_source=outcome.moment.source.value,
        system_message=decision.reason,
        event_id=outcome.event.id,
    )
    employee = decision.employee
    if employee is not None:
        response.employee_name = employee.name
        response.employee_surname = employee.surname
        response.position = employee.position
        response.access_level = employee.access_status
    return response


@router.post("/data", response_model=SwipeResponse)
async def receive_data(
    body: SwipeIn,
    db: AsyncSession = Depends(get_db),
    ledger: EventLedger = Depends(get_ledger),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> SwipeResponse:
    """Record a swipe. Unknown and unauthorized cards still get a response."""
    outcome = await process_swipe(db, body, ledger=ledger, dispatcher=dispatcher)
    return _terminal_response(outcome)


@router.get("/data", response_model=list[SwipeEventRead])
async def list_data(
    limit: int | None = Query(default=None, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    ledger: EventLedger = Depends(get_ledger),
):
    return await ledger.recent(db, limit)


@router.get("/data/latest", response_model=SwipeEventRead)
async def latest_data(
    db: AsyncSession = Depends(get_db),
    ledger: EventLedger = Depends(get_ledger),
):
    event = await ledger.latest(db)
    if event is None:
        raise HTTPException(status_code=404, detail="No data available")
    return event


@router.get("/data/action/{action}", response_model=list[SwipeEventRead])
async def data_by_action(
    action: str,
    db: AsyncSession = Depends(get_db),
    ledger: EventLedger = Depends(get_ledger),
):
    return await ledger.by_action(db, action)


@router.get("/data/system/{system_id}", response_model=list[SwipeEventRead])
async def data_by_system(
    system_id: str,
    db: AsyncSession = Depends(get_db),
    ledger: EventLedger = Depends(get_ledger),
):
    return await ledger.by_system(db, system_id)


@router.get("/stats", response_model=LedgerStatsResponse)
async def stats(
    db: AsyncSession = Depends(get_db),
    ledger: EventLedger = Depends(get_ledger),
) -> LedgerStatsResponse:
    return LedgerStatsResponse(**await ledger.stats(db))


@router.delete("/data", response_model=ClearResponse)
async def clear_data(
    db: AsyncSession = Depends(get_db),
    ledger: EventLedger = Depends(get_ledger),
) -> ClearResponse:
    removed = await ledger.clear(db)
    logger.warning("Ledger cleared via API (%d rows)", removed)
    return ClearResponse(message="All time tracker data cleared successfully", removed=removed)
