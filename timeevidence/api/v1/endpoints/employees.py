"""
Employee CRUD + card administration endpoints.

- Card binding changes only through assign-card / unassign-card.
- Deleting an employee closes its card history before the row is removed.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from timeevidence.api.v1.deps import get_db, get_ledger
from timeevidence.models.employee import Employee
from timeevidence.models.supervisor import Supervisor
from timeevidence.models.work_schedule import WorkSchedule
from timeevidence.schemas.employee import (CardAssignmentRead,
                                           CardAssignRequest,
                                           CardAssignResponse, CardHolder,
                                           CardStatusResponse, EmployeeCreate,
                                           EmployeeRead, EmployeeUpdate,
                                           MessageResponse)
from timeevidence.services import card_registry
from timeevidence.services.access import validate_card_access
from timeevidence.services.ledger import EventLedger

router = APIRouter(prefix="/employees", tags=["employees"])
logger = logging.getLogger(__name__)


async def _check_links(db: AsyncSession, supervisor_id: int | None, work_schedule_id: int | None) -> None:
    if supervisor_id is not None and await db.get(Supervisor, supervisor_id) is None:
        raise HTTPException(status_code=404, detail=f"Supervisor with ID {supervisor_id} not found")
    if work_schedule_id is not None and await db.get(WorkSchedule, work_schedule_id) is None:
        raise HTTPException(status_code=404, detail=f"Work schedule with ID {work_schedule_id} not found")


async def _load_employee(db: AsyncSession, employee_id: int) -> Employee:
    emp = await db.get(Employee, employee_id)
    if emp is None:
        raise HTTPException(status_code=404, detail=f"Employee with ID {employee_id} not found")
    return emp


# ── Card administration ─────────────────────────────────────────────
@router.post("/assign-card", response_model=CardAssignResponse)
async def assign_card(
    body: CardAssignRequest,
    db: AsyncSession = Depends(get_db),
) -> CardAssignResponse:
    """Bind a card. A card held by someone else yields 409 naming the holder."""
    employee = await card_registry.assign_card(db, body.employee_id, body.card_id, body.grant_access)
    if employee is None:
        raise HTTPException(status_code=404, detail=f"Employee with ID {body.employee_id} not found")
    return CardAssignResponse(
        message=f"Card {employee.card_id} successfully assigned to {employee.full_name}",
        employee=EmployeeRead.model_validate(employee),
    )


@router.post("/unassign-card/{card_id}", response_model=MessageResponse)
async def unassign_card(
    card_id: str,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    if not await card_registry.unassign_card(db, card_id):
        raise HTTPException(status_code=404, detail=f"Card {card_id} is not assigned to any employee")
    return MessageResponse(message=f"Card {card_id} has been unassigned successfully")


@router.get("/unassigned", response_model=list[EmployeeRead])
async def unassigned_employees(db: AsyncSession = Depends(get_db)) -> list[Employee]:
    return await card_registry.list_unassigned_employees(db)


@router.get("/card/{card_id}", response_model=EmployeeRead)
async def employee_by_card(
    card_id: str,
    db: AsyncSession = Depends(get_db),
) -> Employee:
    employee = await card_registry.resolve_by_card(db, card_id)
    if employee is None:
        raise HTTPException(status_code=404, detail=f"No employee assigned to card {card_id}")
    return employee


@router.get("/card-status/{card_id}", response_model=CardStatusResponse)
async def card_status(
    card_id: str,
    db: AsyncSession = Depends(get_db),
    ledger: EventLedger = Depends(get_ledger),
) -> CardStatusResponse:
    """Current binding, the access decision it implies, and the last recorded swipe."""
    decision = await validate_card_access(db, card_id)
    employee = decision.employee
    response = CardStatusResponse(
        card_id=card_id,
        is_assigned=employee is not None,
        access_granted=decision.granted,
        message=decision.reason,
    )
    if employee is not None:
        response.employee = CardHolder(
            id=employee.id,
            full_name=employee.full_name,
            position=employee.position,
            access_status=employee.access_status,
        )
    if card_id.strip():
        last = await ledger.latest_for_card(db, card_id)
        if last is not None:
            response.last_access_level = last.access_level
            response.last_status = last.status
            response.last_seen = last.received_at
    return response


@router.get("/card-history/{card_id}", response_model=list[CardAssignmentRead])
async def history_for_card(card_id: str, db: AsyncSession = Depends(get_db)):
    return await card_registry.card_history(db, card_id=card_id)


# ── Employee CRUD ───────────────────────────────────────────────────
@router.get("", response_model=list[EmployeeRead])
async def list_employees(db: AsyncSession = Depends(get_db)) -> list[Employee]:
    result = await db.execute(select(Employee).order_by(Employee.surname, Employee.name))
    return list(result.scalars().all())


@router.post("", response_model=EmployeeRead, status_code=201)
async def create_employee(
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
) -> Employee:
    await _check_links(db, body.supervisor_id, body.work_schedule_id)
    employee = Employee(**body.model_dump())
    db.add(employee)
    await db.commit()
    await db.refresh(employee)
    logger.info("Created employee %d (%s)", employee.id, employee.full_name)
    return employee


@router.get("/{employee_id}", response_model=EmployeeRead)
async def get_employee(employee_id: int, db: AsyncSession = Depends(get_db)) -> Employee:
    return await _load_employee(db, employee_id)


@router.get("/{employee_id}/card-history", response_model=list[CardAssignmentRead])
async def history_for_employee(employee_id: int, db: AsyncSession = Depends(get_db)):
    await _load_employee(db, employee_id)
    return await card_registry.card_history(db, employee_id=employee_id)


@router.put("/{employee_id}", response_model=EmployeeRead)
async def update_employee(
    employee_id: int,
    body: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
) -> Employee:
    emp = await _load_employee(db, employee_id)
    changes = body.model_dump(exclude_unset=True)
    await _check_links(db, changes.get("supervisor_id"), changes.get("work_schedule_id"))

    for field, value in changes.items():
        setattr(emp, field, value)

    await db.commit()
    await db.refresh(emp)
    logger.info("Updated employee %d", employee_id)
    return emp


@router.delete("/{employee_id}", response_model=MessageResponse)
async def delete_employee(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Hard delete. Active card assignments are closed first; history is kept."""
    emp = await _load_employee(db, employee_id)
    full_name = emp.full_name

    await card_registry.release_all_for_employee(db, employee_id)
    await db.delete(emp)
    await db.commit()
    logger.info("Deleted employee %d (%s)", employee_id, full_name)
    return MessageResponse(message=f"Employee '{full_name}' deleted")
