"""
Supervisor CRUD endpoints.

Deleting a supervisor detaches its employees instead of deleting them.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from timeevidence.api.v1.deps import get_db
from timeevidence.models.employee import Employee
from timeevidence.models.supervisor import Supervisor
from timeevidence.schemas.employee import (MessageResponse, SupervisorCreate,
                                           SupervisorRead, SupervisorUpdate)

router = APIRouter(prefix="/supervisors", tags=["supervisors"])
logger = logging.getLogger(__name__)


async def _email_taken(db: AsyncSession, email: str, exclude_id: int | None = None) -> bool:
    query = select(Supervisor.id).where(Supervisor.email == email)
    if exclude_id is not None:
        query = query.where(Supervisor.id != exclude_id)
    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none() is not None


@router.get("", response_model=list[SupervisorRead])
async def list_supervisors(db: AsyncSession = Depends(get_db)) -> list[Supervisor]:
    result = await db.execute(select(Supervisor).order_by(Supervisor.surname, Supervisor.name))
    return list(result.scalars().all())


@router.post("", response_model=SupervisorRead, status_code=201)
async def create_supervisor(
    body: SupervisorCreate,
    db: AsyncSession = Depends(get_db),
) -> Supervisor:
    if await _email_taken(db, body.email):
        raise HTTPException(status_code=400, detail=f"Email '{body.email}' already registered")

    supervisor = Supervisor(**body.model_dump())
    db.add(supervisor)
    await db.commit()
    await db.refresh(supervisor)
    logger.info("Created supervisor %d (%s)", supervisor.id, supervisor.full_name)
    return supervisor


@router.put("/{supervisor_id}", response_model=SupervisorRead)
async def update_supervisor(
    supervisor_id: int,
    body: SupervisorUpdate,
    db: AsyncSession = Depends(get_db),
) -> Supervisor:
    supervisor = await db.get(Supervisor, supervisor_id)
    if supervisor is None:
        raise HTTPException(status_code=404, detail="Supervisor not found")

    changes = body.model_dump(exclude_unset=True)
    if "email" in changes and changes["email"] is not None:
        changes["email"] = changes["email"].strip().lower()
        if await _email_taken(db, changes["email"], exclude_id=supervisor_id):
            raise HTTPException(status_code=400, detail=f"Email '{changes['email']}' already registered")

    for field, value in changes.items():
        setattr(supervisor, field, value)

    await db.commit()
    await db.refresh(supervisor)
    logger.info("Updated supervisor %d", supervisor_id)
    return supervisor


@router.delete("/{supervisor_id}", response_model=MessageResponse)
async def delete_supervisor(
    supervisor_id: int,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    supervisor = await db.get(Supervisor, supervisor_id)
    if supervisor is None:
        raise HTTPException(status_code=404, detail="Supervisor not found")

    affected = await db.scalar(
        select(func.count(Employee.id)).where(Employee.supervisor_id == supervisor_id)
    )
    await db.execute(
        update(Employee).where(Employee.supervisor_id == supervisor_id).values(supervisor_id=None)
    )
    await db.delete(supervisor)
    await db.commit()
    logger.info("Deleted supervisor %d, %d employee(s) detached", supervisor_id, affected)

    message = (
        f"Supervisor deleted. {affected} employee(s) unassigned from this supervisor."
        if affected
        else "Supervisor deleted."
    )
    return MessageResponse(message=message)
