"""
Work-schedule CRUD endpoints.

Days and windows are stored in their canonical text forms whatever
shape the client sent them in.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from timeevidence.api.v1.deps import get_db
from timeevidence.models.employee import Employee
from timeevidence.models.work_schedule import WorkSchedule
from timeevidence.schemas.employee import (MessageResponse, WorkScheduleCreate,
                                           WorkScheduleRead,
                                           WorkScheduleUpdate)

router = APIRouter(prefix="/schedules", tags=["schedules"])
logger = logging.getLogger(__name__)


@router.get("", response_model=list[WorkScheduleRead])
async def list_schedules(db: AsyncSession = Depends(get_db)) -> list[WorkSchedule]:
    result = await db.execute(select(WorkSchedule).order_by(WorkSchedule.schedule_name))
    return list(result.scalars().all())


@router.get("/{schedule_id}", response_model=WorkScheduleRead)
async def get_schedule(schedule_id: int, db: AsyncSession = Depends(get_db)) -> WorkSchedule:
    schedule = await db.get(WorkSchedule, schedule_id)
    if schedule is None:
        raise HTTPException(status_code=404, detail="Work schedule not found")
    return schedule


@router.post("", response_model=WorkScheduleRead, status_code=201)
async def create_schedule(
    body: WorkScheduleCreate,
    db: AsyncSession = Depends(get_db),
) -> WorkSchedule:
    schedule = WorkSchedule(
        schedule_name=body.schedule_name,
        selected_days=body.weekdays_text() or "",
        time_ranges=body.windows_text() or "",
    )
    db.add(schedule)
    await db.commit()
    await db.refresh(schedule)
    logger.info("Created work schedule %d (%s)", schedule.id, schedule.schedule_name)
    return schedule


@router.put("/{schedule_id}", response_model=WorkScheduleRead)
async def update_schedule(
    schedule_id: int,
    body: WorkScheduleUpdate,
    db: AsyncSession = Depends(get_db),
) -> WorkSchedule:
    schedule = await db.get(WorkSchedule, schedule_id)
    if schedule is None:
        raise HTTPException(status_code=404, detail="Work schedule not found")

    if body.schedule_name is not None:
        schedule.schedule_name = body.schedule_name
    days = body.weekdays_text()
    if days is not None:
        schedule.selected_days = days
    windows = body.windows_text()
    if windows is not None:
        schedule.time_ranges = windows

    await db.commit()
    await db.refresh(schedule)
    logger.info("Updated work schedule %d", schedule_id)
    return schedule


@router.delete("/{schedule_id}", response_model=MessageResponse)
async def delete_schedule(
    schedule_id: int,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    schedule = await db.get(WorkSchedule, schedule_id)
    if schedule is None:
        raise HTTPException(status_code=404, detail="Work schedule not found")

    affected = await db.scalar(
        select(func.count(Employee.id)).where(Employee.work_schedule_id == schedule_id)
    )
    await db.execute(
        update(Employee).where(Employee.work_schedule_id == schedule_id).values(work_schedule_id=None)
    )
    await db.delete(schedule)
    await db.commit()
    logger.info("Deleted work schedule %d, %d employee(s) detached", schedule_id, affected)

    message = (
        f"Work schedule deleted. {affected} employee(s) unassigned from this schedule."
        if affected
        else "Work schedule deleted."
    )
    return MessageResponse(message=message)
