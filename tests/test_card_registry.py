"""Tests for card assignment, conflicts and assignment history."""

import asyncio

import pytest
from sqlalchemy import func, select

from tests.conftest import TestingSessionLocal, make_employee
from timeevidence.core.exceptions import CardConflictError, InvalidCardError
from timeevidence.models.employee import CardAssignment, Employee
from timeevidence.services import card_registry


async def _active_rows(db, card_id):
    result = await db.execute(
        select(CardAssignment).where(CardAssignment.card_id == card_id, CardAssignment.is_active.is_(True))
    )
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_assign_card_sets_binding_and_history(db_session):
    emp = await make_employee(db_session)
    updated = await card_registry.assign_card(db_session, emp.id, "  CARD-1 ", grant_access=True, actor="admin")

    assert updated.card_id == "CARD-1"
    assert updated.access is True
    rows = await _active_rows(db_session, "CARD-1")
    assert len(rows) == 1
    assert rows[0].employee_id == emp.id
    assert rows[0].assigned_by == "admin"


@pytest.mark.asyncio
async def test_assign_missing_employee_returns_none(db_session):
    assert await card_registry.assign_card(db_session, 9999, "CARD-1") is None


@pytest.mark.asyncio
async def test_blank_card_is_rejected(db_session):
    emp = await make_employee(db_session)
    with pytest.raises(InvalidCardError):
        await card_registry.assign_card(db_session, emp.id, "   ")


@pytest.mark.asyncio
async def test_reassigning_same_card_is_idempotent(db_session):
    emp = await make_employee(db_session, card_id="CARD-1")
    await card_registry.assign_card(db_session, emp.id, "CARD-1")

    assert len(await _active_rows(db_session, "CARD-1")) == 1


@pytest.mark.asyncio
async def test_conflict_names_current_holder(db_session):
    await make_employee(db_session, "Ann", "Lee", card_id="CARD-1")
    other = await make_employee(db_session, "Bob", "Ray")

    with pytest.raises(CardConflictError) as exc:
        await card_registry.assign_card(db_session, other.id, "CARD-1")

    assert exc.value.holder_name == "Ann Lee"
    holder = await card_registry.resolve_by_card(db_session, "CARD-1")
    assert holder.full_name == "Ann Lee"


@pytest.mark.asyncio
async def test_new_card_closes_previous_assignment(db_session):
    emp = await make_employee(db_session, card_id="OLD")
    await card_registry.assign_card(db_session, emp.id, "NEW")

    assert await _active_rows(db_session, "OLD") == []
    history = await card_registry.card_history(db_session, card_id="OLD")
    assert len(history) == 1
    assert history[0].is_active is False
    assert history[0].unassigned_at is not None
    assert await card_registry.is_card_assigned(db_session, "OLD") is False
    assert await card_registry.is_card_assigned(db_session, "NEW") is True


@pytest.mark.asyncio
async def test_unassign_unbound_card_changes_nothing(db_session):
    await make_employee(db_session, card_id="CARD-1")
    assert await card_registry.unassign_card(db_session, "CARD-2") is False
    assert await card_registry.unassign_card(db_session, "") is False
    assert len(await _active_rows(db_session, "CARD-1")) == 1


@pytest.mark.asyncio
async def test_unassign_closes_history_and_frees_card(db_session):
    emp = await make_employee(db_session, card_id="CARD-1")
    assert await card_registry.unassign_card(db_session, "CARD-1", actor="admin") is True

    await db_session.refresh(emp)
    assert emp.card_id is None
    history = await card_registry.card_history(db_session, employee_id=emp.id)
    assert [row.unassigned_by for row in history] == ["admin"]

    unassigned = await card_registry.list_unassigned_employees(db_session)
    assert [e.id for e in unassigned] == [emp.id]


@pytest.mark.asyncio
async def test_release_all_before_delete_keeps_history(db_session):
    emp = await make_employee(db_session, card_id="CARD-1")
    emp_id = emp.id

    closed = await card_registry.release_all_for_employee(db_session, emp_id)
    assert closed == 1
    await db_session.delete(emp)
    await db_session.commit()

    history = await card_registry.card_history(db_session, card_id="CARD-1")
    assert len(history) == 1
    assert history[0].employee_id == emp_id
    assert history[0].is_active is False

    # the card is free for someone else now
    other = await make_employee(db_session, "Bob", "Ray")
    assert (await card_registry.assign_card(db_session, other.id, "CARD-1")).card_id == "CARD-1"


@pytest.mark.asyncio
async def test_concurrent_assignments_leave_single_holder(db_session):
    first = await make_employee(db_session, "Ann", "Lee")
    second = await make_employee(db_session, "Bob", "Ray")

    async def attempt(employee_id):
        async with TestingSessionLocal() as session:
            return await card_registry.assign_card(session, employee_id, "RACE")

    results = await asyncio.gather(attempt(first.id), attempt(second.id), return_exceptions=True)

    conflicts = [r for r in results if isinstance(r, CardConflictError)]
    winners = [r for r in results if isinstance(r, Employee)]
    assert len(conflicts) == 1
    assert len(winners) == 1

    holders = await db_session.execute(select(func.count(Employee.id)).where(Employee.card_id == "RACE"))
    assert holders.scalar_one() == 1
    assert len(await _active_rows(db_session, "RACE")) == 1
    assert len(card_registry.card_locks) == 0


@pytest.mark.asyncio
async def test_card_lookup_is_case_sensitive(db_session):
    await make_employee(db_session, card_id="AbC")
    assert await card_registry.resolve_by_card(db_session, " AbC ") is not None
    assert await card_registry.resolve_by_card(db_session, "abc") is None


@pytest.mark.asyncio
async def test_switching_cards_waits_for_previous_card_lock(db_session):
    emp = await make_employee(db_session, card_id="OLD")

    async with card_registry.card_locks.hold("OLD"):
        task = asyncio.create_task(card_registry.assign_card(db_session, emp.id, "NEW"))
        await asyncio.sleep(0.05)
        assert not task.done()

    updated = await task
    assert updated.card_id == "NEW"
    assert await _active_rows(db_session, "OLD") == []
    assert len(card_registry.card_locks) == 0


@pytest.mark.asyncio
async def test_release_waits_for_current_card_lock(db_session):
    emp = await make_employee(db_session, card_id="CARD-1")

    async with card_registry.card_locks.hold("CARD-1"):
        task = asyncio.create_task(card_registry.release_all_for_employee(db_session, emp.id))
        await asyncio.sleep(0.05)
        assert not task.done()

    assert await task == 1
    assert await card_registry.is_card_assigned(db_session, "CARD-1") is False


@pytest.mark.asyncio
async def test_release_missing_employee_is_noop(db_session):
    assert await card_registry.release_all_for_employee(db_session, 9999) == 0
