"""Tests for the terminal ingest endpoint and ledger read views."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from tests.conftest import (RecordingDispatcher, make_employee, make_schedule,
                            make_supervisor)
from timeevidence.api.v1.deps import get_dispatcher
from timeevidence.main import app
from timeevidence.models.swipe_event import SwipeEvent

URL = "/api/v1/timetracker/data"


def _swipe(card_id, action="LOGIN", ts="2024-01-01T09:00:00", **extra):
    body = {"system_id": "T1", "action": action, "card_id": card_id, "timestamp_iso": ts}
    body.update(extra)
    return body


async def _stored(db, event_id):
    result = await db.execute(select(SwipeEvent).where(SwipeEvent.id == event_id))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_unknown_card_is_recorded(async_client: AsyncClient, db_session):
    resp = await async_client.post(URL, json=_swipe("GHOST"))
    assert resp.status_code == 200
    data = resp.json()
    assert data["access_granted"] is False
    assert data["access_level"] == "Unknown"
    assert data["system_message"] == "card not assigned to any employee"
    assert data["message"] == "Data received successfully"

    event = await _stored(db_session, data["event_id"])
    assert event.status == "CARD_NOT_ASSIGNED"
    assert event.employee_id is None


@pytest.mark.asyncio
async def test_missing_card_is_recorded(async_client: AsyncClient, db_session):
    resp = await async_client.post(URL, json={"system_id": "T1", "action": "LOGIN"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["system_message"] == "no card id provided"
    assert data["timestamp_source"] == "server"
    assert (await _stored(db_session, data["event_id"])).status == "NO_CARD"


@pytest.mark.asyncio
async def test_unauthorized_employee_is_denied(async_client: AsyncClient, db_session):
    await make_employee(db_session, card_id="CARD-1", access=False)
    resp = await async_client.post(URL, json=_swipe("CARD-1"))
    data = resp.json()
    assert data["access_granted"] is False
    assert data["access_level"] == "Unauthorized"
    assert data["employee_name"] == "Ann"
    assert data["employee_surname"] == "Lee"
    assert (await _stored(db_session, data["event_id"])).status == "ACCESS_DENIED"


@pytest.mark.asyncio
async def test_authorized_on_schedule_is_success(async_client: AsyncClient, db_session, dispatcher):
    schedule = await make_schedule(db_session)
    boss = await make_supervisor(db_session)
    await make_employee(db_session, card_id="CARD-1", schedule=schedule, supervisor=boss)

    resp = await async_client.post(URL, json=_swipe("CARD-1", ts="2024-01-01T09:00:00"))
    data = resp.json()
    assert data["access_granted"] is True
    assert data["access_level"] == "Authorized"
    assert data["status"] == "SUCCESS"
    assert data["timestamp_source"] == "device"
    assert data["position"] == "Engineer"

    event = await _stored(db_session, data["event_id"])
    assert event.employee_name == "Ann Lee"
    assert event.timestamp_source == "device"
    assert dispatcher.sent == []


@pytest.mark.asyncio
async def test_weekend_swipe_is_violation(async_client: AsyncClient, db_session):
    schedule = await make_schedule(db_session)
    await make_employee(db_session, card_id="CARD-1", schedule=schedule)

    resp = await async_client.post(URL, json=_swipe("CARD-1", ts="2024-01-06T10:00:00"))
    assert resp.json()["status"] == "SCHEDULE_VIOLATION"


@pytest.mark.asyncio
async def test_late_login_notifies_supervisor(async_client: AsyncClient, db_session, dispatcher):
    schedule = await make_schedule(db_session)
    boss = await make_supervisor(db_session)
    await make_employee(db_session, card_id="CARD-1", schedule=schedule, supervisor=boss)

    await async_client.post(URL, json=_swipe("CARD-1", ts="2024-01-01T08:59:00"))
    assert dispatcher.sent == []

    await async_client.post(URL, json=_swipe("CARD-1", ts="2024-01-01T09:01:00"))
    assert len(dispatcher.sent) == 1
    intent = dispatcher.sent[0]
    assert intent.kind.value == "late_arrival"
    assert intent.recipient == "boss@example.com"


@pytest.mark.asyncio
async def test_early_logout_notice_carries_scheduled_end(async_client: AsyncClient, db_session, dispatcher):
    schedule = await make_schedule(db_session)
    boss = await make_supervisor(db_session, channel="sms", phone="+48123456789")
    await make_employee(db_session, card_id="CARD-1", schedule=schedule, supervisor=boss)

    await async_client.post(URL, json=_swipe("CARD-1", action="LOGOUT", ts="2024-01-01T17:00:00"))
    assert dispatcher.sent == []

    await async_client.post(URL, json=_swipe("CARD-1", action="LOGOUT", ts="2024-01-01T16:59:00"))
    assert len(dispatcher.sent) == 1
    assert dispatcher.sent[0].channel == "sms"
    assert "17:00" in dispatcher.sent[0].message


@pytest.mark.asyncio
async def test_delivery_failure_does_not_fail_the_swipe(async_client: AsyncClient, db_session):
    schedule = await make_schedule(db_session)
    boss = await make_supervisor(db_session)
    await make_employee(db_session, card_id="CARD-1", schedule=schedule, supervisor=boss)

    app.dependency_overrides[get_dispatcher] = lambda: RecordingDispatcher(fail=True)
    resp = await async_client.post(URL, json=_swipe("CARD-1", ts="2024-01-01T10:30:00"))

    assert resp.status_code == 200
    assert (await _stored(db_session, resp.json()["event_id"])).status == "SUCCESS"


@pytest.mark.asyncio
async def test_out_of_range_device_timestamp_uses_server_time(async_client: AsyncClient, db_session):
    await make_employee(db_session, card_id="CARD-1")
    resp = await async_client.post(URL, json=_swipe("CARD-1", ts="9999-12-31T23:59:59-14:00"))

    assert resp.status_code == 200
    data = resp.json()
    assert data["timestamp_source"] == "server"
    assert data["access_granted"] is True
    event = await _stored(db_session, data["event_id"])
    assert event.timestamp_source == "server"
    assert event.timestamp_iso == "9999-12-31T23:59:59-14:00"


@pytest.mark.asyncio
async def test_oversized_card_id_is_rejected(async_client: AsyncClient):
    resp = await async_client.post(URL, json=_swipe("X" * 65))
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_read_views(async_client: AsyncClient):
    await async_client.post(URL, json=_swipe("A", action="LOGIN", system_uptime=3661, active_sessions=2))
    await async_client.post(URL, json={**_swipe("B", action="LOGOUT"), "system_id": "T2"})

    listing = await async_client.get(URL, params={"limit": 10})
    assert listing.status_code == 200
    assert len(listing.json()) == 2

    latest = await async_client.get(f"{URL}/latest")
    assert latest.json()["card_id"] == "B"
    assert latest.json()["parsed_timestamp"].startswith("2024-01-01T09:00")

    by_action = await async_client.get(f"{URL}/action/login")
    assert [e["card_id"] for e in by_action.json()] == ["A"]
    assert by_action.json()[0]["uptime_formatted"] == "00.01:01:01"

    by_system = await async_client.get(f"{URL}/system/T2")
    assert [e["card_id"] for e in by_system.json()] == ["B"]

    stats = await async_client.get("/api/v1/timetracker/stats")
    assert stats.json()["total_records"] == 2
    assert stats.json()["active_sessions"] == 2
    assert stats.json()["last_system_id"] == "T2"


@pytest.mark.asyncio
async def test_clear_ledger(async_client: AsyncClient):
    await async_client.post(URL, json=_swipe("A"))
    resp = await async_client.delete(URL)
    assert resp.status_code == 200
    assert resp.json()["removed"] == 1

    latest = await async_client.get(f"{URL}/latest")
    assert latest.status_code == 404
    assert latest.json()["detail"] == "No data available"
