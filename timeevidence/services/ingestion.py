"""
Swipe ingestion: resolve card -> classify -> evaluate compliance ->
persist ledger row -> attempt notification.

Notification delivery happens after the ledger write has committed; its
failures are logged and never reach the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo

from sqlalchemy.ext.asyncio import AsyncSession

from timeevidence.models.swipe_event import SwipeEvent
from timeevidence.schemas.swipe import SwipeIn
from timeevidence.services.access import AccessDecision, validate_card_access
from timeevidence.services.compliance import (ComplianceFinding, SwipeMoment,
                                              evaluate_compliance,
                                              resolve_swipe_moment)
from timeevidence.services.ledger import EventLedger
from timeevidence.services.notifications import (NotificationDispatcher,
                                                 NotificationIntent,
                                                 build_notification)

logger = logging.getLogger(__name__)


@dataclass
class SwipeOutcome:
    event: SwipeEvent
    decision: AccessDecision
    moment: SwipeMoment
    finding: ComplianceFinding | None = None
    notifications: list[NotificationIntent] = field(default_factory=list)


async def _deliver(dispatcher: NotificationDispatcher, intent: NotificationIntent) -> None:
    if intent.suppressed:
        logger.info(
            "Notification %s for employee %s suppressed: %s",
            intent.kind.value,
            intent.employee_id,
            intent.suppression_reason,
        )
        return
    try:
        await dispatcher.dispatch(intent)
    except Exception:
        logger.exception(
            "Failed to deliver %s notification for employee %s via %s",
            intent.kind.value,
            intent.employee_id,
            intent.channel,
        )


async def process_swipe(
    db: AsyncSession,
    payload: SwipeIn,
    *,
    ledger: EventLedger,
    dispatcher: NotificationDispatcher,
    received_at: datetime | None = None,
    tz: tzinfo | None = None,
) -> SwipeOutcome:
    received_at = received_at or datetime.now(timezone.utc)
    decision = await validate_card_access(db, payload.card_id)
    moment = resolve_swipe_moment(payload.timestamp_iso, received_at, tz)

    employee = decision.employee
    finding = None
    status = decision.status
    if employee is not None:
        finding = evaluate_compliance(employee, payload.action, moment)
        if decision.granted:
            status = finding.outcome.value

    event = SwipeEvent(
        system_id=payload.system_id,
        action=payload.action,
        card_id=decision.card_id or payload.card_id,
        status=status,
        timestamp_iso=payload.timestamp_iso,
        timestamp_local=payload.timestamp_local,
        timestamp_source=moment.source.value,
        active_sessions=payload.active_sessions,
        system_uptime=payload.system_uptime,
        wifi_connected=payload.wifi_connected,
        received_at=received_at,
        employee_id=employee.id if employee is not None else None,
        employee_name=employee.full_name if employee is not None else None,
        access_level=decision.access_level,
    )
    await ledger.append(db, event)
    logger.info(
        "Swipe %d from %s: action=%s card=%s access=%s status=%s (time from %s)",
        event.id,
        event.system_id,
        event.action,
        event.card_id,
        event.access_level,
        event.status,
        moment.source.value,
    )

    outcome = SwipeOutcome(event=event, decision=decision, moment=moment, finding=finding)
    if finding is not None and finding.deviation is not None:
        intent = build_notification(finding.deviation, employee, employee.supervisor)
        if intent is not None:
            outcome.notifications.append(intent)
            await _deliver(dispatcher, intent)
    return outcome
