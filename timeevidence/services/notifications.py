"""
Supervisor notifications.

``build_notification`` decides whether and what to send; it never
performs I/O. ``NotificationDispatcher`` hands intents to the transport:
email is log-only here, SMS goes through the SMSAPI HTTP API when a token
is configured.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

import httpx

from timeevidence.core.config import Settings, settings
from timeevidence.models.employee import Employee
from timeevidence.models.supervisor import (CHANNEL_EMAIL, CHANNEL_NONE,
                                            CHANNEL_SMS, Supervisor)
from timeevidence.services.compliance import DeviationKind, ScheduleDeviation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationIntent:
    kind: DeviationKind
    channel: str
    recipient: str | None
    subject: str
    message: str
    employee_id: int | None = None
    supervisor_id: int | None = None
    suppressed: bool = False
    suppression_reason: str | None = None


def _render(deviation: ScheduleDeviation, employee: Employee) -> tuple[str, str]:
    full_name = employee.full_name
    actual = f"{deviation.actual:%H:%M}"
    if deviation.kind is DeviationKind.LATE_ARRIVAL:
        subject = f"Late arrival: {full_name} at {actual}"
        message = f"Employee {full_name} logged in at {actual} - status: late to work"
    else:
        scheduled = f"{deviation.scheduled:%H:%M}"
        subject = f"Early logout: {full_name} at {actual} (scheduled end {scheduled})"
        message = f"Employee {full_name} logged out at {actual} before scheduled end ({scheduled})"
    return subject, message


def build_notification(
    deviation: ScheduleDeviation | None,
    employee: Employee | None,
    supervisor: Supervisor | None,
) -> NotificationIntent | None:
    """Turn a deviation into an intent for the supervisor's selected channel.

    Returns ``None`` when nothing should be sent. When the channel is set
    but its contact field is empty, the intent comes back ``suppressed``.
    """
    if deviation is None or employee is None or supervisor is None:
        return None
    channel = (supervisor.notification_channel or CHANNEL_NONE).lower()
    if channel == CHANNEL_NONE:
        return None

    subject, message = _render(deviation, employee)
    if channel == CHANNEL_EMAIL:
        recipient = (supervisor.email or "").strip() or None
    elif channel == CHANNEL_SMS:
        recipient = (supervisor.phone_number or "").strip() or None
    else:
        logger.warning("Supervisor %s has unknown notification channel %r", supervisor.full_name, channel)
        return None

    intent = NotificationIntent(
        kind=deviation.kind,
        channel=channel,
        recipient=recipient,
        subject=subject,
        message=message,
        employee_id=employee.id,
        supervisor_id=supervisor.id,
    )
    if recipient is None:
        reason = "no email set" if channel == CHANNEL_EMAIL else "no phone set"
        logger.warning(
            "Supervisor %s has %s preference but %s; %s notice suppressed",
            supervisor.full_name,
            channel,
            reason,
            deviation.kind.value,
        )
        return replace(intent, suppressed=True, suppression_reason=reason)
    return intent


def _truncate(value: str, limit: int = 60) -> str:
    return value if len(value) <= limit else value[:limit] + "…"


class NotificationDispatcher:
    """Delivers intents. Raises on transport failure; callers decide what to do."""

    def __init__(
        self,
        config: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or settings
        self._transport = transport

    async def dispatch(self, intent: NotificationIntent) -> bool:
        """Return ``True`` when the intent was handed to a transport."""
        if intent.suppressed or not intent.recipient:
            return False
        if not self._config.NOTIFICATIONS_ENABLED:
            logger.info("Notifications disabled; dropping %s for %s", intent.kind.value, intent.recipient)
            return False
        if intent.channel == CHANNEL_EMAIL:
            await self._send_email(intent.recipient, intent.subject, intent.message)
            return True
        if intent.channel == CHANNEL_SMS:
            return await self._send_sms(intent.recipient, intent.message)
        return False

    async def _send_email(self, to: str, subject: str, body: str) -> None:
        logger.info("Email transport is external. Would send email to %s: %s - %s", to, subject, body)

    async def _send_sms(self, to_phone: str, message: str) -> bool:
        """Return ``False`` when the selected provider cannot send."""
        provider = self._config.SMS_PROVIDER
        if provider == "smsapi":
            token = self._config.SMSAPI_ACCESS_TOKEN
            if not token:
                logger.warning(
                    "SMSAPI provider selected but SMSAPI_ACCESS_TOKEN is not configured; SMS to %s not sent",
                    to_phone,
                )
                return False
            await self._send_smsapi(token, to_phone, message)
            return True
        if provider == "twilio":
            logger.info("[Twilio] Would send SMS to %s: %s", to_phone, message)
            return True

        logger.info("[SMS] Would send to %s: %s", to_phone, message)
        return True

    async def _send_smsapi(self, token: str, to_phone: str, message: str) -> None:
        form = {"to": to_phone, "message": message}
        if self._config.SMSAPI_FROM:
            form["from"] = self._config.SMSAPI_FROM

        async with httpx.AsyncClient(
            base_url=self._config.SMSAPI_BASE_URL,
            timeout=self._config.SMS_TIMEOUT_SECONDS,
            transport=self._transport,
        ) as client:
            response = await client.post(
                "sms.do",
                data=form,
                headers={"Authorization": f"Bearer {token}"},
            )
        if response.is_error:
            logger.error("SMSAPI error %d: %s", response.status_code, response.text)
            response.raise_for_status()
        logger.info("SMS sent via SMSAPI to %s: %s", to_phone, _truncate(message))
