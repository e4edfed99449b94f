"""
Access classifier: one pass from a presented card id to an access decision.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from timeevidence.models.employee import Employee
from timeevidence.models.swipe_event import (ACCESS_AUTHORIZED,
                                             ACCESS_UNAUTHORIZED,
                                             ACCESS_UNKNOWN,
                                             STATUS_ACCESS_DENIED,
                                             STATUS_CARD_NOT_ASSIGNED,
                                             STATUS_NO_CARD)
from timeevidence.services.card_registry import normalize_card_id, resolve_by_card

REASON_NO_CARD = "no card id provided"
REASON_NOT_ASSIGNED = "card not assigned to any employee"
REASON_DENIED = "access denied for this employee"
REASON_GRANTED = "access granted"


@dataclass(frozen=True)
class AccessDecision:
    access_level: str
    granted: bool
    reason: str
    card_id: str | None = None
    employee: Employee | None = None

    @property
    def status(self) -> str | None:
        """Ledger status for non-authorized swipes.

        Authorized swipes get their status from the compliance evaluator,
        so this is ``None`` for them.
        """
        if self.access_level == ACCESS_AUTHORIZED:
            return None
        if self.card_id is None:
            return STATUS_NO_CARD
        if self.employee is None:
            return STATUS_CARD_NOT_ASSIGNED
        return STATUS_ACCESS_DENIED


def classify(card_id: str | None, employee: Employee | None) -> AccessDecision:
    normalized = normalize_card_id(card_id)
    if normalized is None:
        return AccessDecision(ACCESS_UNKNOWN, False, REASON_NO_CARD)
    if employee is None:
        return AccessDecision(ACCESS_UNKNOWN, False, REASON_NOT_ASSIGNED, normalized)
    if not employee.access:
        return AccessDecision(ACCESS_UNAUTHORIZED, False, REASON_DENIED, normalized, employee)
    return AccessDecision(ACCESS_AUTHORIZED, True, REASON_GRANTED, normalized, employee)


async def validate_card_access(db: AsyncSession, card_id: str | None) -> AccessDecision:
    """Resolve the card and classify it. No lookup happens without a card id."""
    if normalize_card_id(card_id) is None:
        return classify(None, None)
    employee = await resolve_by_card(db, card_id)
    return classify(card_id, employee)
