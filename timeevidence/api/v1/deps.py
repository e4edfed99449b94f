"""
FastAPI dependencies — API-key guard, database session, engine singletons.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator

from fastapi import Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from timeevidence.core.config import settings
from timeevidence.core.security import (API_KEY_HEADER, AUTHORIZATION_PREFIX,
                                        extract_api_key,
                                        verify_api_key)
from timeevidence.db.session import async_session_factory
from timeevidence.services.ledger import EventLedger, ledger
from timeevidence.services.notifications import NotificationDispatcher

logger = logging.getLogger(__name__)

_dispatcher = NotificationDispatcher()


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Engine components ───────────────────────────────────────────────
def get_ledger() -> EventLedger:
    return ledger


def get_dispatcher() -> NotificationDispatcher:
    return _dispatcher


# ── API key guard ───────────────────────────────────────────────────
async def require_api_key(
    x_api_key: str | None = Header(default=None, alias=API_KEY_HEADER),
    authorization: str | None = Header(default=None),
) -> str:
    """Accept ``X-Api-Key`` or ``Authorization: ApiKey <key>``."""
    if not settings.REQUIRE_API_KEY:
        return "dev-bypass"

    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or missing API key",
        headers={"WWW-Authenticate": f'{AUTHORIZATION_PREFIX.strip()} realm="TimeEvidence"'},
    )
    if not settings.API_KEY:
        logger.warning("API key required but none configured; rejecting request")
        raise unauthorized

    presented = extract_api_key(x_api_key, authorization)
    if not verify_api_key(presented, settings.API_KEY):
        raise unauthorized
    return "api-client"
