"""
Shared-key authentication for terminals and API clients.

A key is accepted from either ``X-Api-Key: <key>`` or
``Authorization: ApiKey <key>``.
"""

from __future__ import annotations

import hmac

API_KEY_HEADER = "X-Api-Key"
AUTHORIZATION_PREFIX = "ApiKey "


def extract_api_key(header_key: str | None, authorization: str | None) -> str | None:
    """Return the presented key, preferring the dedicated header."""
    if header_key and header_key.strip():
        return header_key.strip()
    if authorization and authorization[: len(AUTHORIZATION_PREFIX)].lower() == AUTHORIZATION_PREFIX.lower():
        presented = authorization[len(AUTHORIZATION_PREFIX):].strip()
        return presented or None
    return None


def verify_api_key(presented: str | None, configured: str | None) -> bool:
    """Constant-time comparison of the presented key against the configured one."""
    if not presented or not configured:
        return False
    return hmac.compare_digest(presented.encode("utf-8"), configured.encode("utf-8"))
