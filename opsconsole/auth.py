"""Shared-secret guard for the console API."""

from __future__ import annotations

import secrets

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

from opsconsole.config import settings

_api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def require_api_key(api_key: str | None = Security(_api_key_header)) -> str | None:
    """Reject requests whose ``X-API-Key`` does not match ``CONSOLE_API_KEY``.

    The console is usually bound to localhost; leaving the key blank turns
    the guard off.
    """
    expected = settings.console_api_key
    if not expected:
        return None
    if not api_key or not secrets.compare_digest(api_key, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
    return api_key
