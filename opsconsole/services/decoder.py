"""Tolerant decoding of backend HTTP responses.

Every consumer reads ``payload["error"]`` on failure, whether the failure was
an HTTP status or a body that could not be parsed.
"""

from __future__ import annotations

import json
from typing import Any

import httpx

INVALID_RESPONSE = "Invalid response"
REQUEST_FAILED = "Request failed"


def decode_body(text: str | None, status_text: str = "") -> Any:
    """Decode a response body without ever raising.

    Empty or whitespace-only bodies decode to ``{}``; unparseable bodies to
    ``{"error": status_text or "Invalid response"}``.
    """
    if not text or not text.strip():
        return {}
    try:
        return json.loads(text)
    except ValueError:
        return {"error": status_text or INVALID_RESPONSE}


def safe_json(response: httpx.Response) -> Any:
    return decode_body(response.text, response.reason_phrase)


def error_message(
    payload: Any,
    status_text: str = "",
    default: str = REQUEST_FAILED,
) -> str:
    """Message for a failed call: payload ``error``, else status text."""
    if isinstance(payload, dict):
        err = payload.get("error")
        if err:
            return str(err)
    return status_text or default


def payload_error(payload: Any, *, unless: str | None = None) -> str | None:
    """``error`` carried by an otherwise successful payload.

    A 2xx response whose body could not be decoded still arrives as
    ``{"error": ...}``; *unless* names a key whose presence means the payload
    is a real result that merely mentions an error.
    """
    if not isinstance(payload, dict) or "error" not in payload:
        return None
    if unless is not None and unless in payload:
        return None
    return str(payload["error"] or INVALID_RESPONSE)
