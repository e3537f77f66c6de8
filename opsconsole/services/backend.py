"""Async HTTP client for the DevOps assistant backend.

One method per backend endpoint.  Every method returns a ``BackendResponse``
built from the tolerant decoder, so HTTP errors and decode failures share one
shape.  Transport failures (``httpx.HTTPError``) are *not* caught here: the
call site converts them into its own domain outcome.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
from pydantic import BaseModel

from opsconsole.config import Settings, settings
from opsconsole.services.decoder import error_message, safe_json
from opsconsole.utils.logging import get_logger

log = get_logger(__name__)


class BackendResponse(BaseModel):
    """Decoded response from the backend."""

    ok: bool
    status_code: int
    status_text: str = ""
    payload: Any = None

    @property
    def error(self) -> Optional[str]:
        if self.ok:
            return None
        return error_message(self.payload, self.status_text)


class BackendClient:
    """Thin async wrapper around ``httpx.AsyncClient``."""

    def __init__(
        self,
        cfg: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._cfg = cfg or settings
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    # ── connection lifecycle ──────────────────────────────────────────

    def _ensure(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._cfg.console_backend_url.rstrip("/"),
                timeout=self._cfg.console_request_timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ── helpers ───────────────────────────────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> BackendResponse:
        client = self._ensure()
        if params:
            params = {k: v for k, v in params.items() if v not in (None, "")}
        try:
            resp = await client.request(method, path, params=params or None, json=json)
        except httpx.HTTPError as exc:
            log.warning("backend.request_failed", method=method, path=path, error=str(exc))
            raise
        result = BackendResponse(
            ok=resp.is_success,
            status_code=resp.status_code,
            status_text=resp.reason_phrase,
            payload=safe_json(resp),
        )
        if not result.ok:
            log.info(
                "backend.error_status",
                method=method,
                path=path,
                status=resp.status_code,
                error=result.error,
            )
        return result

    # ── servers ───────────────────────────────────────────────────────

    async def list_servers(self) -> BackendResponse:
        return await self._request("GET", "/servers")

    async def check_server_health(self, server_id: str) -> BackendResponse:
        return await self._request("GET", f"/servers/{server_id}/health")

    # ── telemetry ─────────────────────────────────────────────────────

    async def get_snapshot(self, server_id: str | None = None) -> BackendResponse:
        return await self._request("GET", "/snapshot", params={"serverId": server_id})

    async def get_anomalies(self, server_id: str, last_n: int) -> BackendResponse:
        return await self._request(
            "GET",
            "/analytics/anomalies",
            params={"serverId": server_id, "lastN": last_n},
        )

    async def get_disk_history(self, server_id: str, limit: int) -> BackendResponse:
        return await self._request(
            "GET",
            "/analytics/disk",
            params={"serverId": server_id, "limit": limit},
        )

    async def get_ussd_logs(self, server_id: str | None, limit: int) -> BackendResponse:
        return await self._request(
            "GET",
            "/nginx/ussd-logs",
            params={"serverId": server_id, "limit": limit},
        )

    # ── commands ──────────────────────────────────────────────────────

    async def analyze_command(self, command: str) -> BackendResponse:
        return await self._request("POST", "/commands/analyze", json={"command": command})

    async def execute_command(
        self,
        command: str,
        confirmed_risk_level: str,
        server_id: str | None,
    ) -> BackendResponse:
        return await self._request(
            "POST",
            "/commands/execute",
            json={
                "command": command,
                "confirmedRiskLevel": confirmed_risk_level,
                "serverId": server_id,
            },
        )

    # ── chat ──────────────────────────────────────────────────────────

    async def get_chat_mode(self) -> BackendResponse:
        return await self._request("GET", "/chat/mode")

    async def send_chat(
        self,
        message: str,
        include_system_context: bool,
        server_id: str | None,
    ) -> BackendResponse:
        return await self._request(
            "POST",
            "/chat",
            json={
                "message": message,
                "includeSystemContext": include_system_context,
                "serverId": server_id,
            },
        )
