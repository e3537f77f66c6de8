"""Health-check endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from opsconsole import __version__
from opsconsole.auth import require_api_key
from opsconsole.models.responses import BackendHealthResponse, HealthResponse
from opsconsole.services.console import console

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def service_health() -> HealthResponse:
    """Basic liveness probe (no auth required)."""
    return HealthResponse(status="ok", version=__version__)


@router.get(
    "/backend/health",
    response_model=BackendHealthResponse,
    dependencies=[Depends(require_api_key)],
)
async def backend_health() -> BackendHealthResponse:
    """Check that the assistant backend answers."""
    try:
        resp = await console.client.get_chat_mode()
    except Exception as exc:
        return BackendHealthResponse(reachable=False, error=str(exc))
    if not resp.ok:
        return BackendHealthResponse(reachable=True, error=resp.error)
    mode = resp.payload.get("mode") if isinstance(resp.payload, dict) else None
    return BackendHealthResponse(reachable=True, chat_mode=mode)
