"""Live state: snapshot, analytics, log tail and polling control."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from opsconsole.auth import require_api_key
from opsconsole.models.responses import RefreshIntervalRequest
from opsconsole.models.state import (
    AnalyticsState,
    LogTailState,
    PollingStatus,
    SnapshotState,
)
from opsconsole.services.console import console

router = APIRouter(
    prefix="/state",
    tags=["state"],
    dependencies=[Depends(require_api_key)],
)


@router.get("/snapshot", response_model=SnapshotState)
async def get_snapshot() -> SnapshotState:
    return console.snapshots.state


@router.post("/snapshot/refresh", response_model=SnapshotState)
async def refresh_snapshot() -> SnapshotState:
    """Manual refresh, independent of the auto-refresh timer."""
    await console.polling.refresh_snapshot()
    return console.snapshots.state


@router.get("/analytics", response_model=AnalyticsState)
async def get_analytics() -> AnalyticsState:
    return console.analytics.state


@router.get("/logs", response_model=LogTailState)
async def get_logs() -> LogTailState:
    return console.logs.state


@router.get("/polling", response_model=PollingStatus)
async def get_polling() -> PollingStatus:
    return console.polling.status()


@router.put("/refresh-interval", response_model=PollingStatus)
async def set_refresh_interval(req: RefreshIntervalRequest) -> PollingStatus:
    try:
        console.polling.set_refresh_interval(req.interval)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail="interval must be one of off, 10s, 20s, 30s, 60s, 180s",
        )
    return console.polling.status()
