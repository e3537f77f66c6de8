"""Container quick-actions (start / stop / restart)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from opsconsole.auth import require_api_key
from opsconsole.models.commands import ContainerAction, QuickActionOutcome
from opsconsole.services.console import console

router = APIRouter(
    prefix="/containers",
    tags=["containers"],
    dependencies=[Depends(require_api_key)],
)


@router.get("/pending", response_model=list[str])
async def pending_actions() -> list[str]:
    """Containers whose action controls are currently disabled."""
    return sorted(console.containers.pending)


@router.post("/{container}/{action}", response_model=QuickActionOutcome)
async def run_action(container: str, action: ContainerAction) -> QuickActionOutcome:
    try:
        outcome = await console.run_container_action(action, container)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    if outcome is None:
        raise HTTPException(
            status_code=409,
            detail=f"An action on {container} is already pending",
        )
    return outcome
