"""Risk-gated command session endpoints.

The session walks analyze -> confirm -> execute; any request that does not
fit the current state is answered with 409 and leaves the session untouched.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from opsconsole.auth import require_api_key
from opsconsole.models.commands import CommandTextRequest, GateSnapshot
from opsconsole.services.console import console

router = APIRouter(
    prefix="/commands/session",
    tags=["commands"],
    dependencies=[Depends(require_api_key)],
)


def _conflict(detail: str) -> HTTPException:
    return HTTPException(status_code=409, detail=detail)


@router.get("", response_model=GateSnapshot)
async def get_session() -> GateSnapshot:
    return console.gate.snapshot()


@router.post("", response_model=GateSnapshot)
async def open_session() -> GateSnapshot:
    """Open a fresh session, discarding any previous analysis."""
    console.gate.open()
    return console.gate.snapshot()


@router.delete("", response_model=GateSnapshot)
async def close_session() -> GateSnapshot:
    console.gate.close()
    return console.gate.snapshot()


@router.put("/command", response_model=GateSnapshot)
async def set_command(req: CommandTextRequest) -> GateSnapshot:
    if not console.gate.set_command(req.command):
        raise _conflict("A request is in flight")
    return console.gate.snapshot()


@router.post("/analyze", response_model=GateSnapshot)
async def analyze(req: Optional[CommandTextRequest] = None) -> GateSnapshot:
    """Analyze the session command, or *req.command* if given."""
    if req is not None and req.command.strip():
        analysis = await console.gate.submit_command(req.command)
    else:
        analysis = await console.gate.analyze()
    if analysis is None:
        raise _conflict("Nothing to analyze or a request is in flight")
    return console.gate.snapshot()


@router.post("/execute", response_model=GateSnapshot)
async def execute() -> GateSnapshot:
    """Execute at the analysed risk level."""
    result = await console.gate.confirm_execute()
    if result is None:
        raise _conflict("Command has not been analyzed")
    return console.gate.snapshot()


@router.post("/back", response_model=GateSnapshot)
async def back() -> GateSnapshot:
    if not console.gate.back():
        raise _conflict("No analysis to return to")
    return console.gate.snapshot()
