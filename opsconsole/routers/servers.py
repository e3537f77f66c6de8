"""Server registry and selection endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from opsconsole.auth import require_api_key
from opsconsole.models.responses import SelectServerRequest, ServerListResponse
from opsconsole.services.console import console

router = APIRouter(
    prefix="/servers",
    tags=["servers"],
    dependencies=[Depends(require_api_key)],
)


def _listing() -> ServerListResponse:
    sel = console.selection
    return ServerListResponse(
        servers=list(sel.servers),
        selected_server_id=sel.selected_id,
        is_nginx_host=sel.is_nginx_host,
    )


@router.get("", response_model=ServerListResponse)
async def list_servers() -> ServerListResponse:
    return _listing()


@router.post("/refresh", response_model=ServerListResponse)
async def refresh_servers() -> ServerListResponse:
    await console.refresh_servers()
    return _listing()


@router.put("/selection", response_model=ServerListResponse)
async def select_server(req: SelectServerRequest) -> ServerListResponse:
    """Switch the active server; ``null`` selects the backend default."""
    if req.server_id and all(s.id != req.server_id for s in console.selection.servers):
        raise HTTPException(status_code=404, detail="Server not found")
    await console.select_server(req.server_id)
    return _listing()
