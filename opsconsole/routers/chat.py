"""Chat endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from opsconsole.auth import require_api_key
from opsconsole.models.chat import ChatHistoryResponse, ChatMessage, ChatRequest
from opsconsole.services.console import console

router = APIRouter(
    prefix="/chat",
    tags=["chat"],
    dependencies=[Depends(require_api_key)],
)


@router.get("", response_model=ChatHistoryResponse)
async def history() -> ChatHistoryResponse:
    return ChatHistoryResponse(mode=console.chat.mode, messages=list(console.chat.messages))


@router.get("/mode")
async def mode() -> dict[str, str]:
    return {"mode": await console.chat.refresh_mode()}


@router.post("", response_model=ChatMessage)
async def send(req: ChatRequest) -> ChatMessage:
    if not req.message.strip():
        raise HTTPException(status_code=400, detail="Message cannot be empty.")
    reply = await console.chat.send(req.message, req.include_system_context)
    if reply is None:
        raise HTTPException(status_code=409, detail="A message is already being answered")
    return reply
