"""Chat front-end models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ChatRole(str, Enum):
    user = "user"
    assistant = "assistant"


class ChatMessage(BaseModel):
    role: ChatRole
    content: str


class ChatRequest(BaseModel):
    message: str
    include_system_context: bool = False


class ChatHistoryResponse(BaseModel):
    mode: str
    messages: list[ChatMessage] = Field(default_factory=list)
