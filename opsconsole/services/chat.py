"""Conversational front-end state."""

from __future__ import annotations

from typing import Optional

from opsconsole.models.chat import ChatMessage, ChatRole
from opsconsole.services.backend import BackendClient
from opsconsole.services.risk_gate import ServerIdProvider
from opsconsole.utils.logging import get_logger

log = get_logger(__name__)

UNKNOWN_MODE = "UNKNOWN"


class ChatSession:
    """Message history plus the backend's answering mode."""

    def __init__(self, client: BackendClient, server_id: ServerIdProvider | None = None) -> None:
        self._client = client
        self._server_id = server_id or (lambda: None)
        self._messages: tuple[ChatMessage, ...] = ()
        self._mode = UNKNOWN_MODE
        self._sending = False

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return self._messages

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def sending(self) -> bool:
        return self._sending

    def _append(self, role: ChatRole, content: str) -> None:
        self._messages = self._messages + (ChatMessage(role=role, content=content),)

    async def refresh_mode(self) -> str:
        try:
            resp = await self._client.get_chat_mode()
        except Exception as exc:
            log.warning("chat.mode_failed", error=str(exc))
            self._mode = UNKNOWN_MODE
            return self._mode
        payload = resp.payload if isinstance(resp.payload, dict) else {}
        self._mode = (payload.get("mode") if resp.ok else None) or UNKNOWN_MODE
        return self._mode

    async def send(self, message: str, include_system_context: bool = False) -> Optional[ChatMessage]:
        """Post *message*; returns the assistant reply, or None if refused."""
        text = message.strip()
        if not text or self._sending:
            return None

        self._append(ChatRole.user, text)
        self._sending = True
        try:
            resp = await self._client.send_chat(text, include_system_context, self._server_id())
        except Exception as exc:
            content = f"Error: {exc}. Is the backend reachable?"
        else:
            payload = resp.payload if isinstance(resp.payload, dict) else {}
            if not resp.ok:
                content = resp.error
            else:
                content = payload.get("response") or "No response received."
            if payload.get("mode"):
                self._mode = payload["mode"]
        finally:
            self._sending = False

        self._append(ChatRole.assistant, content)
        return self._messages[-1]
