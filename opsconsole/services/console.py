"""The operator console controller.

Owns the backend client and every store, the polling orchestrator, the
interactive command gate, the container action bridge and the chat session.
Views only call methods on this object.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from opsconsole.config import Settings, settings
from opsconsole.models.commands import ContainerAction, ExecutionResult, QuickActionOutcome
from opsconsole.services.backend import BackendClient
from opsconsole.services.chat import ChatSession
from opsconsole.services.container_actions import ConfirmPolicy, ContainerActionBridge
from opsconsole.services.polling import PollingOrchestrator, SleepFn
from opsconsole.services.risk_gate import RiskGate
from opsconsole.services.selection import ServerSelection
from opsconsole.services.stores import AnomalyFeed, LogTailStore, SnapshotStore
from opsconsole.utils.logging import get_logger

log = get_logger(__name__)


class OperatorConsole:
    def __init__(
        self,
        cfg: Settings | None = None,
        *,
        client: BackendClient | None = None,
        sleep: SleepFn | None = None,
        confirm: ConfirmPolicy | None = None,
    ) -> None:
        self._cfg = cfg or settings
        self.client = client or BackendClient(self._cfg)
        self.selection = ServerSelection(self.client, self._cfg)
        self.snapshots = SnapshotStore(self.client, self.selection, self._cfg)
        self.analytics = AnomalyFeed(self.client, self.selection, self._cfg)
        self.logs = LogTailStore(self.client, self.selection, self._cfg)
        self.polling = PollingOrchestrator(
            self.selection,
            self.snapshots,
            self.analytics,
            self.logs,
            self._cfg,
            sleep=sleep,
        )
        self.gate = RiskGate(self.client, self._selected_id, on_executed=self._after_execute)
        self.containers = ContainerActionBridge(
            self.client,
            self._selected_id,
            on_executed=self._after_execute,
            confirm=confirm,
        )
        self.chat = ChatSession(self.client, self._selected_id)
        self._refreshes: set[asyncio.Task] = set()

    def _selected_id(self) -> Optional[str]:
        return self.selection.selected_id

    async def _after_execute(self, result: ExecutionResult) -> None:
        """Refresh the snapshot without holding up the execution result."""
        task = asyncio.create_task(self.polling.refresh_snapshot(), name="post-execute-refresh")
        self._refreshes.add(task)
        task.add_done_callback(self._refreshes.discard)

    # ── lifecycle ─────────────────────────────────────────────────────

    async def start(self) -> None:
        """Initial load: registry, chat mode, then the default target."""
        log.info("console.starting", backend=self._cfg.console_backend_url)
        await self.selection.refresh_servers()
        await self.chat.refresh_mode()
        await self.polling.retarget()

    async def close(self) -> None:
        self.polling.stop()
        for task in list(self._refreshes):
            task.cancel()
        self.gate.close()
        await self.client.close()
        log.info("console.closed")

    # ── operations used by the views ──────────────────────────────────

    async def select_server(self, server_id: Optional[str]) -> None:
        await self.polling.select_server(server_id)

    async def refresh_servers(self) -> None:
        if await self.selection.refresh_servers():
            await self.polling.retarget()

    async def run_container_action(
        self,
        action: ContainerAction | str,
        container: str,
    ) -> Optional[QuickActionOutcome]:
        return await self.containers.run(action, container)


# Singleton instance used by the HTTP surface
console = OperatorConsole()
