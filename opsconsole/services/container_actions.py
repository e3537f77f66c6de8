"""One-click container actions routed through the risk gate."""

from __future__ import annotations

import inspect
import re
from typing import Awaitable, Callable, Optional, Union

from opsconsole.models.commands import (
    CommandAnalysis,
    ContainerAction,
    QuickActionOutcome,
)
from opsconsole.services.backend import BackendClient
from opsconsole.services.risk_gate import ExecutedHook, RiskGate, ServerIdProvider
from opsconsole.utils.logging import get_logger

log = get_logger(__name__)

_CONTAINER_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")

ConfirmPolicy = Callable[[CommandAnalysis], Union[bool, Awaitable[bool]]]


def build_command(action: ContainerAction | str, container: str) -> str:
    """Synthesize the docker command for *action* on *container*."""
    verb = ContainerAction(action)
    target = container.strip()
    if not _CONTAINER_RE.match(target):
        raise ValueError(f"invalid container identifier: {container!r}")
    return f"docker {verb.value} {target}"


def _always_confirm(analysis: CommandAnalysis) -> bool:
    return True


class ContainerActionBridge:
    """Runs quick-actions, at most one pending per container."""

    def __init__(
        self,
        client: BackendClient,
        server_id: ServerIdProvider | None = None,
        *,
        on_executed: ExecutedHook | None = None,
        confirm: ConfirmPolicy | None = None,
    ) -> None:
        self._client = client
        self._server_id = server_id
        self._on_executed = on_executed
        self._confirm = confirm or _always_confirm
        self._pending: set[str] = set()

    def is_pending(self, container: str) -> bool:
        return container.strip() in self._pending

    @property
    def pending(self) -> frozenset[str]:
        return frozenset(self._pending)

    async def _confirmed(self, analysis: CommandAnalysis) -> bool:
        decision = self._confirm(analysis)
        if inspect.isawaitable(decision):
            decision = await decision
        return bool(decision)

    async def run(
        self,
        action: ContainerAction | str,
        container: str,
    ) -> Optional[QuickActionOutcome]:
        """Analyze, confirm and execute one action.

        Returns None when an action on the same container is still pending.
        Raises ``ValueError`` for an unknown action or a bad identifier.
        """
        command = build_command(action, container)
        target = container.strip()
        if target in self._pending:
            log.info("container.action_refused", container=target, reason="pending")
            return None

        self._pending.add(target)
        try:
            gate = RiskGate(self._client, self._server_id, on_executed=self._on_executed)
            analysis = await gate.submit_command(command)
            result = None
            if await self._confirmed(analysis):
                result = await gate.confirm_execute()
            else:
                log.info("container.action_declined", container=target, risk=analysis.risk_level)
            return QuickActionOutcome(
                action=ContainerAction(action),
                container=target,
                command=command,
                analysis=analysis,
                result=result,
            )
        finally:
            self._pending.discard(target)
