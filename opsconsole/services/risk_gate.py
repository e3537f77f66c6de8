"""Two-phase confirm/execute state machine for one command session.

    IDLE -> ANALYZING -> ANALYZED -> EXECUTING -> SETTLED
             ^              |  ^                     |
             +-- re-analyze-+  +-------- back -------+

No command reaches the execution endpoint unless an analysis record exists
for the current session.  Failures never raise out of the gate: analysis
failures become a visible LOW analysis and execution failures become an
``executed=False`` result with a rejection reason.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Optional

from pydantic import ValidationError

from opsconsole.models.commands import (
    CommandAnalysis,
    ExecutionResult,
    GateSnapshot,
    GateState,
    RiskLevel,
)
from opsconsole.services.backend import BackendClient
from opsconsole.services.decoder import INVALID_RESPONSE, payload_error
from opsconsole.utils.logging import get_logger

log = get_logger(__name__)

ANALYSIS_FAILED_PREFIX = "Analysis failed: "
NOT_EXECUTED = "Command was not executed"

ServerIdProvider = Callable[[], Optional[str]]
ExecutedHook = Callable[[ExecutionResult], Awaitable[None]]

_IN_FLIGHT = (GateState.ANALYZING, GateState.EXECUTING)


def failed_analysis(message: str) -> CommandAnalysis:
    return CommandAnalysis(
        risk_level=RiskLevel.LOW.value,
        reason=ANALYSIS_FAILED_PREFIX + message,
        rollback_suggestion="",
    )


def rejected_result(message: str) -> ExecutionResult:
    return ExecutionResult(executed=False, rejection_reason=message)


class RiskGate:
    """One operator command session.

    ``server_id`` is read at execute time so the command targets whatever
    server is selected when the operator confirms.
    """

    def __init__(
        self,
        client: BackendClient,
        server_id: ServerIdProvider | None = None,
        *,
        on_executed: ExecutedHook | None = None,
    ) -> None:
        self._client = client
        self._server_id = server_id or (lambda: None)
        self._on_executed = on_executed
        self._state = GateState.IDLE
        self._command = ""
        self._analysis: Optional[CommandAnalysis] = None
        self._result: Optional[ExecutionResult] = None
        self._session = 0

    # ── read side ─────────────────────────────────────────────────────

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def command(self) -> str:
        return self._command

    @property
    def analysis(self) -> Optional[CommandAnalysis]:
        return self._analysis

    @property
    def result(self) -> Optional[ExecutionResult]:
        return self._result

    @property
    def in_flight(self) -> bool:
        return self._state in _IN_FLIGHT

    def snapshot(self) -> GateSnapshot:
        return GateSnapshot(
            state=self._state,
            command=self._command,
            analysis=self._analysis,
            result=self._result,
            in_flight=self.in_flight,
        )

    # ── session control ───────────────────────────────────────────────

    def reset(self) -> None:
        """Discard analysis and result; any in-flight response is dropped."""
        self._session += 1
        self._state = GateState.IDLE
        self._command = ""
        self._analysis = None
        self._result = None

    open = reset
    close = reset

    def set_command(self, text: str) -> bool:
        """Edit the command text.

        A changed text invalidates the current analysis.  Rejected while a
        request is in flight.
        """
        if self.in_flight:
            return False
        if text == self._command:
            return True
        self._session += 1
        self._command = text
        self._analysis = None
        self._result = None
        self._state = GateState.IDLE
        return True

    def back(self) -> bool:
        """Return to the confirmation step, keeping the analysis."""
        if self._state not in (GateState.ANALYZED, GateState.SETTLED) or self._analysis is None:
            return False
        self._result = None
        self._state = GateState.ANALYZED
        return True

    # ── transitions ───────────────────────────────────────────────────

    async def submit_command(self, text: str) -> Optional[CommandAnalysis]:
        if not text.strip() or self.in_flight:
            return None
        self.set_command(text)
        return await self.analyze()

    async def analyze(self) -> Optional[CommandAnalysis]:
        """Classify the current command; returns None when not allowed."""
        cmd = self._command.strip()
        if not cmd or self.in_flight:
            return None

        session = self._session
        self._state = GateState.ANALYZING
        self._result = None
        try:
            resp = await self._client.analyze_command(cmd)
        except Exception as exc:
            analysis = failed_analysis(str(exc) or exc.__class__.__name__)
        else:
            embedded = payload_error(resp.payload, unless="riskLevel")
            if not resp.ok:
                analysis = failed_analysis(resp.error)
            elif embedded is not None:
                analysis = failed_analysis(embedded)
            else:
                try:
                    analysis = CommandAnalysis.model_validate(resp.payload)
                except ValidationError:
                    analysis = failed_analysis(INVALID_RESPONSE)

        if session != self._session:
            log.info("gate.analysis_discarded", command=cmd)
            return None
        self._analysis = analysis
        self._state = GateState.ANALYZED
        log.info("gate.analyzed", command=cmd, risk=analysis.risk_level)
        return analysis

    async def confirm_execute(self) -> Optional[ExecutionResult]:
        """Execute at the analysed risk level; only valid from ANALYZED."""
        cmd = self._command.strip()
        if self._state is not GateState.ANALYZED or self._analysis is None or not cmd:
            return None

        session = self._session
        confirmed = self._analysis.risk_level
        server_id = self._server_id()
        self._state = GateState.EXECUTING
        try:
            resp = await self._client.execute_command(cmd, confirmed, server_id)
        except Exception as exc:
            result = rejected_result(str(exc) or exc.__class__.__name__)
        else:
            embedded = payload_error(resp.payload, unless="executed")
            if not resp.ok:
                result = rejected_result(resp.error)
            elif embedded is not None:
                result = rejected_result(embedded)
            else:
                try:
                    result = ExecutionResult.model_validate(resp.payload)
                except ValidationError:
                    result = rejected_result(INVALID_RESPONSE)
                else:
                    if not result.executed and not result.rejection_reason:
                        result = result.model_copy(update={"rejection_reason": NOT_EXECUTED})

        current = session == self._session
        if current:
            self._result = result
            self._state = GateState.SETTLED
        else:
            log.info("gate.result_discarded", command=cmd)

        if result.executed:
            log.info(
                "gate.executed",
                command=cmd,
                risk=confirmed,
                server_id=server_id,
                exit_code=result.exit_code,
            )
            # The host changed even if the session was closed meanwhile.
            await self._notify_executed(result)
        else:
            log.warning("gate.rejected", command=cmd, risk=confirmed, reason=result.rejection_reason)
        return result if current else None

    async def _notify_executed(self, result: ExecutionResult) -> None:
        if self._on_executed is None:
            return
        try:
            await self._on_executed(result)
        except Exception as exc:
            log.warning("gate.post_execute_hook_failed", error=str(exc))
