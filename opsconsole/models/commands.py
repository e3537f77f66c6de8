"""Models for the analyze -> confirm -> execute command workflow."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from opsconsole.models.base import BackendModel


class RiskLevel(str, Enum):
    """Levels the backend is known to emit.

    The backend may add levels; ``CommandAnalysis.risk_level`` is therefore a
    plain string and is echoed back exactly as received.
    """

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class GateState(str, Enum):
    IDLE = "IDLE"
    ANALYZING = "ANALYZING"
    ANALYZED = "ANALYZED"
    EXECUTING = "EXECUTING"
    SETTLED = "SETTLED"


class CommandAnalysis(BackendModel):
    risk_level: str
    reason: str = ""
    rollback_suggestion: Optional[str] = None


class ExecutionResult(BackendModel):
    executed: bool
    exit_code: Optional[int] = None
    stdout: Optional[str] = None
    stderr: Optional[str] = None
    rollback_suggestion: Optional[str] = None
    rejection_reason: Optional[str] = None


class GateSnapshot(BaseModel):
    """Read-only view of a RiskGate session."""

    state: GateState
    command: str = ""
    analysis: Optional[CommandAnalysis] = None
    result: Optional[ExecutionResult] = None
    in_flight: bool = False


class ContainerAction(str, Enum):
    start = "start"
    stop = "stop"
    restart = "restart"


class QuickActionOutcome(BaseModel):
    """Result of one container quick-action.

    ``result`` is None when the confirmation policy declined to execute.
    """

    action: ContainerAction
    container: str
    command: str
    analysis: CommandAnalysis
    result: Optional[ExecutionResult] = None


# ---------------------------------------------------------------------------
# Console API request bodies
# ---------------------------------------------------------------------------


class CommandTextRequest(BaseModel):
    command: str = Field(default="", max_length=4096)
