"""Immutable store values owned by the console controller.

Stores never edit these in place; every transition builds a new value with
``model_copy(update=...)`` or a fresh instance.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from opsconsole.models.analytics import AnomalyRecord, DiskTrend
from opsconsole.models.snapshot import Snapshot


class _State(BaseModel):
    model_config = ConfigDict(frozen=True)


class SnapshotState(_State):
    server_id: Optional[str] = None
    snapshot: Optional[Snapshot] = None
    error: Optional[str] = None
    loading: bool = False
    fetched_at: Optional[datetime] = None


class AnalyticsState(_State):
    server_id: Optional[str] = None
    anomalies: tuple[AnomalyRecord, ...] = ()
    disk: Optional[DiskTrend] = None


class LogTailState(_State):
    server_id: Optional[str] = None
    lines: tuple[str, ...] = ()
    fetched_at: Optional[datetime] = None
    loading: bool = False
    error: Optional[str] = None


class RefreshInterval(str, Enum):
    off = "off"
    s10 = "10s"
    s20 = "20s"
    s30 = "30s"
    s60 = "60s"
    s180 = "180s"

    @property
    def seconds(self) -> int:
        if self is RefreshInterval.off:
            return 0
        return int(self.value[:-1])

    @classmethod
    def parse(cls, value: "RefreshInterval | str | int") -> "RefreshInterval":
        """Accept ``"30s"``, ``"30"``, ``30``, ``0`` or ``"off"``."""
        if isinstance(value, RefreshInterval):
            return value
        text = str(value).strip().lower()
        if text in ("", "0", "off"):
            return cls.off
        if not text.endswith("s"):
            text = f"{text}s"
        return cls(text)


class PollConcern(str, Enum):
    snapshot_auto_refresh = "snapshot-auto-refresh"
    log_tail = "log-tail"


class PollHandleInfo(BaseModel):
    concern: PollConcern
    server_id: Optional[str] = None
    interval_seconds: float


class PollingStatus(BaseModel):
    server_id: Optional[str] = None
    refresh_interval: RefreshInterval
    handles: list[PollHandleInfo]
