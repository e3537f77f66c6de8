"""Anomaly feed, disk trend and log tail payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from opsconsole.models.base import BackendModel


class AnomalyRecord(BackendModel):
    type: str = ""
    message: str = ""
    severity: str = "low"
    detail: Optional[str] = None
    detected_at: Optional[datetime] = None


class DiskPoint(BackendModel):
    timestamp: Optional[datetime] = None
    use_percent: int = 0


class DiskTrend(BackendModel):
    by_mount: dict[str, list[DiskPoint]] = Field(default_factory=dict)


class LogTail(BackendModel):
    server_id: Optional[str] = None
    limit: Optional[int] = None
    count: Optional[int] = None
    fetched_at: Optional[datetime] = None
    lines: list[str] = Field(default_factory=list)
