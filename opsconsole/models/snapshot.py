"""Telemetry snapshot models.

Every section is optional and carries its own ``error`` so that a partial
failure on the target host still yields a renderable snapshot.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from opsconsole.models.base import BackendModel


class DiskUsage(BackendModel):
    filesystem: str = ""
    size: Optional[str] = None
    used: Optional[str] = None
    available: Optional[str] = None
    use_percent: Optional[str] = None
    mounted_on: Optional[str] = None

    @property
    def percent(self) -> int:
        try:
            return int(str(self.use_percent or "0").replace("%", "").strip())
        except ValueError:
            return 0


class MemoryInfo(BackendModel):
    mem_total_mb: int = 0
    mem_used_mb: int = 0
    mem_free_mb: int = 0
    swap_total_mb: int = 0
    swap_used_mb: int = 0


class UptimeInfo(BackendModel):
    uptime_string: Optional[str] = None
    load1: Optional[float] = None
    load5: Optional[float] = None
    load15: Optional[float] = None


class LinuxSnapshot(BackendModel):
    disk_usage: list[DiskUsage] = Field(default_factory=list)
    memory: Optional[MemoryInfo] = None
    cpu_usage_percent: Optional[float] = None
    uptime: Optional[UptimeInfo] = None
    error: Optional[str] = None


class ContainerInfo(BackendModel):
    id: str = ""
    name: str = ""
    image: str = ""
    state: str = ""
    status: str = ""
    uptime: Optional[str] = None
    restart_count: int = 0
    cpu_percent: Optional[str] = None
    mem_usage: Optional[str] = None
    mem_percent: Optional[str] = None

    @property
    def target(self) -> str:
        """Identifier used when synthesizing docker commands."""
        return self.name or self.id


class DockerSnapshot(BackendModel):
    containers: list[ContainerInfo] = Field(default_factory=list)
    error: Optional[str] = None


class PostgresSnapshot(BackendModel):
    active_connections: Optional[int] = None
    error: Optional[str] = None


class NginxSnapshot(BackendModel):
    service_status: Optional[str] = None
    running: bool = False
    local_http_code: Optional[str] = None
    response_code_counts: dict[str, int] = Field(default_factory=dict)
    ussd_log_lines: list[str] = Field(default_factory=list)
    error: Optional[str] = None


class Snapshot(BackendModel):
    """One point-in-time read across all monitored subsystems."""

    timestamp: Optional[datetime] = None
    linux: Optional[LinuxSnapshot] = None
    docker: Optional[DockerSnapshot] = None
    postgres: Optional[PostgresSnapshot] = None
    nginx: Optional[NginxSnapshot] = None

    @property
    def has_nginx(self) -> bool:
        return self.nginx is not None and not self.nginx.error
