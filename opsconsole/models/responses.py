"""Common console API response models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from opsconsole.models.server import Server


class HealthResponse(BaseModel):
    status: str
    version: str


class BackendHealthResponse(BaseModel):
    reachable: bool
    chat_mode: Optional[str] = None
    error: Optional[str] = None


class ServerListResponse(BaseModel):
    servers: list[Server]
    selected_server_id: Optional[str] = None
    is_nginx_host: bool = False


class SelectServerRequest(BaseModel):
    server_id: Optional[str] = None


class RefreshIntervalRequest(BaseModel):
    interval: str
