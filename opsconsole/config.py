"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is driven by environment variables."""

    # Backend collaborator
    console_backend_url: str = "http://localhost:8080/api"
    console_request_timeout_seconds: float = 15.0

    # Polling
    console_refresh_interval: str = "off"
    console_log_tail_interval_seconds: float = 5.0
    console_log_tail_limit: int = 80

    # Analytics
    console_anomalies_last_n: int = 20
    console_disk_history_limit: int = 30

    # Hosts whose name or address matches one of these get nginx log tailing
    console_nginx_host_keywords: list[str] = Field(default_factory=lambda: ["nginx"])

    # API key for the local console API
    console_api_key: str = ""

    console_log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton – import this from anywhere
settings = Settings()
