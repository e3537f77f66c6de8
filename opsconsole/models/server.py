"""Server registry models."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from opsconsole.models.base import BackendModel


class AuthType(str, Enum):
    PASSWORD = "PASSWORD"
    PRIVATE_KEY = "PRIVATE_KEY"


class Server(BackendModel):
    """A managed host as listed by the server registry.

    Credentials never leave the backend; ``health`` is the result of the last
    re-check (``OK``, ``FAIL`` or ``unknown``).
    """

    id: str
    name: str = ""
    host: str = ""
    port: int = 22
    username: str = ""
    auth_type: Optional[AuthType] = None
    health: Optional[str] = None

    @property
    def label(self) -> str:
        text = self.name or self.host or self.id
        if self.health:
            text = f"{text} ({self.health})"
        return text
