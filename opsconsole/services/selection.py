"""Active server selection, registry cache and derived host facts."""

from __future__ import annotations

from typing import NamedTuple, Optional

from pydantic import ValidationError

from opsconsole.config import Settings, settings
from opsconsole.models.server import Server
from opsconsole.models.snapshot import Snapshot
from opsconsole.services.backend import BackendClient
from opsconsole.utils.logging import get_logger

log = get_logger(__name__)


class SelectionTag(NamedTuple):
    """Identity of the selection a request was issued for."""

    server_id: Optional[str]
    generation: int


class ServerSelection:
    """Holds the selected server and the cached server registry.

    ``None`` as the selected id means "no selection": the backend then uses
    its configured default target.  Every change of selection bumps the
    generation so that in-flight results can be recognised as stale.
    """

    def __init__(self, client: BackendClient, cfg: Settings | None = None) -> None:
        self._client = client
        self._cfg = cfg or settings
        self._servers: tuple[Server, ...] = ()
        self._selected_id: Optional[str] = None
        self._generation = 0
        self._nginx_observed = False

    # ── read side ─────────────────────────────────────────────────────

    @property
    def servers(self) -> tuple[Server, ...]:
        return self._servers

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected_id

    @property
    def selected(self) -> Optional[Server]:
        if self._selected_id is None:
            return None
        for server in self._servers:
            if server.id == self._selected_id:
                return server
        return None

    def tag(self) -> SelectionTag:
        return SelectionTag(self._selected_id, self._generation)

    def is_current(self, tag: SelectionTag) -> bool:
        return tag == self.tag()

    @property
    def is_nginx_host(self) -> bool:
        """Whether the selected server should get nginx log tailing."""
        if self._selected_id is None:
            return False
        if self._nginx_observed:
            return True
        server = self.selected
        if server is None:
            return False
        haystack = f"{server.name} {server.host}".lower()
        return any(kw.lower() in haystack for kw in self._cfg.console_nginx_host_keywords if kw)

    # ── write side ────────────────────────────────────────────────────

    def select(self, server_id: Optional[str]) -> SelectionTag:
        """Switch selection; always starts a new generation."""
        self._selected_id = server_id or None
        self._generation += 1
        self._nginx_observed = False
        log.info("selection.changed", server_id=self._selected_id, generation=self._generation)
        return self.tag()

    def set_servers(self, servers: list[Server]) -> bool:
        """Replace the registry cache.

        Returns True when the selected server disappeared and the selection
        fell back to none.
        """
        self._servers = tuple(servers)
        if self._selected_id is not None and self.selected is None:
            log.warning("selection.server_vanished", server_id=self._selected_id)
            self.select(None)
            return True
        return False

    def observe_snapshot(self, tag: SelectionTag, snapshot: Snapshot) -> bool:
        """Record facts learned from a snapshot; returns True if newly nginx."""
        if not self.is_current(tag) or self._nginx_observed:
            return False
        if snapshot.has_nginx and self._selected_id is not None:
            self._nginx_observed = True
            return True
        return False

    # ── registry calls ────────────────────────────────────────────────

    async def refresh_servers(self) -> bool:
        """Refetch ``/servers``; returns True if the selection fell back."""
        try:
            resp = await self._client.list_servers()
        except Exception as exc:
            log.warning("selection.servers_fetch_failed", error=str(exc))
            return False
        if not resp.ok or not isinstance(resp.payload, list):
            log.warning("selection.servers_bad_response", error=resp.error)
            return False
        servers: list[Server] = []
        for item in resp.payload:
            try:
                servers.append(Server.model_validate(item))
            except ValidationError:
                log.warning("selection.server_skipped", item=item)
        return self.set_servers(servers)

    async def check_health(self, server_id: str) -> bool:
        """Trigger a health re-check, then refetch the registry.

        The health payload itself is ignored; the refreshed registry carries
        the new status.
        """
        try:
            await self._client.check_server_health(server_id)
        except Exception as exc:
            log.warning("selection.health_check_failed", server_id=server_id, error=str(exc))
        return await self.refresh_servers()
