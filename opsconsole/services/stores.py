"""Fetch-and-replace caches for the active server.

Each store publishes an immutable state value.  A fetch is tagged with the
selection it was issued for and with a per-store sequence number; the result
is applied only if the selection is still current and no newer result has
already been applied.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError

from opsconsole.config import Settings, settings
from opsconsole.models.analytics import AnomalyRecord, DiskTrend, LogTail
from opsconsole.models.snapshot import Snapshot
from opsconsole.models.state import AnalyticsState, LogTailState, SnapshotState
from opsconsole.services.backend import BackendClient
from opsconsole.services.decoder import INVALID_RESPONSE, payload_error
from opsconsole.services.selection import SelectionTag, ServerSelection
from opsconsole.utils.logging import get_logger

log = get_logger(__name__)


def _exc_message(exc: Exception) -> str:
    return str(exc) or exc.__class__.__name__


def _now() -> datetime:
    return datetime.now(timezone.utc)


class _TaggedStore:
    """Sequencing shared by the stores below."""

    name = "store"

    def __init__(
        self,
        client: BackendClient,
        selection: ServerSelection,
        cfg: Settings | None = None,
    ) -> None:
        self._client = client
        self._selection = selection
        self._cfg = cfg or settings
        self._seq = 0
        self._applied_seq = 0
        self._loud: set[int] = set()

    def _begin(self, silent: bool) -> int:
        self._seq += 1
        if not silent:
            self._loud.add(self._seq)
        return self._seq

    def _forget_pending(self) -> None:
        self._loud.clear()
        self._applied_seq = self._seq

    @property
    def _loading(self) -> bool:
        return bool(self._loud)

    def _accept(self, tag: SelectionTag, seq: int) -> bool:
        self._loud.discard(seq)
        if not self._selection.is_current(tag):
            log.debug(f"{self.name}.stale_discarded", server_id=tag.server_id, seq=seq)
            return False
        if seq < self._applied_seq:
            log.debug(f"{self.name}.superseded", server_id=tag.server_id, seq=seq)
            self._on_superseded()
            return False
        self._applied_seq = seq
        return True

    def _abandon(self, seq: int) -> None:
        """Forget a fetch that was cancelled before it produced a result."""
        self._loud.discard(seq)
        self._on_superseded()

    def _on_superseded(self) -> None:
        """Hook for stores that show a loading flag."""


# ── Snapshot ──────────────────────────────────────────────────────────────


class SnapshotStore(_TaggedStore):
    """Latest telemetry snapshot; a failure clears the cached snapshot."""

    name = "snapshot"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._state = SnapshotState()

    @property
    def state(self) -> SnapshotState:
        return self._state

    def reset(self, server_id: Optional[str]) -> None:
        self._forget_pending()
        self._state = SnapshotState(server_id=server_id)

    def _on_superseded(self) -> None:
        self._state = self._state.model_copy(update={"loading": self._loading})

    async def refresh(
        self,
        tag: SelectionTag | None = None,
        *,
        silent: bool = False,
    ) -> bool:
        """Fetch a fresh snapshot; returns True if the result was applied."""
        tag = tag or self._selection.tag()
        if not self._selection.is_current(tag):
            return False
        seq = self._begin(silent)
        if not silent:
            self._state = self._state.model_copy(update={"loading": True, "error": None})

        snapshot: Optional[Snapshot] = None
        error: Optional[str] = None
        try:
            resp = await self._client.get_snapshot(tag.server_id)
        except asyncio.CancelledError:
            self._abandon(seq)
            raise
        except Exception as exc:
            error = _exc_message(exc)
        else:
            payload = resp.payload
            if not resp.ok:
                error = resp.error
            elif payload_error(payload) is not None:
                error = payload_error(payload)
            else:
                try:
                    snapshot = Snapshot.model_validate(payload)
                except ValidationError:
                    error = INVALID_RESPONSE

        if not self._accept(tag, seq):
            return False
        if error is not None:
            log.warning("snapshot.fetch_failed", server_id=tag.server_id, error=error)
        self._state = SnapshotState(
            server_id=tag.server_id,
            snapshot=snapshot,
            error=error,
            loading=self._loading,
            fetched_at=_now(),
        )
        return True


# ── Anomalies + disk trend ────────────────────────────────────────────────


class AnomalyFeed(_TaggedStore):
    """Anomalies and disk-usage trend for the selected server.

    Only a selected server has analytics; with no selection the feed stays
    empty.  A failed fetch resets the affected part to empty.
    """

    name = "analytics"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._state = AnalyticsState()

    @property
    def state(self) -> AnalyticsState:
        return self._state

    def reset(self, server_id: Optional[str]) -> None:
        self._forget_pending()
        self._state = AnalyticsState(server_id=server_id)

    async def _anomalies(self, server_id: str) -> tuple[AnomalyRecord, ...]:
        try:
            resp = await self._client.get_anomalies(server_id, self._cfg.console_anomalies_last_n)
        except Exception as exc:
            log.warning("analytics.anomalies_failed", server_id=server_id, error=_exc_message(exc))
            return ()
        if not resp.ok or not isinstance(resp.payload, list):
            return ()
        try:
            return tuple(AnomalyRecord.model_validate(item) for item in resp.payload)
        except ValidationError:
            log.warning("analytics.anomalies_invalid", server_id=server_id)
            return ()

    async def _disk(self, server_id: str) -> Optional[DiskTrend]:
        try:
            resp = await self._client.get_disk_history(
                server_id, self._cfg.console_disk_history_limit,
            )
        except Exception as exc:
            log.warning("analytics.disk_failed", server_id=server_id, error=_exc_message(exc))
            return None
        if not resp.ok or not isinstance(resp.payload, dict):
            return None
        try:
            return DiskTrend.model_validate(resp.payload)
        except ValidationError:
            return None

    async def refresh(self, tag: SelectionTag | None = None) -> bool:
        tag = tag or self._selection.tag()
        if not self._selection.is_current(tag) or tag.server_id is None:
            return False
        seq = self._begin(silent=True)
        anomalies, disk = await asyncio.gather(
            self._anomalies(tag.server_id),
            self._disk(tag.server_id),
        )
        if not self._accept(tag, seq):
            return False
        self._state = AnalyticsState(server_id=tag.server_id, anomalies=anomalies, disk=disk)
        return True


# ── Nginx log tail ────────────────────────────────────────────────────────


class LogTailStore(_TaggedStore):
    """Tail of the nginx USSD log for the selected server."""

    name = "log_tail"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._state = LogTailState()

    @property
    def state(self) -> LogTailState:
        return self._state

    def reset(self, server_id: Optional[str]) -> None:
        self._forget_pending()
        self._state = LogTailState(server_id=server_id)

    def _on_superseded(self) -> None:
        self._state = self._state.model_copy(update={"loading": self._loading})

    async def load(self, tag: SelectionTag | None = None, *, silent: bool = False) -> bool:
        """Load the tail; ``silent`` reloads leave the loading flag alone."""
        tag = tag or self._selection.tag()
        if not self._selection.is_current(tag):
            return False
        seq = self._begin(silent)
        if not silent:
            self._state = self._state.model_copy(update={"loading": True, "error": None})

        tail: Optional[LogTail] = None
        error: Optional[str] = None
        try:
            resp = await self._client.get_ussd_logs(tag.server_id, self._cfg.console_log_tail_limit)
        except asyncio.CancelledError:
            self._abandon(seq)
            raise
        except Exception as exc:
            error = _exc_message(exc)
        else:
            if not resp.ok:
                error = resp.error
            else:
                try:
                    tail = LogTail.model_validate(resp.payload)
                except ValidationError:
                    error = INVALID_RESPONSE

        if not self._accept(tag, seq):
            return False
        if tail is None:
            log.warning("log_tail.fetch_failed", server_id=tag.server_id, error=error)
            self._state = LogTailState(
                server_id=tag.server_id, error=error, loading=self._loading,
            )
            return True
        self._state = LogTailState(
            server_id=tag.server_id,
            lines=tuple(tail.lines),
            fetched_at=tail.fetched_at or _now(),
            loading=self._loading,
        )
        return True
