"""Recurring refresh timers for the selected server.

The orchestrator keeps a table of live poll handles, at most one per
concern.  Any change of selection cancels every handle before the stores are
reloaded and new handles are armed for the new selection.  Each handle is
bound to the selection tag it was armed for and exits on its own if that tag
stops being current.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from opsconsole.config import Settings, settings
from opsconsole.models.state import (
    PollConcern,
    PollHandleInfo,
    PollingStatus,
    RefreshInterval,
)
from opsconsole.services.selection import SelectionTag, ServerSelection
from opsconsole.services.stores import AnomalyFeed, LogTailStore, SnapshotStore
from opsconsole.utils.logging import get_logger

log = get_logger(__name__)

SleepFn = Callable[[float], Awaitable[None]]
TickFn = Callable[[SelectionTag], Awaitable[object]]


@dataclass
class PollHandle:
    concern: PollConcern
    tag: SelectionTag
    interval: float
    task: asyncio.Task

    @property
    def server_id(self) -> Optional[str]:
        return self.tag.server_id

    def info(self) -> PollHandleInfo:
        return PollHandleInfo(
            concern=self.concern,
            server_id=self.server_id,
            interval_seconds=self.interval,
        )


class PollingOrchestrator:
    """Owns snapshot auto-refresh and nginx log tailing."""

    def __init__(
        self,
        selection: ServerSelection,
        snapshots: SnapshotStore,
        analytics: AnomalyFeed,
        logs: LogTailStore,
        cfg: Settings | None = None,
        *,
        sleep: SleepFn | None = None,
    ) -> None:
        self._cfg = cfg or settings
        self._selection = selection
        self._snapshots = snapshots
        self._analytics = analytics
        self._logs = logs
        self._sleep = sleep or asyncio.sleep
        self._interval = RefreshInterval.parse(self._cfg.console_refresh_interval)
        self._handles: dict[PollConcern, PollHandle] = {}
        self._active = False

    # ── read side ─────────────────────────────────────────────────────

    @property
    def refresh_interval(self) -> RefreshInterval:
        return self._interval

    @property
    def handles(self) -> dict[PollConcern, PollHandle]:
        return dict(self._handles)

    def status(self) -> PollingStatus:
        return PollingStatus(
            server_id=self._selection.selected_id,
            refresh_interval=self._interval,
            handles=[h.info() for h in self._handles.values()],
        )

    # ── handle table ──────────────────────────────────────────────────

    def _cancel(self, concern: PollConcern) -> None:
        handle = self._handles.pop(concern, None)
        if handle is not None:
            handle.task.cancel()
            log.debug("poll.cancelled", concern=concern.value, server_id=handle.server_id)

    def cancel_all(self) -> None:
        for concern in list(self._handles):
            self._cancel(concern)

    def _arm(
        self,
        concern: PollConcern,
        tag: SelectionTag,
        interval: float,
        tick: TickFn,
    ) -> None:
        self._cancel(concern)
        if not self._active:
            return
        task = asyncio.create_task(
            self._loop(concern, tag, interval, tick),
            name=f"poll:{concern.value}:{tag.server_id}",
        )
        self._handles[concern] = PollHandle(concern, tag, interval, task)
        log.debug("poll.armed", concern=concern.value, server_id=tag.server_id, interval=interval)

    async def _loop(
        self,
        concern: PollConcern,
        tag: SelectionTag,
        interval: float,
        tick: TickFn,
    ) -> None:
        try:
            while True:
                await self._sleep(interval)
                if not self._selection.is_current(tag):
                    break
                try:
                    await tick(tag)
                except Exception as exc:
                    log.warning("poll.tick_failed", concern=concern.value, error=str(exc))
        finally:
            handle = self._handles.get(concern)
            if handle is not None and handle.task is asyncio.current_task():
                del self._handles[concern]

    # ── public API ────────────────────────────────────────────────────

    async def select_server(self, server_id: Optional[str]) -> SelectionTag:
        """Switch to *server_id* and retarget every concern."""
        self.cancel_all()
        tag = self._selection.select(server_id)
        await self._retarget(tag)
        return tag

    async def retarget(self) -> None:
        """Re-evaluate timers for the current selection."""
        self.cancel_all()
        await self._retarget(self._selection.tag())

    def stop(self) -> None:
        """Cancel everything; used on shutdown."""
        self._active = False
        self.cancel_all()

    def set_refresh_interval(self, interval: RefreshInterval | str | int) -> RefreshInterval:
        """Replace the auto-refresh timer; ``off`` leaves none armed."""
        self._interval = RefreshInterval.parse(interval)
        self._cancel(PollConcern.snapshot_auto_refresh)
        self._arm_auto_refresh(self._selection.tag())
        log.info("poll.interval_changed", interval=self._interval.value)
        return self._interval

    async def refresh_snapshot(
        self,
        tag: SelectionTag | None = None,
        *,
        silent: bool = False,
    ) -> bool:
        """Reload the snapshot, then analytics; may start log tailing."""
        tag = tag or self._selection.tag()
        applied = await self._snapshots.refresh(tag, silent=silent)
        if not self._selection.is_current(tag):
            return applied
        snapshot = self._snapshots.state.snapshot
        if applied and snapshot is not None and self._selection.observe_snapshot(tag, snapshot):
            await self._start_log_tail(tag)
        await self._analytics.refresh(tag)
        return applied

    # ── internals ─────────────────────────────────────────────────────

    async def _retarget(self, tag: SelectionTag) -> None:
        self._active = True
        self._snapshots.reset(tag.server_id)
        self._analytics.reset(tag.server_id)
        self._logs.reset(tag.server_id)

        fell_back, _ = await asyncio.gather(
            self._health_check(tag),
            self.refresh_snapshot(tag),
        )
        if not self._selection.is_current(tag):
            if fell_back:
                await self.retarget()
            return

        if self._selection.is_nginx_host:
            await self._start_log_tail(tag)
        if self._selection.is_current(tag):
            self._arm_auto_refresh(tag)

    async def _health_check(self, tag: SelectionTag) -> bool:
        if tag.server_id is None:
            return False
        return await self._selection.check_health(tag.server_id)

    def _arm_auto_refresh(self, tag: SelectionTag) -> None:
        if self._interval is RefreshInterval.off:
            return
        self._arm(
            PollConcern.snapshot_auto_refresh,
            tag,
            self._interval.seconds,
            self.refresh_snapshot,
        )

    async def _start_log_tail(self, tag: SelectionTag) -> None:
        if tag.server_id is None or not self._selection.is_current(tag):
            return
        existing = self._handles.get(PollConcern.log_tail)
        if existing is not None and existing.tag == tag:
            return
        self._cancel(PollConcern.log_tail)
        await self._logs.load(tag)
        if not self._selection.is_current(tag):
            return
        self._arm(
            PollConcern.log_tail,
            tag,
            self._cfg.console_log_tail_interval_seconds,
            self._silent_log_reload,
        )

    async def _silent_log_reload(self, tag: SelectionTag) -> bool:
        return await self._logs.load(tag, silent=True)
