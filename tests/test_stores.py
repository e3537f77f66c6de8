"""Tests for the snapshot, analytics and log-tail stores."""

from __future__ import annotations

import asyncio

import httpx

from tests.mock_backend import SNAPSHOT_APP, SNAPSHOT_EDGE


# ── Snapshot ─────────────────────────────────────────────────────────────


class TestSnapshotStore:
    async def test_refresh_populates_state(self, console):
        console.selection.select("srv-1")
        assert await console.snapshots.refresh() is True

        state = console.snapshots.state
        assert state.server_id == "srv-1"
        assert state.error is None
        assert state.loading is False
        assert state.snapshot.linux.cpu_usage_percent == 12.5
        assert [c.name for c in state.snapshot.docker.containers] == ["web-1", "db"]
        assert state.snapshot.postgres.active_connections == 7

    async def test_no_selection_uses_backend_default(self, console, mock_backend):
        await console.snapshots.refresh()
        assert mock_backend.last("get_snapshot") == {"server_id": None}
        assert console.snapshots.state.snapshot is not None

    async def test_failure_clears_snapshot(self, console, mock_backend):
        console.selection.select("srv-1")
        await console.snapshots.refresh()
        mock_backend.respond("get_snapshot", {"error": "SSH auth failed"}, status=502)

        await console.snapshots.refresh()
        state = console.snapshots.state
        assert state.snapshot is None
        assert state.error == "SSH auth failed"
        assert state.loading is False

    async def test_transport_failure(self, console, mock_backend):
        mock_backend.raise_on("get_snapshot", httpx.ConnectError("connection refused"))
        await console.snapshots.refresh()
        assert console.snapshots.state.error == "connection refused"
        assert console.snapshots.state.snapshot is None

    async def test_embedded_error_on_success_status(self, console, mock_backend):
        mock_backend.respond("get_snapshot", {"error": "collector crashed"})
        await console.snapshots.refresh()
        assert console.snapshots.state.error == "collector crashed"
        assert console.snapshots.state.snapshot is None

    async def test_empty_body_is_empty_snapshot(self, console, mock_backend):
        mock_backend.respond_raw("get_snapshot", "")
        await console.snapshots.refresh()
        state = console.snapshots.state
        assert state.error is None
        assert state.snapshot is not None
        assert state.snapshot.linux is None

    async def test_section_error_kept_inside_snapshot(self, console, mock_backend):
        mock_backend.respond(
            "get_snapshot",
            dict(SNAPSHOT_APP, postgres={"error": "psql not installed"}),
        )
        await console.snapshots.refresh()
        state = console.snapshots.state
        assert state.error is None
        assert state.snapshot.postgres.error == "psql not installed"

    async def test_loading_visible_while_in_flight(self, console, mock_backend):
        hold = mock_backend.hold("get_snapshot")
        task = asyncio.create_task(console.snapshots.refresh())
        await hold.entered.wait()
        assert console.snapshots.state.loading is True
        hold.release()
        await task
        assert console.snapshots.state.loading is False

    async def test_silent_refresh_keeps_loading_off(self, console, mock_backend):
        hold = mock_backend.hold("get_snapshot")
        task = asyncio.create_task(console.snapshots.refresh(silent=True))
        await hold.entered.wait()
        assert console.snapshots.state.loading is False
        hold.release()
        await task

    async def test_stale_result_after_switch_discarded(self, console, mock_backend):
        hold = mock_backend.hold("get_snapshot")
        first = asyncio.create_task(console.select_server("srv-1"))
        await hold.entered.wait()

        await console.select_server("srv-2")
        hold.release(dict(SNAPSHOT_APP, timestamp="2026-10-19T07:59:00Z"))
        await first

        state = console.snapshots.state
        assert state.server_id == "srv-2"
        assert state.snapshot.nginx.running is True
        assert state.snapshot.docker is None

    async def test_switch_back_discards_first_request(self, console, mock_backend):
        hold = mock_backend.hold("get_snapshot")
        first = asyncio.create_task(console.select_server("srv-1"))
        await hold.entered.wait()

        await console.select_server("srv-2")
        await console.select_server("srv-1")
        hold.release(SNAPSHOT_EDGE)
        await first

        state = console.snapshots.state
        assert state.server_id == "srv-1"
        assert state.snapshot.nginx is None

    async def test_older_result_does_not_overwrite_newer(self, console, mock_backend):
        tag = console.selection.select("srv-1")
        older = mock_backend.hold("get_snapshot")
        newer = mock_backend.hold("get_snapshot")
        t1 = asyncio.create_task(console.snapshots.refresh(tag))
        await older.entered.wait()
        t2 = asyncio.create_task(console.snapshots.refresh(tag))
        await newer.entered.wait()

        newer.release(SNAPSHOT_EDGE)
        assert await t2 is True
        assert console.snapshots.state.loading is True

        older.release(SNAPSHOT_APP)
        assert await t1 is False
        state = console.snapshots.state
        assert state.snapshot.nginx is not None
        assert state.loading is False

    async def test_reset_clears_state(self, console):
        await console.snapshots.refresh()
        console.snapshots.reset("srv-2")
        assert console.snapshots.state.snapshot is None
        assert console.snapshots.state.server_id == "srv-2"


# ── Analytics ────────────────────────────────────────────────────────────


class TestAnomalyFeed:
    async def test_loads_anomalies_and_disk(self, console, mock_backend):
        tag = console.selection.select("srv-1")
        assert await console.analytics.refresh(tag) is True

        state = console.analytics.state
        assert [a.type for a in state.anomalies] == ["DISK_GROWTH", "RESTART_LOOP"]
        assert [p.use_percent for p in state.disk.by_mount["/"]] == [40, 42]
        assert mock_backend.last("get_anomalies") == {"server_id": "srv-1", "last_n": 20}
        assert mock_backend.last("get_disk_history") == {"server_id": "srv-1", "limit": 30}

    async def test_no_selection_skips_fetch(self, console, mock_backend):
        assert await console.analytics.refresh() is False
        assert mock_backend.count("get_anomalies") == 0

    async def test_anomaly_failure_is_empty(self, console, mock_backend):
        tag = console.selection.select("srv-1")
        mock_backend.raise_on("get_anomalies", httpx.ConnectError("down"))
        await console.analytics.refresh(tag)
        state = console.analytics.state
        assert state.anomalies == ()
        assert state.disk is not None

    async def test_error_status_is_empty(self, console, mock_backend):
        tag = console.selection.select("srv-1")
        mock_backend.respond("get_anomalies", {"error": "boom"}, status=500)
        mock_backend.respond("get_disk_history", {"error": "boom"}, status=500)
        await console.analytics.refresh(tag)
        assert console.analytics.state.anomalies == ()
        assert console.analytics.state.disk is None

    async def test_stale_result_discarded(self, console, mock_backend):
        tag = console.selection.select("srv-1")
        hold = mock_backend.hold("get_anomalies")
        task = asyncio.create_task(console.analytics.refresh(tag))
        await hold.entered.wait()
        console.selection.select("srv-2")
        hold.release()
        assert await task is False
        assert console.analytics.state.anomalies == ()


# ── Log tail ─────────────────────────────────────────────────────────────


class TestLogTailStore:
    async def test_load(self, console, mock_backend):
        tag = console.selection.select("srv-2")
        assert await console.logs.load(tag) is True
        state = console.logs.state
        assert len(state.lines) == 2
        assert state.fetched_at.year == 2026
        assert mock_backend.last("get_ussd_logs") == {"server_id": "srv-2", "limit": 80}

    async def test_missing_fetched_at_uses_now(self, console, mock_backend):
        mock_backend.respond("get_ussd_logs", {"lines": ["a"]})
        tag = console.selection.select("srv-2")
        await console.logs.load(tag)
        assert console.logs.state.fetched_at is not None

    async def test_failure_clears_lines(self, console, mock_backend):
        tag = console.selection.select("srv-2")
        await console.logs.load(tag)
        mock_backend.respond("get_ussd_logs", {"error": "permission denied"}, status=500)
        await console.logs.load(tag, silent=True)
        state = console.logs.state
        assert state.lines == ()
        assert state.error == "permission denied"
