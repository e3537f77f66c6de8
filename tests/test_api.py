"""Tests for the console HTTP surface."""

from __future__ import annotations

import asyncio

import httpx
import pytest

import opsconsole.auth as auth_module
from tests.mock_backend import SERVERS


class TestHealth:
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    async def test_backend_health(self, client):
        resp = await client.get("/backend/health")
        assert resp.json() == {"reachable": True, "chat_mode": "LOCAL", "error": None}

    async def test_backend_unreachable(self, client, mock_backend):
        mock_backend.raise_on("get_chat_mode", httpx.ConnectError("connection refused"))
        resp = await client.get("/backend/health")
        body = resp.json()
        assert body["reachable"] is False
        assert body["error"] == "connection refused"


class TestAuth:
    async def test_key_required_when_configured(self, client, monkeypatch):
        monkeypatch.setattr(auth_module.settings, "console_api_key", "s3cret")
        resp = await client.get("/servers")
        assert resp.status_code == 401

        resp = await client.get("/servers", headers={"X-API-Key": "s3cret"})
        assert resp.status_code == 200

    async def test_liveness_is_open(self, client, monkeypatch):
        monkeypatch.setattr(auth_module.settings, "console_api_key", "s3cret")
        resp = await client.get("/health")
        assert resp.status_code == 200


class TestServers:
    async def test_list(self, client):
        resp = await client.get("/servers")
        body = resp.json()
        assert [s["id"] for s in body["servers"]] == ["srv-1", "srv-2"]
        assert body["servers"][1]["authType"] == "PRIVATE_KEY"
        assert body["selected_server_id"] is None

    async def test_select(self, client, console):
        resp = await client.put("/servers/selection", json={"server_id": "srv-2"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["selected_server_id"] == "srv-2"
        assert body["is_nginx_host"] is True
        assert console.selection.selected_id == "srv-2"

    async def test_select_unknown(self, client):
        resp = await client.put("/servers/selection", json={"server_id": "srv-9"})
        assert resp.status_code == 404

    async def test_select_default(self, client):
        await client.put("/servers/selection", json={"server_id": "srv-1"})
        resp = await client.put("/servers/selection", json={"server_id": None})
        assert resp.json()["selected_server_id"] is None

    async def test_refresh_drops_vanished_selection(self, client, mock_backend):
        await client.put("/servers/selection", json={"server_id": "srv-2"})
        mock_backend.respond("list_servers", [SERVERS[0]])
        resp = await client.post("/servers/refresh")
        body = resp.json()
        assert len(body["servers"]) == 1
        assert body["selected_server_id"] is None


class TestState:
    async def test_snapshot_after_select(self, client):
        await client.put("/servers/selection", json={"server_id": "srv-1"})
        resp = await client.get("/state/snapshot")
        body = resp.json()
        assert body["server_id"] == "srv-1"
        assert body["snapshot"]["linux"]["cpuUsagePercent"] == 12.5
        assert body["error"] is None

    async def test_manual_refresh(self, client, mock_backend):
        resp = await client.post("/state/snapshot/refresh")
        assert resp.status_code == 200
        assert mock_backend.count("get_snapshot") == 1

    async def test_analytics_and_logs(self, client):
        await client.put("/servers/selection", json={"server_id": "srv-2"})
        analytics = (await client.get("/state/analytics")).json()
        assert len(analytics["anomalies"]) == 2
        logs = (await client.get("/state/logs")).json()
        assert len(logs["lines"]) == 2

    async def test_refresh_interval(self, client):
        resp = await client.put("/state/refresh-interval", json={"interval": "30s"})
        assert resp.status_code == 200
        assert resp.json()["refresh_interval"] == "30s"

        status = (await client.get("/state/polling")).json()
        assert status["refresh_interval"] == "30s"

    async def test_refresh_interval_rejects_unknown(self, client):
        resp = await client.put("/state/refresh-interval", json={"interval": "15s"})
        assert resp.status_code == 400


class TestCommandSession:
    async def test_full_flow(self, client, mock_backend):
        await client.put("/servers/selection", json={"server_id": "srv-1"})
        resp = await client.post("/commands/session")
        assert resp.json()["state"] == "IDLE"

        resp = await client.post("/commands/session/analyze", json={"command": "df -h"})
        body = resp.json()
        assert body["state"] == "ANALYZED"
        assert body["analysis"]["riskLevel"] == "LOW"

        resp = await client.post("/commands/session/execute")
        body = resp.json()
        assert body["state"] == "SETTLED"
        assert body["result"]["executed"] is True
        assert mock_backend.last("execute_command")["server_id"] == "srv-1"

        resp = await client.post("/commands/session/back")
        assert resp.json()["state"] == "ANALYZED"

    async def test_execute_without_analysis_conflicts(self, client, mock_backend):
        await client.put("/commands/session/command", json={"command": "reboot"})
        resp = await client.post("/commands/session/execute")
        assert resp.status_code == 409
        assert mock_backend.count("execute_command") == 0

    async def test_analyze_stored_command(self, client):
        await client.put("/commands/session/command", json={"command": "uptime"})
        resp = await client.post("/commands/session/analyze")
        assert resp.status_code == 200
        assert resp.json()["command"] == "uptime"

    async def test_analyze_nothing_conflicts(self, client):
        resp = await client.post("/commands/session/analyze")
        assert resp.status_code == 409

    async def test_edit_invalidates_analysis(self, client):
        await client.post("/commands/session/analyze", json={"command": "ls"})
        resp = await client.put("/commands/session/command", json={"command": "ls -la"})
        body = resp.json()
        assert body["analysis"] is None
        assert (await client.post("/commands/session/execute")).status_code == 409

    async def test_close_discards(self, client):
        await client.post("/commands/session/analyze", json={"command": "ls"})
        resp = await client.delete("/commands/session")
        assert resp.json()["analysis"] is None
        assert (await client.post("/commands/session/back")).status_code == 409

    async def test_failed_analysis_visible(self, client, mock_backend):
        mock_backend.raise_on("analyze_command", httpx.ConnectError("connection refused"))
        resp = await client.post("/commands/session/analyze", json={"command": "ls"})
        analysis = resp.json()["analysis"]
        assert analysis["riskLevel"] == "LOW"
        assert analysis["reason"] == "Analysis failed: connection refused"


class TestContainers:
    async def test_restart(self, client, mock_backend):
        resp = await client.post("/containers/web-1/restart")
        assert resp.status_code == 200
        body = resp.json()
        assert body["command"] == "docker restart web-1"
        assert body["result"]["executed"] is True
        assert mock_backend.last("execute_command")["command"] == "docker restart web-1"

    async def test_unknown_action(self, client):
        resp = await client.post("/containers/web-1/kill")
        assert resp.status_code == 422

    async def test_bad_identifier(self, client, mock_backend):
        resp = await client.post("/containers/-x/stop")
        assert resp.status_code == 400
        assert mock_backend.calls == [("list_servers", {})]

    async def test_pending_conflict(self, client, mock_backend):
        hold = mock_backend.hold("analyze_command")
        first = asyncio.create_task(client.post("/containers/db/stop"))
        await hold.entered.wait()

        assert (await client.get("/containers/pending")).json() == ["db"]
        resp = await client.post("/containers/db/restart")
        assert resp.status_code == 409

        hold.release()
        assert (await first).status_code == 200
        assert (await client.get("/containers/pending")).json() == []


class TestChat:
    async def test_send_and_history(self, client):
        resp = await client.post("/chat", json={"message": "status?"})
        assert resp.json() == {"role": "assistant", "content": "Disk usage looks normal."}

        history = (await client.get("/chat")).json()
        assert [m["role"] for m in history["messages"]] == ["user", "assistant"]

    async def test_blank_message(self, client):
        resp = await client.post("/chat", json={"message": "  "})
        assert resp.status_code == 400

    async def test_mode(self, client):
        resp = await client.get("/chat/mode")
        assert resp.json() == {"mode": "LOCAL"}

    @pytest.mark.parametrize("path", ["/chat", "/commands/session", "/containers/pending"])
    async def test_reads_are_ok(self, client, path):
        assert (await client.get(path)).status_code == 200
