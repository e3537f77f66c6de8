"""Shared pytest fixtures."""

from __future__ import annotations

import os

# Force settings to use test-safe defaults before any import
os.environ.setdefault("CONSOLE_BACKEND_URL", "http://backend.test/api")
os.environ.setdefault("CONSOLE_API_KEY", "")
os.environ.setdefault("CONSOLE_REFRESH_INTERVAL", "off")

import pytest
from httpx import ASGITransport, AsyncClient

from tests.fake_clock import FakeClock
from tests.mock_backend import MockBackend


@pytest.fixture
def mock_backend():
    """Provide a fresh MockBackend."""
    return MockBackend()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def console(mock_backend, clock):
    """Console controller wired to the mock backend and the fake clock."""
    from opsconsole.config import Settings
    from opsconsole.services.console import OperatorConsole

    cfg = Settings(console_refresh_interval="off")
    c = OperatorConsole(cfg, client=mock_backend, sleep=clock.sleep)
    await c.selection.refresh_servers()
    yield c
    await c.close()


@pytest.fixture
async def client(console, monkeypatch):
    """Async test client with the mocked console injected."""
    monkeypatch.setenv("CONSOLE_API_KEY", "")

    # Patch the singleton in every module that imported it
    import opsconsole.routers.chat as rch
    import opsconsole.routers.commands as rcm
    import opsconsole.routers.containers as rct
    import opsconsole.routers.health as rh
    import opsconsole.routers.servers as rs
    import opsconsole.routers.state as rst

    for mod in (rch, rcm, rct, rh, rs, rst):
        monkeypatch.setattr(mod, "console", console)

    from opsconsole.main import app as fastapi_app

    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
