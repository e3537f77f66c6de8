"""FastAPI application entry-point."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from opsconsole import __version__
from opsconsole.routers import chat, commands, containers, health, servers, state
from opsconsole.services.console import console
from opsconsole.utils.logging import get_logger, setup_logging

log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown hooks."""
    setup_logging()
    try:
        await console.start()
    except Exception as exc:
        # Panels degrade to their empty state; the views can retry.
        log.warning("console.start_failed", error=str(exc))
    yield
    await console.close()


app = FastAPI(
    title="Operator Console",
    description="Risk-gated command execution and live telemetry for the DevOps assistant",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(servers.router)
app.include_router(state.router)
app.include_router(commands.router)
app.include_router(containers.router)
app.include_router(chat.router)
