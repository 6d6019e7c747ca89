"""
FastAPI application for Study Session Tracker dashboard.

PURPOSE: Main application factory and server runner.
AI CONTEXT: Creates app with all routes registered and one TrackerService
shared through app.state.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from ..__version__ import __version__
from ..tracker_service import TrackerService
from .routes import router

__all__ = ["create_app", "run_dashboard"]

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """
    Manage application lifecycle with startup/shutdown hooks.

    Business context: Startup logging confirms which data the dashboard
    serves; shutdown logging warns about sessions that were never saved.

    Args:
        app: The FastAPI application instance (provided by FastAPI).

    Yields:
        None. Control returns to FastAPI to handle requests.
    """
    service: TrackerService = app.state.service
    logger.info(
        "Study Session Tracker dashboard starting (v%s, %d sessions)",
        __version__,
        len(service.state.sessions),
    )
    yield
    if service.state.pending_writes:
        logger.warning(
            "Shutting down with %d unsaved session(s)", len(service.state.pending_writes)
        )
    logger.info("Study Session Tracker dashboard shutting down")


def create_app(service: TrackerService | None = None) -> FastAPI:
    """
    Create and configure the FastAPI dashboard application.

    Factory function using the application factory pattern for
    testability: tests pass a service built on in-memory fakes.

    Args:
        service: Loaded TrackerService. Default: a new service built from
            Config and loaded immediately.

    Returns:
        Configured FastAPI application with the dashboard page (/), JSON
        API (/api/*) and chart (/charts/*) routes.

    Raises:
        StorageError: If the configured remote backend has no URL.

    Example:
        >>> from fastapi.testclient import TestClient
        >>> client = TestClient(create_app(service))
        >>> client.get('/api/status').status_code
        200
    """
    if service is None:
        service = TrackerService()
        service.load()

    app = FastAPI(
        title="Study Session Tracker",
        description="Dashboard for timing study sessions and reviewing them by day",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.service = service
    app.state.write_lock = asyncio.Lock()
    app.include_router(router)
    return app


def run_dashboard(
    host: str = "127.0.0.1",
    port: int = 8000,
    service: TrackerService | None = None,
    log_level: str = "info",
) -> None:
    """
    Launch the Study Session Tracker web dashboard server.

    Args:
        host: Network interface to bind the server to. Use '127.0.0.1'
            for local-only access (default) or '0.0.0.0' for network access.
        port: TCP port number for the HTTP server. Default 8000.
        service: Loaded service to serve. Default: the app factory builds
            one from Config in the server process.
        log_level: Uvicorn logging verbosity.

    Returns:
        None. This function blocks until the server is stopped (Ctrl+C).

    Raises:
        OSError: If the port is already in use or host is invalid.
    """
    if service is None:
        uvicorn.run(
            "study_tracker.web.app:create_app",
            factory=True,
            host=host,
            port=port,
            log_level=log_level,
        )
        return
    uvicorn.run(create_app(service), host=host, port=port, log_level=log_level)


# For direct execution
if __name__ == "__main__":
    run_dashboard()
