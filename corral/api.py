"""
Status API for a running controller.

Read-only FastAPI application exposing container statistics and the last
known state of every child. Served by uvicorn on a background thread so
the supervising thread keeps running the scheduler.
"""

import logging
import threading
from typing import Any, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .config import config

logger = logging.getLogger(__name__)


class StatisticsResponse(BaseModel):
    spawns: int
    restarts: int
    failures: int
    restart_rate: float = Field(..., description="Restarts per minute over the last window")
    failure_rate: float = Field(..., description="Failures per minute over the last window")


class ChildResponse(BaseModel):
    name: str
    pid: Optional[int] = None
    state: dict[str, Any] = {}


class StatusResponse(BaseModel):
    state: str
    container: Optional[str] = None
    size: int = 0
    statistics: Optional[StatisticsResponse] = None
    children: list[ChildResponse] = []


class HealthResponse(BaseModel):
    healthy: bool
    reason: Optional[str] = None


def _child_response(child, state: dict) -> ChildResponse:
    return ChildResponse(
        name=child.name,
        pid=getattr(child, "pid", None),
        state=dict(state),
    )


def create_app(controller) -> FastAPI:
    """Build the status application for `controller`."""
    app = FastAPI(
        title="Corral",
        description="Status of supervised workers",
        version=__version__,
    )

    @app.get("/status", response_model=StatusResponse)
    async def status():
        """Controller state, statistics and per-child state."""
        container = controller.container
        if container is None:
            return StatusResponse(state=controller.state_string)

        # The scheduler thread mutates these; work on copies:
        children = [_child_response(child, state) for child, state in list(container.state.items())]

        return StatusResponse(
            state=controller.state_string,
            container=str(container),
            size=container.size,
            statistics=StatisticsResponse(**container.statistics.to_dict()),
            children=children,
        )

    @app.get("/health", response_model=HealthResponse, responses={503: {"model": HealthResponse}})
    async def health():
        """200 while running without recent failures, 503 otherwise."""
        container = controller.container

        if container is None:
            reason = "stopped"
        elif container.statistics.failure_rate.total() > 0:
            reason = "failing"
        else:
            return HealthResponse(healthy=True)

        return JSONResponse(
            status_code=503,
            content=HealthResponse(healthy=False, reason=reason).model_dump(),
        )

    return app


def serve_in_background(app: FastAPI, host: str | None = None, port: int | None = None) -> uvicorn.Server:
    """Run `app` with uvicorn on a daemon thread."""
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=host or config.status_host,
            port=port or config.status_port,
            log_level="warning",
        )
    )

    thread = threading.Thread(target=server.run, name="corral-status", daemon=True)
    thread.start()

    logger.info(f"Status API listening on {server.config.host}:{server.config.port}")
    return server
