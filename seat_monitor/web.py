"""
FastAPI web service wrapper for the seat monitor.
Exposes the command channel and a read-only view of the monitor state.
"""

import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from fastapi import Body, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from seat_monitor.config import get_settings
from seat_monitor.models.commands import parse_command
from seat_monitor.observability.logfire_config import initialize_logfire
from seat_monitor.observability.logging_config import configure_logging
from seat_monitor.runner import SeatMonitor

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan: startup and shutdown.
    Builds and initializes the monitor unless one was provided up front.
    """
    app.state.start_time = datetime.now(timezone.utc)

    owned = getattr(app.state, "monitor", None) is None
    if owned:
        settings = get_settings()
        configure_logging(settings.log_level)
        initialize_logfire()

        logger.info("FastAPI application starting...")
        app.state.monitor = SeatMonitor(settings)
        await app.state.monitor.initialize()

    yield

    logger.info("FastAPI application shutting down...")
    if owned:
        await app.state.monitor.cleanup()
        app.state.monitor = None
    logger.info("Shutdown complete")


def _uptime(app: FastAPI) -> float:
    start_time = getattr(app.state, "start_time", None) or datetime.now(timezone.utc)
    return round((datetime.now(timezone.utc) - start_time).total_seconds(), 2)


def _running_monitor(request: Request) -> SeatMonitor:
    seat_monitor = request.app.state.monitor
    if seat_monitor is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="monitor not started",
        )
    return seat_monitor


def create_app(monitor: Optional[SeatMonitor] = None) -> FastAPI:
    """Create the FastAPI app, optionally around an existing monitor."""
    app = FastAPI(
        title="Course Seat Monitor",
        description="Course seat availability monitor with a command endpoint",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.monitor = monitor
    app.state.start_time = datetime.now(timezone.utc)

    @app.get("/", status_code=status.HTTP_200_OK)
    async def root(request: Request) -> JSONResponse:
        """Root endpoint - confirms service is alive."""
        return JSONResponse(
            content={
                "status": "alive",
                "service": "Course Seat Monitor",
                "uptime_seconds": _uptime(request.app),
                "message": "Seat monitoring service is running",
            }
        )

    @app.get("/health", status_code=status.HTTP_200_OK)
    async def health_check(request: Request) -> JSONResponse:
        """
        Health check endpoint for monitoring and load balancers.
        Returns scheduler and check status.
        """
        seat_monitor: SeatMonitor = request.app.state.monitor
        if seat_monitor is None:
            return JSONResponse(
                content={"status": "unhealthy", "reason": "monitor not started"},
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            )

        state = await seat_monitor.state()
        return JSONResponse(
            content={
                "status": "healthy",
                "uptime_seconds": _uptime(request.app),
                "monitoring": state.monitoring,
                "timer_armed": seat_monitor.scheduler.is_armed,
                "check_phase": seat_monitor.coordinator.phase.value,
                "interval_seconds": state.interval_seconds,
                "monitored_courses": len(state.courses),
                "last_check": state.last_check,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )

    @app.get("/ping", status_code=status.HTTP_200_OK)
    async def ping() -> Dict[str, str]:
        """Simple ping endpoint for uptime monitoring services."""
        return {"ping": "pong"}

    @app.get("/state", status_code=status.HTTP_200_OK)
    async def get_state(request: Request) -> Dict[str, Any]:
        """Full persisted state, as the control surface renders it."""
        state = await _running_monitor(request).state()
        return state.storage_dict()

    @app.post("/commands", status_code=status.HTTP_200_OK)
    async def post_command(
        request: Request, payload: Dict[str, Any] = Body(...)
    ) -> Dict[str, Any]:
        """Command channel: ``{action, ...payload}``; returns the updated state."""
        seat_monitor = _running_monitor(request)
        try:
            command = parse_command(payload)
        except ValidationError as e:
            raise RequestValidationError(e.errors(include_url=False))

        state = await seat_monitor.dispatch(command)
        return state.storage_dict()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "10000"))

    logger.info(f"Starting web service on port {port}...")

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=port,
        log_level="info",
        access_log=True,
    )
