"""
HVAC Proxy Backend Application

Transparent proxy between the thermostat and its cloud service. Captures
traffic to DATA_DIR and serves the latest status as Prometheus metrics.
"""

import os
import sys
from contextlib import asynccontextmanager
from typing import Optional

import log_config
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from loguru import logger

# Add core to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Import API router
from api import router as api_router

from core.hvac_proxy import __version__
from core.hvac_proxy.capture import CaptureSink
from core.hvac_proxy.metrics import MetricsSnapshot
from core.hvac_proxy.publisher import PublishDispatcher, create_dispatcher
from core.hvac_proxy.settings import ProxySettings, load_settings
from core.hvac_proxy.telemetry import TelemetryRecorder
from core.hvac_proxy.upstream import UpstreamClient


def create_app(
    settings: Optional[ProxySettings] = None,
    upstream: Optional[UpstreamClient] = None,
    dispatcher: Optional[PublishDispatcher] = None,
) -> FastAPI:
    """Create the FastAPI application.

    Components are built once in the lifespan and shared through app.state.

    Args:
        settings: Settings to use instead of load_settings()
        upstream: Upstream client to use instead of a new UpstreamClient
        dispatcher: Publish dispatcher to use instead of create_dispatcher()
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan manager for startup/shutdown."""
        # Startup
        resolved = settings or load_settings()
        log_config.setup_logging(resolved.log_level.upper())
        logger.info("HVAC proxy starting")
        logger.info(f"Saving captured bodies to {resolved.data_dir}/")
        if resolved.block_updates:
            logger.info("🚫 Blocking <update> elements in responses")

        snapshot = MetricsSnapshot(resolved.data_dir)
        publish = dispatcher or create_dispatcher(resolved)
        recorder = TelemetryRecorder(snapshot, publish)

        app.state.settings = resolved
        app.state.snapshot = snapshot
        app.state.dispatcher = publish
        app.state.capture_sink = CaptureSink(
            resolved.data_dir,
            recorder=recorder,
            block_updates=resolved.block_updates,
            filename_style=resolved.filename_style,
        )
        app.state.upstream = upstream or UpstreamClient(timeout=resolved.upstream_timeout)

        yield

        # Shutdown
        logger.info("HVAC proxy shutting down")
        app.state.upstream.close()
        publish.shutdown()

    app = FastAPI(
        title="HVAC Proxy",
        description="Transparent thermostat proxy with traffic capture and Prometheus metrics",
        version=__version__,
        lifespan=lifespan,
    )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """Handle all unhandled exceptions gracefully."""
        logger.opt(exception=exc).error(f"Unhandled exception on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "detail": str(exc),
                "type": type(exc).__name__,
                "message": "Internal server error",
            },
        )

    # Include API router
    app.include_router(api_router)
    return app


app = create_app()


# For development
if __name__ == "__main__":
    import uvicorn

    port = load_settings().port
    uvicorn.run(app, host="0.0.0.0", port=port)
