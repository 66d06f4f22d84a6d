"""
File Server Main Application
============================

FastAPI entry point for the WebSocket upload server.

The upload listener is a raw TCP server with its own WebSocket engine; it
runs as a background component of this application, started and stopped
by the lifespan manager. The FastAPI app itself only serves operational
endpoints.

Endpoints:
    GET  /          - Service name, version and upload settings
    GET  /health    - Liveness probe
    GET  /ready     - Readiness probe (upload listener bound?)
    GET  /metrics   - Listener and authentication counters
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Union

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from file_server.auth import HttpAuthenticator, MockAuthenticator
from file_server.config import Settings, settings
from file_server.transport import UploadServer
from file_server.upload import UploadStore


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

_authenticator: Optional[Union[MockAuthenticator, HttpAuthenticator]] = None
_upload_server: Optional[UploadServer] = None
_server_task: Optional[asyncio.Task] = None
_startup_time: float = 0.0


def get_upload_server() -> Optional[UploadServer]:
    return _upload_server


# =============================================================================
# Factories
# =============================================================================

def create_authenticator(config: Settings) -> Union[MockAuthenticator, HttpAuthenticator]:
    """
    Create authenticator based on config.

    Fails fast on an unknown backend name.
    """
    backend = config.auth.backend

    if backend == "mock":
        logger.warning("Using MockAuthenticator, every upload is accepted")
        return MockAuthenticator(allow=True)

    elif backend == "http":
        return HttpAuthenticator(
            base_url=config.auth.base_url,
            timeout=config.auth.timeout_seconds,
            verify_tls=config.auth.verify_tls,
        )

    else:
        raise ValueError(f"Unknown auth backend: {backend}")


def create_upload_server(
    config: Settings,
    authenticator: Union[MockAuthenticator, HttpAuthenticator],
) -> UploadServer:
    """Build the upload listener from settings."""
    store = UploadStore(
        data_dir=config.storage.data_dir,
        mime_types=config.storage.mime_types,
    )
    return UploadServer(
        host=config.server.host,
        port=config.server.port,
        authenticator=authenticator,
        store=store,
        buffer_size=config.server.buffer_size,
        max_frame_size=config.protocol.max_frame_size,
        require_mask=config.protocol.require_mask,
        probe_agents=config.protocol.health_check_user_agents,
        progress_step=config.logging.progress_step_percent,
        keep_partial=config.storage.keep_partial,
    )


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the upload listener with the app and drain it on shutdown."""
    global _authenticator, _upload_server, _server_task, _startup_time

    _startup_time = time.time()
    logger.info(f"Starting {settings.app.name} {settings.app.version}")

    _authenticator = create_authenticator(settings)
    _upload_server = create_upload_server(settings, _authenticator)
    await _upload_server.start()
    _server_task = asyncio.create_task(
        _upload_server.serve_forever(),
        name="upload_listener",
    )

    yield

    logger.info("Stopping upload listener")

    await _upload_server.stop(drain_timeout=settings.server.drain_timeout_seconds)

    if _server_task:
        _server_task.cancel()
        try:
            await _server_task
        except asyncio.CancelledError:
            pass

    if isinstance(_authenticator, HttpAuthenticator):
        _authenticator.close()

    logger.info("Upload listener stopped")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="FileServer",
    description="WebSocket upload server for image and video attachments",
    version=settings.app.version,
    lifespan=lifespan,
)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service name, version and the settings clients care about."""
    return JSONResponse({
        "service": "FileServer",
        "name": settings.app.name,
        "version": settings.app.version,
        "status": "running",
        "upload_port": settings.server.port,
        "auth_backend": settings.auth.backend,
        "mime_types": sorted(settings.storage.mime_types),
    })


@app.get("/health")
async def health() -> JSONResponse:
    """
    Liveness probe.

    Answers 200 whenever the event loop is responsive.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/ready")
async def ready() -> JSONResponse:
    """
    Readiness probe - is the upload listener accepting connections?

    Returns 503 until the listening socket is bound.
    """
    server = get_upload_server()
    serving = server.is_serving if server else False

    if serving:
        return JSONResponse({
            "status": "ready",
            "upload_port": server.bound_port,
            "active_connections": server.active_connections,
        })
    return JSONResponse(
        {"status": "not_ready", "listening": False},
        status_code=503,
    )


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Listener counters, plus auth service counters for the HTTP backend."""
    server = get_upload_server()

    server_metrics = server.metrics.to_dict() if server else {}
    auth_metrics = {}
    if isinstance(_authenticator, HttpAuthenticator):
        auth_metrics = {f"auth_{k}": v for k, v in _authenticator.get_metrics().items()}

    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "listening": server.is_serving if server else False,
        **server_metrics,
        **auth_metrics,
    })


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "file_server.main:app",
        host=settings.ops.host,
        port=settings.ops.port,
        reload=False,
    )
