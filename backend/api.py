"""
HVAC Proxy API Endpoints

/metrics, /api/status and /api/health are served locally; every other request
is relayed to the host named in its Host header and both bodies are captured.
"""

import os
import sys
import time

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import PlainTextResponse
from loguru import logger
from starlette.concurrency import run_in_threadpool

# Add core to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.hvac_proxy import __version__
from core.hvac_proxy.capture import CaptureSink, Direction, strip_updates
from core.hvac_proxy.exceptions import UpstreamError
from core.hvac_proxy.metrics import MetricsSnapshot
from core.hvac_proxy.settings import ProxySettings
from core.hvac_proxy.upstream import UpstreamClient

router = APIRouter()

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def get_settings(request: Request) -> ProxySettings:
    return request.app.state.settings


def get_snapshot(request: Request) -> MetricsSnapshot:
    return request.app.state.snapshot


def get_capture_sink(request: Request) -> CaptureSink:
    return request.app.state.capture_sink


def get_upstream(request: Request) -> UpstreamClient:
    return request.app.state.upstream


@router.get("/api/health")
async def health_check(request: Request, settings: ProxySettings = Depends(get_settings)):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": "HVAC Proxy",
        "version": __version__,
        "data_dir": settings.data_dir,
        "block_updates": settings.block_updates,
        "mqtt_enabled": request.app.state.dispatcher.enabled,
    }


@router.get("/metrics")
def metrics(snapshot: MetricsSnapshot = Depends(get_snapshot)):
    """Latest thermostat metrics in Prometheus text format."""
    text = snapshot.read()
    if text is None:
        raise HTTPException(status_code=503, detail="No metrics captured yet")
    return Response(content=text, headers={"Content-Type": "text/plain"})


@router.get("/api/status")
def latest_status(snapshot: MetricsSnapshot = Depends(get_snapshot)):
    """Latest parsed status document, as published to MQTT."""
    document = snapshot.document
    if document is None:
        raise HTTPException(status_code=503, detail="No status captured since startup")
    return Response(content=document.to_json(), media_type="application/json")


def request_target(request: Request) -> str:
    """Path and query exactly as the client sent them."""
    raw_path = request.scope.get("raw_path") or request.url.path.encode()
    target = raw_path.decode("latin-1")
    query = request.url.query
    return f"{target}?{query}" if query else target


@router.api_route("/{full_path:path}", methods=PROXY_METHODS)
async def proxy(
    request: Request,
    settings: ProxySettings = Depends(get_settings),
    sink: CaptureSink = Depends(get_capture_sink),
    upstream: UpstreamClient = Depends(get_upstream),
):
    """Relay a request upstream, capturing both bodies."""
    # Ignore favicon requests to avoid log spam
    if request.url.path == "/favicon.ico":
        return PlainTextResponse("404 page not found", status_code=404)

    host = request.headers.get("host")
    if not host:
        raise HTTPException(status_code=400, detail="Missing Host header")

    start_time = time.monotonic()
    method = request.method
    path = request.url.path
    query = request.url.query
    target = request_target(request)
    url = f"{request.url.scheme}://{host}{target}"

    body = await request.body()
    logger.info(f"[REQ]  {method} {url} ({len(body)} bytes)")
    await run_in_threadpool(
        sink.capture, method, path, body, Direction.REQUEST, raw_query=query, request_target=target
    )

    try:
        upstream_response = await run_in_threadpool(
            upstream.forward, method, url, request.headers.items(), body
        )
    except UpstreamError as e:
        elapsed = time.monotonic() - start_time
        logger.error(f"[RESP] {method} {target} → ERROR: {e} (elapsed: {elapsed:.3f}s)")
        return PlainTextResponse(f"Upstream error: {e}", status_code=502)

    elapsed = time.monotonic() - start_time
    logger.info(f"[RESP] {method} {target} → {upstream_response.status_code} (elapsed: {elapsed:.3f}s)")

    await run_in_threadpool(
        sink.capture,
        method,
        path,
        upstream_response.body,
        Direction.RESPONSE,
        raw_query=query,
        request_target=target,
    )

    relay_body = upstream_response.body
    if settings.block_updates:
        # Keep firmware update offers from reaching the thermostat
        relay_body = strip_updates(relay_body)

    response = Response(content=relay_body, status_code=upstream_response.status_code)
    for name, value in upstream_response.headers:
        response.headers.append(name, value)
    return response
