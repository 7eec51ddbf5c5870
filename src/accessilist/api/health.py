"""Health check endpoints for the AccessiList API.

Health endpoints:
- GET /health         - Simple health check (always 200 if process alive)
- GET /health/live    - Liveness probe (process alive)
- GET /health/ready   - Readiness probe (aggregated component status)
- GET /health/metrics - Prometheus metrics endpoint
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any

import psutil
from fastapi import APIRouter, Request, Response, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from accessilist.api.dependencies import get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

_start_time = time.time()


class SimpleHealthStatus(BaseModel):
    """Simple health status response for basic health check."""

    status: str


class LivenessStatus(BaseModel):
    """Liveness status response - just confirms process is running."""

    status: str = Field(description="Always 'alive' if process is responsive")
    timestamp: float = Field(description="Unix timestamp of response")
    uptime_seconds: float


class ComponentStatus(BaseModel):
    """Status of a single component for readiness check."""

    healthy: bool = Field(description="Whether component is healthy")
    details: str | None = Field(default=None, description="Optional details about status")


class ReadinessStatus(BaseModel):
    """Readiness status response with aggregated component health."""

    ready: bool = Field(description="Overall readiness status")
    status: str = Field(description="Status string: 'ready' or 'not_ready'")
    timestamp: float = Field(description="Unix timestamp of response")
    components: dict[str, ComponentStatus] = Field(description="Per-component health status")
    details: dict[str, Any] | None = Field(
        default=None, description="Additional details for debugging"
    )


def _check_sessions_dir(sessions_dir: str | os.PathLike[str]) -> tuple[bool, str | None]:
    """Sessions directory exists (or can be created) and is writable."""
    try:
        os.makedirs(sessions_dir, exist_ok=True)
    except OSError as e:
        return False, f"unavailable: {e}"
    if not os.access(sessions_dir, os.W_OK):
        return False, "not_writable"
    return True, None


def _check_disk(path: str | os.PathLike[str]) -> tuple[bool, str | None]:
    try:
        disk = psutil.disk_usage(os.fspath(path))
    except OSError as e:
        logger.warning(f"Failed to check disk usage: {e}")
        return False, str(e)
    return disk.percent < 98.0, f"usage: {disk.percent:.1f}%"


def _check_memory() -> tuple[bool, str | None]:
    memory = psutil.virtual_memory()
    return memory.percent < 95.0, f"usage: {memory.percent:.1f}%"


@router.get("", response_model=SimpleHealthStatus)
async def health_check() -> SimpleHealthStatus:
    """Simple health check endpoint."""
    return SimpleHealthStatus(status="healthy")


@router.get("/live", response_model=LivenessStatus)
async def live() -> LivenessStatus:
    """Liveness probe endpoint.

    Returns 200 if the process is alive - no dependency checks.
    """
    now = time.time()
    return LivenessStatus(status="alive", timestamp=now, uptime_seconds=now - _start_time)


@router.get("/ready", response_model=ReadinessStatus)
def ready(request: Request, response: Response) -> ReadinessStatus:
    """Readiness probe endpoint with aggregated component health.

    Checks:
    - sessions_dir: exists and is writable
    - disk: the volume holding the sessions directory is not full
    - system_memory: memory available

    Returns 200 if all components are healthy, 503 otherwise.
    """
    sessions_dir = get_services(request).store.sessions_dir
    components: dict[str, ComponentStatus] = {}
    details: dict[str, Any] = {}

    dir_healthy, dir_details = _check_sessions_dir(sessions_dir)
    components["sessions_dir"] = ComponentStatus(healthy=dir_healthy, details=dir_details)

    if dir_healthy:
        disk_healthy, disk_details = _check_disk(sessions_dir)
        components["disk"] = ComponentStatus(healthy=disk_healthy, details=disk_details)

    mem_healthy, mem_details = _check_memory()
    components["system_memory"] = ComponentStatus(healthy=mem_healthy, details=mem_details)

    all_ready = all(c.healthy for c in components.values())
    if all_ready:
        response.status_code = status.HTTP_200_OK
        status_str = "ready"
    else:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        status_str = "not_ready"
        details["unhealthy_components"] = [k for k, v in components.items() if not v.healthy]

    return ReadinessStatus(
        ready=all_ready,
        status=status_str,
        timestamp=time.time(),
        components=components,
        details=details or None,
    )


@router.get("/metrics", response_class=PlainTextResponse)
async def metrics(request: Request) -> PlainTextResponse:
    """Prometheus metrics endpoint.

    Returns 404 when metrics are disabled.
    """
    exporter = get_services(request).metrics
    if exporter is None:
        return PlainTextResponse("metrics disabled\n", status_code=status.HTTP_404_NOT_FOUND)
    return PlainTextResponse(exporter.export_metrics().decode("utf-8"))
