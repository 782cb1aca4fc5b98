"""Liveness and readiness probes."""

from typing import Any

from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from src.accounts.api.http.app_data import ApplicationDependencies
from src.accounts.runtime.context import get_config

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    """Returns 200 as long as the process is running; dependencies are not checked."""
    return {"status": "healthy", "service": "api"}


@router.get("/ready", response_model=None)
async def readiness(request: Request) -> dict[str, Any] | JSONResponse:
    """Check the database (and Temporal when enabled); 503 when one is down."""
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    config = get_config()

    checks: dict[str, dict[str, Any]] = {}
    all_healthy = True

    db_healthy = app_deps.database_service.health_check()
    checks["database"] = {
        "status": "healthy" if db_healthy else "unhealthy",
        "type": "sqlite" if config.database.is_sqlite else "postgresql",
    }
    all_healthy = all_healthy and db_healthy

    if app_deps.temporal_service.is_enabled:
        temporal_healthy = await app_deps.temporal_service.health_check()
        checks["temporal"] = {
            "status": "healthy" if temporal_healthy else "unhealthy",
            "url": config.temporal.url,
            "namespace": config.temporal.namespace,
        }
        all_healthy = all_healthy and temporal_healthy
    else:
        checks["temporal"] = {"status": "disabled"}

    response = {
        "status": "ready" if all_healthy else "not_ready",
        "environment": config.app.environment,
        "checks": checks,
    }
    if not all_healthy:
        return JSONResponse(status_code=503, content=response)
    return response
