"""FastAPI application factory and setup."""

import time
import uuid
from contextlib import asynccontextmanager

import redis.asyncio as redis_async
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi_limiter import FastAPILimiter
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from src.accounts.api.http.app_data import ApplicationDependencies
from src.accounts.api.http.errors import register_exception_handlers
from src.accounts.api.http.middleware.limiter import (
    close_rate_limiter,
    configure_rate_limiter,
    use_local_rate_limiter,
)
from src.accounts.api.http.routers.health import router as health_router
from src.accounts.api.http.routers.user_emails import router as user_emails_router
from src.accounts.api.http.routers.users import router as users_router
from src.accounts.api.utils.app_startup import configure_logging
from src.accounts.core.services import (
    DbSessionService,
    InMemoryWelcomeEmailQueue,
    TemporalClientService,
    TemporalWelcomeEmailQueue,
    WelcomeEmailQueue,
)
from src.accounts.runtime.context import get_config

API_PREFIX = "/api/v1"

configure_logging()


# --- Security middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault(
            "Referrer-Policy", "strict-origin-when-cross-origin"
        )
        # HSTS only in prod
        if get_config().app.environment == "production":
            response.headers.setdefault(
                "Strict-Transport-Security",
                "max-age=31536000; includeSubDomains; preload",
            )
        return response


# --- FastAPI app setup ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    await startup()
    try:
        yield
    finally:
        await shutdown()


app = FastAPI(
    title=get_config().api.title,
    version=get_config().api.version,
    lifespan=lifespan,
    docs_url=None if get_config().app.environment == "production" else "/docs",
    redoc_url=None if get_config().app.environment == "production" else "/redoc",
)

app.add_middleware(SecurityHeadersMiddleware)

__all__ = ["app", "startup", "shutdown"]

# --- CORS configuration ---
if get_config().app.environment == "production" and (
    "*" in get_config().app.cors.origins
):
    raise RuntimeError(
        "CORS misconfigured: cannot use '*' with allow_credentials=True in production"
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().app.cors.origins,
    allow_credentials=get_config().app.cors.allow_credentials,
    allow_methods=get_config().app.cors.allow_methods,
    allow_headers=get_config().app.cors.allow_headers,
)


# --- Request logging middleware ---
@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    api_config = get_config().api

    xff = request.headers.get("x-forwarded-for")
    client_ip = (
        xff.split(",")[0].strip()
        if xff
        else request.client.host
        if request.client
        else "unknown"
    )

    # query strings may carry search terms; only the path is logged
    base_ctx = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "client_ip": client_ip,
        "user_agent": request.headers.get("user-agent", "unknown"),
    }

    start = time.perf_counter()
    with logger.contextualize(**base_ctx):
        if api_config.log_requests:
            logger.info("request.start")
        response = await call_next(request)

        if api_config.log_responses:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=response.status_code,
                duration_ms=round(duration_ms, 1),
                response_size=response.headers.get("content-length"),
            ).info("request.end")

        response.headers.setdefault("X-Request-ID", request_id)
        return response


# --- Router registration ---
app.include_router(health_router)
app.include_router(users_router, prefix=API_PREFIX)
app.include_router(user_emails_router, prefix=API_PREFIX)

register_exception_handlers(app)


# --- Rate limiter setup ---
async def _initialize_rate_limiter() -> None:
    config = get_config()
    if not config.redis.url:
        logger.info("Redis URL not configured; using in-memory rate limiter")
        use_local_rate_limiter()
        return

    try:
        client = redis_async.from_url(
            config.redis.connection_string,
            encoding="utf-8",
            decode_responses=config.redis.decode_responses,
        )
        await FastAPILimiter.init(client)
        app.state.redis = client
        logger.info("FastAPI limiter initialized with Redis")
        configure_rate_limiter()
    except Exception:
        logger.exception("Failed to initialize FastAPI limiter with Redis")
        if config.app.environment == "production":
            raise
        logger.warning("Falling back to in-memory rate limiter")
        use_local_rate_limiter()


def _build_welcome_queue(temporal_service: TemporalClientService) -> WelcomeEmailQueue:
    if temporal_service.is_enabled:
        logger.info("Welcome emails are scheduled through Temporal")
        return TemporalWelcomeEmailQueue(temporal_service)
    logger.warning("Temporal disabled; welcome emails are only recorded in memory")
    return InMemoryWelcomeEmailQueue()


# --- Lifecycle hooks ---
async def startup() -> None:
    config = get_config()
    logger.info("Starting up application in {} environment", config.app.environment)

    database_service = DbSessionService()
    temporal_service = TemporalClientService()
    app.state.app_dependencies = ApplicationDependencies(
        database_service=database_service,
        temporal_service=temporal_service,
        welcome_queue=_build_welcome_queue(temporal_service),
    )

    await _initialize_rate_limiter()


async def shutdown() -> None:
    logger.info("Shutting down application")
    await close_rate_limiter()
    app_dependencies: ApplicationDependencies | None = getattr(
        app.state, "app_dependencies", None
    )
    if app_dependencies is None:
        return
    await app_dependencies.temporal_service.close()
    app_dependencies.database_service.dispose()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=get_config().app.host,
        port=get_config().app.port,
        access_log=False,  # handled by log_requests
    )
