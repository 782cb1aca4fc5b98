"""Rate limiting helpers used by the HTTP layer."""

from __future__ import annotations

import asyncio
import math
import time
from collections import defaultdict, deque
from collections.abc import Awaitable, Callable
from functools import lru_cache
from typing import Any

from fastapi import HTTPException, Request, Response
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter
from loguru import logger

from src.accounts.runtime.context import get_config

TOO_MANY_REQUESTS = "Too many requests. Please try again later."

RateLimiterType = Callable[[Request, Response], Awaitable[Any]]

RateLimiterFactory = Callable[[int, int, bool, bool], RateLimiterType]

_rate_limiter_factory: RateLimiterFactory | None = None
_local_limiters: list[DefaultLocalRateLimiter] = []
_factory_counter: int = 0  # bumps on every reconfiguration to invalidate the cache


def too_many_requests(retry_after: int) -> HTTPException:
    return HTTPException(
        status_code=429,
        detail=TOO_MANY_REQUESTS,
        headers={"Retry-After": str(retry_after)},
    )


async def _redis_limit_exceeded(request: Request, response: Response, pexpire: int):
    raise too_many_requests(math.ceil(pexpire / 1000))


class DefaultLocalRateLimiter:
    """Sliding-window in-memory limiter used when Redis isn't available."""

    def __init__(
        self, times: int, milliseconds: int, per_endpoint: bool, per_method: bool
    ) -> None:
        self._hits: defaultdict[str, deque[float]] = defaultdict(deque)
        self._lock = asyncio.Lock()
        self._times = times
        self._seconds = milliseconds / 1000
        self._per_endpoint = per_endpoint
        self._per_method = per_method
        self._last_cleanup = time.monotonic()
        self._cleanup_interval = 60.0

    async def __call__(self, request: Request, response: Response) -> Any:
        key = self._make_key(request)
        remaining, reset_at = await self._throttle(key)
        response.headers["X-RateLimit-Limit"] = str(self._times)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = str(reset_at)

    def _make_key(self, request: Request) -> str:
        client_host = request.client.host if request.client else "anonymous"
        parts = [f"ip:{client_host}"]
        if self._per_method:
            parts.append(request.method)
        if self._per_endpoint:
            route = request.scope.get("route")
            template = getattr(route, "path", None)
            parts.append((template or request.url.path).rstrip("/"))
        return ":".join(parts)

    async def _cleanup_old_keys(self, now: float) -> None:
        if now - self._last_cleanup < self._cleanup_interval:
            return
        self._last_cleanup = now
        for key in [k for k, hits in self._hits.items() if not hits or hits[-1] <= now - self._seconds]:
            del self._hits[key]

    async def cleanup(self) -> None:
        async with self._lock:
            tracked = len(self._hits)
            self._hits.clear()
        logger.debug("Cleaned up local rate limiter with {} tracked keys", tracked)

    async def _throttle(self, key: str) -> tuple[int, int]:
        """Record a hit; return (remaining, reset epoch seconds) or raise 429."""
        now = time.monotonic()
        window_start = now - self._seconds
        async with self._lock:
            await self._cleanup_old_keys(now)
            hits = self._hits[key]
            while hits and hits[0] <= window_start:
                hits.popleft()
            if len(hits) >= self._times:
                retry_after = max(1, math.ceil(self._seconds - (now - hits[0])))
                raise too_many_requests(retry_after)
            hits.append(now)
            reset_in = self._seconds - (now - hits[0])
            return self._times - len(hits), int(time.time() + reset_in)


def _local_rate_limiter_factory(
    times: int, milliseconds: int, per_endpoint: bool, per_method: bool
) -> RateLimiterType:
    limiter = DefaultLocalRateLimiter(times, milliseconds, per_endpoint, per_method)
    _local_limiters.append(limiter)
    return limiter


def _redis_rate_limiter_factory(
    times: int, milliseconds: int, per_endpoint: bool, per_method: bool
) -> RateLimiterType:
    return RateLimiter(
        times=times, milliseconds=milliseconds, callback=_redis_limit_exceeded
    )


def configure_rate_limiter(
    limiter_factory: RateLimiterFactory | None = None,
) -> None:
    """Choose the limiter implementation.

    Without a factory, the Redis-backed fastapi-limiter is used; it requires
    ``FastAPILimiter.init`` to have been awaited.
    """
    global _rate_limiter_factory, _factory_counter

    _create_rate_limiter.cache_clear()
    _factory_counter += 1

    if limiter_factory:
        _rate_limiter_factory = limiter_factory
    else:
        logger.info("Using Redis-backed rate limiter from fastapi-limiter package")
        _rate_limiter_factory = _redis_rate_limiter_factory


def use_local_rate_limiter() -> None:
    logger.info("Using local in-memory rate limiter")
    configure_rate_limiter(_local_rate_limiter_factory)


@lru_cache(maxsize=100)
def _create_rate_limiter(
    requests: int,
    window_ms: int,
    per_endpoint: bool,
    per_method: bool,
    factory_id: int,
) -> RateLimiterType:
    if _rate_limiter_factory is None:
        raise RuntimeError("Rate limiter not configured")
    return _rate_limiter_factory(requests, window_ms, per_endpoint, per_method)


def get_rate_limiter(
    requests: int | None = None,
    window_ms: int | None = None,
) -> RateLimiterType:
    """Get a (cached) rate limiter instance for the given quota."""
    config = get_config().rate_limiter
    return _create_rate_limiter(
        requests if requests is not None else config.requests,
        window_ms if window_ms is not None else config.window_ms,
        config.per_endpoint,
        config.per_method,
        _factory_counter,
    )


def rate_limit(
    requests: int | None = None,
    window_ms: int | None = None,
) -> RateLimiterType:
    """Return a dependency enforcing request quotas.

    Quotas default to the ``rate_limiter`` config section, read per request.
    """

    async def dependency(request: Request, response: Response) -> Any:
        if not get_config().rate_limiter.enabled:
            return None
        limiter = get_rate_limiter(requests, window_ms)
        return await limiter(request, response)

    return dependency


async def close_rate_limiter() -> None:
    """Clean up rate limiter resources and clear caches."""
    global _rate_limiter_factory

    _create_rate_limiter.cache_clear()
    if _local_limiters:
        logger.info("Cleaning up {} local rate limiter instances", len(_local_limiters))
        for limiter in _local_limiters:
            await limiter.cleanup()
        _local_limiters.clear()

    if FastAPILimiter.redis is not None:
        await FastAPILimiter.close()
        logger.info("Closed FastAPILimiter Redis connections")

    _rate_limiter_factory = None
    logger.info("Rate limiter cleanup completed")
