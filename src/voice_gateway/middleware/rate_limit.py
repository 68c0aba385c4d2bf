"""Fixed-window, per-client rate limiting.

State is process-local; run a single worker or put a shared limiter in
front of the gateway when scaling out.
"""

import asyncio
import contextlib
import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from fastapi import Request, Response

from voice_gateway.errors import RateLimitedError

logger = logging.getLogger("voice-gateway-rate-limit")

DEMO_CALL_LIMIT_MESSAGE = (
    "Demo call limit reached. You can request up to 3 demo calls per hour. "
    "Please try again later or contact us directly."
)


@dataclass
class RateLimitResult:
    """Outcome of one counted request."""

    allowed: bool
    count: int
    limit: int
    remaining: int
    reset_at: float
    retry_after: int


@dataclass
class _Window:
    count: int
    reset_at: float


class FixedWindowRateLimiter:
    """Counts requests per key in fixed windows.

    All operations are protected by asyncio.Lock to prevent race conditions.
    """

    def __init__(
        self,
        window_seconds: float,
        max_requests: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = asyncio.Lock()
        self._sweep_task: asyncio.Task | None = None

    def now(self) -> float:
        return self._clock()

    async def hit(self, key: str) -> RateLimitResult:
        """Count a request for ``key``; every attempt counts, rejected or not."""
        async with self._lock:
            now = self._clock()
            window = self._windows.get(key)
            if window is None or window.reset_at <= now:
                window = _Window(count=0, reset_at=now + self.window_seconds)
                self._windows[key] = window

            window.count += 1
            allowed = window.count <= self.max_requests

            return RateLimitResult(
                allowed=allowed,
                count=window.count,
                limit=self.max_requests,
                remaining=max(0, self.max_requests - window.count),
                reset_at=window.reset_at,
                retry_after=max(0, math.ceil(window.reset_at - now)),
            )

    async def sweep(self) -> int:
        """Drop expired windows. Returns count of removed keys."""
        async with self._lock:
            now = self._clock()
            expired = [key for key, w in self._windows.items() if w.reset_at <= now]
            for key in expired:
                del self._windows[key]
            return len(expired)

    async def count_keys(self) -> int:
        async with self._lock:
            return len(self._windows)

    async def start_sweep_task(self, interval_seconds: float = 600) -> None:
        """Start background sweep task."""
        if self._sweep_task is None:
            self._sweep_task = asyncio.create_task(self._periodic_sweep(interval_seconds))

    async def stop_sweep_task(self) -> None:
        """Stop background sweep task."""
        if self._sweep_task:
            self._sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None

    async def _periodic_sweep(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            removed = await self.sweep()
            if removed > 0:
                logger.info(f"[Rate Limit] Swept {removed} expired window(s)")


def client_ip(request: Request) -> str:
    """Best guess at the caller's IP: proxy headers first, then the socket."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def client_key(request: Request) -> str:
    return f"rate_limit:{client_ip(request)}"


class RateLimit:
    """FastAPI dependency enforcing a limiter from the app's services.

    Usage:
        @router.post("/demo-call", dependencies=[Depends(RateLimit("demo_rate_limiter"))])
    """

    def __init__(self, limiter_name: str, message: str | None = None):
        self.limiter_name = limiter_name
        self.message = message

    async def __call__(self, request: Request, response: Response) -> RateLimitResult:
        limiter: FixedWindowRateLimiter = getattr(
            request.app.state.services, self.limiter_name
        )
        ip = client_ip(request)
        result = await limiter.hit(client_key(request))

        if not result.allowed:
            logger.warning(
                f"[Rate Limit] IP {ip} exceeded limit ({result.count}/{result.limit})"
            )
            raise RateLimitedError(
                self.message
                or f"Rate limit exceeded. Please try again in {result.retry_after} seconds.",
                retry_after=result.retry_after,
            )

        reset_wall = time.time() + (result.reset_at - limiter.now())
        response.headers["X-RateLimit-Limit"] = str(result.limit)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)
        response.headers["X-RateLimit-Reset"] = datetime.fromtimestamp(
            reset_wall, tz=timezone.utc
        ).isoformat()

        logger.info(f"[Rate Limit] IP {ip}: {result.count}/{result.limit} requests")
        return result
