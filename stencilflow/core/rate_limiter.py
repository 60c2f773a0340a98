"""Fixed-window rate limiting for the API.

Each identifier gets ``limit`` requests per window. Counters live in Redis when it is
configured, so every API process shares them; otherwise each process keeps its own
counters in memory.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Request
from redis.exceptions import RedisError

from stencilflow.core.config import settings
from stencilflow.core.logging import logger
from stencilflow.core.redis_client import RedisClient, redis_client


class CounterStoreUnavailable(Exception):
    """Raised by a counter store that cannot be reached."""


class CounterStore(ABC):
    """Keyed counters that expire."""

    @abstractmethod
    async def increment(self, key: str, ttl_seconds: int) -> int:
        """Increment ``key`` and return its new value. A new key lives ``ttl_seconds``."""


class RedisCounterStore(CounterStore):
    """Counters shared through Redis."""

    def __init__(self, client: RedisClient = redis_client):
        """Initialize with the Redis client wrapper to use."""
        self.client = client

    async def increment(self, key: str, ttl_seconds: int) -> int:
        """Increment the counter with INCR and set its TTL on creation."""
        try:
            return await self.client.incr_with_expiry(key, ttl_seconds)
        except RedisError as e:
            raise CounterStoreUnavailable(str(e)) from e


class InMemoryCounterStore(CounterStore):
    """Counters held in this process only."""

    def __init__(self, clock: Callable[[], float] = time.time):
        """Initialize an empty store."""
        self._clock = clock
        self._counters: dict[str, tuple[int, float]] = {}

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, (_, expires_at) in self._counters.items() if expires_at <= now]
        for key in expired:
            del self._counters[key]

    async def increment(self, key: str, ttl_seconds: int) -> int:
        """Increment the counter, starting a fresh one when the old one expired."""
        now = self._clock()
        self._purge_expired(now)
        count, expires_at = self._counters.get(key, (0, now + ttl_seconds))
        self._counters[key] = (count + 1, expires_at)
        return count + 1


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of one rate limit check."""

    success: bool
    limit: int
    remaining: int
    reset: int  # Unix timestamp (seconds) at which the window ends


class RateLimiter:
    """Fixed-window limiter over a counter store."""

    def __init__(
        self,
        store: CounterStore,
        limit: int,
        window_seconds: int,
        prefix: str = "api",
        enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the limiter.

        Args:
            store: Where the counters are kept.
            limit: Requests allowed per identifier and window.
            window_seconds: Length of a window.
            prefix: Namespace of the counter keys, one per limiter.
            enabled: A disabled limiter allows every request.
            clock: Source of the current unix time.
        """
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds
        self.prefix = prefix
        self.enabled = enabled
        self._clock = clock

    async def check(self, identifier: str) -> RateLimitResult:
        """Count a request against ``identifier`` and report whether it may proceed.

        An unreachable store lets the request through.
        """
        window = int(self._clock() // self.window_seconds)
        reset = (window + 1) * self.window_seconds

        if not self.enabled:
            return RateLimitResult(True, self.limit, self.limit, reset)

        key = f"ratelimit:{self.prefix}:{identifier}:{window}"
        try:
            count = await self.store.increment(key, self.window_seconds)
        except CounterStoreUnavailable as e:
            logger.warning(f"Rate limit store unavailable, allowing request: {e}")
            return RateLimitResult(True, self.limit, self.limit, reset)

        return RateLimitResult(
            success=count <= self.limit,
            limit=self.limit,
            remaining=max(0, self.limit - count),
            reset=reset,
        )


def get_rate_limit_identifier(request: Request, subject: Optional[str] = None) -> str:
    """Derive the key a request is counted under.

    Authenticated requests are counted per user, everything else per client address.

    Args:
        request: The incoming request.
        subject: The identity provider subject of the caller, if any.

    Returns:
        str: ``user:<subject>``, ``ip:<address>`` or ``ip:anonymous``.
    """
    if subject:
        return f"user:{subject}"

    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return f"ip:{first_hop}"

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return f"ip:{real_ip.strip()}"

    if request.client and request.client.host:
        return f"ip:{request.client.host}"

    return "ip:anonymous"


def build_api_limiter() -> RateLimiter:
    """Create the limiter guarding mutating API endpoints from settings."""
    store = RedisCounterStore() if settings.redis_enabled else InMemoryCounterStore()
    return RateLimiter(
        store=store,
        limit=settings.RATE_LIMIT_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        prefix="api",
        enabled=settings.RATE_LIMIT_ENABLED,
    )


api_limiter = build_api_limiter()
