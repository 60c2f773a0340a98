"""Redis client configuration."""

import platform
import socket
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from stencilflow.core.config import settings
from stencilflow.core.logging import logger


class RedisClient:
    """Redis client wrapper with a lazily created connection pool."""

    def __init__(self):
        """Initialize without connecting; the pool is built on first use."""
        self._client: Optional[redis.Redis] = None

    @property
    def client(self) -> redis.Redis:
        """Get or create the Redis client."""
        if self._client is None:
            self._client = self._create_client(max_connections=50)
        return self._client

    def _get_socket_keepalive_options(self) -> dict:
        """TCP keepalive settings; macOS rejects these options, so it gets none."""
        if platform.system() == "Darwin" or not hasattr(socket, "TCP_KEEPIDLE"):
            return {}
        return {
            socket.TCP_KEEPIDLE: 60,  # Start keepalive after 60s idle
            socket.TCP_KEEPINTVL: 10,
            socket.TCP_KEEPCNT: 6,
        }

    def _create_client(self, max_connections: int = 50) -> redis.Redis:
        """Create a Redis client with the given connection pool size."""
        pool = redis.ConnectionPool(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            password=settings.REDIS_PASSWORD or None,
            decode_responses=True,
            max_connections=max_connections,
            retry_on_timeout=True,
            socket_keepalive=True,
            socket_keepalive_options=self._get_socket_keepalive_options(),
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        return redis.Redis(connection_pool=pool)

    async def incr_with_expiry(self, key: str, ttl_seconds: int) -> int:
        """Increment a counter, setting its TTL when the increment created it.

        Args:
            key: The counter key
            ttl_seconds: Lifetime of the key, starting at its first increment

        Returns:
            The counter value after the increment
        """
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, ttl_seconds, nx=True)
            count, _ = await pipe.execute()
        return int(count)

    async def is_reachable(self) -> bool:
        """Ping the server. Rate limiting keeps working without it, so failures only warn."""
        try:
            await self.client.ping()
        except RedisError as e:
            logger.warning(f"Redis is unreachable, the rate limiter will fail open: {e}")
            return False
        logger.info(f"Connected to Redis at {settings.REDIS_HOST}")
        return True

    async def close(self) -> None:
        """Close the Redis connection gracefully."""
        if self._client:
            await self._client.aclose()
            self._client = None


redis_client = RedisClient()
