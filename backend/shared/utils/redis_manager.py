"""
Redis connection manager for the QSL tracker.
Owns the async client used by the Redis-backed status store; the status
document is kept as one JSON string per key.
"""
from __future__ import annotations

import asyncio
from typing import Optional

import redis.asyncio as aioredis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from shared.config import Settings, get_settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)

CONNECT_ATTEMPTS = 5
CONNECT_BASE_DELAY_S = 1.0


class RedisManager:
    """Manages the async Redis client and its startup/shutdown."""

    def __init__(
        self,
        settings: Settings | None = None,
        connect_attempts: int = CONNECT_ATTEMPTS,
    ) -> None:
        self._settings = settings or get_settings()
        self._connect_attempts = connect_attempts
        self._client: Optional[Redis] = None

    async def connect(self) -> None:
        """Create the client and wait until the server answers PING (exponential backoff)."""
        client = aioredis.from_url(
            self._settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_keepalive=True,
            retry_on_timeout=True,
        )
        for attempt in range(1, self._connect_attempts + 1):
            try:
                await client.ping()
                break
            except (RedisError, OSError) as exc:
                if attempt == self._connect_attempts:
                    await client.aclose()
                    raise
                delay = CONNECT_BASE_DELAY_S * (2 ** (attempt - 1))
                logger.warning(
                    "redis_connect_retry",
                    attempt=attempt,
                    max_attempts=self._connect_attempts,
                    delay_s=delay,
                    error=str(exc),
                )
                await asyncio.sleep(delay)
        self._client = client
        logger.info("redis_connected", url=self._settings.redis_url)

    async def disconnect(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("redis_disconnected")

    @property
    def client(self) -> Redis:
        if self._client is None:
            raise RuntimeError("RedisManager not connected. Call connect() first.")
        return self._client

    async def get_document(self, key: str) -> Optional[str]:
        """Return the raw JSON document stored under ``key``, or None."""
        return await self.client.get(key)

    async def set_document(self, key: str, data: str) -> None:
        """Store a JSON document without expiry."""
        await self.client.set(key, data)
