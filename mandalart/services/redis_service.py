"""Redis service backing persisted wizard sessions."""

import logging
import os
import time
from typing import Any, Callable

import redis.asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER = 30.0  # seconds between reconnect attempts while Redis is down


class RedisService:
    """
    Async Redis wrapper storing raw text values.

    When Redis cannot be reached every call degrades to "nothing stored"
    (None/False) and callers keep their in-memory copy. A failed connection
    is not retried until `retry_after` seconds have passed.
    """

    def __init__(
        self,
        redis_url: str | None = None,
        connect_timeout: float = 2.0,
        retry_after: float = DEFAULT_RETRY_AFTER,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._redis_url = redis_url or os.environ.get("REDIS_URL", "redis://localhost:6379/0")
        self._connect_timeout = connect_timeout
        self._retry_after = retry_after
        self._clock = clock
        self._client: redis.Redis | None = None
        self._retry_at = 0.0

    @staticmethod
    def _tls_kwargs(redis_url: str) -> dict[str, Any]:
        """Build TLS keyword arguments when using rediss:// URLs."""
        if not redis_url.startswith("rediss://"):
            return {}

        kwargs: dict[str, Any] = {"ssl_cert_reqs": "required", "ssl_check_hostname": True}
        cert_path = os.environ.get("REDIS_TLS_CERT_PATH")
        if cert_path:
            kwargs["ssl_ca_certs"] = cert_path
        return kwargs

    async def _ensure_async_client(self) -> redis.Redis | None:
        """Get or create the client; None while Redis is unreachable or cooling down."""
        if self._client is not None:
            return self._client
        if self._clock() < self._retry_at:
            return None
        try:
            client = redis.from_url(  # type: ignore[no-untyped-call]
                self._redis_url,
                decode_responses=True,
                socket_connect_timeout=self._connect_timeout,
                **self._tls_kwargs(self._redis_url),
            )
            await client.ping()
        except RedisError as exc:
            self._mark_down(f"Redis unavailable at {self._redis_url}: {exc}")
            return None
        self._client = client
        return client

    def _mark_down(self, reason: str) -> None:
        logger.warning("%s; retrying in %.0fs", reason, self._retry_after)
        self._client = None
        self._retry_at = self._clock() + self._retry_after

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def is_available(self) -> bool:
        return await self._ensure_async_client() is not None

    async def get(self, key: str) -> str | None:
        """Get the text stored under key."""
        client = await self._ensure_async_client()
        if client is None:
            return None
        try:
            result = await client.get(key)
        except RedisError as exc:
            self._mark_down(f"Redis GET {key} failed: {exc}")
            return None
        return str(result) if result is not None else None

    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        """Store text under key with optional TTL (seconds)."""
        client = await self._ensure_async_client()
        if client is None:
            return False
        try:
            if ttl:
                return bool(await client.setex(key, ttl, value))
            return bool(await client.set(key, value))
        except RedisError as exc:
            self._mark_down(f"Redis SET {key} failed: {exc}")
            return False

    async def delete(self, key: str) -> bool | None:
        """
        Delete key.

        Returns:
            True if a key was removed, False if there was none, None when
            Redis could not be reached and nothing was deleted
        """
        client = await self._ensure_async_client()
        if client is None:
            return None
        try:
            return bool(await client.delete(key))
        except RedisError as exc:
            self._mark_down(f"Redis DELETE {key} failed: {exc}")
            return None

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


# Singleton instance
_redis_service: RedisService | None = None


def get_redis_service() -> RedisService:
    """Get Redis service singleton."""
    global _redis_service
    if _redis_service is None:
        _redis_service = RedisService()
    return _redis_service
