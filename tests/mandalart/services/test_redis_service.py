"""
Tests for RedisService.

Covers:
- Basic operations (get, set, delete)
- TTL handling
- Degraded mode when Redis is unreachable or fails mid-call
- Reconnect cooldown after a failed connection
- TLS keyword arguments for rediss:// URLs
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from mandalart.services.redis_service import RedisService, get_redis_service

# =============================================================================
# Mock Redis Client
# =============================================================================


class MockRedisClient:
    """Mock async Redis client for testing."""

    def __init__(self):
        self.data = {}
        self.ttls = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        self.data[key] = value
        return True

    async def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, key):
        if key in self.data:
            del self.data[key]
            return 1
        return 0

    async def ping(self):
        return True

    async def aclose(self):
        return None


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def unreachable_client():
    client = MagicMock()
    client.ping = AsyncMock(side_effect=RedisConnectionError("refused"))
    return client


@pytest.fixture
def mock_redis_client():
    return MockRedisClient()


@pytest.fixture
def redis_service(mock_redis_client):
    service = RedisService("redis://localhost:6379/0")
    service._client = mock_redis_client
    return service


# =============================================================================
# Basic Operations Tests
# =============================================================================


class TestBasicOperations:

    async def test_set_and_get(self, redis_service):
        assert await redis_service.set("key", "value") is True
        assert await redis_service.get("key") == "value"

    async def test_get_missing_returns_none(self, redis_service):
        assert await redis_service.get("missing") is None

    async def test_set_with_ttl_uses_setex(self, redis_service, mock_redis_client):
        await redis_service.set("key", "value", ttl=60)
        assert mock_redis_client.ttls["key"] == 60

    async def test_delete(self, redis_service):
        await redis_service.set("key", "value")
        assert await redis_service.delete("key") is True
        assert await redis_service.delete("key") is False

    async def test_available(self, redis_service):
        assert await redis_service.is_available() is True
        assert redis_service.connected

    async def test_aclose_drops_client(self, redis_service):
        await redis_service.aclose()
        assert not redis_service.connected


# =============================================================================
# Degraded Mode Tests
# =============================================================================


class TestDegradedMode:

    async def test_unreachable_redis_degrades_to_nothing_stored(self):
        with patch("mandalart.services.redis_service.redis.from_url", return_value=unreachable_client()):
            service = RedisService("redis://localhost:6379/0")
            assert await service.is_available() is False
            assert await service.get("key") is None
            assert await service.set("key", "value") is False
            assert await service.delete("key") is None

    async def test_failure_mid_call_drops_client(self, redis_service):
        broken = MagicMock()
        broken.get = AsyncMock(side_effect=RedisTimeoutError("slow"))
        redis_service._client = broken
        assert await redis_service.get("key") is None
        assert not redis_service.connected


class TestReconnectCooldown:

    async def test_failed_connection_is_not_retried_on_every_call(self):
        clock = FakeClock()
        with patch(
            "mandalart.services.redis_service.redis.from_url", return_value=unreachable_client(),
        ) as from_url:
            service = RedisService("redis://localhost:6379/0", retry_after=30.0, clock=clock)
            for _ in range(10):
                await service.set("key", "value")
                await service.get("key")
            assert from_url.call_count == 1
            assert from_url.call_args.kwargs["socket_connect_timeout"] == 2.0

    async def test_reconnects_after_cooldown(self, mock_redis_client):
        clock = FakeClock()
        with patch(
            "mandalart.services.redis_service.redis.from_url",
            side_effect=[unreachable_client(), mock_redis_client],
        ) as from_url:
            service = RedisService("redis://localhost:6379/0", retry_after=30.0, clock=clock)
            assert await service.set("key", "value") is False

            clock.now += 29.0
            assert await service.set("key", "value") is False
            assert from_url.call_count == 1

            clock.now += 2.0
            assert await service.set("key", "value") is True
            assert from_url.call_count == 2

    async def test_failure_mid_call_starts_cooldown(self, redis_service):
        broken = MagicMock()
        broken.set = AsyncMock(side_effect=RedisConnectionError("reset"))
        redis_service._client = broken
        with patch("mandalart.services.redis_service.redis.from_url") as from_url:
            assert await redis_service.set("key", "value") is False
            assert await redis_service.set("key", "value") is False
            from_url.assert_not_called()


class TestTLS:

    def test_plain_url_has_no_tls_kwargs(self):
        assert RedisService._tls_kwargs("redis://localhost:6379/0") == {}

    def test_rediss_url_requires_verified_certificates(self, monkeypatch):
        monkeypatch.setenv("REDIS_TLS_CERT_PATH", "/etc/ssl/redis-ca.pem")
        kwargs = RedisService._tls_kwargs("rediss://example.com:6380/0")
        assert kwargs == {
            "ssl_cert_reqs": "required",
            "ssl_check_hostname": True,
            "ssl_ca_certs": "/etc/ssl/redis-ca.pem",
        }


def test_singleton():
    assert get_redis_service() is get_redis_service()
