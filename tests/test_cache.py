"""RedisRecordCache tests with a mocked Redis client."""

from unittest.mock import AsyncMock

import pytest
import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError

from shortlinks.cache import RedisRecordCache, cache_ttl_seconds
from shortlinks.exceptions import StoreUnavailableError
from shortlinks.schemas import LinkRecord

NOW = 1_000_000


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Mock Redis client."""
    redis_client = AsyncMock(spec=redis.Redis)
    redis_client.get = AsyncMock(return_value=None)
    redis_client.set = AsyncMock(return_value=True)
    redis_client.delete = AsyncMock(return_value=1)
    redis_client.ping = AsyncMock(return_value=True)
    return redis_client


@pytest.fixture
def redis_cache(mock_redis: AsyncMock) -> RedisRecordCache:
    return RedisRecordCache(mock_redis, key_prefix="short")


def make_record(expires_at=None) -> LinkRecord:
    return LinkRecord(short_path="te4t", original_url="https://example.com/a", created_at=NOW, expires_at=expires_at)


class TestTTL:
    def test_forever_has_no_ttl(self):
        assert cache_ttl_seconds(make_record(), NOW) is None

    def test_ttl_floors_to_seconds(self):
        assert cache_ttl_seconds(make_record(expires_at=NOW + 604_800_000), NOW) == 604_800
        assert cache_ttl_seconds(make_record(expires_at=NOW + 1_999), NOW) == 1

    def test_ttl_is_at_least_one_second(self):
        assert cache_ttl_seconds(make_record(expires_at=NOW + 10), NOW) == 1
        assert cache_ttl_seconds(make_record(expires_at=NOW - 10), NOW) == 1


class TestRedisRecordCache:
    @pytest.mark.asyncio
    async def test_put_writes_json_with_ttl(self, redis_cache, mock_redis):
        record = make_record(expires_at=NOW + 43_200_000)

        await redis_cache.put(record, NOW)

        mock_redis.set.assert_awaited_once_with(
            "short:te4t", record.model_dump_json(by_alias=True), ex=43_200
        )

    @pytest.mark.asyncio
    async def test_put_forever_without_ttl(self, redis_cache, mock_redis):
        await redis_cache.put(make_record(), NOW)
        assert mock_redis.set.await_args.kwargs["ex"] is None

    @pytest.mark.asyncio
    async def test_get_hit(self, redis_cache, mock_redis):
        record = make_record(expires_at=NOW + 1_000)
        mock_redis.get.return_value = record.model_dump_json(by_alias=True)

        assert await redis_cache.get("te4t") == record
        mock_redis.get.assert_awaited_once_with("short:te4t")

    @pytest.mark.asyncio
    async def test_get_miss(self, redis_cache):
        assert await redis_cache.get("te4t") is None

    @pytest.mark.asyncio
    async def test_get_corrupt_entry_is_a_miss(self, redis_cache, mock_redis):
        mock_redis.get.return_value = "{not json"
        assert await redis_cache.get("te4t") is None

    @pytest.mark.asyncio
    async def test_delete(self, redis_cache, mock_redis):
        await redis_cache.delete("te4t")
        mock_redis.delete.assert_awaited_once_with("short:te4t")

    @pytest.mark.asyncio
    async def test_clear_scans_prefix(self, redis_cache, mock_redis):
        async def keys(*args, **kwargs):
            for key in ("short:aaaa", "short:bbbb"):
                yield key

        mock_redis.scan_iter = keys

        assert await redis_cache.clear() == 2
        assert mock_redis.delete.await_count == 2

    @pytest.mark.asyncio
    async def test_redis_errors_become_store_unavailable(self, redis_cache, mock_redis):
        mock_redis.get.side_effect = RedisConnectionError("connection refused")
        mock_redis.ping.side_effect = RedisConnectionError("connection refused")

        with pytest.raises(StoreUnavailableError):
            await redis_cache.get("te4t")
        with pytest.raises(StoreUnavailableError):
            await redis_cache.ping()
