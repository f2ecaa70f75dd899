"""Cache layer: a TTL-aware accelerator in front of the durable store.

``RecordCache`` is the contract; ``RedisRecordCache`` stores a JSON snapshot of
each record under ``<prefix>:<short_path>``.

TTL Rule
========
::
    expires_at is None   -> no TTL (kept until evicted or deleted)
    expires_at is set    -> max(1, floor((expires_at - now) / 1000)) seconds

Key Behaviours
===============
- A cache entry never outlives its durable record.
- ``get`` returning None means "unknown", never "deleted".
- Entries that fail to deserialize are treated as absent.
- Redis failures surface as ``StoreUnavailableError``; deciding whether a
  failure matters is the caller's job.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from shortlinks.exceptions import StoreUnavailableError
from shortlinks.schemas import LinkRecord

__all__ = ["RecordCache", "RedisRecordCache", "cache_ttl_seconds"]

logger = logging.getLogger("shortlinks")


def cache_ttl_seconds(record: LinkRecord, now: int) -> int | None:
    """Seconds a cache entry for ``record`` may live when written at ``now``."""
    if record.expires_at is None:
        return None
    return max(1, (record.expires_at - now) // 1000)


class RecordCache(ABC):
    """Interface for record caches."""

    @abstractmethod
    async def put(self, record: LinkRecord, now: int) -> None:
        """Store a snapshot of ``record`` with a TTL derived from its expiry."""

    @abstractmethod
    async def get(self, short_path: str) -> LinkRecord | None:
        """Return the last written snapshot, or None if missing or evicted."""

    @abstractmethod
    async def delete(self, short_path: str) -> None:
        """Remove a snapshot. No error if it is absent."""

    @abstractmethod
    async def clear(self) -> int:
        """Remove every snapshot owned by this cache."""

    @abstractmethod
    async def ping(self) -> None:
        """Raise StoreUnavailableError if the cache cannot be reached."""


@contextmanager
def _cache_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except RedisError as exc:
        raise StoreUnavailableError(f"Cache {operation} failed") from exc


class RedisRecordCache(RecordCache):
    """RecordCache backed by Redis string keys."""

    def __init__(self, client: redis.Redis, key_prefix: str = "short"):
        self._client = client
        self._key_prefix = key_prefix

    def key_for(self, short_path: str) -> str:
        return f"{self._key_prefix}:{short_path}"

    async def put(self, record: LinkRecord, now: int) -> None:
        payload = record.model_dump_json(by_alias=True)
        with _cache_errors("put"):
            await self._client.set(self.key_for(record.short_path), payload, ex=cache_ttl_seconds(record, now))

    async def get(self, short_path: str) -> LinkRecord | None:
        with _cache_errors("get"):
            cached = await self._client.get(self.key_for(short_path))
        if cached is None:
            return None
        try:
            return LinkRecord.model_validate_json(cached)
        except ValidationError as exc:
            logger.error(f"Cache deserialization error for {short_path}: {exc}")
            return None

    async def delete(self, short_path: str) -> None:
        with _cache_errors("delete"):
            await self._client.delete(self.key_for(short_path))

    async def clear(self) -> int:
        removed = 0
        with _cache_errors("clear"):
            async for key in self._client.scan_iter(match=f"{self._key_prefix}:*", count=500):
                removed += await self._client.delete(key)
        return removed

    async def ping(self) -> None:
        with _cache_errors("ping"):
            await self._client.ping()
