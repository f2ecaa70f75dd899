"""Redis client construction for the cache layer.

The client is built by the service container at startup and handed to the
cache adapter; there is no module-level client.

How to Use
===========
**Step 1: Build on startup**::
    client = build_redis(settings.REDIS_URL)
    cache = RedisRecordCache(client, key_prefix=settings.CACHE_KEY_PREFIX)

**Step 2: Cleanup on shutdown**::
    await close_redis(client)

Key Behaviours
===============
- Connections are opened lazily by redis-py on first command.
- UTF-8 encoding with decode_responses for string operations.

Functions:
    build_redis():  Creates a Redis client for a URL.
    close_redis():  Closes the client's connection pool.
"""

import redis.asyncio as redis

__all__ = ["build_redis", "close_redis"]


def build_redis(redis_url: str) -> redis.Redis:
    return redis.from_url(
        redis_url,
        encoding="utf-8",
        decode_responses=True,
    )


async def close_redis(client: redis.Redis) -> None:
    await client.aclose()
