"""Redis-based state manager shared by the shop services."""

from __future__ import annotations

import json
from typing import Any, AsyncIterator, Callable

import redis.asyncio as redis

from bingsu.config import get_settings
from bingsu.utils.logging import get_logger

logger = get_logger(__name__)


class StateManager:
    """Centralized state management using Redis.

    All keys passed to this class are relative; they are namespaced with the
    configured prefix before reaching Redis. Lua scripts receive the
    namespaced keys through ``eval``.
    """

    def __init__(self, client: redis.Redis | None = None) -> None:
        settings = get_settings()
        self.redis_client: redis.Redis | None = client
        self.redis_url = settings.redis_url
        self.prefix = settings.redis_key_prefix

    def key(self, *parts: str) -> str:
        """Build a namespaced key."""
        return ":".join([self.prefix, *parts])

    def strip(self, full_key: str) -> str:
        """Remove the namespace from a key returned by Redis."""
        return full_key[len(self.prefix) + 1 :]

    async def connect(self) -> None:
        """Establish Redis connection."""
        if self.redis_client is None:
            self.redis_client = await redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            logger.info("redis_connected", url=self.redis_url)

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None
            logger.info("redis_disconnected")

    async def client(self) -> redis.Redis:
        """Return the live client, connecting lazily."""
        if not self.redis_client:
            await self.connect()
        return self.redis_client

    async def ping(self) -> bool:
        client = await self.client()
        return bool(await client.ping())

    async def set(
        self,
        key: str,
        value: Any,
        ttl: int | None = None,
        only_if_absent: bool = False,
    ) -> bool:
        """Set a value with optional TTL; returns False if NX blocked the write."""
        client = await self.client()

        # Serialize complex objects to JSON
        if isinstance(value, (dict, list)):
            value = json.dumps(value)

        written = await client.set(self.key(key), value, ex=ttl, nx=only_if_absent)

        logger.debug("state_set", key=key, ttl=ttl, written=bool(written))
        return bool(written)

    async def get(self, key: str) -> Any:
        """Get a value, decoding JSON when possible."""
        client = await self.client()

        value = await client.get(self.key(key))

        if value:
            try:
                return json.loads(value)
            except (json.JSONDecodeError, TypeError):
                return value

        return None

    async def get_many(self, keys: list[str]) -> list[Any]:
        """Get several JSON values in one round trip."""
        if not keys:
            return []
        client = await self.client()

        values = await client.mget([self.key(k) for k in keys])

        result = []
        for value in values:
            if value is None:
                result.append(None)
                continue
            try:
                result.append(json.loads(value))
            except (json.JSONDecodeError, TypeError):
                result.append(value)
        return result

    async def compare_and_set(
        self,
        key: str,
        mutate: Callable[[Any], Any],
    ) -> Any:
        """Apply ``mutate`` to a JSON value under WATCH/MULTI.

        Returns the new value, or None if the key is absent. A concurrent
        write between read and commit raises ``redis.exceptions.WatchError``;
        the caller decides what that means, nothing is retried here.
        """
        client = await self.client()
        full_key = self.key(key)

        async with client.pipeline(transaction=True) as pipe:
            await pipe.watch(full_key)
            raw = await pipe.get(full_key)
            if raw is None:
                await pipe.unwatch()
                return None

            new_value = mutate(json.loads(raw))

            pipe.multi()
            pipe.set(full_key, json.dumps(new_value))
            await pipe.execute()

        return new_value

    async def delete(self, *keys: str) -> int:
        """Delete keys."""
        client = await self.client()

        removed = await client.delete(*[self.key(k) for k in keys])
        logger.debug("state_deleted", keys=list(keys), removed=removed)
        return removed

    async def hset(self, key: str, mapping: dict[str, Any]) -> None:
        """Set several hash fields."""
        client = await self.client()

        await client.hset(self.key(key), mapping=mapping)

    async def hsetnx(self, key: str, field: str, value: Any) -> bool:
        """Set a hash field only if it is absent."""
        client = await self.client()

        return bool(await client.hsetnx(self.key(key), field, value))

    async def hdel(self, key: str, *fields: str) -> int:
        client = await self.client()

        return await client.hdel(self.key(key), *fields)

    async def hget(self, key: str, field: str) -> str | None:
        """Get a hash field."""
        client = await self.client()

        return await client.hget(self.key(key), field)

    async def hgetall(self, key: str) -> dict[str, str]:
        """Get all hash fields."""
        client = await self.client()

        return await client.hgetall(self.key(key))

    async def hgetall_many(self, keys: list[str]) -> list[dict[str, str]]:
        """Fetch several hashes in one pipelined round trip."""
        if not keys:
            return []
        client = await self.client()

        async with client.pipeline(transaction=False) as pipe:
            for k in keys:
                pipe.hgetall(self.key(k))
            return await pipe.execute()

    async def sadd(self, key: str, *members: str) -> int:
        """Add set members; returns how many were new."""
        client = await self.client()

        return await client.sadd(self.key(key), *members)

    async def srem(self, key: str, *members: str) -> None:
        client = await self.client()

        await client.srem(self.key(key), *members)

    async def smembers(self, key: str) -> set[str]:
        client = await self.client()

        return await client.smembers(self.key(key))

    async def zadd(
        self,
        key: str,
        mapping: dict[str, float],
    ) -> None:
        """Add members to a sorted set."""
        client = await self.client()

        await client.zadd(self.key(key), mapping)

    async def zrange(
        self,
        key: str,
        start: int = 0,
        end: int = -1,
        desc: bool = False,
    ) -> list[str]:
        """Get members from a sorted set."""
        client = await self.client()

        return await client.zrange(self.key(key), start, end, desc=desc)

    async def lrange(self, key: str, start: int = 0, end: int = -1) -> list[str]:
        client = await self.client()

        return await client.lrange(self.key(key), start, end)

    async def eval(self, script: str, keys: list[str], args: list[Any]) -> Any:
        """Run a Lua script atomically against namespaced keys."""
        client = await self.client()

        return await client.eval(script, len(keys), *[self.key(k) for k in keys], *args)

    async def scan_keys(self, pattern: str = "*") -> AsyncIterator[str]:
        """Iterate over relative keys matching a pattern."""
        client = await self.client()

        async for full_key in client.scan_iter(match=self.key(pattern)):
            yield self.strip(full_key)


# Global state manager instance
_state_manager: StateManager | None = None


async def get_state_manager() -> StateManager:
    """Get the global state manager instance."""
    global _state_manager
    if _state_manager is None:
        _state_manager = StateManager()
        await _state_manager.connect()
    return _state_manager


async def close_state_manager() -> None:
    """Tear down the global state manager."""
    global _state_manager
    if _state_manager is not None:
        await _state_manager.disconnect()
        _state_manager = None
