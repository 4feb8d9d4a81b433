from __future__ import annotations

import logging
import pickle
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Mapping, Optional, Protocol, Union

import redis
from redis import asyncio as aioredis

if TYPE_CHECKING:
    from .settings import CacheSettings

logger = logging.getLogger(__name__)


class LookupStatus(StrEnum):
    HIT = "hit"
    MISS = "miss"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class Lookup:
    """Outcome of a backend read.

    A hit carrying ``None`` is treated as a miss by the engine.
    """

    status: LookupStatus
    value: Any = None

    @classmethod
    def hit(cls, value: Any) -> "Lookup":
        return cls(LookupStatus.HIT, value)

    @classmethod
    def miss(cls) -> "Lookup":
        return cls(LookupStatus.MISS)

    @classmethod
    def unavailable(cls) -> "Lookup":
        return cls(LookupStatus.UNAVAILABLE)

    @property
    def found(self) -> bool:
        return self.status is LookupStatus.HIT and self.value is not None


class CacheBackend(Protocol):
    """What the engine needs from a cache store.

    ``config`` is the value given to ``CacheDecorator(config=...)``, passed
    through untouched. ``options`` holds the extra keyword arguments of
    ``@cache`` (for example ``ttl``). ``put`` and ``delete`` report failure by
    raising or by returning ``False``; any other result, ``None`` included,
    counts as success.
    """

    def get(self, config: Any, key: str) -> Lookup:
        ...

    def put(self, config: Any, key: str, value: Any, options: Mapping[str, Any]) -> bool:
        ...

    def delete(self, config: Any, key: str) -> bool:
        ...


class AsyncCacheBackend(Protocol):
    async def get(self, config: Any, key: str) -> Lookup:
        ...

    async def put(self, config: Any, key: str, value: Any, options: Mapping[str, Any]) -> bool:
        ...

    async def delete(self, config: Any, key: str) -> bool:
        ...


AnyBackend = Union[CacheBackend, AsyncCacheBackend]


class NullBackend:
    """Never stores anything; every read is a miss."""

    def get(self, config: Any, key: str) -> Lookup:
        return Lookup.miss()

    def put(self, config: Any, key: str, value: Any, options: Mapping[str, Any]) -> bool:
        return True

    def delete(self, config: Any, key: str) -> bool:
        return True


class InMemoryBackend:
    """Simple in-memory cache for tests/dev only."""

    def __init__(self, namespace: str = ""):
        self._store: dict[str, Any] = {}
        self._ns = (namespace + ":") if namespace else ""

    def _k(self, key: str) -> str:
        return self._ns + key

    def get(self, config: Any, key: str) -> Lookup:
        k = self._k(key)
        if k not in self._store:
            return Lookup.miss()
        return Lookup.hit(self._store[k])

    def put(self, config: Any, key: str, value: Any, options: Mapping[str, Any]) -> bool:  # ttl ignored
        self._store[self._k(key)] = value
        return True

    def delete(self, config: Any, key: str) -> bool:
        self._store.pop(self._k(key), None)
        return True

    def clear(self) -> None:
        self._store.clear()

    def __contains__(self, key: str) -> bool:
        return self._k(key) in self._store

    def __len__(self) -> int:
        return len(self._store)


class RedisBackend:
    """Redis-backed cache storing pickled values.

    Results come back with their Python types intact, so a tuple stays a
    tuple. Only point it at a Redis that trusted writers use.

    A ``ttl`` option (seconds or ``timedelta``) becomes the key's expiry.
    Connection errors on read degrade to ``Lookup.unavailable()``; errors on
    write propagate to the engine.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        client: Optional[redis.Redis] = None,
        namespace: str = "",
    ):
        if client is None:
            if not url:
                raise ValueError("RedisBackend needs either url or client")
            client = redis.Redis.from_url(url, decode_responses=False)
        self._r = client
        self._ns = (namespace + ":") if namespace else ""

    def _k(self, key: str) -> str:
        return self._ns + key

    def get(self, config: Any, key: str) -> Lookup:
        try:
            raw = self._r.get(self._k(key))
        except redis.RedisError as e:
            logger.debug("Redis GET failed for %s: %s", key, e)
            return Lookup.unavailable()
        if raw is None:
            return Lookup.miss()
        return Lookup.hit(pickle.loads(raw))

    def put(self, config: Any, key: str, value: Any, options: Mapping[str, Any]) -> bool:
        return bool(self._r.set(self._k(key), pickle.dumps(value), ex=options.get("ttl")))

    def delete(self, config: Any, key: str) -> bool:
        self._r.delete(self._k(key))
        return True


class AsyncRedisBackend:
    """``RedisBackend`` over ``redis.asyncio``, for coroutine operations."""

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        client: Optional[aioredis.Redis] = None,
        namespace: str = "",
    ):
        if client is None:
            if not url:
                raise ValueError("AsyncRedisBackend needs either url or client")
            client = aioredis.from_url(url, decode_responses=False)
        self._r = client
        self._ns = (namespace + ":") if namespace else ""

    def _k(self, key: str) -> str:
        return self._ns + key

    async def get(self, config: Any, key: str) -> Lookup:
        try:
            raw = await self._r.get(self._k(key))
        except redis.RedisError as e:
            logger.debug("Redis GET failed for %s: %s", key, e)
            return Lookup.unavailable()
        if raw is None:
            return Lookup.miss()
        return Lookup.hit(pickle.loads(raw))

    async def put(self, config: Any, key: str, value: Any, options: Mapping[str, Any]) -> bool:
        return bool(await self._r.set(self._k(key), pickle.dumps(value), ex=options.get("ttl")))

    async def delete(self, config: Any, key: str) -> bool:
        await self._r.delete(self._k(key))
        return True

    async def close(self) -> None:
        await self._r.aclose()


def build_backend(settings: "CacheSettings", *, use_async: bool = False) -> AnyBackend:
    """Construct a reference backend from ``CacheSettings``."""
    kind = settings.backend
    if kind == "memory":
        return InMemoryBackend(namespace=settings.namespace)
    if kind == "null":
        return NullBackend()
    if kind == "redis":
        cls = AsyncRedisBackend if use_async else RedisBackend
        return cls(url=settings.url, namespace=settings.namespace)
    raise ValueError(f"Unknown cache backend {kind!r}")


__all__ = [
    "LookupStatus",
    "Lookup",
    "CacheBackend",
    "AsyncCacheBackend",
    "AnyBackend",
    "NullBackend",
    "InMemoryBackend",
    "RedisBackend",
    "AsyncRedisBackend",
    "build_backend",
]
