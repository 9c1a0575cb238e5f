"""
Key-value cache backends used by the coherence layer.

Values handed to a store must be JSON-serializable; both backends keep the
encoded form so a read never aliases a value held by a caller.
"""

import json
import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Protocol

import redis
from cachetools import TLRUCache

from ..core.errors import CacheError
from ..core.logging import get_logger


class CacheStore(Protocol):
    def get(self, key: str) -> Any | None:
        ...

    def set(self, key: str, value: Any, ttl: int) -> None:
        ...

    def delete(self, key: str) -> None:
        ...

    def lock(self, name: str) -> Any:
        """Return a context manager serializing writers of ``name``."""
        ...


class RedisCacheStore:
    """Redis backed store; entries expire through ``SETEX``."""

    LOCK_PREFIX = "lock:"

    def __init__(self, client: redis.Redis, lock_timeout: int = 10):
        self.client = client
        self.lock_timeout = lock_timeout
        self.logger = get_logger("post_service.cache.redis")

    @classmethod
    def from_url(cls, redis_url: str, lock_timeout: int = 10) -> "RedisCacheStore":
        client = redis.Redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            health_check_interval=30,
        )
        return cls(client, lock_timeout=lock_timeout)

    def get(self, key: str) -> Any | None:
        try:
            raw = self.client.get(key)
        except redis.RedisError as exc:
            raise CacheError(details={"key": key, "error": str(exc)}) from exc
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            self.logger.warning("Discarding undecodable cache entry", key=key)
            return None

    def set(self, key: str, value: Any, ttl: int) -> None:
        try:
            self.client.setex(key, ttl, json.dumps(value))
        except redis.RedisError as exc:
            raise CacheError(details={"key": key, "error": str(exc)}) from exc

    def delete(self, key: str) -> None:
        try:
            self.client.delete(key)
        except redis.RedisError as exc:
            raise CacheError(details={"key": key, "error": str(exc)}) from exc

    @contextmanager
    def lock(self, name: str) -> Iterator[None]:
        lock = self.client.lock(
            f"{self.LOCK_PREFIX}{name}",
            timeout=self.lock_timeout,
            blocking_timeout=self.lock_timeout,
        )
        try:
            acquired = lock.acquire()
        except redis.RedisError as exc:
            raise CacheError(details={"lock": name, "error": str(exc)}) from exc
        if not acquired:
            raise CacheError("Timed out waiting for cache lock", details={"lock": name})
        try:
            yield
        finally:
            try:
                lock.release()
            except redis.exceptions.LockError:
                # Lock expired while held; the next writer already owns it.
                self.logger.warning("Cache lock expired before release", lock=name)

    def health_check(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False


class MemoryCacheStore:
    """In-process store with per-entry expiry, for single-process deployments."""

    def __init__(self, maxsize: int = 1024, timer: Callable[[], float] = time.monotonic):
        self._cache = TLRUCache(maxsize=maxsize, ttu=self._expires_at, timer=timer)
        self._guard = threading.RLock()
        self._locks: Dict[str, threading.Lock] = {}

    @staticmethod
    def _expires_at(key: str, value: tuple, now: float) -> float:
        return now + value[1]

    def get(self, key: str) -> Any | None:
        with self._guard:
            entry = self._cache.get(key)
        if entry is None:
            return None
        return json.loads(entry[0])

    def set(self, key: str, value: Any, ttl: int) -> None:
        with self._guard:
            self._cache[key] = (json.dumps(value), ttl)

    def delete(self, key: str) -> None:
        with self._guard:
            self._cache.pop(key, None)

    @contextmanager
    def lock(self, name: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(name, threading.Lock())
        with lock:
            yield

    def health_check(self) -> bool:
        return True
