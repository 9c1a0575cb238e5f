"""
Unit tests for the cache backends.
"""

import json
from unittest.mock import MagicMock

import pytest
import redis

from post_service.cache.store import MemoryCacheStore, RedisCacheStore
from post_service.core.errors import CacheError


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestMemoryCacheStore:
    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def store(self, clock):
        return MemoryCacheStore(timer=clock)

    def test_set_get_delete(self, store):
        store.set("post:1", {"id": 1}, 30)
        assert store.get("post:1") == {"id": 1}

        store.delete("post:1")
        assert store.get("post:1") is None

    def test_delete_missing_key(self, store):
        store.delete("post:404")

    def test_entries_expire_after_ttl(self, store, clock):
        store.set("all_posts", [{"id": 1}], 30)

        clock.now += 29
        assert store.get("all_posts") == [{"id": 1}]

        clock.now += 2
        assert store.get("all_posts") is None

    def test_returned_values_are_copies(self, store):
        store.set("all_posts", [{"id": 1}], 30)

        store.get("all_posts").append({"id": 2})

        assert store.get("all_posts") == [{"id": 1}]

    def test_lock_is_reusable(self, store):
        with store.lock("all_posts"):
            pass
        with store.lock("all_posts"):
            pass


class TestRedisCacheStore:
    @pytest.fixture
    def client(self):
        return MagicMock()

    @pytest.fixture
    def store(self, client):
        return RedisCacheStore(client, lock_timeout=5)

    def test_set_uses_setex_with_json(self, store, client):
        store.set("post:1", {"id": 1, "title": "T"}, 120)

        client.setex.assert_called_once_with("post:1", 120, json.dumps({"id": 1, "title": "T"}))

    def test_get_decodes_json(self, store, client):
        client.get.return_value = '[{"id": 1}]'

        assert store.get("all_posts") == [{"id": 1}]

    def test_get_miss(self, store, client):
        client.get.return_value = None

        assert store.get("all_posts") is None

    def test_get_undecodable_entry_is_miss(self, store, client):
        client.get.return_value = "not json"

        assert store.get("all_posts") is None

    def test_delete(self, store, client):
        store.delete("post:1")

        client.delete.assert_called_once_with("post:1")

    @pytest.mark.parametrize("method, args", [("get", ("k",)), ("set", ("k", 1, 10)), ("delete", ("k",))])
    def test_redis_errors_become_cache_errors(self, store, client, method, args):
        getattr(client, {"set": "setex"}.get(method, method)).side_effect = redis.ConnectionError("down")

        with pytest.raises(CacheError):
            getattr(store, method)(*args)

    def test_lock_acquires_and_releases(self, store, client):
        lock = client.lock.return_value
        lock.acquire.return_value = True

        with store.lock("all_posts"):
            lock.release.assert_not_called()

        client.lock.assert_called_once_with("lock:all_posts", timeout=5, blocking_timeout=5)
        lock.release.assert_called_once()

    def test_lock_timeout_raises_cache_error(self, store, client):
        client.lock.return_value.acquire.return_value = False

        with pytest.raises(CacheError):
            with store.lock("all_posts"):
                pass

    def test_expired_lock_release_is_tolerated(self, store, client):
        lock = client.lock.return_value
        lock.acquire.return_value = True
        lock.release.side_effect = redis.exceptions.LockError("expired")

        with store.lock("all_posts"):
            pass

    def test_health_check(self, store, client):
        client.ping.return_value = True
        assert store.health_check() is True

        client.ping.side_effect = redis.ConnectionError("down")
        assert store.health_check() is False
