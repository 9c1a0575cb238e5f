"""
Write-through maintenance of the two post cache shapes.

``post:<id>`` holds one serialized post and ``all_posts`` holds the ordered
collection. Writers patch ``all_posts`` in place instead of reloading it; a
missing collection is rebuilt from the store before the patch is applied.
Cache backend failures are logged and never propagate to the caller, since
the relational store stays authoritative.
"""

from typing import Callable, List

from pydantic import ValidationError as SchemaValidationError

from ..core.errors import CacheError
from ..core.logging import get_logger
from ..db.repository import PostRepository
from ..schemas.post import PostRead
from .store import CacheStore

ALL_POSTS_KEY = "all_posts"

Patch = Callable[[List[PostRead]], List[PostRead]]


def post_key(post_id: int) -> str:
    return f"post:{post_id}"


def add_or_replace(posts: List[PostRead], post: PostRead) -> List[PostRead]:
    """Replace the entry sharing ``post.id`` in place, else append ``post``."""
    patched = list(posts)
    for index, existing in enumerate(patched):
        if existing.id == post.id:
            patched[index] = post
            return patched
    patched.append(post)
    return patched


def remove_by_id(posts: List[PostRead], post_id: int) -> List[PostRead]:
    return [existing for existing in posts if existing.id != post_id]


class CacheCoherence:
    def __init__(self, store: CacheStore, repository: PostRepository, ttl: int = 3600):
        self.store = store
        self.repository = repository
        self.ttl = ttl
        self.logger = get_logger("post_service.cache.coherence")

    def upsert(self, post: PostRead) -> None:
        try:
            self.store.set(post_key(post.id), self._dump(post), self.ttl)
        except CacheError as exc:
            self._log_failure("upsert", exc, post_id=post.id)
        self._patch_all_posts(lambda posts: add_or_replace(posts, post), "upsert", post.id)

    def remove(self, post_id: int) -> None:
        try:
            self.store.delete(post_key(post_id))
        except CacheError as exc:
            self._log_failure("remove", exc, post_id=post_id)
        self._patch_all_posts(lambda posts: remove_by_id(posts, post_id), "remove", post_id)

    def fetch_and_cache_all(self) -> List[PostRead]:
        posts = [PostRead.model_validate(post) for post in self.repository.find_all()]
        try:
            self._store_all(posts)
        except CacheError as exc:
            self._log_failure("fetch_and_cache_all", exc)
        self.logger.info("Reloaded post collection from store", count=len(posts))
        return posts

    def cached_post(self, post_id: int) -> PostRead | None:
        try:
            raw = self.store.get(post_key(post_id))
        except CacheError as exc:
            self._log_failure("cached_post", exc, post_id=post_id)
            return None
        if raw is None:
            self.logger.debug("Post cache miss", post_id=post_id)
            return None
        try:
            return PostRead.model_validate(raw)
        except SchemaValidationError:
            self.logger.warning("Ignoring malformed cached post", post_id=post_id)
            return None

    def all_posts(self) -> List[PostRead]:
        try:
            posts = self._load_all()
        except CacheError as exc:
            self._log_failure("all_posts", exc)
            posts = None
        if posts is None:
            return self.fetch_and_cache_all()
        return posts

    def invalidate(self, post_id: int) -> None:
        """Drop both shapes for ``post_id`` so the next read reloads them."""
        for key in (post_key(post_id), ALL_POSTS_KEY):
            try:
                self.store.delete(key)
            except CacheError as exc:
                self._log_failure("invalidate", exc, post_id=post_id, key=key)
        self.logger.warning("Invalidated post cache entries", post_id=post_id)

    def _patch_all_posts(self, patch: Patch, operation: str, post_id: int) -> None:
        try:
            with self.store.lock(ALL_POSTS_KEY):
                posts = self._load_all()
                if posts is None:
                    self.logger.info("Post collection cache miss", operation=operation, post_id=post_id)
                    posts = self.fetch_and_cache_all()
                self._store_all(patch(posts))
        except CacheError as exc:
            self._log_failure(operation, exc, post_id=post_id)

    def _load_all(self) -> List[PostRead] | None:
        raw = self.store.get(ALL_POSTS_KEY)
        if raw is None:
            return None
        try:
            return [PostRead.model_validate(item) for item in raw]
        except (SchemaValidationError, TypeError):
            self.logger.warning("Ignoring malformed cached post collection")
            return None

    def _store_all(self, posts: List[PostRead]) -> None:
        self.store.set(ALL_POSTS_KEY, [self._dump(post) for post in posts], self.ttl)

    @staticmethod
    def _dump(post: PostRead) -> dict:
        return post.model_dump(mode="json")

    def _log_failure(self, operation: str, exc: CacheError, **context) -> None:
        self.logger.error(
            "Cache operation failed",
            operation=operation,
            error=exc.message,
            details=exc.details,
            **context,
        )
