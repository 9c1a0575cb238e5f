"""
Transactional write path for posts.

Each mutation runs in one database transaction: the image asset and the row
change together, the cache is patched only after the row change has been
flushed, and any failure rolls the row back and discards files uploaded
during the operation.
"""

from contextlib import contextmanager
from typing import Any, Iterator, List, Mapping, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..cache.coherence import CacheCoherence
from ..core.errors import AssetDeletionError, NotFoundError, StorageError, ValidationError
from ..core.logging import get_logger
from ..db import models
from ..db.repository import PostRepository
from ..schemas.post import PostCreate, PostRead, PostUpdate
from ..storage.assets import AssetStore, UploadedFile

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class PostService:
    def __init__(
        self,
        db: Session,
        cache: CacheCoherence,
        assets: AssetStore,
        image_folder: str = "images/posts",
    ):
        self.db = db
        self.repository = PostRepository(db)
        self.cache = cache
        self.assets = assets
        self.image_folder = image_folder
        self.logger = get_logger("post_service.services.posts")

    def create(self, fields: Mapping[str, Any], image: UploadedFile | None = None) -> PostRead:
        payload = self._validate(PostCreate, fields)
        with self._transaction("create") as uploaded:
            values = payload.model_dump()
            values["image"] = None
            if image is not None:
                values["image"] = self.assets.upload(image, self.image_folder)
                uploaded.append(values["image"])

            post = PostRead.model_validate(self.repository.insert(values))
            self.cache.upsert(post)
            self._commit(post.id)

        self.logger.info("Post created", post_id=post.id, image=post.image)
        return post

    def get(self, post_id: int | None = None) -> PostRead | List[PostRead]:
        try:
            if post_id is not None:
                return PostRead.model_validate(self._find_or_fail(post_id))
            return [PostRead.model_validate(post) for post in self.repository.find_all()]
        except SQLAlchemyError as exc:
            raise StorageError("Failed to read posts", details={"post_id": post_id, "error": str(exc)}) from exc

    def update(
        self,
        post_id: int,
        fields: Mapping[str, Any],
        image: UploadedFile | None = None,
    ) -> PostRead:
        with self._transaction("update", post_id) as uploaded:
            existing = self._find_or_fail(post_id)
            payload = self._validate(PostUpdate, fields)
            changes = payload.model_dump(exclude_unset=True, exclude_none=True)

            previous_image = existing.image
            if image is not None:
                changes["image"] = self.assets.upload(image, self.image_folder)
                uploaded.append(changes["image"])

            post = PostRead.model_validate(self.repository.update(existing, changes))
            self.cache.upsert(post)
            self._commit(post_id)

        if image is not None and previous_image:
            self._release(previous_image, post_id)

        self.logger.info("Post updated", post_id=post_id, fields=sorted(changes))
        return post

    def delete(self, post_id: int) -> None:
        with self._transaction("delete", post_id):
            post = self._find_or_fail(post_id)
            image = post.image
            self.repository.delete(post)

            if image and not self.assets.delete_by_reference(image):
                raise AssetDeletionError(details={"post_id": post_id, "image": image})

            self.cache.remove(post_id)
            self._commit(post_id)

        self.logger.info("Post deleted", post_id=post_id, image=image)

    def _find_or_fail(self, post_id: int) -> models.Post:
        post = self.repository.find(post_id)
        if post is None:
            raise NotFoundError(details={"post_id": post_id})
        return post

    @staticmethod
    def _validate(schema: Type[SchemaT], fields: Mapping[str, Any]) -> SchemaT:
        try:
            return schema.model_validate(dict(fields))
        except SchemaValidationError as exc:
            errors = [
                {"loc": [str(part) for part in error["loc"]], "msg": error["msg"], "type": error["type"]}
                for error in exc.errors()
            ]
            raise ValidationError(details={"errors": errors}) from exc

    @contextmanager
    def _transaction(self, operation: str, post_id: int | None = None) -> Iterator[List[str]]:
        uploaded: List[str] = []
        try:
            yield uploaded
        except SQLAlchemyError as exc:
            self._roll_back(operation, post_id, uploaded)
            raise StorageError(
                f"Failed to {operation} post",
                details={"post_id": post_id, "error": str(exc)},
            ) from exc
        except Exception:
            self._roll_back(operation, post_id, uploaded)
            raise

    def _commit(self, post_id: int) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            # The cache was patched against state that never became durable.
            self.cache.invalidate(post_id)
            raise

    def _roll_back(self, operation: str, post_id: int | None, uploaded: List[str]) -> None:
        self.db.rollback()
        for reference in uploaded:
            if not self.assets.delete_by_reference(reference):
                self.logger.error("Orphaned asset after rollback", reference=reference, post_id=post_id)
        self.logger.warning("Rolled back post transaction", operation=operation, post_id=post_id)

    def _release(self, reference: str, post_id: int) -> None:
        if not self.assets.delete_by_reference(reference):
            self.logger.warning("Superseded asset was not removed", reference=reference, post_id=post_id)
