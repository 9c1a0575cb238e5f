from typing import Any, Dict, List

from sqlalchemy.orm import Session

from . import models


class PostRepository:
    """Post persistence inside the caller's session and transaction.

    Every mutation flushes so constraint and connectivity errors surface
    before the caller decides to commit.
    """

    def __init__(self, db: Session):
        self.db = db

    def insert(self, fields: Dict[str, Any]) -> models.Post:
        post = models.Post(**fields)
        self.db.add(post)
        self.db.flush()
        self.db.refresh(post)
        return post

    def find(self, post_id: int) -> models.Post | None:
        return self.db.get(models.Post, post_id)

    def find_all(self) -> List[models.Post]:
        return self.db.query(models.Post).order_by(models.Post.id.asc()).all()

    def update(self, post: models.Post, fields: Dict[str, Any]) -> models.Post:
        for field, value in fields.items():
            setattr(post, field, value)
        self.db.add(post)
        self.db.flush()
        self.db.refresh(post)
        return post

    def delete(self, post: models.Post) -> None:
        self.db.delete(post)
        self.db.flush()
