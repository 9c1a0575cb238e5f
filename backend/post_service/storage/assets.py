import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from ..core.errors import StorageError
from ..core.logging import get_logger


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    content: bytes
    content_type: str | None = None


class AssetStore(Protocol):
    def upload(self, upload: UploadedFile, folder: str, previous: str | None = None) -> str:
        """Store ``upload`` under ``folder`` and return its reference.

        A ``previous`` reference is removed once the new asset is written.
        Transactional callers leave it unset and release the old asset
        themselves after their commit.
        """
        ...

    def delete_by_reference(self, reference: str) -> bool:
        ...


class LocalAssetStore:
    """Stores assets below ``root``; references are paths relative to it."""

    def __init__(self, root: Path):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        self.logger = get_logger("post_service.storage.assets")

    def upload(self, upload: UploadedFile, folder: str, previous: str | None = None) -> str:
        suffix = Path(upload.filename or "").suffix or ""
        if len(suffix) > 10:
            suffix = suffix[:10]
        filename = f"{uuid.uuid4().hex}{suffix}"
        reference = f"{folder.strip('/')}/{filename}"
        destination = self._resolve(reference)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_bytes(upload.content)
        except OSError as exc:
            raise StorageError("Failed to store asset", details={"reference": reference}) from exc
        self.logger.info("Stored asset", reference=reference, size=len(upload.content))

        if previous and not self.delete_by_reference(previous):
            self.logger.warning("Superseded asset was not removed", reference=previous)
        return reference

    def delete_by_reference(self, reference: str) -> bool:
        try:
            path = self._resolve(reference)
        except ValueError:
            self.logger.warning("Refusing to delete asset outside media root", reference=reference)
            return False
        if not path.is_file():
            return False
        try:
            path.unlink()
        except OSError as exc:
            self.logger.error("Failed to delete asset", reference=reference, error=str(exc))
            return False
        self.logger.info("Deleted asset", reference=reference)
        return True

    def _resolve(self, reference: str) -> Path:
        path = (self.root / reference.lstrip("/")).resolve()
        if self.root not in path.parents:
            raise ValueError(f"Asset reference escapes media root: {reference}")
        return path
