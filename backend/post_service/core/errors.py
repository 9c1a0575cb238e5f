"""
Error taxonomy for the post service.

Store and asset errors are raised after the enclosing transaction has been
rolled back. Cache errors are raised by cache stores only and are absorbed by
the coherence layer.
"""

from typing import Any, Dict

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class PostServiceError(Exception):
    """Base exception for the post service."""

    status_code = 500

    def __init__(self, code: str, message: str, details: Dict[str, Any] | None = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(code=self.code, message=self.message, details=self.details)


class ValidationError(PostServiceError):
    status_code = 422

    def __init__(self, message: str = "Validation failed", details: Dict[str, Any] | None = None):
        super().__init__("VALIDATION_ERROR", message, details)


class NotFoundError(PostServiceError):
    status_code = 404

    def __init__(self, message: str = "Post not found", details: Dict[str, Any] | None = None):
        super().__init__("NOT_FOUND", message, details)


class StorageError(PostServiceError):
    status_code = 500

    def __init__(self, message: str = "Storage operation failed", details: Dict[str, Any] | None = None):
        super().__init__("STORAGE_ERROR", message, details)


class AssetDeletionError(PostServiceError):
    """The image asset could not be removed, so the post was kept."""

    status_code = 409

    def __init__(
        self,
        message: str = "Asset not removed, post retained",
        details: Dict[str, Any] | None = None,
    ):
        super().__init__("ASSET_DELETION_FAILED", message, details)


class CacheError(PostServiceError):
    status_code = 503

    def __init__(self, message: str = "Cache backend unavailable", details: Dict[str, Any] | None = None):
        super().__init__("CACHE_ERROR", message, details)
