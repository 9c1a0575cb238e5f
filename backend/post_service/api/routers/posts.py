from typing import Any, Dict, List

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from ...api.deps import get_cache_coherence, get_post_service
from ...cache.coherence import CacheCoherence
from ...schemas.common import StatusResponse
from ...schemas.post import PostRead
from ...services.post_service import PostService
from ...storage.assets import UploadedFile

router = APIRouter(prefix="/posts", tags=["posts"])


def _form_fields(**fields: str | None) -> Dict[str, Any]:
    return {name: value for name, value in fields.items() if value is not None}


def _to_upload(image: UploadFile | None) -> UploadedFile | None:
    if image is None or not image.filename:
        return None
    return UploadedFile(
        filename=image.filename,
        content=image.file.read(),
        content_type=image.content_type,
    )


@router.post("", response_model=PostRead, status_code=status.HTTP_201_CREATED)
def create_post(
    title: str | None = Form(None),
    content: str | None = Form(None),
    image: UploadFile | None = File(None),
    service: PostService = Depends(get_post_service),
) -> PostRead:
    return service.create(_form_fields(title=title, content=content), _to_upload(image))


@router.get("", response_model=List[PostRead])
def list_posts(cache: CacheCoherence = Depends(get_cache_coherence)) -> List[PostRead]:
    return cache.all_posts()


@router.get("/{post_id}", response_model=PostRead)
def read_post(
    post_id: int,
    cache: CacheCoherence = Depends(get_cache_coherence),
    service: PostService = Depends(get_post_service),
) -> PostRead:
    cached = cache.cached_post(post_id)
    if cached is not None:
        return cached
    return service.get(post_id)


@router.patch("/{post_id}", response_model=PostRead)
@router.post("/{post_id}", response_model=PostRead)
def update_post(
    post_id: int,
    title: str | None = Form(None),
    content: str | None = Form(None),
    image: UploadFile | None = File(None),
    service: PostService = Depends(get_post_service),
) -> PostRead:
    return service.update(post_id, _form_fields(title=title, content=content), _to_upload(image))


@router.delete("/{post_id}", response_model=StatusResponse)
def delete_post(post_id: int, service: PostService = Depends(get_post_service)) -> StatusResponse:
    service.delete(post_id)
    return StatusResponse(status="deleted")
