from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ..cache.coherence import CacheCoherence
from ..cache.store import CacheStore
from ..core.config import Settings
from ..db.repository import PostRepository
from ..db.session import get_db
from ..services.post_service import PostService
from ..storage.assets import AssetStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_cache_store(request: Request) -> CacheStore:
    return request.app.state.cache_store


def get_asset_store(request: Request) -> AssetStore:
    return request.app.state.asset_store


def get_cache_coherence(
    db: Session = Depends(get_db),
    store: CacheStore = Depends(get_cache_store),
    settings: Settings = Depends(get_settings),
) -> CacheCoherence:
    return CacheCoherence(store, PostRepository(db), ttl=settings.cache_ttl_seconds)


def get_post_service(
    db: Session = Depends(get_db),
    cache: CacheCoherence = Depends(get_cache_coherence),
    assets: AssetStore = Depends(get_asset_store),
    settings: Settings = Depends(get_settings),
) -> PostService:
    return PostService(db, cache, assets, image_folder=settings.post_image_folder)
