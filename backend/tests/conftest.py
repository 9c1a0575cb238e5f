"""
Shared fixtures: an in-memory SQLite store, the in-process cache backend and
a media root under ``tmp_path``.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from post_service.cache.coherence import CacheCoherence
from post_service.cache.store import MemoryCacheStore
from post_service.core.config import Settings
from post_service.db import models  # noqa: F401
from post_service.db.base import Base
from post_service.db.repository import PostRepository
from post_service.main import create_app
from post_service.services.post_service import PostService
from post_service.storage.assets import LocalAssetStore, UploadedFile


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def media_root(tmp_path):
    return tmp_path / "media"


@pytest.fixture
def cache_store():
    return MemoryCacheStore()


@pytest.fixture
def asset_store(media_root):
    return LocalAssetStore(media_root)


@pytest.fixture
def repository(db):
    return PostRepository(db)


@pytest.fixture
def coherence(cache_store, repository):
    return CacheCoherence(cache_store, repository, ttl=60)


@pytest.fixture
def service(db, coherence, asset_store):
    return PostService(db, coherence, asset_store)


@pytest.fixture
def image():
    return UploadedFile(filename="cover.png", content=b"\x89PNG first", content_type="image/png")


@pytest.fixture
def replacement_image():
    return UploadedFile(filename="cover-v2.jpg", content=b"\xff\xd8 second", content_type="image/jpeg")


@pytest.fixture
def app_settings(tmp_path, media_root):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'api.db'}",
        cache_backend="memory",
        media_root=media_root,
        json_logs=False,
    )


@pytest.fixture
def app(app_settings):
    return create_app(app_settings)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client
