from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .api.routers import posts
from .cache.store import CacheStore, MemoryCacheStore, RedisCacheStore
from .core.config import Settings, settings
from .core.errors import PostServiceError
from .core.logging import configure_logging, get_logger
from .db import models  # noqa: F401
from .db.base import Base
from .db.session import build_engine, build_session_factory
from .storage.assets import LocalAssetStore

logger = get_logger("post_service.main")


def build_cache_store(app_settings: Settings) -> CacheStore:
    if app_settings.cache_backend == "memory":
        return MemoryCacheStore()
    return RedisCacheStore.from_url(
        app_settings.redis_url,
        lock_timeout=app_settings.cache_lock_timeout_seconds,
    )


async def handle_service_error(request: Request, exc: PostServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, code=exc.code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_response().model_dump())


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=app.state.engine)
    logger.info("Post service started", cache_backend=app.state.settings.cache_backend)
    yield
    app.state.engine.dispose()


def create_app(app_settings: Settings | None = None) -> FastAPI:
    app_settings = app_settings or settings
    configure_logging(app_settings.log_level, app_settings.json_logs)

    app = FastAPI(title="Post Service", version="0.1.0", lifespan=lifespan)
    app.state.settings = app_settings
    app.state.engine = build_engine(app_settings.database_url)
    app.state.session_factory = build_session_factory(app.state.engine)
    app.state.cache_store = build_cache_store(app_settings)
    app.state.asset_store = LocalAssetStore(app_settings.media_root)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(PostServiceError, handle_service_error)
    app.include_router(posts.router)

    @app.get("/")
    async def root() -> dict:
        return {"message": "Post service is ready"}

    app.mount("/media", StaticFiles(directory=app.state.asset_store.root), name="media")
    return app
