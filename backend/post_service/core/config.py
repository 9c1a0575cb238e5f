from pathlib import Path
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = Field("sqlite:///./posts.db")
    cache_backend: Literal["redis", "memory"] = Field("redis")
    redis_url: str = Field("redis://localhost:6379/0")
    cache_ttl_seconds: int = Field(3600, gt=0)
    cache_lock_timeout_seconds: int = Field(10, gt=0)
    media_root: Path = Field(Path("./media"))
    post_image_folder: str = Field("images/posts")
    log_level: str = Field("info")
    json_logs: bool = Field(True)
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:5173"])


settings = Settings()
