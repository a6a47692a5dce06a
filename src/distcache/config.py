from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DISTCACHE_", env_file=".env", extra="ignore")

    # Redis
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias="REDIS_URL")

    # Namespace for every key written through the Redis stores
    key_prefix: str = "distcache"

    # Logging
    log_level: str = "INFO"
    log_json: bool = True


settings = Settings()
