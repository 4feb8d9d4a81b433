from functools import lru_cache
from typing import Literal, Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheSettings(BaseSettings):
    # flat = easy env overrides
    enabled: bool = True
    backend: Literal["memory", "null", "redis"] = "memory"
    url: Optional[str] = None
    namespace: str = ""

    log_level: str = "INFO"
    log_format: Literal["plain", "json"] = "plain"

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",  # CACHE_ENABLED, CACHE_BACKEND, CACHE_URL
        extra="ignore",
    )

    @model_validator(mode="after")
    def _redis_needs_url(self) -> "CacheSettings":
        if self.backend == "redis" and not self.url:
            raise ValueError("CACHE_URL is required when CACHE_BACKEND=redis")
        return self


@lru_cache
def get_cache_settings(**kwargs) -> CacheSettings:
    # Only include kwargs that are not None, so defaults in CacheSettings are used
    filtered_kwargs = {k: v for k, v in kwargs.items() if v is not None}
    return CacheSettings(**filtered_kwargs)
