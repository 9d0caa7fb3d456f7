"""Configuration for the deal room HTTP service."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Service settings loaded from environment variables."""

    # Auth
    DEALROOM_API_TOKEN: str

    # Optional JSON seed for the in-memory backend
    DEALROOM_SEED_PATH: str | None = None


@lru_cache
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
