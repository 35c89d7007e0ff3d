"""
Configuration and settings for the heritage content service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Hosted Postgres (any SQLAlchemy URL works)
    database_url: Optional[str] = Field(default=None, env="DATABASE_URL")

    # S3-compatible object storage
    storage_endpoint: Optional[str] = Field(default=None, env="STORAGE_ENDPOINT")
    storage_region: Optional[str] = Field(default=None, env="STORAGE_REGION")
    storage_bucket: str = Field(default="media", env="STORAGE_BUCKET")
    storage_public_base_url: Optional[str] = Field(
        default=None, env="STORAGE_PUBLIC_BASE_URL"
    )
    aws_access_key_id: Optional[str] = Field(
        default=None, env="AWS_ACCESS_KEY_ID"
    )
    aws_secret_access_key: Optional[str] = Field(
        default=None, env="AWS_SECRET_ACCESS_KEY"
    )

    # Hosted auth (GoTrue / Supabase). Without a URL the single admin
    # account below is served from memory.
    supabase_url: Optional[str] = Field(default=None, env="SUPABASE_URL")
    supabase_anon_key: Optional[str] = Field(default=None, env="SUPABASE_ANON_KEY")
    admin_email: str = Field(default="admin@example.com", env="ADMIN_EMAIL")
    admin_password: Optional[str] = Field(default=None, env="ADMIN_PASSWORD")

    # Settings refresh broadcast (Redis pub/sub when configured)
    redis_url: Optional[str] = Field(default=None, env="REDIS_URL")
    settings_channel: str = Field(
        default="heritage:settings", env="SETTINGS_CHANNEL"
    )

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, env="USE_IN_MEMORY_BACKENDS"
    )
    # Fills missing map data on item detail with fixed demo values.
    demo_location_backfill: bool = Field(
        default=False, env="DEMO_LOCATION_BACKFILL"
    )

    # Public pages
    home_category_limit: int = Field(default=6)
    featured_category_slug: str = Field(default="featured")
    default_hero_image: str = Field(
        default="https://upload.wikimedia.org/wikipedia/commons/4/41/Angkor_Wat.jpg"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
