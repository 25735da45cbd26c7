"""
core/config.py
----------------

Application configuration module.

Defines strongly‑typed settings loaded from the environment using
``pydantic-settings``. These settings control the upstream DineMore
API location, HTTP timeouts, where per-profile client storage lives
and the cache windows used by the auth and activity flows. The values
provided here are sensible defaults but can be overridden via
environment variables at deployment time.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    The settings structure is flat and uses environment variables
    prefixed with ``DINEMORE_``.  For example, to point the companion
    at another API host set ``DINEMORE_API_BASE_URL=https://...``.
    """

    # Upstream API
    api_base_url: str = Field("http://localhost:5000", description="Base URL of the DineMore API.")
    http_timeout: float = Field(10.0, gt=0, description="Hard timeout for HTTP requests in seconds.")

    # Client-local storage; unset keeps every profile in memory
    storage_dir: Optional[Path] = Field(None, description="Directory holding one JSON storage file per profile.")

    # Cache windows
    auth_stale_time: float = Field(60.0, ge=0, description="Seconds the /api/auth/me answer stays fresh.")
    activity_log_limit: int = Field(100, ge=1, le=500, description="Default number of activity log entries.")

    admin_user_types: List[str] = Field(
        default_factory=lambda: ["admin", "restaurant_admin"],
        description="User types allowed to sign in through the admin portal.",
    )

    model_config = SettingsConfigDict(env_prefix="DINEMORE_", env_file=None, case_sensitive=False)


@lru_cache()
def get_settings() -> Settings:
    """Return a cached instance of the application settings.

    Using a cache prevents expensive environment parsing on every call.
    """
    return Settings()
