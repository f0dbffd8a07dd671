from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Unified application settings for mentorhub.

    Loads from env with support for repo ".env" files. Avoids manual load_dotenv().
    """

    _app_env = (os.getenv("APP_ENV") or "").strip().lower()
    _env_files = (
        []
        if _app_env in {"test", "ci"}
        else [
            str((Path(__file__).resolve().parents[1] / ".env")),  # apps/mentorhub/.env
            str((Path(__file__).resolve().parents[3] / ".env")),  # repo root .env
        ]
    )

    # Load env vars from apps/mentorhub/.env first, then repo root .env
    model_config = SettingsConfigDict(
        env_file=_env_files,
        case_sensitive=False,
        extra="ignore",
    )

    # --- App / Core ---
    app_env: str = Field(default="dev", alias="APP_ENV")
    app_name: str = Field(default="mentorhub", alias="APP_NAME")
    debug: bool = Field(default=False, alias="DEBUG")
    # Logging
    log_level: str | None = Field(default=None, alias="MENTORHUB_LOG_LEVEL")
    log_level_fallback: str | None = Field(default=None, alias="LOG_LEVEL")

    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")

    cors_allow_origins: list[str] = Field(default=["*"], alias="CORS_ALLOW_ORIGINS")

    # --- SeaTable ---
    seatable_api_key: SecretStr | None = Field(default=None, alias="SEATABLE_API_KEY")
    seatable_server_url: str = Field(
        default="https://cloud.seatable.io",
        alias="SEATABLE_SERVER_URL",
    )
    seatable_timeout_seconds: float = Field(
        default=10.0, alias="SEATABLE_TIMEOUT_SECONDS", gt=0, le=300
    )
    seatable_token_ttl_days: int = Field(
        default=3,
        alias="SEATABLE_TOKEN_TTL_DAYS",
        ge=1,
        le=3,
        description="Base tokens issued by SeaTable live for three days.",
    )
    seatable_cache_backend: Literal["redis", "memory"] = Field(
        default="redis", alias="SEATABLE_CACHE_BACKEND"
    )
    seatable_cache_prefix: str = Field(default="mentorhub:", alias="SEATABLE_CACHE_PREFIX")

    # Mentor profile table
    seatable_profile_table: str = Field(default="Neue_MentorInnen", alias="SEATABLE_PROFILE_TABLE")
    seatable_profile_id_field: str = Field(default="Mentor_ID", alias="SEATABLE_PROFILE_ID_FIELD")
    seatable_profile_table_candidates: list[str] = Field(
        default=["Neue_MentorInnen", "Mentors"],
        alias="SEATABLE_PROFILE_TABLE_CANDIDATES",
    )
    seatable_profile_id_candidates: list[str] = Field(
        default=["Mentor_ID", "user_id", "id"],
        alias="SEATABLE_PROFILE_ID_CANDIDATES",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


# Convenience singleton for modules still expecting a module-level "settings"
settings = get_settings()
