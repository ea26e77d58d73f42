"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Cinefeed", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_API_URL"
    )
    tmdb_image_url: HttpUrl = Field(
        default="https://image.tmdb.org/t/p", alias="TMDB_IMAGE_URL"
    )
    tmdb_timeout_seconds: float = Field(
        default=5.0, alias="TMDB_TIMEOUT", gt=0, le=60
    )
    tmdb_language: str | None = Field(default=None, alias="TMDB_LANGUAGE")

    default_page_size: int = Field(
        default=10, alias="DEFAULT_PAGE_SIZE", ge=1, le=100
    )
    recommendation_genre_count: int = Field(
        default=3, alias="RECOMMENDATION_GENRES", ge=1, le=10
    )
    recommendation_pairs_per_genre: int = Field(
        default=5, alias="RECOMMENDATION_PAIRS_PER_GENRE", ge=1, le=20
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./cinefeed.db", alias="DATABASE_URL"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("tmdb_api_key", "tmdb_language", mode="before")
    @classmethod
    def _strip_blank(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> str:
        if value is None:
            return "INFO"
        level = str(value).strip().upper()
        if level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError("LOG_LEVEL must be a standard logging level name")
        return level

    @property
    def tmdb_base_url(self) -> str:
        """Return the provider base URL without a trailing slash."""

        return str(self.tmdb_api_url).rstrip("/")

    @property
    def image_base_url(self) -> str:
        return str(self.tmdb_image_url).rstrip("/")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
