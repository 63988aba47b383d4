"""Application configuration utilities."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings derived from environment variables."""

    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    database_url: str = Field(
        default="sqlite:///./insights.db", alias="DATABASE_URL"
    )
    insights_router_url: str | None = Field(
        default=None, alias="INSIGHTS_ROUTER_URL"
    )
    insights_router_timeout_seconds: float = Field(
        default=5.0, alias="INSIGHTS_ROUTER_TIMEOUT_SECONDS"
    )
    insights_router_model: str = Field(
        default="gpt-4o-mini", alias="INSIGHTS_ROUTER_MODEL"
    )
    insights_hourly_ceiling_dollars: float = Field(
        default=1000.0, alias="INSIGHTS_HOURLY_CEILING_DOLLARS"
    )
    insights_debug: bool = Field(default=False, alias="INSIGHTS_DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    @property
    def fallback_enabled(self) -> bool:
        """Return ``True`` when an LLM fallback router endpoint is configured."""

        return bool(self.insights_router_url)


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


__all__ = ["Settings", "get_settings"]
