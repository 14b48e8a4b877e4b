"""Centralized configuration loaded from environment."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Provider
    anthropic_api_key: str = Field(default="", alias="ANTHROPIC_API_KEY")
    primary_model: str = Field(default="claude-sonnet-4-5-20250929", alias="CLAUDE_PRIMARY_MODEL")
    fallback_model: str = Field(default="claude-haiku-4-5-20251001", alias="CLAUDE_FALLBACK_MODEL")
    model_candidates: str = Field(default="", alias="CLAUDE_MODEL_CANDIDATES")
    temperature: float = Field(default=0.3, alias="CLAUDE_TEMPERATURE")
    max_output_tokens: int = Field(default=4096, alias="MAX_OUTPUT_TOKENS")
    request_timeout_ms: int = Field(default=60000, alias="REQUEST_TIMEOUT_MS")
    web_search_max_uses: int = Field(default=5, alias="WEB_SEARCH_MAX_USES")
    service_mode: str = Field(default="online", alias="SERVICE_MODE")

    # Browsing
    base_language: str = Field(default="English", alias="BASE_LANGUAGE")
    default_topic: str = Field(default="Hypertext", alias="DEFAULT_TOPIC")
    search_history_size: int = Field(default=5, alias="SEARCH_HISTORY_SIZE")
    page_chars: int = Field(default=3000, alias="PAGE_CHARS")

    # Orchestration
    result_cache_max_size: int = Field(default=512, alias="RESULT_CACHE_MAX_SIZE")
    result_cache_ttl_seconds: int = Field(default=0, alias="RESULT_CACHE_TTL_SECONDS")
    diagram_max_concurrency: int = Field(default=2, alias="DIAGRAM_MAX_CONCURRENCY")
    generation_timeout_s: float = Field(default=180.0, alias="GENERATION_TIMEOUT_S")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @property
    def extra_models(self) -> list[str]:
        return [m.strip() for m in self.model_candidates.split(",") if m.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
