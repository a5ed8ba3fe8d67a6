"""
GoodFork - Configuration and settings.

Settings are read from the environment (and .env) once and cached.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings.

    Only Supabase is required. Leaving OPENAI_API_KEY unset keeps the
    engine on deterministic ranking.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Supabase
    supabase_url: str
    supabase_service_role_key: str

    # OpenAI-compatible reranker (optional)
    openai_api_key: str | None = None
    openai_base_url: str = "https://api.openai.com/v1"
    recommender_model: str = "gpt-4o-mini"

    # Ranking flags
    enable_ai_ranking: bool = True
    require_ai_ranking: bool = False
    llm_timeout_seconds: float = 12.0
    llm_candidate_cap: int = 10

    # Application
    goodfork_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # GOODFORK_LOG_PROMPTS=1 - write rerank prompts to local files (dev only)
    goodfork_log_prompts: bool = False

    @property
    def is_development(self) -> bool:
        return self.goodfork_env == "development"

    @property
    def ai_ranking_configured(self) -> bool:
        """True when the reranker has everything it needs to make a call."""
        return bool(self.enable_ai_ranking and self.openai_api_key and self.recommender_model)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: Settings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()
