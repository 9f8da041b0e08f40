"""Application configuration via Pydantic BaseSettings."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    development = "development"
    staging = "staging"
    production = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment
    ENVIRONMENT: Environment = Environment.development

    # Logging
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ALLOWED_ORIGINS: str = "*"

    # Flat-file persistence
    DATA_DIR: str = "data"
    HISTORY_MAX_ENTRIES: int = 100

    # LLM Providers
    OPENAI_API_KEY: str = ""
    ANTHROPIC_API_KEY: str = ""
    LLM_TIMEOUT: int = 60
    LLM_OPENAI_MODEL: str = "openai/gpt-4o-mini"
    LLM_ANTHROPIC_MODEL: str = "anthropic/claude-3-5-haiku-latest"

    # Speech synthesis
    ELEVENLABS_API_KEY: str = ""
    ELEVENLABS_VOICE_ID: str = "21m00Tcm4TlvDq8ikWAM"  # Rachel
    ELEVENLABS_MODEL_ID: str = "eleven_flash_v2_5"

    # Monitoring
    SENTRY_DSN: str = ""

    @property
    def data_path(self) -> Path:
        """Root directory for history and workspace files."""
        return Path(self.DATA_DIR)

    @property
    def llm_configured(self) -> bool:
        return bool(self.OPENAI_API_KEY or self.ANTHROPIC_API_KEY)


@lru_cache
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
