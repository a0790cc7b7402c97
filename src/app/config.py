"""Application configuration via Pydantic BaseSettings."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

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

    # Redis (durable job / transcript / minutes store)
    REDIS_URL: str = "redis://localhost:6379/0"
    KV_KEY_PREFIX: str = "minutes"

    # LLM Providers
    ANTHROPIC_API_KEY: str = ""
    OPENAI_API_KEY: str = ""
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL_NAME: str = "gemini-1.5-pro"
    LLM_TIMEOUT: int = 120

    # Summarization
    CHUNK_SIZE: int = 8000
    CHUNK_OVERLAP: int = 500
    SUMMARY_LANGUAGE: str = "ja"

    # Notion output (minutes pages)
    NOTION_TOKEN: str = ""
    NOTION_DATABASE_ID: str = ""


@lru_cache
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
