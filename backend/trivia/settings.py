from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"
    CORS_ORIGIN_REGEX: Optional[str] = None

    TOTAL_ROUNDS: int = 10

    HEARTBEAT_INTERVAL_SECONDS: float = 15.0
    SUBSCRIBER_QUEUE_SIZE: int = 64

    REAPER_INTERVAL_SECONDS: float = 10 * 60
    SESSION_MAX_INACTIVE_SECONDS: float = 60 * 60

    QUESTION_SOURCE_TIMEOUT_SECONDS: float = 20.0
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    GOOGLE_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.5-flash"

    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None


@lru_cache
def get_settings() -> Settings:
    return Settings()
