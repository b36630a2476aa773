"""Runtime configuration, read from the environment once per process."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables or a `.env` file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    SUPABASE_URL: str = ""
    """Base URL of the Supabase project (auth and PostgREST)."""

    SUPABASE_ANON_KEY: str = ""
    """Public anon key sent as `apikey` on every Supabase call."""

    COMPLETION_BASE_URL: str = ""
    """Base URL of the OpenAI-compatible completion API."""

    COMPLETION_API_KEY: str = ""
    """Bearer credential for the completion API."""

    COMPLETION_MODEL: str = "google/gemini-2.5-flash"

    COMPLETION_TIMEOUT_SECONDS: Optional[float] = None
    """Timeout for the completion call; unset means wait indefinitely."""

    STORAGE_BACKEND: Literal["supabase", "memory"] = "supabase"

    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _normalize_log_level(cls, value):
        return value.upper() if isinstance(value, str) else value


@lru_cache
def get_settings() -> Settings:
    """Returns the process-wide settings, read on first use."""
    return Settings()
