from __future__ import annotations

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PLACEHOLDER_API_KEYS = {"", "your_openrouter_api_key_here"}


class Settings(BaseSettings):
    database_url: str = Field("sqlite+aiosqlite:///./lifeos.db", alias="DATABASE_URL")
    backend_session_secret: str = Field("change-me", alias="BACKEND_SESSION_SECRET")

    allowed_users_raw: str = Field("", alias="ALLOWED_USERS")

    openrouter_api_key: str | None = Field(None, alias="OPENROUTER_API_KEY")
    openrouter_model: str = Field("meta-llama/llama-3.3-70b-instruct:free", alias="OPENROUTER_MODEL")
    openrouter_timeout: float = Field(20.0, alias="OPENROUTER_TIMEOUT")

    log_level: str = Field("INFO", alias="LIFEOS_LOG_LEVEL")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    @property
    def allowed_users(self) -> List[str]:
        return [user.strip().lower() for user in self.allowed_users_raw.split(",") if user.strip()]

    @property
    def generator_configured(self) -> bool:
        return (self.openrouter_api_key or "").strip() not in PLACEHOLDER_API_KEYS


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None
