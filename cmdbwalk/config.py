from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ServiceNow instance
    SN_INSTANCE: str
    SN_USER: str
    SN_PASSWORD: str
    SN_DISPLAY_VALUE: str = "true"

    # Traversal
    SN_REL_DEPTH: int = 3

    # HTTP client
    SN_TIMEOUT: float = 30.0
    SN_MAX_RETRIES: int = 3
    SN_RETRY_BASE_DELAY: float = 0.5
    SN_RATE_LIMIT_PER_SEC: float = 10.0
    SN_RATE_LIMIT_BURST: int = 20

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = Field(default="json", description="'json' for production, 'console' for dev")

    @field_validator("SN_INSTANCE")
    @classmethod
    def _normalize_instance(cls, value: str) -> str:
        instance = value.strip().rstrip("/")
        if not instance.startswith("http"):
            instance = f"https://{instance}"
        return instance


def get_settings() -> Settings:
    return Settings()
