# finance_tracker/config.py
# Application settings loaded from the environment

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration. Every field can be set through an env var of the same name."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ===== APPLICATION =====
    app_name: str = "PHPinancia Finance Tracker"
    app_version: str = "1.0.0"
    environment: str = Field(default="development", description="development, production or test")
    app_url: str = "http://localhost:8000"
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8000",
        "http://127.0.0.1:8000",
    ]

    # ===== DATABASE =====
    database_url: str = "sqlite:///./finance.db"

    # ===== AUTH =====
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    refresh_token_expire_days: int = 7
    otp_expire_minutes: int = 10
    otp_max_attempts: int = 5

    # ===== LLM (Mistral, OpenAI-compatible endpoint) =====
    mistral_api_key: Optional[str] = None
    mistral_model: str = "mistral-small-2503"
    mistral_chat_model: str = "magistral-small-2509"
    mistral_base_url: str = "https://api.mistral.ai/v1"

    # ===== REDIS (cache + rate limiting) =====
    redis_url: Optional[str] = None

    # Sliding windows as (requests, seconds)
    rate_limit_default: int = 10
    rate_limit_default_window: int = 10
    rate_limit_read: int = 30
    rate_limit_read_window: int = 10
    rate_limit_auth: int = 5
    rate_limit_auth_window: int = 60

    # ===== CRON =====
    cron_secret: Optional[str] = None

    # ===== EMAIL =====
    smtp_server: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    from_email: Optional[str] = None

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
