"""Application configuration powered by Pydantic settings."""
from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Global application settings loaded from environment variables."""

    PROJECT_NAME: str = Field(default="VK Events")
    VERSION: str = Field(default="0.1.0")
    LOG_LEVEL: str = Field(default="INFO")

    DATABASE_URL: str = Field(default="postgresql+psycopg://postgres:postgres@db:5432/events")

    OIDC_CLIENT_ID: str = Field(default="client-id")
    OIDC_CLIENT_SECRET: str = Field(default="client-secret")
    OIDC_ISSUER: str = Field(default="https://example.com/oidc")
    OIDC_REDIRECT_URI: str = Field(default="http://localhost:8000/auth/callback")
    OIDC_SCOPES: str = Field(default="openid email profile")

    FRONTEND_URL: str = Field(default="http://localhost:3000")

    SESSION_SECRET: str = Field(default="change-me")
    SESSION_COOKIE_NAME: str = Field(default="events_session")
    SESSION_COOKIE_SECURE: bool = Field(default=False)

    LOCAL_LOGIN_ENABLED: bool = Field(default=True)
    LOCAL_LOGIN_EMAIL: str = Field(default="admin@example.com")
    LOCAL_LOGIN_PASSWORD: str = Field(default="testtest")

    # Emails provisioned with the admin role on first login. Empty by default;
    # scripts/seed_dev.py promotes the local login account for development.
    ADMIN_EMAILS: tuple[str, ...] = Field(default=())

    GEMINI_API_KEY: str | None = Field(default=None)
    GEMINI_API_BASE: str = Field(default="https://generativelanguage.googleapis.com/v1beta")
    GEMINI_MODEL: str = Field(default="gemini-2.5-flash")
    GEMINI_TIMEOUT: float = Field(default=60.0)
    GEMINI_TEMPERATURE: float = Field(default=0.7)

    # Zone assumed for dates typed without an explicit offset.
    EVENT_TIMEZONE: str = Field(default="UTC")

    RATE_LIMIT_CHAT: str = Field(default="30/minute")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    def is_admin_email(self, email: str) -> bool:
        """Return whether ``email`` should be provisioned as an administrator."""

        normalized = email.strip().lower()
        return any(normalized == candidate.strip().lower() for candidate in self.ADMIN_EMAILS)


@lru_cache(maxsize=1)
def get_settings(**overrides: Any) -> Settings:
    """Return cached settings instance to avoid repeated parsing."""

    if overrides:
        return Settings(**overrides)
    return Settings()


settings = get_settings()
