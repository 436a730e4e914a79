from __future__ import annotations

import os
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseAppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "Lightfriend"
    ENV: str = "dev"
    DATABASE_URL: str | None = None

    # Auth: HS256 tokens, subject claim is the user id
    JWT_SECRET_KEY: str = "change_me"
    JWT_ACCESS_TOKEN_MINUTES: int = 60 * 24

    # Perplexity (search + assistant tools)
    PERPLEXITY_API_KEY: str | None = None
    PERPLEXITY_MODEL: str = "llama-3.1-sonar-small-128k-online"
    PERPLEXITY_URL: str = "https://api.perplexity.ai/chat/completions"

    # Stripe
    STRIPE_SECRET_KEY: str | None = None
    STRIPE_WEBHOOK_SECRET: str | None = None
    STRIPE_CREDITS_PRODUCT_ID: str | None = None
    STRIPE_SUBSCRIPTION_PRICE_ID: str | None = None  # Escape plan ("tier 2")
    STRIPE_HARD_MODE_PRICE_ID: str | None = None  # Basic plan ("tier 1")

    # Twilio (SMS + pricing lookups)
    TWILIO_ACCOUNT_SID: str | None = None
    TWILIO_AUTH_TOKEN: str | None = None
    TWILIO_DEFAULT_NUMBER: str | None = None

    # Voice assistant provider
    VAPI_ASSISTANT_ID: str = "d60f5e83-3d90-4604-9d7d-06cb5decdc36"

    # SMTP for broadcast emails
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    FROM_EMAIL: str | None = None

    FRONTEND_URL: str = "https://lightfriend.ai"
    REDIS_URL: str = "redis://localhost:6379/0"
    CORS_ALLOW_ORIGINS: list[str] = ["*"]
    CORS_ALLOW_METHODS: list[str] = ["*"]
    CORS_ALLOW_HEADERS: list[str] = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "plain"
    SENTRY_DSN: str | None = None
    AUDIT_LOG_FILE: str = "storage/audit.log"

    @model_validator(mode="after")
    def _validate_required_fields(self) -> BaseAppSettings:
        if self.DATABASE_URL and self.DATABASE_URL.startswith("postgres://"):
            self.DATABASE_URL = self.DATABASE_URL.replace("postgres://", "postgresql://", 1)

        required_in_prod = (
            "DATABASE_URL",
            "JWT_SECRET_KEY",
            "PERPLEXITY_API_KEY",
            "STRIPE_SECRET_KEY",
            "STRIPE_WEBHOOK_SECRET",
            "TWILIO_ACCOUNT_SID",
            "TWILIO_AUTH_TOKEN",
        )
        if self.ENV.lower() == "prod":
            missing = [name for name in required_in_prod if not getattr(self, name)]
            if missing:
                raise ValueError(f"Missing required production settings: {', '.join(missing)}")
            if self.JWT_SECRET_KEY == "change_me":
                raise ValueError("Insecure default secrets in production: JWT_SECRET_KEY uses default placeholder")
        return self


class DevSettings(BaseAppSettings):
    ENV: str = "dev"
    DATABASE_URL: str = "sqlite:///./storage/dev.db"
    STRIPE_WEBHOOK_SECRET: str = "whsec_dev"


class TestSettings(BaseAppSettings):
    ENV: str = "test"
    DATABASE_URL: str = "sqlite:///:memory:"
    JWT_SECRET_KEY: str = "test-jwt-secret"
    STRIPE_SECRET_KEY: str = "sk_test_dummy"
    STRIPE_WEBHOOK_SECRET: str = "whsec_test"
    STRIPE_CREDITS_PRODUCT_ID: str = "prod_test_credits"
    STRIPE_SUBSCRIPTION_PRICE_ID: str = "price_test_escape"
    STRIPE_HARD_MODE_PRICE_ID: str = "price_test_basic"
    AUDIT_LOG_FILE: str = "storage/test_audit.log"


class ProdSettings(BaseAppSettings):
    ENV: str = "prod"
    CORS_ALLOW_ORIGINS: list[str] = [
        "https://lightfriend.ai",
        "https://www.lightfriend.ai",
        "http://localhost:8080",  # Local development
    ]
    LOG_FORMAT: str = "json"


_ENV_TO_SETTINGS: dict[str, type[BaseAppSettings]] = {
    "dev": DevSettings,
    "development": DevSettings,
    "test": TestSettings,
    "testing": TestSettings,
    "prod": ProdSettings,
    "production": ProdSettings,
}


@lru_cache
def get_settings() -> BaseAppSettings:
    env_name = os.getenv("APP_ENV") or os.getenv("ENV") or "dev"
    settings_cls = _ENV_TO_SETTINGS.get(env_name.lower(), DevSettings)
    return settings_cls()


settings = get_settings()
