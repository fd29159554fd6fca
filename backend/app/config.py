"""
Application configuration loaded from environment variables.

Uses Pydantic Settings to:
1. Read from .env file automatically
2. Validate all required values exist at startup
3. Provide type-safe access throughout the app

Usage:
    from app.config import get_settings

    @router.get("/things")
    async def list_things(settings: Settings = Depends(get_settings)):
        ...

Settings are built once per process by get_settings() and handed to
whatever needs them (routers via Depends, services via their constructor).
Nothing reaches for a module-level client of Stripe or Anthropic.

Note: We use a custom validator that prefers .env values over
empty shell environment variables. This prevents empty env vars
(like STRIPE_SECRET_KEY="") from overriding real values in the .env file.
"""

from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """All application configuration in one place."""

    model_config = SettingsConfigDict(
        env_file=".env",        # Load from .env file
        env_file_encoding="utf-8",
        case_sensitive=True,     # ENV_VAR must match exactly
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def prefer_dotenv_over_empty_env(cls, data):
        """If an env var is empty but .env has a value, use the .env value.

        Pydantic Settings prioritizes real env vars over .env file values,
        so an exported-but-empty variable would shadow the real key in .env.
        """
        from dotenv import dotenv_values

        dotenv_vals = dotenv_values(".env")
        for key, dotenv_value in dotenv_vals.items():
            if dotenv_value and (key not in data or not data.get(key)):
                data[key] = dotenv_value
        return data

    # --- Database ---
    DATABASE_URL: str

    # --- Auth provider ---
    # Tokens are issued by the hosted auth service; we only verify them.
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str = "authenticated"

    # --- AI API ---
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_MODEL: str = "claude-sonnet-4-20250514"

    # --- Billing ---
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_PRO_PRICE_ID: str = ""
    STRIPE_PRO_YEAR_PRICE_ID: str = ""
    STRIPE_LIFETIME_PRICE_ID: str = ""

    # --- Freemium ---
    ADMIN_EMAIL: str = ""        # Single address, unlimited roasts
    ADMIN_EMAILS: str = ""       # Comma-separated, unlimited roasts
    FREE_ROAST_LIMIT: int = 1
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024

    # --- Reports ---
    LOGO_PATH: str = "static/logo.png"

    # --- Application ---
    APP_URL: str = "http://localhost:3000"
    APP_ENV: str = "development"
    DEBUG: bool = True
    CORS_ORIGINS: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def admin_emails_list(self) -> list[str]:
        """Normalized allow-list of unlimited-access emails.

        ADMIN_EMAIL (one address) and ADMIN_EMAILS (a list) are merged.
        """
        return [
            email.strip().lower()
            for email in [self.ADMIN_EMAIL, *self.ADMIN_EMAILS.split(",")]
            if email.strip()
        ]

    @property
    def price_ids(self) -> dict[str, str]:
        """Plan key → Stripe price id. Empty values mean the plan is off."""
        return {
            "pro": self.STRIPE_PRO_PRICE_ID,
            "pro_year": self.STRIPE_PRO_YEAR_PRICE_ID,
            "lifetime": self.STRIPE_LIFETIME_PRICE_ID,
        }


@lru_cache
def get_settings() -> Settings:
    """Build the process-wide Settings once and reuse it."""
    return Settings()
