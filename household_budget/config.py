"""Configuration settings for the household budget service."""
import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ValidationError

from household_budget.errors import ConfigError

# Paths
DATA_DIR = Path(os.environ.get("HOUSEHOLD_BUDGET_DATA_DIR", Path.home() / ".household_budget"))
DB_PATH = DATA_DIR / "budget.db"

# Weekly summary schedule
SUMMARY_TIMEZONE = "America/Los_Angeles"
SUMMARY_WEEKDAY = 0  # Monday (datetime.weekday())
SUMMARY_HOUR = 8
NEAR_LIMIT_THRESHOLD = 0.9  # Spend at or above 90% of budget counts as near-limit

# Email
RESEND_API_URL = "https://api.resend.com/emails"
EMAIL_TIMEOUT_SECONDS = 10
APP_NAME = "Household Budget"

# Domain enums
USER_ROLES = ["user", "admin"]

# Fallbacks used outside production
ENV_FALLBACKS = {
    "RESEND_API_KEY": "dummy_key_for_development",
    "RESEND_FROM_ADDRESS": "noreply@example.com",
}


class Settings(BaseModel):
    """Environment-derived settings."""
    app_env: Literal["development", "production", "test"] = "development"
    database_path: Path = DB_PATH
    cron_secret: Optional[str] = None
    resend_api_key: str = ENV_FALLBACKS["RESEND_API_KEY"]
    resend_from_address: str = ENV_FALLBACKS["RESEND_FROM_ADDRESS"]

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


def get_settings() -> Settings:
    """Read settings from the environment.

    In production the database path and cron secret must be set explicitly
    and the email credentials may not be the development fallbacks.
    """
    env = os.environ
    raw = {
        "app_env": env.get("APP_ENV", "development"),
        "database_path": env.get("HOUSEHOLD_BUDGET_DB") or DB_PATH,
        "cron_secret": env.get("CRON_SECRET") or None,
        "resend_api_key": env.get("RESEND_API_KEY") or ENV_FALLBACKS["RESEND_API_KEY"],
        "resend_from_address": env.get("RESEND_FROM_ADDRESS") or ENV_FALLBACKS["RESEND_FROM_ADDRESS"],
    }
    try:
        settings = Settings(**raw)
    except ValidationError as e:
        raise ConfigError("Environment validation failed", details={"errors": e.error_count()}, original_error=e)

    if settings.is_production:
        if not env.get("HOUSEHOLD_BUDGET_DB"):
            raise ConfigError("HOUSEHOLD_BUDGET_DB is required in production")
        if not settings.cron_secret:
            raise ConfigError("CRON_SECRET is required in production")
        if settings.resend_api_key == ENV_FALLBACKS["RESEND_API_KEY"]:
            raise ConfigError("Cannot use the fallback RESEND_API_KEY in production")

    return settings
