"""Configuration settings for the workout tracker API."""
import os
from typing import Literal


EnvironmentType = Literal["development", "staging", "production"]


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


class Settings:
    """Application settings."""

    # Environment
    ENVIRONMENT: EnvironmentType = "development"

    # Workout session
    HISTORY_SCAN_LIMIT: int = 15
    ENRICHMENT_CONCURRENCY: int = 4
    DEFAULT_ROUTINE_COLOR: str = "#6B9CD6"
    SESSION_STATE_PATH: str | None = None

    # Free tier quotas
    FREE_ROUTINE_LIMIT: int = 3
    FREE_COUNTER_LIMIT: int = 1

    # Auth
    API_KEYS: list[str] = []
    JWT_SECRET: str | None = None

    # Remote store
    SUPABASE_URL: str | None = None
    SUPABASE_KEY: str | None = None
    STORE_RETRY_ATTEMPTS: int = 3

    def __init__(self):
        # Environment
        env = os.getenv("ENVIRONMENT", "development").lower()
        if env in ("development", "staging", "production"):
            self.ENVIRONMENT = env  # type: ignore
        else:
            self.ENVIRONMENT = "development"

        # Workout session
        self.HISTORY_SCAN_LIMIT = _int_env("HISTORY_SCAN_LIMIT", 15)
        self.ENRICHMENT_CONCURRENCY = max(1, _int_env("ENRICHMENT_CONCURRENCY", 4))
        self.DEFAULT_ROUTINE_COLOR = os.getenv("DEFAULT_ROUTINE_COLOR", "#6B9CD6")
        self.SESSION_STATE_PATH = os.getenv("SESSION_STATE_PATH") or None

        # Free tier quotas
        self.FREE_ROUTINE_LIMIT = _int_env("FREE_ROUTINE_LIMIT", 3)
        self.FREE_COUNTER_LIMIT = _int_env("FREE_COUNTER_LIMIT", 1)

        # Auth
        self.API_KEYS = [k.strip() for k in os.getenv("API_KEYS", "").split(",") if k.strip()]
        self.JWT_SECRET = os.getenv("JWT_SECRET") or None

        # Remote store
        self.SUPABASE_URL = os.getenv("SUPABASE_URL") or None
        self.SUPABASE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY") or None
        self.STORE_RETRY_ATTEMPTS = max(1, _int_env("STORE_RETRY_ATTEMPTS", 3))


settings = Settings()
