"""Billing workflow settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class BillingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Pending executions older than this are reported by reconciliation
    STALE_EXECUTION_MINUTES: int = 10

    EXECUTE_RATE_LIMIT: int = 30  # requests per window
    EXECUTE_RATE_LIMIT_WINDOW_SECONDS: int = 60
