"""Outbound agent webhook settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class WebhookSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    WEBHOOK_TIMEOUT_SECONDS: float = 30.0
    WEBHOOK_USER_AGENT: str = "agent-marketplace/1.0"
    WEBHOOK_SOURCE: str = "agent-marketplace"


webhook_settings = WebhookSettings()
