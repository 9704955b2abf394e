"""Redis settings configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseSettings):
    """Redis only backs the rate limiter, which fails open.

    Timeouts stay short so an unreachable Redis delays requests briefly
    instead of stalling executions.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_SOCKET_TIMEOUT_SECONDS: float = 0.5
    REDIS_MAX_CONNECTIONS: int = 50


__all__ = ["RedisSettings"]
