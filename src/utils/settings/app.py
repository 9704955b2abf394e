from pydantic_settings import BaseSettings, SettingsConfigDict

from src.utils.settings.auth import DEFAULT_JWT_SECRET, AuthSettings
from src.utils.settings.stripe import StripeSettings


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DEBUG: bool = False
    ENVIRONMENT: str = "DEV"
    API_VERSION: str = "0.1.0"
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Checkout redirects land here
    FRONTEND_URL: str = "http://localhost:3000"

    # Accounts allowed to call /v1/admin endpoints
    ADMIN_ACCOUNT_IDS: list[str] = []

    # Security settings
    MAX_REQUEST_SIZE: int = 1 * 1024 * 1024  # 1MB

    HOST: str = "0.0.0.0"
    PORT: int = 8000

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.upper() == "PROD"

    def validate_prod(self) -> None:
        """Sanity checks for production environment."""
        if not self.is_production:
            return
        if not self.CORS_ORIGINS:
            raise ValueError("CORS_ORIGINS must be set in production")
        if AuthSettings().JWT_SECRET == DEFAULT_JWT_SECRET:
            raise ValueError("JWT_SECRET must be set in production")
        if StripeSettings().STRIPE_WEBHOOK_SECRET.startswith("whsec_test"):
            raise ValueError(
                "STRIPE_WEBHOOK_SECRET must be a live secret in production"
            )
