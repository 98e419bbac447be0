"""Application configuration."""

import os
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from media_paywall.services.polling import RetryPolicy

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    checkout_token_secret: str
    payment_method: Literal["card", "crypto"] = "card"
    square_access_token: str = ""
    square_location_id: str = ""
    square_application_id: str = ""
    square_environment: Literal["sandbox", "production"] = "sandbox"
    square_webhook_signature_key: str = ""
    square_webhook_url: str = ""
    currency: str = "USD"
    poll_max_attempts: int = 10
    poll_interval_seconds: float = 2.0
    price_cache_ttl_seconds: int = 30
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    def retry_policy(self) -> RetryPolicy:
        """Return the client polling policy."""
        return RetryPolicy(
            max_attempts=self.poll_max_attempts,
            interval_seconds=self.poll_interval_seconds,
        )
