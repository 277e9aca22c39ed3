# backend/app/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import BRAND_NAME, DEFAULT_CHECK_IN_MAX_DISTANCE_METERS, MAX_EXTENSION_MINUTES

logger = logging.getLogger(__name__)


# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    environment: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        description="Deployment environment name",
    )

    database_url: str = Field(
        default="sqlite:///./booking_core.db",
        description="SQLAlchemy database URL for the booking store",
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements")

    # Currency used when a booking or service does not carry one
    platform_currency: str = Field(default="cop", description="Platform base currency")
    platform_timezone: str = Field(
        default="America/Bogota",
        description="Timezone used when formatting notification dates",
    )

    # Stripe Configuration
    stripe_secret_key: SecretStr = Field(
        default=SecretStr(""),
        description="Stripe secret key for backend API calls",
    )
    stripe_webhook_secret: SecretStr = Field(
        default=SecretStr(""),
        description="Stripe webhook signing secret",
    )
    payment_gateway_timeout_seconds: float = Field(
        default=8.0, description="Network timeout applied to every gateway call"
    )
    payment_gateway_max_retries: int = Field(
        default=1, description="Network retries performed by the Stripe client"
    )

    # Booking operations
    check_in_max_distance_meters: float = Field(
        default=DEFAULT_CHECK_IN_MAX_DISTANCE_METERS,
        description="Distance from the service address beyond which check-ins are flagged",
    )
    max_extension_minutes: int = Field(
        default=MAX_EXTENSION_MINUTES,
        description="Largest single time extension a professional may request",
    )

    # Notifications
    notifications_enabled: bool = Field(default=True, description="Dispatch booking notifications")
    resend_api_key: Optional[str] = Field(
        default=None,
        description="API key for the Resend email provider (console channel when unset)",
    )
    from_email: str = Field(
        default=f"{BRAND_NAME} <notifications@casaora.com>",
        description="Sender for transactional booking emails",
    )

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("platform_currency")
    @classmethod
    def _normalize_currency(cls, value: str) -> str:
        normalized = (value or "").strip().lower()
        if len(normalized) != 3:
            raise ValueError("platform_currency must be a 3-letter ISO code")
        return normalized

    @field_validator("check_in_max_distance_meters")
    @classmethod
    def _positive_distance(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("check_in_max_distance_meters must be positive")
        return value

    @property
    def stripe_configured(self) -> bool:
        return bool(self.stripe_secret_key.get_secret_value())

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


settings = Settings()
