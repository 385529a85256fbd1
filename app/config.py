from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Follows 12-factor app configuration principles.

    Provider credentials are optional: a provider whose full credential
    set is missing is simply left out of the notification chain.
    """

    # env_file is only used as fallback, env vars take precedence
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
    )

    # Database / server
    DATABASE_URL: str = "sqlite:///./form_submissions.db"
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 5000

    # Twilio WhatsApp (provider A)
    TWILIO_ACCOUNT_SID: Optional[str] = None
    TWILIO_AUTH_TOKEN: Optional[str] = None
    TWILIO_PHONE_NUMBER: Optional[str] = None

    # WhatsApp Business Cloud API (provider B)
    WHATSAPP_BUSINESS_TOKEN: Optional[str] = None
    WHATSAPP_PHONE_NUMBER_ID: Optional[str] = None
    WHATSAPP_API_VERSION: str = "v17.0"

    # Fixed recipient of new-submission notifications
    WHATSAPP_RECIPIENT_NUMBER: Optional[str] = None

    # Zone used to render timestamps and to read naive date bounds
    DISPLAY_TIMEZONE: str = "Asia/Kolkata"

    # Per-attempt timeout for outbound provider calls
    NOTIFY_TIMEOUT_SECONDS: float = 10.0

    @property
    def twilio_configured(self) -> bool:
        return bool(self.TWILIO_ACCOUNT_SID and self.TWILIO_AUTH_TOKEN and self.TWILIO_PHONE_NUMBER)

    @property
    def whatsapp_business_configured(self) -> bool:
        return bool(self.WHATSAPP_BUSINESS_TOKEN and self.WHATSAPP_PHONE_NUMBER_ID)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reading .env file on every request.
    """
    return Settings()


# Global settings instance
settings = get_settings()
