"""
Outreach configuration.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BOOKING_URL = "https://www.tradeline247ai.com/book"


class OutreachConfig(BaseSettings):
    """Sender identities, message content and send policy."""

    model_config = SettingsConfigDict(
        env_prefix="OUTREACH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Sender identities; MessagingServiceSid lets the provider pick the sender
    whatsapp_from: str = Field(default="")
    sms_from: str = Field(default="")
    messaging_service_sid: str = Field(default="")

    # Approved WhatsApp content template; empty means plain-text fallback
    whatsapp_content_sid: str = Field(default="")

    booking_url: str = Field(default=DEFAULT_BOOKING_URL)
    business_forward_number: str = Field(default="")

    respect_consent: bool = Field(default=True)

    # 1 means a single attempt per channel
    send_max_attempts: int = Field(default=1, ge=1, le=5)
    send_backoff_seconds: float = Field(default=0.5, ge=0, le=30)


def get_outreach_config() -> OutreachConfig:
    return OutreachConfig()
