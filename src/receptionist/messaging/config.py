"""
Messaging provider configuration.
"""

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProviderType(str, Enum):
    """Supported messaging provider types."""

    TWILIO = "twilio"
    MOCK = "mock"


class MessagingConfig(BaseSettings):
    """Messaging provider configuration from environment."""

    model_config = SettingsConfigDict(
        env_prefix="MESSAGING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    provider_type: ProviderType = Field(default=ProviderType.TWILIO)
    api_base_url: str = Field(default="https://api.twilio.com")
    request_timeout_seconds: float = Field(default=15.0, gt=0, le=120)


def get_messaging_config() -> MessagingConfig:
    return MessagingConfig()
