"""
Telephony provider configuration.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TelephonyConfig(BaseSettings):
    """Telephony provider configuration from environment."""

    model_config = SettingsConfigDict(
        env_prefix="TELEPHONY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Provider credentials (auth token doubles as the webhook signing secret)
    twilio_account_sid: str = Field(default="")
    twilio_auth_token: str = Field(default="")

    # Public base URL the provider calls; used to rebuild the signed URL
    # when running behind a proxy. Empty means "use the request URL".
    webhook_base_url: str = Field(default="")

    # Shared secret for internal webhook-to-webhook calls (legacy forwarders)
    internal_webhook_secret: str = Field(default="")

    # Skip signature verification outside production (local tunnels, QA)
    allow_insecure_webhooks: bool = Field(default=False)

    # Where legacy aliases forward to; empty means this application in-process
    legacy_forward_base_url: str = Field(default="")
    legacy_forward_timeout_seconds: float = Field(default=10.0, gt=0, le=60)

    def get_webhook_url(self, path: str, query: str = "") -> str | None:
        """Public URL for a webhook path, or None when no base URL is configured."""
        if not self.webhook_base_url:
            return None
        base = self.webhook_base_url.rstrip("/")
        url = f"{base}{path}"
        if query:
            url = f"{url}?{query}"
        return url


def get_telephony_config() -> TelephonyConfig:
    return TelephonyConfig()
