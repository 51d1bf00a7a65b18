"""
Messaging provider factory.

Configuration is read only through the pydantic settings classes; never
read raw os.getenv("TWILIO_*") here.
"""

import logging
from functools import lru_cache

from receptionist.messaging.config import ProviderType, get_messaging_config
from receptionist.messaging.interface import MessagingProvider
from receptionist.messaging.mock_adapter import MockMessagingProvider
from receptionist.messaging.twilio_adapter import TwilioMessagingAdapter
from receptionist.telephony.config import get_telephony_config

logger = logging.getLogger(__name__)


def _mask(s: str, keep: int = 6) -> str:
    if not s:
        return ""
    if len(s) <= keep:
        return "*" * len(s)
    return f"{s[:keep]}***"


@lru_cache(maxsize=1)
def get_messaging_provider() -> MessagingProvider:
    """Create and cache the process-wide messaging provider."""
    messaging = get_messaging_config()
    telephony = get_telephony_config()

    logger.info(
        "Messaging config resolved",
        extra={
            "provider_type": messaging.provider_type.value,
            "twilio_account_sid": _mask(telephony.twilio_account_sid),
            "api_base_url": messaging.api_base_url,
        },
    )

    if messaging.provider_type == ProviderType.TWILIO:
        return TwilioMessagingAdapter(telephony, messaging)

    if messaging.provider_type == ProviderType.MOCK:
        return MockMessagingProvider()

    raise ValueError(f"Unsupported messaging provider_type: {messaging.provider_type}")


async def close_messaging_provider() -> None:
    """Close the cached provider, if one was created."""
    if get_messaging_provider.cache_info().currsize:
        await get_messaging_provider().close()
        get_messaging_provider.cache_clear()
