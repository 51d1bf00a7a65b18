"""
Messaging provider interface definition.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from receptionist.telephony.events import Channel


@dataclass(frozen=True)
class OutboundMessage:
    """A message to hand to the provider.

    Either `body` or `content_sid` must be set. `from_address` may be empty
    when a messaging service is configured to pick the sender.
    """

    channel: Channel
    to: str
    from_address: str | None = None
    body: str | None = None
    content_sid: str | None = None
    content_variables: dict[str, str] | None = None
    messaging_service_sid: str | None = None


@dataclass(frozen=True)
class MessageReceipt:
    """Provider acceptance of an outbound message."""

    sid: str
    status: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)


class MessagingProviderError(Exception):
    """Base exception for messaging provider errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        provider_response: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.provider_response = provider_response or {}


class MessageSendError(MessagingProviderError):
    """The provider did not accept a message."""


class MessagingProvider(ABC):
    """Abstract interface for outbound messaging providers."""

    @abstractmethod
    async def send_message(self, message: OutboundMessage) -> MessageReceipt:
        """Send a message.

        Raises:
            MessageSendError: On any non-success provider response or
                transport error.
        """
        ...

    async def close(self) -> None:
        """Release provider resources."""
        return None
