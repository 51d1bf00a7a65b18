"""
Mock messaging provider for testing and local runs.
"""

import logging

from receptionist.messaging.interface import (
    MessageReceipt,
    MessageSendError,
    MessagingProvider,
    OutboundMessage,
)
from receptionist.telephony.events import Channel

logger = logging.getLogger(__name__)


class MockMessagingProvider(MessagingProvider):
    """Records sends in memory; failures can be configured per channel."""

    def __init__(self) -> None:
        self._sends: list[OutboundMessage] = []
        self._attempts: list[OutboundMessage] = []
        self._next_id: int = 1
        self._failing_channels: set[Channel] = set()
        self._fail_error: str = "Mock failure"
        self._fail_code: str = "MOCK_ERROR"

    def reset(self) -> None:
        self._sends.clear()
        self._attempts.clear()
        self._next_id = 1
        self._failing_channels.clear()
        self._fail_error = "Mock failure"
        self._fail_code = "MOCK_ERROR"

    def configure_failure(
        self,
        should_fail: bool = True,
        channel: Channel | None = None,
        error_message: str = "Mock failure",
        error_code: str = "MOCK_ERROR",
    ) -> None:
        """Make sends fail for one channel, or for all when channel is None."""
        channels = {channel} if channel is not None else set(Channel)
        if should_fail:
            self._failing_channels |= channels
        else:
            self._failing_channels -= channels
        self._fail_error = error_message
        self._fail_code = error_code

    @property
    def sends(self) -> list[OutboundMessage]:
        return self._sends.copy()

    @property
    def attempts(self) -> list[OutboundMessage]:
        """Every message passed to send_message, including failed ones."""
        return self._attempts.copy()

    def sends_for(self, channel: Channel) -> list[OutboundMessage]:
        return [m for m in self._sends if m.channel == channel]

    async def send_message(self, message: OutboundMessage) -> MessageReceipt:
        logger.info("Mock: sending message", extra={"channel": message.channel.value})

        self._attempts.append(message)
        if message.channel in self._failing_channels:
            raise MessageSendError(self._fail_error, error_code=self._fail_code)

        self._sends.append(message)
        sid = f"MOCK_MSG_{self._next_id:06d}"
        self._next_id += 1
        return MessageReceipt(sid=sid, status="queued", raw_response={"mock": True, "sid": sid})
