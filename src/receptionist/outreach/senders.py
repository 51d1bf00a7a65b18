"""
Channel senders.

Each sender makes one logical send attempt on its channel (optionally retried
with backoff), records the outcome in outreach_events, and reports success as
a boolean. Senders never raise.
"""

from abc import ABC, abstractmethod
from typing import Any

import anyio
from sqlalchemy.exc import SQLAlchemyError

from receptionist.messaging.interface import MessageReceipt, MessagingProvider, OutboundMessage
from receptionist.outreach.config import OutreachConfig
from receptionist.outreach.models import OutreachStatus
from receptionist.outreach.repository import OutreachEventRepository
from receptionist.shared.logging import get_logger
from receptionist.shared.phone import mask_e164, normalize_e164, whatsapp_address
from receptionist.telephony.events import Channel

logger = get_logger(__name__)

WHATSAPP_GREETING = "Sorry we missed your call. Want to pick a slot now?"
QUICK_REPLY_ACTIONS = ("Book now", "Call me back", "Text me details")


class InvalidRecipientError(ValueError):
    """The caller number cannot be turned into a channel address."""


class ChannelSender(ABC):
    """Base class for a single outreach channel."""

    channel: Channel

    def __init__(
        self,
        provider: MessagingProvider,
        repository: OutreachEventRepository,
        config: OutreachConfig,
    ) -> None:
        self._provider = provider
        self._repository = repository
        self._config = config

    @abstractmethod
    def address_for(self, to: str) -> str | None:
        """Channel address for a raw caller number, or None if invalid."""

    @abstractmethod
    def build_message(self, address: str) -> OutboundMessage:
        """Message to send to an already-resolved address."""

    async def send(self, to: str, call_sid: str, dedupe_key: str) -> bool:
        """Attempt delivery and record the outcome.

        Args:
            to: Caller number as received from the provider.
            call_sid: Call that triggered the outreach.
            dedupe_key: Hour bucket shared by every attempt for this call.

        Returns:
            True if the provider accepted the message.
        """
        address = self.address_for(to)
        try:
            if address is None:
                raise InvalidRecipientError(f"Cannot address {self.channel.value} recipient")
            message = self.build_message(address)
            receipt = await self._send_with_retry(message, call_sid)
        except Exception as e:
            logger.warning(
                "Outreach send failed",
                extra={
                    "call_sid": call_sid,
                    "channel": self.channel.value,
                    "to": mask_e164(to),
                    "error": str(e),
                },
            )
            await self._record(call_sid, dedupe_key, OutreachStatus.FAILED, {"error": str(e)})
            return False

        logger.info(
            "Outreach message sent",
            extra={
                "call_sid": call_sid,
                "channel": self.channel.value,
                "to": mask_e164(to),
                "message_sid": receipt.sid,
            },
        )
        await self._record(
            call_sid,
            dedupe_key,
            OutreachStatus.SENT,
            {"message_sid": receipt.sid, "to": address},
        )
        return True

    async def _send_with_retry(self, message: OutboundMessage, call_sid: str) -> MessageReceipt:
        attempt = 1
        while True:
            try:
                return await self._provider.send_message(message)
            except Exception:
                if attempt >= self._config.send_max_attempts:
                    raise
            delay = self._config.send_backoff_seconds * (2 ** (attempt - 1))
            logger.info(
                "Retrying outreach send",
                extra={
                    "call_sid": call_sid,
                    "channel": self.channel.value,
                    "attempt": attempt,
                    "delay_seconds": delay,
                },
            )
            await anyio.sleep(delay)
            attempt += 1

    async def _record(
        self,
        call_sid: str,
        dedupe_key: str,
        status: OutreachStatus,
        payload: dict[str, Any],
    ) -> None:
        # A lost log row must not turn a delivered message into a failure.
        try:
            await self._repository.upsert_event(call_sid, self.channel, status, dedupe_key, payload)
        except SQLAlchemyError:
            logger.exception(
                "Failed to record outreach event",
                extra={"call_sid": call_sid, "channel": self.channel.value, "status": status.value},
            )
            await self._repository.session.rollback()


class WhatsAppSender(ChannelSender):
    """Interactive quick-reply message over WhatsApp."""

    channel = Channel.WHATSAPP

    def address_for(self, to: str) -> str | None:
        return whatsapp_address(to)

    def build_message(self, address: str) -> OutboundMessage:
        cfg = self._config
        booking_url = cfg.booking_url

        if cfg.whatsapp_content_sid:
            return OutboundMessage(
                channel=self.channel,
                to=address,
                from_address=cfg.whatsapp_from or None,
                content_sid=cfg.whatsapp_content_sid,
                content_variables={
                    "1": QUICK_REPLY_ACTIONS[0],
                    "2": QUICK_REPLY_ACTIONS[1],
                    "3": QUICK_REPLY_ACTIONS[2],
                    "booking_url": booking_url,
                },
                messaging_service_sid=cfg.messaging_service_sid or None,
            )

        body = (
            f"{WHATSAPP_GREETING}\n\n"
            f"- {QUICK_REPLY_ACTIONS[0]}: {booking_url}\n"
            f'- {QUICK_REPLY_ACTIONS[1]}: reply "CALL"\n'
            f'- {QUICK_REPLY_ACTIONS[2]}: reply "INFO"'
        )
        return OutboundMessage(
            channel=self.channel,
            to=address,
            from_address=cfg.whatsapp_from or None,
            body=body,
            messaging_service_sid=cfg.messaging_service_sid or None,
        )


class SmsSender(ChannelSender):
    """Plain-text SMS fallback with the booking link."""

    channel = Channel.SMS

    def address_for(self, to: str) -> str | None:
        return normalize_e164(to)

    def build_message(self, address: str) -> OutboundMessage:
        cfg = self._config
        body = f"We just missed you. Book instantly here: {cfg.booking_url}"
        if cfg.business_forward_number:
            body += f" or call us back at {cfg.business_forward_number}"
        body += ". Reply STOP to opt out."
        return OutboundMessage(
            channel=self.channel,
            to=address,
            from_address=cfg.sms_from or None,
            body=body,
            messaging_service_sid=cfg.messaging_service_sid or None,
        )


__all__ = [
    "ChannelSender",
    "InvalidRecipientError",
    "SmsSender",
    "WhatsAppSender",
]
