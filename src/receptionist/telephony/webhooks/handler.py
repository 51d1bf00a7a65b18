"""
Webhook handlers for call status, message status and inbound messages.

Handlers own the processing that follows a verified callback. Storage
failures are logged and rolled back so the provider still receives its
success response; only the HTTP layer decides what goes on the wire.
"""

from collections.abc import Mapping
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from receptionist.consent.ledger import ConsentLedger
from receptionist.outreach.dispatcher import OutreachDispatcher
from receptionist.shared.logging import get_logger
from receptionist.shared.phone import mask_e164, normalize_e164
from receptionist.telephony.classifier import is_missed
from receptionist.telephony.events import (
    CallEvent,
    InboundMessageEvent,
    MessageStatusEvent,
    normalize_call_event,
    normalize_inbound_message,
    normalize_message_status,
)
from receptionist.telephony.repository import LifecycleStore

logger = get_logger(__name__)


class _SessionHandler:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._store = LifecycleStore(session)

    async def _rollback(self) -> None:
        try:
            await self._session.rollback()
        except SQLAlchemyError:
            logger.exception("Session rollback failed")


class CallStatusHandler(_SessionHandler):
    """Persists call lifecycle and triggers outreach for missed calls."""

    def __init__(
        self,
        session: AsyncSession,
        dispatcher: OutreachDispatcher | None = None,
    ) -> None:
        """Initialize handler.

        Args:
            session: Async database session.
            dispatcher: Outreach dispatcher; outreach is disabled when None.
        """
        super().__init__(session)
        self._dispatcher = dispatcher

    async def handle(self, payload: Mapping[str, Any]) -> CallEvent:
        """Process one call status callback.

        Returns:
            The normalized event.
        """
        event = normalize_call_event(payload)

        if not event.call_sid:
            logger.warning("Call status callback without CallSid; not persisted")
        else:
            try:
                await self._store.upsert_call(event)
                logger.info(
                    "Call lifecycle updated",
                    extra={"call_sid": event.call_sid, "status": event.raw_status},
                )
            except SQLAlchemyError:
                logger.exception(
                    "Failed to upsert call lifecycle",
                    extra={"call_sid": event.call_sid},
                )
                await self._rollback()

        missed = is_missed(event.status, event.talk_seconds)
        if missed and event.call_sid and event.from_number and self._dispatcher is not None:
            logger.info(
                "Missed call detected; triggering outreach",
                extra={
                    "call_sid": event.call_sid,
                    "from": mask_e164(event.from_number),
                    "status": event.raw_status,
                    "talk_seconds": event.talk_seconds,
                },
            )
            try:
                await self._dispatcher.handle_missed_call(event.call_sid, event.from_number)
            except Exception:
                logger.exception("Outreach error", extra={"call_sid": event.call_sid})
                await self._rollback()

        return event


class SmsStatusHandler(_SessionHandler):
    """Persists outbound message delivery status."""

    async def handle(self, payload: Mapping[str, Any]) -> MessageStatusEvent:
        event = normalize_message_status(payload)

        if not event.message_sid:
            logger.warning("Message status callback without MessageSid; not persisted")
            return event

        try:
            await self._store.upsert_sms_status(event)
            logger.info(
                "Message status updated",
                extra={
                    "message_sid": event.message_sid,
                    "status": event.status,
                    "error_code": event.error_code,
                },
            )
        except SQLAlchemyError:
            logger.exception(
                "Failed to upsert message status",
                extra={"message_sid": event.message_sid},
            )
            await self._rollback()

        return event


class SmsReplyHandler(_SessionHandler):
    """Logs inbound replies and applies STOP/START keywords to consent."""

    def __init__(self, session: AsyncSession, ledger: ConsentLedger | None = None) -> None:
        super().__init__(session)
        self._ledger = ledger or ConsentLedger(session)

    async def handle(self, payload: Mapping[str, Any]) -> InboundMessageEvent:
        event = normalize_inbound_message(payload)

        if event.message_sid:
            try:
                await self._store.upsert_sms_reply(event)
            except SQLAlchemyError:
                logger.exception(
                    "Failed to log inbound message",
                    extra={"message_sid": event.message_sid},
                )
                await self._rollback()
        else:
            logger.warning("Inbound message without MessageSid; not logged")

        sender = normalize_e164(event.sender_e164) or event.sender_e164
        if not sender:
            return event

        try:
            await self._ledger.record_consent(
                sender,
                event.channel,
                event.body,
                opt_out_type=event.opt_out_type,
            )
        except SQLAlchemyError:
            logger.exception(
                "Failed to record consent",
                extra={"from": mask_e164(sender), "channel": event.channel.value},
            )
            await self._rollback()

        return event
