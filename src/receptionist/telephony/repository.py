"""
Lifecycle store: idempotent persistence of call and message state.

Every write is an INSERT ... ON CONFLICT DO UPDATE keyed by the provider
identifier, so concurrent or repeated deliveries of the same callback race
safely at the database and the last write wins.
"""

from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from receptionist.shared.database import upsert_insert
from receptionist.telephony.events import CallEvent, InboundMessageEvent, MessageStatusEvent
from receptionist.telephony.models import CallLifecycle, SmsReplyLog, SmsStatusLog


class LifecycleStoreProtocol(Protocol):
    """Protocol for lifecycle persistence."""

    async def upsert_call(self, event: CallEvent) -> None:
        """Insert or overwrite the lifecycle row for a call."""
        ...

    async def upsert_sms_status(self, event: MessageStatusEvent) -> None:
        """Insert or overwrite the delivery row for a message."""
        ...


class LifecycleStore:
    """Repository for call/message lifecycle rows."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize store with database session.

        Args:
            session: Async database session.
        """
        self._session = session

    async def _upsert(
        self,
        model: type[CallLifecycle] | type[SmsStatusLog] | type[SmsReplyLog],
        key: str,
        values: dict[str, Any],
    ) -> None:
        stmt = upsert_insert(self._session, model).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[key],
            set_={column: stmt.excluded[column] for column in values if column != key},
        )
        await self._session.execute(stmt)
        await self._session.commit()

    async def upsert_call(self, event: CallEvent) -> None:
        """Insert or overwrite the lifecycle row for event.call_sid.

        Raises:
            ValueError: If the event carries no call identifier.
        """
        if not event.call_sid:
            raise ValueError("CallEvent without call_sid cannot be persisted")

        await self._upsert(
            CallLifecycle,
            "call_sid",
            {
                "call_sid": event.call_sid,
                "from_number": event.from_number,
                "to_number": event.to_number,
                "direction": event.direction,
                "status": event.status.value if event.status else event.raw_status,
                "start_time": event.start_time,
                "end_time": event.end_time,
                "talk_seconds": event.talk_seconds,
                "meta": event.raw_payload,
                "updated_at": datetime.now(timezone.utc),
            },
        )

    async def upsert_sms_status(self, event: MessageStatusEvent) -> None:
        """Insert or overwrite the delivery row for event.message_sid.

        Raises:
            ValueError: If the event carries no message identifier.
        """
        if not event.message_sid:
            raise ValueError("MessageStatusEvent without message_sid cannot be persisted")

        await self._upsert(
            SmsStatusLog,
            "message_sid",
            {
                "message_sid": event.message_sid,
                "status": event.status,
                "to_e164": event.to_number,
                "from_e164": event.from_number,
                "error_code": event.error_code,
                "error_message": event.error_message,
                "price": event.price,
                "price_unit": event.price_unit or "USD",
                "updated_at": datetime.now(timezone.utc),
            },
        )

    async def upsert_sms_reply(self, event: InboundMessageEvent) -> None:
        """Log an inbound message once per message_sid."""
        if not event.message_sid:
            raise ValueError("InboundMessageEvent without message_sid cannot be persisted")

        await self._upsert(
            SmsReplyLog,
            "message_sid",
            {
                "message_sid": event.message_sid,
                "from_e164": event.sender_e164,
                "to_e164": event.to_number,
                "body": event.body,
                "channel": event.channel.value,
            },
        )

    async def get_call(self, call_sid: str) -> CallLifecycle | None:
        """Get the lifecycle row for a call, if any."""
        stmt = (
            select(CallLifecycle)
            .where(CallLifecycle.call_sid == call_sid)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_sms_status(self, message_sid: str) -> SmsStatusLog | None:
        """Get the delivery row for a message, if any."""
        stmt = (
            select(SmsStatusLog)
            .where(SmsStatusLog.message_sid == message_sid)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()
