"""
Outreach event persistence.
"""

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from receptionist.outreach.models import OutreachEvent, OutreachStatus
from receptionist.shared.database import upsert_insert
from receptionist.telephony.events import Channel


class OutreachEventRepository:
    """Repository for outreach_events rows."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @property
    def session(self) -> AsyncSession:
        return self._session

    async def upsert_event(
        self,
        call_sid: str,
        channel: Channel,
        status: OutreachStatus,
        dedupe_key: str,
        payload: dict[str, Any],
    ) -> None:
        """Record a send attempt, overwriting any row for the same triple.

        Args:
            call_sid: Call that triggered the outreach.
            channel: Channel attempted.
            status: Outcome of the attempt.
            dedupe_key: Hour bucket the attempt belongs to.
            payload: Provider message id and address, or the error.
        """
        now = datetime.now(timezone.utc)
        stmt = upsert_insert(self._session, OutreachEvent).values(
            id=uuid4(),
            call_sid=call_sid,
            channel=channel.value,
            status=status.value,
            dedupe_key=dedupe_key,
            payload=payload,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["call_sid", "channel", "dedupe_key"],
            set_={
                "status": stmt.excluded.status,
                "payload": stmt.excluded.payload,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await self._session.execute(stmt)
        await self._session.commit()

    async def get_events(
        self,
        call_sid: str,
        dedupe_key: str | None = None,
    ) -> list[OutreachEvent]:
        """List rows for a call, optionally restricted to one dedupe window."""
        stmt = select(OutreachEvent).where(OutreachEvent.call_sid == call_sid)
        if dedupe_key is not None:
            stmt = stmt.where(OutreachEvent.dedupe_key == dedupe_key)
        stmt = stmt.order_by(OutreachEvent.created_at).execution_options(populate_existing=True)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def has_attempted(self, call_sid: str, channel: Channel, dedupe_key: str) -> bool:
        """True if this channel already has a row, of any status, in this window."""
        stmt = (
            select(OutreachEvent.id)
            .where(
                OutreachEvent.call_sid == call_sid,
                OutreachEvent.channel == channel.value,
                OutreachEvent.dedupe_key == dedupe_key,
            )
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.first() is not None

    async def has_sent(self, call_sid: str, dedupe_key: str) -> bool:
        """True if any channel already delivered for this call in this window."""
        stmt = (
            select(OutreachEvent.id)
            .where(
                OutreachEvent.call_sid == call_sid,
                OutreachEvent.dedupe_key == dedupe_key,
                OutreachEvent.status == OutreachStatus.SENT.value,
            )
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.first() is not None
