"""Tests for the lifecycle store (idempotent upserts)."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from receptionist.telephony.events import (
    normalize_call_event,
    normalize_inbound_message,
    normalize_message_status,
)
from receptionist.telephony.models import CallLifecycle, SmsReplyLog, SmsStatusLog
from receptionist.telephony.repository import LifecycleStore


async def _count(session: AsyncSession, model: type) -> int:
    result = await session.execute(select(func.count()).select_from(model))
    return result.scalar_one()


class TestUpsertCall:
    @pytest.mark.asyncio
    async def test_insert_then_update_keeps_one_row(self, db_session: AsyncSession) -> None:
        store = LifecycleStore(db_session)

        await store.upsert_call(
            normalize_call_event({"CallSid": "CA1", "CallStatus": "ringing", "From": "+15877428885"})
        )
        await store.upsert_call(
            normalize_call_event(
                {"CallSid": "CA1", "CallStatus": "completed", "CallDuration": "42", "From": "+15877428885"}
            )
        )

        assert await _count(db_session, CallLifecycle) == 1
        row = await store.get_call("CA1")
        assert row is not None
        assert row.status == "completed"
        assert row.talk_seconds == 42
        assert row.meta["CallDuration"] == "42"

    @pytest.mark.asyncio
    async def test_redelivery_is_idempotent(self, db_session: AsyncSession) -> None:
        store = LifecycleStore(db_session)
        event = normalize_call_event({"CallSid": "CA2", "CallStatus": "no-answer"})

        await store.upsert_call(event)
        await store.upsert_call(event)
        await store.upsert_call(event)

        assert await _count(db_session, CallLifecycle) == 1

    @pytest.mark.asyncio
    async def test_unknown_status_stored_raw(self, db_session: AsyncSession) -> None:
        store = LifecycleStore(db_session)
        await store.upsert_call(normalize_call_event({"CallSid": "CA3", "CallStatus": "teleported"}))

        row = await store.get_call("CA3")
        assert row is not None
        assert row.status == "teleported"

    @pytest.mark.asyncio
    async def test_missing_call_sid_raises(self, db_session: AsyncSession) -> None:
        store = LifecycleStore(db_session)
        with pytest.raises(ValueError):
            await store.upsert_call(normalize_call_event({"CallStatus": "busy"}))


class TestUpsertSmsStatus:
    @pytest.mark.asyncio
    async def test_latest_status_wins(self, db_session: AsyncSession) -> None:
        store = LifecycleStore(db_session)

        await store.upsert_sms_status(
            normalize_message_status({"MessageSid": "SM1", "MessageStatus": "sent"})
        )
        await store.upsert_sms_status(
            normalize_message_status(
                {
                    "MessageSid": "SM1",
                    "MessageStatus": "undelivered",
                    "ErrorCode": "30003",
                    "ErrorMessage": "Unreachable",
                    "Price": "-0.0075",
                }
            )
        )

        assert await _count(db_session, SmsStatusLog) == 1
        row = await store.get_sms_status("SM1")
        assert row is not None
        assert row.status == "undelivered"
        assert row.error_code == "30003"
        assert row.price == pytest.approx(-0.0075)
        assert row.price_unit == "USD"

    @pytest.mark.asyncio
    async def test_missing_message_sid_raises(self, db_session: AsyncSession) -> None:
        store = LifecycleStore(db_session)
        with pytest.raises(ValueError):
            await store.upsert_sms_status(normalize_message_status({"MessageStatus": "sent"}))


class TestUpsertSmsReply:
    @pytest.mark.asyncio
    async def test_reply_logged_once(self, db_session: AsyncSession) -> None:
        store = LifecycleStore(db_session)
        event = normalize_inbound_message(
            {"MessageSid": "SM7", "From": "whatsapp:+15877428885", "Body": "INFO"}
        )

        await store.upsert_sms_reply(event)
        await store.upsert_sms_reply(event)

        assert await _count(db_session, SmsReplyLog) == 1
        row = (await db_session.execute(select(SmsReplyLog))).scalar_one()
        assert row.channel == "whatsapp"
        assert row.from_e164 == "+15877428885"
        assert row.body == "INFO"
