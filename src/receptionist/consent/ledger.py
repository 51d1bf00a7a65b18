"""
Consent ledger.

Inbound opt-out/opt-in keywords are appended to consent_logs; the most
recent record per (number, channel) is the effective consent state.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from receptionist.consent.models import ConsentLog, ConsentSource, ConsentStatus
from receptionist.shared.logging import get_logger
from receptionist.shared.phone import mask_e164
from receptionist.telephony.events import Channel

logger = get_logger(__name__)

OPT_OUT_KEYWORDS = frozenset({"STOP", "STOPALL", "UNSUBSCRIBE", "CANCEL", "END", "QUIT"})
OPT_IN_KEYWORDS = frozenset({"START", "UNSTOP", "YES"})


def classify_keyword(body: str | None, opt_out_type: str | None = None) -> ConsentStatus | None:
    """Map a message body to a consent change.

    The provider's own OptOutType classification takes precedence; otherwise
    the trimmed body must match a keyword exactly, case-insensitively.

    Returns:
        REVOKED for opt-out, ACTIVE for opt-in, None for anything else.
    """
    if opt_out_type:
        kind = opt_out_type.strip().upper()
        if kind == "STOP":
            return ConsentStatus.REVOKED
        if kind == "START":
            return ConsentStatus.ACTIVE

    keyword = (body or "").strip().upper()
    if keyword in OPT_OUT_KEYWORDS:
        return ConsentStatus.REVOKED
    if keyword in OPT_IN_KEYWORDS:
        return ConsentStatus.ACTIVE
    return None


class ConsentLedger:
    """Append-only consent records backed by consent_logs."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record_consent(
        self,
        e164: str,
        channel: Channel,
        keyword: str | None,
        opt_out_type: str | None = None,
    ) -> ConsentLog | None:
        """Append a consent record if the message is a consent keyword.

        Args:
            e164: Sender number.
            channel: Channel the keyword arrived on.
            keyword: Raw message body.
            opt_out_type: Provider-detected opt-out classification, if any.

        Returns:
            The stored record, or None when the body is not a keyword.
        """
        status = classify_keyword(keyword, opt_out_type)
        if status is None:
            return None

        source = (
            ConsentSource.KEYWORD_STOP
            if status == ConsentStatus.REVOKED
            else ConsentSource.KEYWORD_START
        )
        record = ConsentLog(
            e164=e164,
            channel=channel.value,
            status=status.value,
            source=source.value,
        )
        self._session.add(record)
        await self._session.commit()

        logger.info(
            "Consent recorded",
            extra={
                "e164": mask_e164(e164),
                "channel": channel.value,
                "status": status.value,
            },
        )
        return record

    async def latest_status(self, e164: str, channel: Channel) -> ConsentStatus | None:
        """Effective consent for a number on one channel; None if never recorded."""
        stmt = (
            select(ConsentLog.status)
            .where(ConsentLog.e164 == e164, ConsentLog.channel == channel.value)
            .order_by(ConsentLog.created_at.desc(), ConsentLog.id.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        value = result.scalar_one_or_none()
        return ConsentStatus(value) if value else None

    async def latest_consent(self, e164: str) -> dict[Channel, ConsentStatus | None]:
        """Effective consent for a number on every channel."""
        return {channel: await self.latest_status(e164, channel) for channel in Channel}
