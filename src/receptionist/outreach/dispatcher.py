"""
Missed-call outreach dispatcher.

Sends a WhatsApp quick-reply first and falls back to SMS once, with both
attempts sharing one hour-bucket dedupe key. A redelivered callback inside
the same hour never re-attempts a channel that already has a row.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from receptionist.consent.ledger import ConsentLedger
from receptionist.consent.models import ConsentStatus
from receptionist.outreach.config import OutreachConfig
from receptionist.outreach.repository import OutreachEventRepository
from receptionist.outreach.senders import ChannelSender
from receptionist.shared.logging import get_logger, log_with_context
from receptionist.shared.phone import mask_e164, normalize_e164
from receptionist.telephony.events import Channel

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def dedupe_key_for(now: datetime) -> str:
    """UTC hour bucket, e.g. 2025-01-15T14."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).strftime("%Y-%m-%dT%H")


class OutreachDispatcher:
    """Deduplicated WhatsApp to SMS outreach for missed calls."""

    def __init__(
        self,
        whatsapp: ChannelSender,
        sms: ChannelSender,
        repository: OutreachEventRepository,
        config: OutreachConfig,
        ledger: ConsentLedger | None = None,
        clock: Clock = _utcnow,
    ) -> None:
        """Initialize dispatcher.

        Args:
            whatsapp: Primary channel sender.
            sms: Fallback channel sender.
            repository: Outreach event rows, used for the redelivery check.
            config: Outreach policy.
            ledger: Consent lookups; consent is not checked when None.
            clock: Source of "now" for the dedupe key.
        """
        self._whatsapp = whatsapp
        self._sms = sms
        self._repository = repository
        self._config = config
        self._ledger = ledger
        self._clock = clock

    async def _revoked_channels(self, from_number: str) -> set[Channel]:
        if self._ledger is None or not self._config.respect_consent:
            return set()
        e164 = normalize_e164(from_number)
        if e164 is None:
            return set()
        consent = await self._ledger.latest_consent(e164)
        return {ch for ch, status in consent.items() if status == ConsentStatus.REVOKED}

    async def handle_missed_call(self, call_sid: str, from_number: str) -> None:
        """Run outreach for one missed call.

        Args:
            call_sid: Provider call identifier.
            from_number: Caller number as received.
        """
        dedupe_key = dedupe_key_for(self._clock())
        context = {
            "call_sid": call_sid,
            "from": mask_e164(from_number),
            "dedupe_key": dedupe_key,
        }

        if await self._repository.has_sent(call_sid, dedupe_key):
            log_with_context(logger, logging.INFO, "Outreach already delivered; skipping", **context)
            return

        senders = (self._whatsapp, self._sms)
        attempted = {
            sender.channel
            for sender in senders
            if await self._repository.has_attempted(call_sid, sender.channel, dedupe_key)
        }
        if len(attempted) == len(senders):
            log_with_context(logger, logging.INFO, "Outreach already attempted; skipping", **context)
            return

        revoked = await self._revoked_channels(from_number)

        for sender in senders:
            if sender.channel in attempted:
                log_with_context(
                    logger,
                    logging.INFO,
                    "Channel already attempted in this window; skipping",
                    channel=sender.channel.value,
                    **context,
                )
                continue

            if sender.channel in revoked:
                log_with_context(
                    logger,
                    logging.INFO,
                    "Consent revoked; skipping channel",
                    channel=sender.channel.value,
                    **context,
                )
                continue

            if await sender.send(from_number, call_sid, dedupe_key):
                log_with_context(
                    logger,
                    logging.INFO,
                    "Outreach delivered",
                    channel=sender.channel.value,
                    **context,
                )
                return

            log_with_context(
                logger,
                logging.INFO,
                "Outreach channel failed",
                channel=sender.channel.value,
                **context,
            )

        log_with_context(logger, logging.WARNING, "Outreach exhausted all channels", **context)
