"""
Domain event models for provider webhooks.

Provider payloads are untyped form bodies. The normalizers below extract the
fields the pipeline needs into frozen pydantic models and never raise: a
missing or malformed optional field becomes None (or 0 for durations).
"""

from collections.abc import Mapping
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from receptionist.shared.phone import WHATSAPP_PREFIX, strip_channel_prefix


class CallStatus(str, Enum):
    """Provider call status values."""

    QUEUED = "queued"
    RINGING = "ringing"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    BUSY = "busy"
    FAILED = "failed"
    NO_ANSWER = "no-answer"
    CANCELED = "canceled"


class Channel(str, Enum):
    """Messaging channels."""

    SMS = "sms"
    WHATSAPP = "whatsapp"


CallDirection = Literal["inbound", "outbound"]


class _EventModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class CallEvent(_EventModel):
    """Normalized call status callback."""

    call_sid: str | None = None
    from_number: str | None = None
    to_number: str | None = None
    direction: CallDirection | None = None
    status: CallStatus | None = None
    raw_status: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    talk_seconds: int = Field(default=0, ge=0)
    error_code: str | None = None
    error_message: str | None = None
    raw_payload: dict[str, Any] = Field(default_factory=dict)


class MessageStatusEvent(_EventModel):
    """Normalized outbound message delivery callback."""

    message_sid: str | None = None
    status: str | None = None
    from_number: str | None = None
    to_number: str | None = None
    error_code: str | None = None
    error_message: str | None = None
    price: float | None = None
    price_unit: str | None = None
    raw_payload: dict[str, Any] = Field(default_factory=dict)


class InboundMessageEvent(_EventModel):
    """Normalized inbound SMS/WhatsApp message."""

    message_sid: str | None = None
    from_number: str | None = None
    to_number: str | None = None
    body: str = ""
    channel: Channel = Channel.SMS
    sender_e164: str | None = None
    opt_out_type: str | None = None
    num_media: int = 0
    raw_payload: dict[str, Any] = Field(default_factory=dict)


MessageEvent = MessageStatusEvent | InboundMessageEvent


def _text(payload: Mapping[str, Any], *keys: str) -> str | None:
    """First non-blank value among keys, stripped."""
    for key in keys:
        value = payload.get(key)
        if value is None:
            continue
        value = str(value).strip()
        if value:
            return value
    return None


def _non_negative_int(value: Any) -> int:
    try:
        return max(0, int(str(value).strip()))
    except (TypeError, ValueError):
        return 0


def _float(value: Any) -> float | None:
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return None


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse RFC 2822 (what Twilio sends) or ISO 8601 timestamps."""
    if not value:
        return None

    parsed: datetime | None = None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        parsed = None

    if parsed is None:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _call_status(raw: str | None) -> CallStatus | None:
    if not raw:
        return None
    try:
        return CallStatus(raw.lower())
    except ValueError:
        return None


def _direction(raw: str | None) -> CallDirection | None:
    # Twilio reports outbound calls as outbound-api / outbound-dial
    if not raw:
        return None
    raw = raw.lower()
    if raw.startswith("outbound"):
        return "outbound"
    if raw == "inbound":
        return "inbound"
    return None


def normalize_call_event(payload: Mapping[str, Any]) -> CallEvent:
    """Build a CallEvent from a call status callback body."""
    raw_status = _text(payload, "CallStatus")
    return CallEvent(
        call_sid=_text(payload, "CallSid"),
        from_number=_text(payload, "From"),
        to_number=_text(payload, "To"),
        direction=_direction(_text(payload, "Direction")),
        status=_call_status(raw_status),
        raw_status=raw_status,
        start_time=parse_timestamp(_text(payload, "StartTime")),
        end_time=parse_timestamp(_text(payload, "EndTime")),
        talk_seconds=_non_negative_int(payload.get("CallDuration")),
        error_code=_text(payload, "ErrorCode"),
        error_message=_text(payload, "ErrorMessage"),
        raw_payload=dict(payload),
    )


def normalize_message_status(payload: Mapping[str, Any]) -> MessageStatusEvent:
    """Build a MessageStatusEvent from a delivery status callback body."""
    return MessageStatusEvent(
        message_sid=_text(payload, "MessageSid", "SmsSid"),
        status=_text(payload, "MessageStatus", "SmsStatus"),
        from_number=_text(payload, "From"),
        to_number=_text(payload, "To"),
        error_code=_text(payload, "ErrorCode"),
        error_message=_text(payload, "ErrorMessage"),
        price=_float(payload.get("Price")),
        price_unit=_text(payload, "PriceUnit"),
        raw_payload=dict(payload),
    )


def normalize_inbound_message(payload: Mapping[str, Any]) -> InboundMessageEvent:
    """Build an InboundMessageEvent from an incoming message body."""
    from_number = _text(payload, "From")
    channel = Channel.SMS
    sender = None
    if from_number:
        if from_number.lower().startswith(WHATSAPP_PREFIX):
            channel = Channel.WHATSAPP
        sender = strip_channel_prefix(from_number)

    opt_out_type = _text(payload, "OptOutType")
    return InboundMessageEvent(
        message_sid=_text(payload, "MessageSid", "SmsSid"),
        from_number=from_number,
        to_number=_text(payload, "To"),
        body=_text(payload, "Body") or "",
        channel=channel,
        sender_e164=sender,
        opt_out_type=opt_out_type.upper() if opt_out_type else None,
        num_media=_non_negative_int(payload.get("NumMedia")),
        raw_payload=dict(payload),
    )


def normalize(payload: Mapping[str, Any]) -> CallEvent | MessageEvent:
    """Normalize any provider payload into the matching event model.

    Call callbacks carry CallSid. Of the rest, inbound messages carry a Body
    (alongside SmsStatus=received, so the status field cannot decide); any
    other payload is a message status callback.
    """
    if _text(payload, "CallSid"):
        return normalize_call_event(payload)
    if "Body" in payload:
        return normalize_inbound_message(payload)
    return normalize_message_status(payload)
