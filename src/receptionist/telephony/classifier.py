"""
Missed-call classification.
"""

from receptionist.telephony.events import CallStatus

# Completed calls shorter than this are treated as unanswered
# (pocket dials, voicemail hang-ups).
MISSED_CALL_MIN_TALK_SECONDS = 10

ALWAYS_MISSED_STATUSES = frozenset(
    {CallStatus.NO_ANSWER, CallStatus.BUSY, CallStatus.FAILED}
)


def is_missed(status: CallStatus | None, talk_seconds: int) -> bool:
    """Decide whether a call counts as missed and should trigger outreach."""
    if status in ALWAYS_MISSED_STATUSES:
        return True
    if status == CallStatus.COMPLETED:
        return talk_seconds < MISSED_CALL_MIN_TALK_SECONDS
    return False
