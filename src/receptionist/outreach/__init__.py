"""
Missed-call outreach: dedupe, channel senders and the WhatsApp to SMS fallback.
"""

__all__ = [
    "config",
    "dispatcher",
    "models",
    "repository",
    "senders",
]
