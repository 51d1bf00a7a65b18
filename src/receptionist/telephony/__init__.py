"""
Telephony package.

Keep package import side-effects to a minimum to avoid circular imports.
Do not import webhooks or repositories here.
"""

__all__ = [
    "classifier",
    "config",
    "events",
    "repository",
    "signature",
    "webhooks",
]
