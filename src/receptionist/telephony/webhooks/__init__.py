"""
Webhook endpoints for telephony providers.
"""

__all__ = ["handler", "legacy", "router"]
