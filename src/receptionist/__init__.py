"""
Telephony event processing and missed-call outreach.
"""

__version__ = "0.1.0"
