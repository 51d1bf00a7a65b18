"""
Keyword-driven consent ledger (STOP/START).
"""

__all__ = [
    "ledger",
    "models",
]
