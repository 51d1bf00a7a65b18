"""
Outbound messaging provider package.

Keep import side-effect free; the factory builds adapters lazily.
"""

__all__ = [
    "config",
    "factory",
    "interface",
    "mock_adapter",
    "twilio_adapter",
]
