"""
Phone number helpers: E.164 normalization, channel addressing, log masking.
"""

import re

E164_PATTERN = re.compile(r"^\+[1-9]\d{1,14}$")
WHATSAPP_PREFIX = "whatsapp:"


def strip_channel_prefix(address: str) -> str:
    """Remove a `whatsapp:` channel prefix if present."""
    if address.lower().startswith(WHATSAPP_PREFIX):
        return address[len(WHATSAPP_PREFIX):]
    return address


def is_valid_e164(phone: str | None) -> bool:
    return bool(phone) and bool(E164_PATTERN.match(phone))


def normalize_e164(phone: str | None, default_country_code: str = "1") -> str | None:
    """Normalize a raw phone number or channel address to E.164.

    Numbers already carrying a `+` are kept as-is when valid. Bare 10 digit
    numbers are treated as NANP and 11 digit numbers starting with 1 get a
    `+` prefix.

    Args:
        phone: Raw number, possibly prefixed with `whatsapp:`.
        default_country_code: Country code applied to 10 digit numbers.

    Returns:
        E.164 number or None if it cannot be normalized.
    """
    if not phone:
        return None

    raw = strip_channel_prefix(phone.strip())
    has_plus = raw.startswith("+")
    digits = re.sub(r"\D", "", raw)
    if not digits:
        return None

    if has_plus:
        candidate = f"+{digits}"
    elif len(digits) == 10:
        candidate = f"+{default_country_code}{digits}"
    elif len(digits) == 11 and digits.startswith("1"):
        candidate = f"+{digits}"
    elif digits.startswith("00"):
        candidate = f"+{digits[2:]}"
    else:
        candidate = f"+{digits}"

    return candidate if is_valid_e164(candidate) else None


def whatsapp_address(phone: str) -> str | None:
    """Return the `whatsapp:+E164` address for a number."""
    e164 = normalize_e164(phone)
    return f"{WHATSAPP_PREFIX}{e164}" if e164 else None


def mask_e164(phone: str | None) -> str:
    """Mask a number for logs: +15877428885 -> +1587***8885."""
    if not phone:
        return "***"
    e164 = normalize_e164(phone)
    if not e164:
        return "***"
    if len(e164) >= 10:
        return f"{e164[:5]}***{e164[-4:]}"
    return f"{e164[:2]}***"
