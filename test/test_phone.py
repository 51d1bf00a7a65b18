"""Tests for phone number helpers."""

import pytest

from receptionist.shared.phone import (
    is_valid_e164,
    mask_e164,
    normalize_e164,
    strip_channel_prefix,
    whatsapp_address,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("+15877428885", "+15877428885"),
        ("5877428885", "+15877428885"),
        ("15877428885", "+15877428885"),
        ("(587) 742-8885", "+15877428885"),
        ("whatsapp:+15877428885", "+15877428885"),
        ("0044207946000", "+44207946000"),
        ("+44 20 7946 0000", "+442079460000"),
    ],
)
def test_normalize_e164(raw: str, expected: str) -> None:
    assert normalize_e164(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "abc", "+0123"])
def test_normalize_e164_invalid(raw: str | None) -> None:
    assert normalize_e164(raw) is None


def test_strip_channel_prefix() -> None:
    assert strip_channel_prefix("whatsapp:+15877428885") == "+15877428885"
    assert strip_channel_prefix("+15877428885") == "+15877428885"


def test_is_valid_e164() -> None:
    assert is_valid_e164("+15877428885") is True
    assert is_valid_e164("15877428885") is False
    assert is_valid_e164(None) is False


def test_whatsapp_address() -> None:
    assert whatsapp_address("5877428885") == "whatsapp:+15877428885"
    assert whatsapp_address("whatsapp:+15877428885") == "whatsapp:+15877428885"
    assert whatsapp_address("nope") is None


def test_mask_e164() -> None:
    assert mask_e164("+15877428885") == "+1587***8885"
    assert mask_e164(None) == "***"
    assert mask_e164("garbage") == "***"
