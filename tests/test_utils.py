"""Tests for utils — URL building, encoding, formatting, epoch conversion."""

import base64
from datetime import datetime, timezone

from iaptic.utils import (
    base64_encode,
    build_url,
    format_billing_period,
    format_currency,
    from_epoch_ms,
    to_epoch_ms,
)


def test_base64_encode_ascii():
    assert base64_encode("hello") == "aGVsbG8="


def test_base64_encode_non_ascii():
    encoded = base64_encode("hello 👋")
    assert base64.b64decode(encoded).decode("utf-8") == "hello 👋"


def test_build_url_with_params():
    url = build_url("https://example.com", {"key1": "value1", "key2": "value2"})
    assert url == "https://example.com?key1=value1&key2=value2"


def test_build_url_empty_params():
    assert build_url("https://example.com", {}) == "https://example.com"


def test_build_url_trailing_slash():
    assert build_url("https://example.com/", {"key": "value"}) == "https://example.com?key=value"


def test_build_url_special_characters():
    assert build_url("https://example.com", {"key": "value with spaces"}) == \
        "https://example.com?key=value%20with%20spaces"
    assert build_url("https://example.com", {"key with spaces": "value & more"}) == \
        "https://example.com?key%20with%20spaces=value%20%26%20more"


def test_build_url_drops_none():
    assert build_url("https://example.com", {"a": None, "b": "1"}) == "https://example.com?b=1"


def test_format_billing_period():
    assert format_billing_period("P1M") == "Monthly"
    assert format_billing_period("P3M") == "Every 3 months"
    assert format_billing_period("P1Y") == "Yearly"
    assert format_billing_period("P2Y") == "Every 2 years"
    assert format_billing_period("P1W") == "Weekly"
    assert format_billing_period("P7D") == "Every 7 days"
    assert format_billing_period("") == ""
    assert format_billing_period("weird") == "weird"


def test_format_currency():
    assert format_currency(1990000, "usd") == "$1.99"
    assert format_currency(1000000, "EUR") == "€1"
    assert format_currency(5000000, "SEK") == "5 kr"
    assert format_currency(2500000, "XYZ") == "XYZ 2.50"
    assert format_currency("1", "USD") == ""


def test_epoch_ms_conversion():
    dt = datetime(2024, 2, 1, tzinfo=timezone.utc)
    ms = to_epoch_ms(dt)
    assert ms == 1706745600000
    assert from_epoch_ms(ms) == dt
    # naive datetimes are UTC
    assert to_epoch_ms(datetime(2024, 2, 1)) == ms
