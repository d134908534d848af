import base64
import re
import time
from datetime import datetime, timedelta, timezone
from urllib.parse import quote

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_PERIOD_RE = re.compile(r"P(\d+)([YMWD])")

_PERIOD_NAMES = {
    "Y": ("Yearly", "years"),
    "M": ("Monthly", "months"),
    "W": ("Weekly", "weeks"),
    "D": ("Daily", "days"),
}

# symbol, placed before the amount?
_CURRENCY_FORMATS = {
    "USD": ("$", True),
    "EUR": ("€", True),
    "GBP": ("£", True),
    "JPY": ("¥", True),
    "CNY": ("¥", True),
    "KRW": ("₩", True),
    "INR": ("₹", True),
    "RUB": ("₽", False),
    "BRL": ("R$", True),
    "CHF": ("CHF", True),
    "CAD": ("CA$", True),
    "AUD": ("A$", True),
    "NZD": ("NZ$", True),
    "HKD": ("HK$", True),
    "SGD": ("S$", True),
    "SEK": ("kr", False),
    "NOK": ("kr", False),
    "DKK": ("kr", False),
    "PLN": ("zł", False),
}


def now_ms() -> int:
    return int(time.time() * 1000)


def to_epoch_ms(dt: datetime) -> int:
    """Epoch milliseconds for ``dt``; naive datetimes are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - _EPOCH) // timedelta(milliseconds=1)


def from_epoch_ms(ms: int) -> datetime:
    return _EPOCH + timedelta(milliseconds=ms)


def base64_encode(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def build_url(base_url: str, params: dict) -> str:
    """Append URL-encoded query params, dropping ``None`` values."""
    base = base_url.rstrip("/")
    query = "&".join(
        f"{quote(str(k), safe='')}={quote(str(v), safe='')}"
        for k, v in params.items()
        if v is not None
    )
    return f"{base}?{query}" if query else base


def _format_amount(amount: float) -> str:
    text = f"{amount:,.2f}"
    if text.endswith(".00"):
        text = text[:-3]
    return text


def format_currency(amount_micros: int, currency: str) -> str:
    """Format an amount in micros, e.g. ``(1990000, "usd") -> "$1.99"``."""
    if not isinstance(amount_micros, (int, float)) or isinstance(amount_micros, bool):
        return ""
    if not isinstance(currency, str):
        return ""
    currency = currency.upper()
    amount = _format_amount(amount_micros / 1_000_000)

    fmt = _CURRENCY_FORMATS.get(currency)
    if fmt is None:
        return f"{currency} {amount}"
    symbol, before = fmt
    return f"{symbol}{amount}" if before else f"{amount} {symbol}"


def format_billing_period(period: str) -> str:
    """Human-readable English for an ISO 8601 period (``P3M`` → "Every 3 months")."""
    if not period:
        return ""
    match = _PERIOD_RE.search(period)
    if not match:
        return period
    count, unit = match.groups()
    single, plural = _PERIOD_NAMES[unit]
    if count == "1":
        return single
    return f"Every {count} {plural}"
