from __future__ import annotations

import math
import re
from typing import Optional, Union

_PRICE_NOISE = re.compile(r"[$,\s]")
_NON_DIGITS = re.compile(r"\D")
_PLAIN_NUMBER = re.compile(r"(?:\d+\.?\d*|\.\d+)")

PRICE_MULTIPLIERS = {
    "k": 1_000,
    "K": 1_000,
    "m": 1_000_000,
    "M": 1_000_000,
}


def _to_number(text: str) -> Optional[float]:
    if not _PLAIN_NUMBER.fullmatch(text):
        return None
    value = float(text)
    return value if math.isfinite(value) else None


def parse_price(value: Union[str, int, float, None]) -> Optional[float]:
    """Parse loosely formatted price input.

    Accepts "425000", "425,000", "$425,000", "425K", "1.5M" and plain
    numbers. Returns ``None`` for anything that does not yield a finite,
    non-negative number.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if not math.isfinite(value) or value < 0:
            return None
        return value

    cleaned = _PRICE_NOISE.sub("", str(value))
    if not cleaned:
        return None

    multiplier = PRICE_MULTIPLIERS.get(cleaned[-1])
    if multiplier:
        base = _to_number(cleaned[:-1])
        return base * multiplier if base is not None else None

    return _to_number(cleaned)


def phone_digits(raw: Optional[str]) -> str:
    if not raw:
        return ""
    return _NON_DIGITS.sub("", raw)


def format_phone_for_storage(raw: str) -> str:
    """Format a 10 digit number as ``(XXX) XXX-XXXX``; anything else passes through untouched."""
    digits = phone_digits(raw)
    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    return raw


def is_valid_phone_number(raw: str) -> bool:
    return len(phone_digits(raw)) == 10
