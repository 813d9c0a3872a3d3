"""Parsing of marketplace price, rating and review-count text.

Prices come in many shapes: '$1,299.99', '€1.299,99', '$19.99 - $29.99',
'From $5', ''. A price that cannot be read is returned as +inf so it sorts
last and is never mistaken for the cheapest listing.
"""

from __future__ import annotations

import math
import re

UNPARSEABLE_PRICE = math.inf

_NUMBER_RE = re.compile(r"\d[\d.,]*")
_RANGE_SPLIT_RE = re.compile(r"\s*(?:-|–|—|\bto\b)\s*", re.IGNORECASE)


def _parse_number(token: str) -> float | None:
    """Parse one numeric token, working out which separator is the decimal.

    '1,299.99' -> 1299.99, '1.299,99' -> 1299.99, '1,299' -> 1299.0,
    '12,50' -> 12.5, '1.299.000' -> 1299000.0. A single dot is a decimal.
    """
    token = token.strip(".,")
    if not token:
        return None

    has_dot = "." in token
    has_comma = "," in token

    if has_dot and has_comma:
        if token.rfind(",") > token.rfind("."):
            token = token.replace(".", "").replace(",", ".")
        else:
            token = token.replace(",", "")
    elif has_comma:
        head, _, tail = token.rpartition(",")
        if len(tail) == 2 and token.count(",") == 1:
            token = f"{head}.{tail}"
        else:
            token = token.replace(",", "")
    elif token.count(".") > 1:
        # '1.299.000'
        token = token.replace(".", "")

    try:
        return float(token)
    except ValueError:
        return None


def parse_price(text: str | None) -> float:
    """Normalize raw price text to a float.

    On a range the lower bound is used. Never raises.
    """
    if not text:
        return UNPARSEABLE_PRICE

    values: list[float] = []
    for part in _RANGE_SPLIT_RE.split(str(text))[:2]:
        match = _NUMBER_RE.search(part)
        if not match:
            continue
        value = _parse_number(match.group(0))
        if value is not None:
            values.append(value)

    if not values:
        return UNPARSEABLE_PRICE
    price = min(values)
    return price if price >= 0 else UNPARSEABLE_PRICE


def parse_rating(text: str | float | None) -> float:
    """Extract a 0-5 star rating from text like '4.6' or '4.6 out of 5 stars'."""
    if text is None:
        return 0.0
    match = re.search(r"(\d+(?:[.,]\d+)?)", str(text))
    if not match:
        return 0.0
    value = float(match.group(1).replace(",", "."))
    return min(max(value, 0.0), 5.0)


_COUNT_RE = re.compile(r"(\d[\d.,]*)\s*([kKmM])?(?![A-Za-z])")
_COUNT_MULTIPLIERS = {"k": 1_000, "m": 1_000_000}


def parse_count(text: str | float | None) -> int:
    """Extract a review count from text like '12,345', '(1.234 ratings)' or '1.2K'.

    Only the first number is read. Without a K/M suffix every separator is
    a thousands separator.
    """
    if text is None:
        return 0
    if isinstance(text, (int, float)):
        return max(int(text), 0) if math.isfinite(text) else 0
    match = _COUNT_RE.search(str(text))
    if not match:
        return 0

    token, suffix = match.group(1).strip(".,"), match.group(2)
    if not suffix:
        digits = re.sub(r"[^\d]", "", token)
        return int(digits) if digits else 0

    if token.count(",") == 1 and "." not in token:
        token = token.replace(",", ".")
    value = _parse_number(token)
    if value is None:
        return 0
    return int(round(value * _COUNT_MULTIPLIERS[suffix.lower()]))


def format_price(text: str, value: float) -> str:
    """Display price: the listing's own text, or a dollar amount if blank."""
    text = (text or "").strip()
    if text:
        return text
    if math.isinf(value):
        return ""
    return f"${value:,.2f}"
