"""Conversions between abbreviated stream counts and integers."""

import re
from typing import Optional

MAGNITUDES = {
    'K': 1_000,
    'M': 1_000_000,
    'B': 1_000_000_000,
}

_MAGNITUDE_RE = re.compile(r"^(\d+(?:\.\d+)?|\.\d+)([KMB])?$")
_SEPARATORS_RE = re.compile(r"[,\s]")


def parse_magnitude(text: Optional[str]) -> int:
    """Parse a page count such as ``"1,234"``, ``"3.5K"`` or ``"2.1M"``.

    Never raises: anything unparsable yields 0.
    """
    if text is None:
        return 0
    if isinstance(text, (int, float)):
        return int(round(text))

    cleaned = _SEPARATORS_RE.sub('', str(text)).upper()
    match = _MAGNITUDE_RE.match(cleaned)
    if not match:
        return 0

    value = float(match.group(1))
    suffix = match.group(2)
    if suffix:
        value *= MAGNITUDES[suffix]
    return int(round(value))


def format_magnitude(value: int) -> str:
    """Render an integer in abbreviated form (``3500 -> "3.5K"``)."""
    if value >= 1_000_000_000:
        return f"{value / 1_000_000_000:.1f}B"
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if value >= 1_000:
        return f"{value / 1_000:.1f}K"
    return str(value)


def format_count(value: int, signed: bool = False) -> str:
    """Render an integer with thousands separators, optionally with its sign."""
    if signed:
        return f"{value:+,}"
    return f"{value:,}"
