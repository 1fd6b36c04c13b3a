"""Type conversion utilities."""

from __future__ import annotations


def to_int(raw: str | int | None) -> int | None:
    """Convert string or int to int, return None if invalid.

    Handles various formats:
        - None → None
        - int → int (passthrough)
        - "2009" → 2009
        - " 2009 " → 2009
        - "2009–2014" → None (ranges are ambiguous)
        - "" → None
        - "²" → None (non-ASCII digits)
    """
    if raw is None:
        return None

    if isinstance(raw, bool):
        return None

    if isinstance(raw, int):
        return raw

    if isinstance(raw, str):
        txt = raw.strip()
        if not (txt.isascii() and txt.isdigit()):
            return None
        try:
            return int(txt)
        except ValueError:
            return None

    return None


def leading_year(raw: str | int | None) -> int | None:
    """Extract a four-digit year from the start of *raw* ("2009–2014" → 2009)."""
    if raw is None:
        return None
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    txt = str(raw).strip()[:4]
    if len(txt) == 4 and txt.isascii() and txt.isdigit():
        return int(txt)
    return None
