"""Common infrastructure utilities."""

from __future__ import annotations

from .cloudflare import contains_challenge_markers, is_blocked_response
from .converters import leading_year, to_int

__all__ = [
    "contains_challenge_markers",
    "is_blocked_response",
    "leading_year",
    "to_int",
]
