"""Input validation for resolution requests.

Runs before any I/O; every failure is a :class:`ValidationError`.
"""

from __future__ import annotations

import re
from typing import Any

from cehennemarr.domain.errors import ValidationError
from cehennemarr.infrastructure.common.converters import to_int

_IMDB_ID_RE = re.compile(r"^tt\d{7,8}$")
_MAX_EPISODE_NUMBER = 1000
_CONTENT_TYPES = ("movie", "series")


def is_valid_imdb_id(value: Any) -> bool:
    """``tt`` followed by 7 or 8 digits (``tt0499549``, ``tt12345678``)."""
    return isinstance(value, str) and bool(_IMDB_ID_RE.match(value))


def is_valid_episode_number(value: Any) -> bool:
    """Positive integer below 1000 (ints or ASCII digit strings)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, str):
        value = to_int(value)
    if not isinstance(value, int):
        return False
    return 0 < value < _MAX_EPISODE_NUMBER


def validate_request(
    content_type: Any,
    imdb_id: Any,
    season: Any = None,
    episode: Any = None,
) -> None:
    """Raise :class:`ValidationError` for the first invalid argument."""
    if not imdb_id or not isinstance(imdb_id, str):
        raise ValidationError("imdb_id", imdb_id, "IMDb ID gerekli")
    if not is_valid_imdb_id(imdb_id):
        raise ValidationError(
            "imdb_id", imdb_id, "Geçersiz IMDb ID formatı (örnek: tt1234567)"
        )
    if content_type not in _CONTENT_TYPES:
        raise ValidationError("type", content_type, "Tür movie veya series olmalı")
    if season is not None and not is_valid_episode_number(season):
        raise ValidationError("season", season, "Geçersiz sezon numarası")
    if episode is not None and not is_valid_episode_number(episode):
        raise ValidationError("episode", episode, "Geçersiz bölüm numarası")
