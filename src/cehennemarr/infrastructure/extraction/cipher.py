"""Video URL cipher of the embed player.

The player hands an array of string parts to a ``dc_xxx([...])`` call.
Decoding joins the parts and runs a sequence of named stages.  The
upstream has reordered the stages more than once, so the order lives in
a table and :func:`decode_video_url` is the only place that applies it.

Stages:

- ``rot13``       – Caesar-13 on ASCII letters
- ``reverse``     – reverse the character sequence
- ``base64``      – base64 decode, bytes read as Latin-1
- ``base64_utf8`` – base64 decode, bytes read as UTF-8
- ``unmix``       – ``chr((ord(c) - 399756995 % (i + 5)) % 256)``
"""

from __future__ import annotations

import base64
import binascii
import re
from typing import Callable, Sequence
from urllib.parse import urlparse

import structlog

log = structlog.get_logger(__name__)

_UNMIX_KEY = 399756995

_PARTS_CALL_RE = re.compile(r"dc_\w+\(\[([^\]]+)\]\)")
_QUOTED_RE = re.compile(r"""["']([^"']+)["']""")
_PRINTABLE_URL_RE = re.compile(r"^https?://[\x21-\x7e]+$")


def rot13(text: str) -> str:
    result: list[str] = []
    for ch in text:
        code = ord(ch)
        if 0x41 <= code <= 0x5A:  # A-Z
            code = (code - 0x41 + 13) % 26 + 0x41
        elif 0x61 <= code <= 0x7A:  # a-z
            code = (code - 0x61 + 13) % 26 + 0x61
        result.append(chr(code))
    return "".join(result)


def reverse(text: str) -> str:
    return text[::-1]


def _b64_bytes(data: str) -> bytes:
    data = data.strip()
    padding = 4 - len(data) % 4
    if padding != 4:
        data += "=" * padding
    try:
        return base64.b64decode(data)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ValueError(f"invalid base64 input: {exc}") from exc


def base64_latin1(text: str) -> str:
    return _b64_bytes(text).decode("latin-1")


def base64_utf8(text: str) -> str:
    return _b64_bytes(text).decode("utf-8", errors="replace")


def unmix(text: str) -> str:
    return "".join(
        chr((ord(ch) - _UNMIX_KEY % (i + 5)) % 256) for i, ch in enumerate(text)
    )


STAGES: dict[str, Callable[[str], str]] = {
    "rot13": rot13,
    "reverse": reverse,
    "base64": base64_latin1,
    "base64_utf8": base64_utf8,
    "unmix": unmix,
}

DEFAULT_STAGE_ORDER: tuple[str, ...] = ("rot13", "reverse", "base64", "unmix")

# Orders observed in earlier player versions, tried when the default
# does not produce a URL.
ALTERNATE_STAGE_ORDERS: tuple[tuple[str, ...], ...] = (
    ("reverse", "base64_utf8", "base64", "unmix"),
    ("reverse", "rot13", "base64", "unmix"),
    ("reverse", "base64", "unmix"),
    ("rot13", "base64", "unmix"),
)


def decode_video_url(
    parts: Sequence[str], order: Sequence[str] = DEFAULT_STAGE_ORDER
) -> str:
    """Join *parts* and apply the stages of *order*.

    Pure and deterministic.

    Raises:
        ValueError: unknown stage name or undecodable base64.
    """
    value = "".join(parts)
    for name in order:
        stage = STAGES.get(name)
        if stage is None:
            raise ValueError(f"unknown cipher stage: {name!r}")
        value = stage(value)
    return value


def looks_like_media_url(value: str | None) -> bool:
    """Well-formed, printable http(s) URL with a host."""
    if not value or not _PRINTABLE_URL_RE.match(value):
        return False
    return bool(urlparse(value).netloc)


def decode_with_fallback(
    parts: Sequence[str],
    orders: Sequence[Sequence[str]] | None = None,
) -> str | None:
    """Try the default order, then the alternates; first valid URL wins."""
    candidates = orders or (DEFAULT_STAGE_ORDER, *ALTERNATE_STAGE_ORDERS)
    for order in candidates:
        try:
            value = decode_video_url(parts, order)
        except ValueError as exc:
            log.debug("cipher_order_failed", order="/".join(order), error=str(exc))
            continue
        if looks_like_media_url(value):
            if tuple(order) != DEFAULT_STAGE_ORDER:
                log.info("cipher_alternate_order_used", order="/".join(order))
            return value
        log.debug("cipher_order_rejected", order="/".join(order))

    log.warning("cipher_decode_failed", parts=len(parts))
    return None


def extract_cipher_parts(unpacked: str) -> list[str] | None:
    """Pull the quoted parts passed to the ``dc_xxx([...])`` call."""
    normalized = unpacked.replace("\\'", "'").replace('\\"', '"')
    m = _PARTS_CALL_RE.search(normalized)
    if not m:
        return None
    parts = _QUOTED_RE.findall(m.group(1))
    return parts or None
