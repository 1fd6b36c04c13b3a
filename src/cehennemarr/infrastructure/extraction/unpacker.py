"""Dean Edwards packed JavaScript unpacker.

Format::

    eval(function(p,a,c,k,e,d){...}('payload',radix,count,'w0|w1|...'.split('|')...))

Every identifier-like token in the payload is a base-*radix* index into
the pipe-delimited dictionary.  Digits are ``0-9a-zA-Z`` so radixes up
to 62 decode.
"""

from __future__ import annotations

import re

_PACKED_RE = re.compile(
    r"eval\(function\(p,a,c,k,e,d\)\{.*?\}\('(.+)',(\d+),(\d+),'([^']+)'",
    re.DOTALL,
)
_TOKEN_RE = re.compile(r"\b\w+\b")


def _digit_value(ch: str) -> int | None:
    if "0" <= ch <= "9":
        return ord(ch) - ord("0")
    if "a" <= ch <= "z":
        return ord(ch) - ord("a") + 10
    if "A" <= ch <= "Z":
        return ord(ch) - ord("A") + 36
    return None


def decode_base_n(word: str, radix: int) -> int:
    """Positional decode of *word*; characters outside 0-9a-zA-Z are skipped."""
    n = 0
    for ch in word:
        value = _digit_value(ch)
        if value is not None:
            n = n * radix + value
    return n


def unpack(payload: str, radix: int, count: int, dictionary: str) -> str:
    """Substitute each token of *payload* with its dictionary word.

    Tokens whose index is out of range or maps to an empty word are kept.
    """
    words = dictionary.split("|")
    if len(words) < count:
        words.extend([""] * (count - len(words)))

    def _replace(m: re.Match[str]) -> str:
        word = m.group(0)
        index = decode_base_n(word, radix)
        if index < len(words) and words[index]:
            return words[index]
        return word

    return _TOKEN_RE.sub(_replace, payload)


def find_packed_blob(html: str) -> tuple[str, int, int, str] | None:
    """Return ``(payload, radix, count, dictionary)`` of the packed script."""
    m = _PACKED_RE.search(html)
    if not m:
        return None
    return m.group(1), int(m.group(2)), int(m.group(3)), m.group(4)


def unpack_packed_js(html: str) -> str | None:
    """Locate and unpack the packed script in *html* (``None`` if absent)."""
    blob = find_packed_blob(html)
    if blob is None:
        return None
    return unpack(*blob)
