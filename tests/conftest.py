"""Shared test fixtures for the cehennemarr test suite."""

from __future__ import annotations

import base64
from typing import Callable

import pytest

from cehennemarr.domain.entities.extraction import AudioTrack, ExtractionResult, Subtitle
from cehennemarr.infrastructure.config.schema import AppConfig

_UNMIX_KEY = 399756995

# ---------------------------------------------------------------------------
# Player cipher helpers
# ---------------------------------------------------------------------------


def _mix(text: str) -> str:
    return "".join(
        chr((ord(ch) + _UNMIX_KEY % (i + 5)) % 256) for i, ch in enumerate(text)
    )


def _rot13(text: str) -> str:
    out = []
    for ch in text:
        if "a" <= ch <= "z":
            out.append(chr((ord(ch) - 97 + 13) % 26 + 97))
        elif "A" <= ch <= "Z":
            out.append(chr((ord(ch) - 65 + 13) % 26 + 65))
        else:
            out.append(ch)
    return "".join(out)


def encode_default_order(url: str) -> str:
    """Inverse of the rot13 > reverse > base64 > unmix decode chain."""
    encoded = base64.b64encode(_mix(url).encode("latin-1")).decode("ascii")
    return _rot13(encoded[::-1])


def encode_reverse_order(url: str) -> str:
    """Inverse of the older reverse > base64 > unmix chain."""
    encoded = base64.b64encode(_mix(url).encode("latin-1")).decode("ascii")
    return encoded[::-1]


def split_parts(value: str, size: int = 12) -> list[str]:
    return [value[i : i + size] for i in range(0, len(value), size)]


_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"


def to_base62(n: int) -> str:
    if n < 62:
        return _DIGITS[n]
    return to_base62(n // 62) + _DIGITS[n % 62]


@pytest.fixture()
def cipher_parts() -> Callable[..., list[str]]:
    """Factory: ``cipher_parts(url, legacy=False)`` -> player array parts."""

    def _build(url: str, legacy: bool = False) -> list[str]:
        encoded = encode_reverse_order(url) if legacy else encode_default_order(url)
        return split_parts(encoded)

    return _build


@pytest.fixture()
def player_html(cipher_parts: Callable[..., list[str]]) -> Callable[..., str]:
    """Factory for an embed page carrying a packed ``dc_xxx([...])`` call."""

    def _build(url: str, *, legacy: bool = False, tracks: str = "") -> str:
        parts = cipher_parts(url, legacy)
        words = ["dc_hello", *parts]
        payload = "0([" + ",".join(f'"{to_base62(i + 1)}"' for i in range(len(parts))) + "])"
        packed = (
            "eval(function(p,a,c,k,e,d){e=function(c){return c.toString(36)};"
            "return p}"
            f"('{payload}',62,{len(words)},'{'|'.join(words)}'.split('|'),0,{{}}))"
        )
        return (
            "<html><body>"
            f"<video id=\"player\">{tracks}</video>"
            f"<script>{packed}</script>"
            "</body></html>"
        )

    return _build


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def app_config() -> AppConfig:
    """Default configuration (no file, no env)."""
    return AppConfig()


@pytest.fixture()
def playable_result() -> ExtractionResult:
    """A playable result with one subtitle and no audio renditions."""
    return ExtractionResult(
        video_url="https://cdn.example.net/hls/abc/master.m3u8",
        subtitles=[
            Subtitle(
                id="hdfc-tr",
                lang="tr",
                label="Türkçe",
                url="https://hdfilmcehennemi.mobi/subs/tr.vtt",
                default=True,
            )
        ],
        embed_origin="https://hdfilmcehennemi.mobi",
    )


@pytest.fixture()
def dubbed_result(playable_result: ExtractionResult) -> ExtractionResult:
    """A playable result with two named audio renditions."""
    playable_result.audio_tracks = [
        AudioTrack(name="Türkçe", url="https://cdn.example.net/hls/abc/tr/index.m3u8"),
        AudioTrack(name="English", url="https://cdn.example.net/hls/abc/en/index.m3u8"),
    ]
    return playable_result
