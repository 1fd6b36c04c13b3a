"""Shared anti-bot challenge / block detection.

Centralises the markers and heuristics so that the fetcher and the
proxy validator agree on what "blocked" means.
"""

from __future__ import annotations

CHALLENGE_MARKERS: tuple[str, ...] = (
    "cf-browser-verification",
    "Just a moment",
    "challenge-platform",
    "cf-turnstile",
    "Attention Required",
)


def contains_challenge_markers(body: str) -> bool:
    """Return *True* if *body* looks like an interstitial challenge page."""
    if not body:
        return False
    return any(marker in body for marker in CHALLENGE_MARKERS)


def is_blocked_response(status_code: int, body: str) -> bool:
    """Return *True* when a response is the upstream's block signal.

    The perimeter answers with either a bare 403 (WAF block) or a page
    whose status is ambiguous but whose body is a challenge, so both the
    status and the body are checked.
    """
    if status_code == 403:
        return True
    return contains_challenge_markers(body)
