"""Title similarity scoring for the title-fallback match strategy.

Pure transformation logic, no I/O.  A candidate's score is the
word-overlap ratio of the normalised titles plus small bonuses:

- +0.2 exact year, +0.1 year off by one
- +0.1 when the result slug contains the slugified title

The best candidate is accepted only when it clears the threshold.
"""

from __future__ import annotations

import re
from typing import Iterable

import structlog
from unidecode import unidecode as _unidecode

from cehennemarr.domain.entities.content import SiteSearchResult, TitleInfo

log = structlog.get_logger(__name__)

DEFAULT_THRESHOLD = 0.4

_EXACT_YEAR_BONUS = 0.2
_NEAR_YEAR_BONUS = 0.1
_SLUG_BONUS = 0.1

_TURKISH_MAP = str.maketrans(
    {
        "ç": "c",
        "Ç": "C",
        "ğ": "g",
        "Ğ": "G",
        "ı": "i",
        "İ": "I",
        "ö": "o",
        "Ö": "O",
        "ş": "s",
        "Ş": "S",
        "ü": "u",
        "Ü": "U",
    }
)

_QUOTES_RE = re.compile(r"[‘’‚‛′`´]")
_DQUOTES_RE = re.compile(r"[“”„‟″]")
_PUNCT_RE = re.compile(r"[^\w\s]|_")
_WS_RE = re.compile(r"\s+")


def transliterate(text: str) -> str:
    """Map Turkish diacritics (and anything else) to plain ASCII."""
    return _unidecode(text.translate(_TURKISH_MAP))


def normalize_title(text: str) -> str:
    """Lowercase, unify quotes, punctuation/dashes to spaces, collapse ws."""
    text = text.translate(_TURKISH_MAP).lower()
    text = _QUOTES_RE.sub("'", text)
    text = _DQUOTES_RE.sub('"', text)
    text = _PUNCT_RE.sub(" ", text)
    return _WS_RE.sub(" ", text).strip()


def slugify(text: str) -> str:
    return transliterate(normalize_title(text)).replace(" ", "-")


def _words(text: str) -> set[str]:
    return set(transliterate(normalize_title(text)).split())


def word_overlap(a: str, b: str) -> float:
    """``|A ∩ B| / max(|A|, |B|)`` over normalised word sets."""
    words_a = _words(a)
    words_b = _words(b)
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / max(len(words_a), len(words_b))


def significant_word(title: str, min_length: int = 4) -> str | None:
    """First word of at least *min_length* characters, used as a last-resort query."""
    for word in normalize_title(title).split():
        if len(word) >= min_length:
            return word
    return None


def _reference_titles(info: TitleInfo) -> list[str]:
    titles = [info.title]
    if info.original_title and info.original_title != info.title:
        titles.append(info.original_title)
    return [t for t in titles if t]


def score_candidate(candidate: SiteSearchResult, info: TitleInfo) -> float:
    references = _reference_titles(info)
    if not references:
        return 0.0

    score = max(word_overlap(candidate.title, ref) for ref in references)

    if info.year is not None and candidate.year is not None:
        diff = abs(info.year - candidate.year)
        if diff == 0:
            score += _EXACT_YEAR_BONUS
        elif diff == 1:
            score += _NEAR_YEAR_BONUS

    slug = candidate.slug.lower()
    if slug and any(
        (ref_slug := slugify(ref)) and ref_slug in slug for ref in references
    ):
        score += _SLUG_BONUS

    return score


def pick_best_match(
    candidates: Iterable[SiteSearchResult],
    info: TitleInfo,
    threshold: float = DEFAULT_THRESHOLD,
) -> SiteSearchResult | None:
    """Highest-scoring candidate, or ``None`` when nothing clears *threshold*."""
    best: SiteSearchResult | None = None
    best_score = 0.0
    for candidate in candidates:
        score = score_candidate(candidate, info)
        log.debug(
            "title_candidate_scored",
            title=candidate.title,
            year=candidate.year,
            score=round(score, 3),
        )
        if best is None or score > best_score:
            best, best_score = candidate, score

    if best is None or best_score < threshold:
        log.info(
            "title_match_rejected",
            reference=info.title,
            best_score=round(best_score, 3),
            threshold=threshold,
        )
        return None

    log.info(
        "title_match_accepted",
        reference=info.title,
        title=best.title,
        score=round(best_score, 3),
    )
    return best
