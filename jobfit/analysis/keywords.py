"""Keyword matching and verification for generated bullets.

The generator reports which keywords it embedded in each bullet, but it
over-claims. Every claim is re-checked against the bullet's own text.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol

from jobfit.analysis.models import KeywordMatchType

logger = logging.getLogger(__name__)

_SUFFIX_PATTERN = re.compile(
    r"(ing|ed|s|es|tion|ment|ly|ize|ise|ization|isation)$", re.IGNORECASE
)
_MIN_STEM_LENGTH = 3
_SHORT_WORD_LENGTH = 3


def _exact_match(text: str, word: str) -> bool:
    return re.search(rf"\b{re.escape(word)}\b", text, re.IGNORECASE) is not None


def _stem(word: str) -> str:
    return _SUFFIX_PATTERN.sub("", word, count=1)


def _flexible_word_match(text: str, word: str) -> bool:
    if len(word) <= _SHORT_WORD_LENGTH:
        return _exact_match(text, word)

    stem = _stem(word)
    if len(stem) < _MIN_STEM_LENGTH:
        return word.lower() in text.lower()

    return re.search(rf"\b\w*{re.escape(stem)}\w*\b", text, re.IGNORECASE) is not None


def is_keyword_in_text(
    text: str, keyword: str, mode: KeywordMatchType = "exact"
) -> bool:
    """Return True when ``keyword`` occurs in ``text`` under ``mode``.

    ``exact`` requires a case-insensitive whole-word match of the literal
    keyword. ``flexible`` tolerates one trailing suffix per word; every word
    of a multi-word keyword must match.
    """
    keyword = keyword.strip()
    if not keyword:
        return False

    if mode == "exact":
        return _exact_match(text, keyword)

    words = keyword.split()
    if len(words) == 1 and len(words[0]) <= 2:
        return False

    return all(_flexible_word_match(text, word) for word in words)


class _ClaimedBullet(Protocol):
    text: str
    keywords_used: list[str]


@dataclass(frozen=True)
class VerifiedBullet:
    """A bullet whose keyword claims survived verification."""

    text: str
    keywords_used: tuple[str, ...]
    source: object


@dataclass(frozen=True)
class KeywordVerification:
    verified_bullets: dict[str, list[VerifiedBullet]]
    actual_keywords_used: list[str]
    actual_keywords_not_used: list[str]


def _ordered_unique(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def verify_keywords_in_bullets(
    bullets_by_role: Mapping[str, Sequence[_ClaimedBullet]],
    all_keywords: Sequence[str],
    mode: KeywordMatchType = "exact",
) -> KeywordVerification:
    """Intersect each bullet's claimed keywords with those present in its text.

    Input bullets are not modified; the verified view is returned alongside
    the global used / not-used keyword split.
    """
    verified: dict[str, list[VerifiedBullet]] = {}
    used: set[str] = set()

    for role_key, bullets in bullets_by_role.items():
        role_bullets: list[VerifiedBullet] = []
        for bullet in bullets:
            confirmed = tuple(
                kw
                for kw in _ordered_unique(bullet.keywords_used)
                if is_keyword_in_text(bullet.text, kw, mode)
            )
            dropped = set(bullet.keywords_used) - set(confirmed)
            if dropped:
                logger.debug(
                    "Dropped unverified keywords %s from bullet in %s",
                    sorted(dropped),
                    role_key,
                )
            used.update(confirmed)
            role_bullets.append(
                VerifiedBullet(text=bullet.text, keywords_used=confirmed, source=bullet)
            )
        verified[role_key] = role_bullets

    keywords = _ordered_unique(all_keywords)
    return KeywordVerification(
        verified_bullets=verified,
        actual_keywords_used=[kw for kw in keywords if kw in used]
        + sorted(used - set(keywords)),
        actual_keywords_not_used=[kw for kw in keywords if kw not in used],
    )
