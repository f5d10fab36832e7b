"""Visual width estimation for resume bullets.

Resume lines are rendered in proportional fonts, so a raw character count
is a poor proxy for how much of a line a bullet occupies. Each character is
weighted by an approximation of its glyph width instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

SPACE_WIDTH = 0.55
EXTRA_WIDE_CHARS = frozenset("WM@%&")
WIDE_CHARS = frozenset("mwQGODBHNUAKR")
NARROW_CHARS = frozenset("iljtfrIJ1!;:.,'\"`|/")
HYPHEN_WIDTH = 0.70
DEFAULT_WIDTH = 0.80

# Words the optimizer never drops besides the first word
ACTION_VERBS = frozenset(
    {
        "developed",
        "implemented",
        "created",
        "managed",
        "led",
        "increased",
        "decreased",
        "improved",
        "designed",
        "built",
    }
)
_LONG_WORD_LENGTH = 8


def char_width(ch: str) -> float:
    """Return the weight of a single character."""
    if ch == " ":
        return SPACE_WIDTH
    if ch in EXTRA_WIDE_CHARS:
        return 1.25
    if ch in WIDE_CHARS:
        return 1.15
    if ch in NARROW_CHARS:
        return 0.55
    if ch == "-":
        return HYPHEN_WIDTH
    if "0" <= ch <= "9":
        return 1.00
    if "A" <= ch <= "Z":
        return 1.10
    if "a" <= ch <= "z":
        return 1.00
    return DEFAULT_WIDTH


def calculate_visual_width(text: str) -> float:
    """Sum per-character weights; empty text has width 0."""
    return sum(char_width(ch) for ch in text)


@dataclass(frozen=True)
class WidthAssessment:
    width: float
    exceeds_max: bool
    below_min: bool
    is_within_range: bool


def assess_width(text: str, *, min_width: float, max_width: float) -> WidthAssessment:
    """Classify a bullet against the configured width range."""
    width = calculate_visual_width(text)
    exceeds_max = width > max_width
    below_min = width < min_width
    return WidthAssessment(
        width=width,
        exceeds_max=exceeds_max,
        below_min=below_min,
        is_within_range=not exceeds_max and not below_min,
    )


def _is_protected(word: str, index: int) -> bool:
    if index == 0:
        return True
    if any(ch.isdigit() for ch in word):
        return True
    bare = word.strip(".,;:!?()\"'").lower()
    return bare in ACTION_VERBS or len(word) > _LONG_WORD_LENGTH


def optimize_bullet_length(text: str, max_width: float) -> str:
    """Shorten an over-length bullet by dropping short filler words.

    The first word, words with digits, action verbs and long words are
    always kept. Other words are removed shortest-first until the bullet
    fits. If even the fully filtered text is too wide, the original text is
    returned unchanged.
    """
    if calculate_visual_width(text) <= max_width:
        return text

    words = text.split()
    removable = sorted(
        (i for i, word in enumerate(words) if not _is_protected(word, i)),
        key=lambda i: (len(words[i]), -i),
    )

    kept = [True] * len(words)
    for index in removable:
        kept[index] = False
        candidate = " ".join(w for w, keep in zip(words, kept, strict=True) if keep)
        if calculate_visual_width(candidate) <= max_width:
            logger.debug(
                "Optimized bullet width %.1f -> %.1f",
                calculate_visual_width(text),
                calculate_visual_width(candidate),
            )
            return candidate

    logger.info(
        "Bullet could not be shortened below %.0f (width %.1f); keeping original",
        max_width,
        calculate_visual_width(text),
    )
    return text
