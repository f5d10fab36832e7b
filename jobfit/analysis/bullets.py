"""Stage 2b: resume bullet generation and post-processing.

Generated bullets pass through, in order:
1. width optimization (over-length bullets lose filler words),
2. priority sort (quantified results first, then relevance) and truncation
   to the per-role limit,
3. keyword verification against the final text,
4. width annotation.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from jobfit.analysis.config import AnalysisConfig, get_analysis_config
from jobfit.analysis.errors import BusinessRuleError, UpstreamFormatError
from jobfit.analysis.keywords import VerifiedBullet, verify_keywords_in_bullets
from jobfit.analysis.llm import GeneratorClient
from jobfit.analysis.models import (
    BulletPoint,
    BulletResponse,
    BulletResult,
    GeneratedBullet,
    KeywordMatchType,
    MatchResult,
)
from jobfit.analysis.prompts import BULLETS_SYSTEM_PROMPT, build_bullets_prompt
from jobfit.analysis.schemas import BULLETS_SCHEMA
from jobfit.analysis.width import assess_width, optimize_bullet_length
from jobfit.profile.models import Experience

logger = logging.getLogger(__name__)

QUANTITATIVE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\d+%"),
    re.compile(r"\$\d+[KMB]?", re.I),
    re.compile(r"\d+[KMB]\+?"),
    re.compile(r"\d+x", re.I),
    re.compile(r"\d+\s*-\s*\d+"),
    re.compile(r"(reduced|increased|grew|saved|generated|improved|decreased|raised|achieved).*?\d+", re.I),
    re.compile(r"\d+\s*(month|year|week|day)", re.I),
    re.compile(r"within\s+\d+", re.I),
)
QUANTITATIVE_BONUS = 100
DEFAULT_RELEVANCE = 5.0


def has_quantitative_result(text: str) -> bool:
    """True when the bullet reports a number-backed outcome."""
    return any(pattern.search(text) for pattern in QUANTITATIVE_PATTERNS)


def bullet_priority(text: str, relevance_score: float | None) -> float:
    """Quantified bullets always outrank unquantified ones; relevance breaks ties."""
    bonus = QUANTITATIVE_BONUS if has_quantitative_result(text) else 0
    relevance = DEFAULT_RELEVANCE if relevance_score is None else relevance_score
    return bonus + relevance


@dataclass
class _PreparedBullet:
    text: str
    keywords_used: list[str]
    generated: GeneratedBullet
    was_optimized: bool

    @property
    def priority(self) -> float:
        return bullet_priority(self.text, self.generated.relevance_score)


def validate_bullets_payload(payload: dict[str, Any]) -> BulletResponse:
    """Check the Stage 2b reply has every required field before parsing it."""
    entries = payload.get("bulletPoints")
    if not isinstance(entries, list):
        raise UpstreamFormatError("missing bulletPoints array")
    if not isinstance(payload.get("keywordsUsed"), list) or not isinstance(
        payload.get("keywordsNotUsed"), list
    ):
        raise UpstreamFormatError("missing keywordsUsed/keywordsNotUsed arrays")

    for index, entry in enumerate(entries):
        if not isinstance(entry, dict) or not entry.get("roleKey"):
            raise UpstreamFormatError(f"bulletPoints[{index}] is missing roleKey")
        bullets = entry.get("bullets")
        if not isinstance(bullets, list):
            raise UpstreamFormatError(f"bulletPoints[{index}] is missing bullets array")
        for position, bullet in enumerate(bullets):
            if not isinstance(bullet, dict):
                raise UpstreamFormatError(
                    f"bulletPoints[{index}].bullets[{position}] must be an object"
                )
            missing = [name for name in ("text", "experienceId") if not bullet.get(name)]
            if missing:
                raise UpstreamFormatError(
                    f"bulletPoints[{index}].bullets[{position}] is missing {', '.join(missing)}"
                )

    return BulletResponse.model_validate(payload)


class BulletGenerator:
    """Generates and post-processes bullets for a fit candidate."""

    def __init__(self, client: GeneratorClient, config: AnalysisConfig | None = None) -> None:
        self.client = client
        self.config = config or get_analysis_config()

    async def generate(
        self,
        *,
        match_result: MatchResult,
        experiences_by_role: Mapping[str, Sequence[Experience]],
        all_keywords: Sequence[str],
        keyword_match_type: KeywordMatchType = "exact",
    ) -> BulletResult:
        if not match_result.is_fit:
            raise BusinessRuleError(
                f"Bullet generation requires a fit score of at least "
                f"{self.config.fit_threshold} (got {match_result.overall_score})"
            )

        response = await self.client.call_with_retry(
            [
                {"role": "system", "content": BULLETS_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": build_bullets_prompt(
                        experiences_by_role=experiences_by_role,
                        matched_requirements=match_result.matched_requirements,
                        all_keywords=all_keywords,
                        keyword_match_type=keyword_match_type,
                        config=self.config,
                    ),
                },
            ],
            validator=validate_bullets_payload,
            json_schema=BULLETS_SCHEMA,
            schema_name="resume_bullets",
            max_tokens=self.config.bullets_max_tokens,
            temperature=self.config.bullets_temperature,
            max_attempts=self.config.bullets_max_attempts,
            stage="stage2b",
        )
        return self.process(response, experiences_by_role, all_keywords, keyword_match_type)

    def process(
        self,
        response: BulletResponse,
        experiences_by_role: Mapping[str, Sequence[Experience]],
        all_keywords: Sequence[str],
        keyword_match_type: KeywordMatchType = "exact",
    ) -> BulletResult:
        """Apply optimization, ordering, verification and width flags."""
        known_keys = {key.lower(): key for key in experiences_by_role}
        prepared: dict[str, list[_PreparedBullet]] = {}

        for role_key, bullets in response.by_role().items():
            canonical = known_keys.get(role_key.lower())
            if canonical is None:
                logger.warning("Dropping bullets for unknown role key: %r", role_key)
                continue

            role_bullets = prepared.setdefault(canonical, [])
            known_ids = {exp.id for exp in experiences_by_role[canonical]}
            for bullet in bullets:
                if bullet.experience_id not in known_ids:
                    logger.warning(
                        "Bullet in %r references unknown experience %r",
                        canonical,
                        bullet.experience_id,
                    )
                text = optimize_bullet_length(bullet.text, self.config.visual_width_max)
                role_bullets.append(
                    _PreparedBullet(
                        text=text,
                        keywords_used=bullet.keywords_used,
                        generated=bullet,
                        was_optimized=text != bullet.text,
                    )
                )

        for role_key, role_bullets in prepared.items():
            role_bullets.sort(key=lambda b: b.priority, reverse=True)
            if len(role_bullets) > self.config.max_bullets_per_role:
                logger.info(
                    "Truncating %s bullets to %s for %r",
                    len(role_bullets),
                    self.config.max_bullets_per_role,
                    role_key,
                )
                del role_bullets[self.config.max_bullets_per_role :]

        verification = verify_keywords_in_bullets(prepared, all_keywords, keyword_match_type)
        bullet_points = {
            role_key: [
                self._annotate(verified)
                for verified in verified_bullets
            ]
            for role_key, verified_bullets in verification.verified_bullets.items()
        }

        logger.info(
            "Stage 2b complete: bullets=%s quantified=%s keywords_used=%s keywords_not_used=%s",
            sum(len(b) for b in bullet_points.values()),
            sum(1 for b in bullet_points.values() for p in b if p.has_quantitative_result),
            len(verification.actual_keywords_used),
            len(verification.actual_keywords_not_used),
        )
        return BulletResult(
            bullet_points=bullet_points,
            keywords_used=verification.actual_keywords_used,
            keywords_not_used=verification.actual_keywords_not_used,
        )

    def _annotate(self, verified: VerifiedBullet) -> BulletPoint:
        prepared: _PreparedBullet = verified.source  # type: ignore[assignment]
        width = assess_width(
            verified.text,
            min_width=self.config.visual_width_min,
            max_width=self.config.visual_width_max,
        )
        return BulletPoint(
            text=verified.text,
            visual_width=round(width.width),
            exceeds_max=width.exceeds_max,
            below_min=width.below_min,
            is_within_range=width.is_within_range,
            keywords_used=list(verified.keywords_used),
            experience_id=prepared.generated.experience_id,
            relevance_score=prepared.generated.relevance_score,
            has_quantitative_result=has_quantitative_result(verified.text),
            was_optimized=prepared.was_optimized,
        )
