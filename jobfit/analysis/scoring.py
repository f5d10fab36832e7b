"""Deterministic fit scoring.

The canonical score is an importance-weighted share of matched requirements:

    overall_score = round(earned_points / total_points * 100)

where each requirement contributes its importance weight to ``total_points``
and, when matched, to ``earned_points``. A per-category breakdown that also
applies match-type and evidence-strength multipliers is produced alongside
for diagnostics only; it never feeds into ``overall_score``.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping, Sequence

from jobfit.analysis.config import ScoringPolicy
from jobfit.analysis.models import (
    CategoryScore,
    FitLevel,
    JobRequirement,
    MatchedRequirement,
    MatchResult,
    UnmatchedRequirement,
    WeakEvidence,
)

logger = logging.getLogger(__name__)

DEFAULT_RECOMMENDATIONS: tuple[str, ...] = (
    "Review the unmatched requirements and consider how to gain experience in those areas",
    "Add more detailed STAR-format experiences that demonstrate relevant skills",
    "Consider taking online courses or certifications in key missing areas",
)


def normalize_requirement(text: str) -> str:
    """Key used to line requirements up with generator matches."""
    return " ".join(text.lower().split())


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_score(
    requirements: Sequence[JobRequirement],
    matched_keys: Iterable[str],
    policy: ScoringPolicy,
) -> int:
    """Importance-weighted percentage of matched requirements (0 if none)."""
    matched = set(matched_keys)
    total = 0.0
    earned = 0.0
    for req in requirements:
        weight = policy.weight_for(req.importance)
        total += weight
        if normalize_requirement(req.requirement) in matched:
            earned += weight

    if total <= 0:
        return 0

    score = round_half_up(earned / total * 100)
    logger.debug("Weighted score: earned=%.2f total=%.2f score=%s", earned, total, score)
    return max(0, min(100, score))


def classify_fit(score: int, policy: ScoringPolicy) -> tuple[FitLevel, bool]:
    """Return ``(fit_level, is_fit)`` for a score."""
    if score >= policy.excellent_threshold:
        level: FitLevel = "Excellent"
    elif score >= policy.fit_threshold:
        level = "Good"
    elif score >= policy.fair_threshold:
        level = "Fair"
    else:
        level = "Poor"
    return level, score >= policy.fit_threshold


def improvement_suggestion(match: MatchedRequirement) -> str:
    if match.evidence_strength == "implied":
        return (
            f"Your experience only implies '{match.job_requirement}'. Add a STAR "
            "experience that states it explicitly and describes what you did."
        )
    return (
        f"'{match.job_requirement}' is only mentioned. Strengthen it with a concrete "
        "example and a measurable result (numbers, percentages, time saved)."
    )


def detect_weak_evidence(
    matches: Sequence[MatchedRequirement], policy: ScoringPolicy
) -> list[WeakEvidence]:
    """Collect matches at or below the weak-evidence cutoff.

    Deduplicated by requirement and capped at ``policy.weak_evidence_limit``.
    """
    weak: list[WeakEvidence] = []
    seen: set[str] = set()
    for match in matches:
        if match.evidence_strength is None:
            continue
        multiplier = policy.evidence_multipliers.get(match.evidence_strength, 1.0)
        if multiplier > policy.weak_evidence_cutoff:
            continue
        key = normalize_requirement(match.job_requirement)
        if key in seen:
            continue
        seen.add(key)
        weak.append(
            WeakEvidence(
                requirement=match.job_requirement,
                evidence=match.experience_evidence,
                source=match.experience_source,
                evidence_strength=match.evidence_strength,
                suggestion=improvement_suggestion(match),
            )
        )
        if len(weak) >= policy.weak_evidence_limit:
            break
    return weak


def category_breakdown(
    requirements: Sequence[JobRequirement],
    matches: Mapping[str, MatchedRequirement],
    policy: ScoringPolicy,
) -> dict[str, CategoryScore]:
    """Per-category points with match-type and evidence multipliers applied.

    ``matches`` is keyed by normalized requirement text. Missing match type or
    evidence strength (e.g. education pre-pass matches) count as 1.0.
    """
    possible: dict[str, float] = {}
    achieved: dict[str, float] = {}
    for req in requirements:
        weight = policy.weight_for(req.importance)
        possible[req.category] = possible.get(req.category, 0.0) + weight
        achieved.setdefault(req.category, 0.0)

        match = matches.get(normalize_requirement(req.requirement))
        if match is None:
            continue
        type_multiplier = (
            policy.match_type_multipliers.get(match.match_type, 1.0)
            if match.match_type
            else 1.0
        )
        evidence_multiplier = (
            policy.evidence_multipliers.get(match.evidence_strength, 1.0)
            if match.evidence_strength
            else 1.0
        )
        achieved[req.category] += weight * type_multiplier * evidence_multiplier

    return {
        category: CategoryScore(
            possible=round(points, 2),
            achieved=round(achieved[category], 2),
            percentage=round_half_up(achieved[category] / points * 100) if points else 0,
        )
        for category, points in possible.items()
    }


def score_matches(
    requirements: Sequence[JobRequirement],
    matched: Sequence[MatchedRequirement],
    unmatched: Sequence[UnmatchedRequirement],
    policy: ScoringPolicy,
    *,
    recommendations: Sequence[str] = (),
) -> MatchResult:
    """Turn reconciled matches into a scored MatchResult."""
    matches_by_key = {normalize_requirement(m.job_requirement): m for m in matched}
    score = calculate_score(requirements, matches_by_key.keys(), policy)

    absolute_gaps = [u.requirement for u in unmatched if u.importance == "absolute"]
    critical_gaps = [u.requirement for u in unmatched if u.importance == "critical"]

    explanation = None
    if absolute_gaps:
        capped = min(score, policy.absolute_gap_cap)
        if capped != score:
            logger.warning(
                "Score capped at %s (was %s) due to missing absolute requirements: %s",
                capped,
                score,
                absolute_gaps,
            )
        score = capped
        explanation = (
            "Cannot proceed: Missing absolute requirements "
            f"({', '.join(absolute_gaps)}). These are explicitly required by the "
            "employer and non-negotiable."
        )

    fit_level, is_fit = classify_fit(score, policy)

    weak_evidence = None
    if score < policy.fit_threshold:
        weak_evidence = detect_weak_evidence(matched, policy) or None

    recs = [r.strip() for r in recommendations if r and r.strip()]
    if not is_fit and not recs:
        recs = list(DEFAULT_RECOMMENDATIONS)

    return MatchResult(
        overall_score=score,
        fit_level=fit_level,
        is_fit=is_fit,
        matched_requirements=list(matched),
        unmatched_requirements=list(unmatched),
        critical_gaps=critical_gaps,
        absolute_gaps=absolute_gaps,
        absolute_gap_explanation=explanation,
        recommendations=recs,
        weak_evidence_experiences=weak_evidence,
        score_breakdown=category_breakdown(requirements, matches_by_key, policy),
    )
