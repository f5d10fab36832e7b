"""Stage 2a: evidence matching and scoring.

Degree-level requirements are settled locally by the education pre-pass.
Everything else goes to the generator, whose matches are reconciled against
the extracted requirement list so that each requirement ends up in exactly
one of matched / unmatched. The score itself is always computed here.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date
from typing import Any

from jobfit.analysis.config import AnalysisConfig, get_analysis_config
from jobfit.analysis.education import lowest_degree_requirement, meets_education_requirement
from jobfit.analysis.errors import UpstreamFormatError
from jobfit.analysis.experience import role_durations
from jobfit.analysis.llm import GeneratorClient
from jobfit.analysis.models import (
    IMPORTANCE_LEVELS,
    ExtractionResult,
    JobRequirement,
    MatchedRequirement,
    MatchingResponse,
    MatchResult,
    UnmatchedRequirement,
)
from jobfit.analysis.prompts import MATCHING_SYSTEM_PROMPT, build_matching_prompt
from jobfit.analysis.schemas import MATCHING_SCHEMA
from jobfit.analysis.scoring import normalize_requirement, score_matches
from jobfit.profile.models import (
    Education,
    Experience,
    distinct_roles,
    group_experiences_by_role,
)

logger = logging.getLogger(__name__)

_REQUIRED_MATCH_FIELDS = (
    "jobRequirement",
    "experienceEvidence",
    "experienceSource",
    "matchType",
    "evidenceStrength",
)


def validate_matching_payload(payload: dict[str, Any]) -> MatchingResponse:
    """Check the Stage 2a reply has every required field before parsing it."""
    matched = payload.get("matchedRequirements")
    if not isinstance(matched, list):
        raise UpstreamFormatError("missing matchedRequirements array")
    unmatched = payload.get("unmatchedRequirements")
    if not isinstance(unmatched, list):
        raise UpstreamFormatError("missing unmatchedRequirements array")

    for index, item in enumerate(matched):
        if not isinstance(item, dict):
            raise UpstreamFormatError(f"matchedRequirements[{index}] must be an object")
        missing = [name for name in _REQUIRED_MATCH_FIELDS if not item.get(name)]
        if missing:
            raise UpstreamFormatError(
                f"matchedRequirements[{index}] is missing {', '.join(missing)}"
            )
    for index, item in enumerate(unmatched):
        if not isinstance(item, dict) or not item.get("requirement"):
            raise UpstreamFormatError(f"unmatchedRequirements[{index}] is missing requirement")

    recommendations = payload.get("recommendations") or {}
    if not isinstance(recommendations, dict):
        raise UpstreamFormatError("recommendations must be an object with forCandidate")
    for_candidate = recommendations.get("forCandidate") or []
    if not isinstance(for_candidate, list):
        raise UpstreamFormatError("recommendations.forCandidate must be an array")

    # Unmatched importance is re-derived from the extracted requirements
    return MatchingResponse.model_validate(
        {
            "matchedRequirements": matched,
            "unmatchedRequirements": [
                {
                    "requirement": item["requirement"],
                    "importance": (
                        item.get("importance")
                        if item.get("importance") in IMPORTANCE_LEVELS
                        else "medium"
                    ),
                }
                for item in unmatched
            ],
            "recommendations": [str(r) for r in for_candidate],
        }
    )


def education_prepass(
    requirements: Sequence[JobRequirement], education: Sequence[Education]
) -> tuple[list[MatchedRequirement], list[UnmatchedRequirement]]:
    """Resolve education_degree requirements against the user's education."""
    degree_requirements = [r for r in requirements if r.category == "education_degree"]
    if not degree_requirements:
        return [], []

    required_level = lowest_degree_requirement(degree_requirements) or "Other"
    check = meets_education_requirement(education, required_level)

    if not check.meets:
        logger.info(
            "Education degree requirements not met (required=%s, has=%s)",
            required_level,
            check.evidence or "no education on file",
        )
        return [], [
            UnmatchedRequirement(requirement=r.requirement, importance=r.importance)
            for r in degree_requirements
        ]

    logger.info(
        "Education degree requirements pre-matched (required=%s, has=%s, count=%s)",
        required_level,
        check.evidence,
        len(degree_requirements),
    )
    return [
        MatchedRequirement(
            job_requirement=r.requirement,
            experience_evidence=check.evidence,
            experience_source=check.source,
        )
        for r in degree_requirements
    ], []


def reconcile_matches(
    requirements: Sequence[JobRequirement], response: MatchingResponse
) -> tuple[list[MatchedRequirement], list[UnmatchedRequirement]]:
    """Line generator matches up with ``requirements``.

    Matches naming unknown requirements are dropped. Requirements the
    generator did not match (or did not mention at all) become unmatched
    with their extracted importance.
    """
    known = {normalize_requirement(r.requirement): r for r in requirements}
    matches_by_key: dict[str, MatchedRequirement] = {}
    for match in response.matched_requirements:
        key = normalize_requirement(match.job_requirement)
        requirement = known.get(key)
        if requirement is None:
            logger.warning("Dropping match for unknown requirement: %r", match.job_requirement)
            continue
        if key in matches_by_key:
            continue
        matches_by_key[key] = match.model_copy(update={"job_requirement": requirement.requirement})

    mentioned = {normalize_requirement(u.requirement) for u in response.unmatched_requirements}
    matched: list[MatchedRequirement] = []
    unmatched: list[UnmatchedRequirement] = []
    for req in requirements:
        key = normalize_requirement(req.requirement)
        if key in matches_by_key:
            matched.append(matches_by_key[key])
            continue
        if key not in mentioned:
            logger.debug("Generator omitted requirement, treating as unmatched: %r", req.requirement)
        unmatched.append(UnmatchedRequirement(requirement=req.requirement, importance=req.importance))

    return matched, unmatched


class MatchingEngine:
    """Matches requirements to evidence and scores the result."""

    def __init__(self, client: GeneratorClient, config: AnalysisConfig | None = None) -> None:
        self.client = client
        self.config = config or get_analysis_config()
        self.policy = self.config.scoring_policy()

    async def match(
        self,
        extraction: ExtractionResult,
        experiences: Sequence[Experience],
        education: Sequence[Education],
        *,
        today: date | None = None,
    ) -> MatchResult:
        requirements = extraction.job_requirements
        pre_matched, pre_unmatched = education_prepass(requirements, education)
        remaining = [r for r in requirements if r.category != "education_degree"]

        logger.info(
            "Requirements distribution: total=%s pre_matched=%s sent_to_generator=%s",
            len(requirements),
            len(pre_matched),
            len(remaining),
        )

        if remaining:
            response = await self.client.call_with_retry(
                [
                    {"role": "system", "content": MATCHING_SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": build_matching_prompt(
                            requirements=remaining,
                            experiences_by_role=group_experiences_by_role(list(experiences)),
                            education=education,
                            durations=role_durations(distinct_roles(list(experiences)), today=today),
                        ),
                    },
                ],
                validator=validate_matching_payload,
                json_schema=MATCHING_SCHEMA,
                schema_name="requirement_matching",
                max_tokens=self.config.matching_max_tokens,
                temperature=self.config.matching_temperature,
                max_attempts=self.config.matching_max_attempts,
                stage="stage2a",
            )
        else:
            response = MatchingResponse(matched_requirements=[], unmatched_requirements=[])

        matched, unmatched = reconcile_matches(remaining, response)
        result = score_matches(
            requirements,
            pre_matched + matched,
            pre_unmatched + unmatched,
            self.policy,
            recommendations=response.recommendations,
        )

        logger.info(
            "Stage 2a complete: score=%s fit=%s matched=%s unmatched=%s critical_gaps=%s",
            result.overall_score,
            result.is_fit,
            len(result.matched_requirements),
            len(result.unmatched_requirements),
            len(result.critical_gaps),
        )
        return result
