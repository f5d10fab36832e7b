"""Job fit analysis pipeline.

Runs extraction, matching and (for fit candidates) bullet generation in
sequence and assembles the unified result.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import date
from typing import Protocol, get_args

from jobfit.analysis.bullets import BulletGenerator
from jobfit.analysis.config import AnalysisConfig, get_analysis_config
from jobfit.analysis.errors import NoDataError, ValidationError
from jobfit.analysis.extraction import (
    ExtractionCache,
    RequirementExtractor,
    validate_job_description,
)
from jobfit.analysis.llm import GeneratorClient
from jobfit.analysis.matching import MatchingEngine
from jobfit.analysis.models import (
    ActionPlan,
    AnalysisResult,
    GeneratedFrom,
    KeywordMatchType,
    ResumeBullets,
    VisualWidthRange,
)
from jobfit.profile.models import Education, Experience, group_experiences_by_role

logger = logging.getLogger(__name__)

KEYWORD_MATCH_TYPES: tuple[str, ...] = get_args(KeywordMatchType)


class ProfileStore(Protocol):
    async def fetch_experiences(self, user_id: str) -> list[Experience]: ...

    async def fetch_education(self, user_id: str) -> list[Education]: ...


class JobFitService:
    """Orchestrates the three-stage job fit analysis."""

    def __init__(
        self,
        store: ProfileStore,
        config: AnalysisConfig | None = None,
        client: GeneratorClient | None = None,
        cache: ExtractionCache | None = None,
    ) -> None:
        self.store = store
        self.config = config or get_analysis_config()
        self.client = client or GeneratorClient(config=self.config)

        self.extractor = RequirementExtractor(self.client, self.config, cache=cache)
        self.matcher = MatchingEngine(self.client, self.config)
        self.bullets = BulletGenerator(self.client, self.config)

    async def analyze(
        self,
        user_id: str,
        job_description: str,
        keyword_match_type: str = "exact",
        *,
        today: date | None = None,
    ) -> AnalysisResult:
        """Analyze a job description against the user's stored profile.

        Raises:
            ValidationError: Bad job description or keyword mode.
            NoDataError: The user has no experiences on file.
            UpstreamServiceError / RetriesExhaustedError: Generator failures.
        """
        if keyword_match_type not in KEYWORD_MATCH_TYPES:
            raise ValidationError(
                f"keywordMatchType must be one of: {', '.join(KEYWORD_MATCH_TYPES)}"
            )
        text = validate_job_description(job_description)

        started = time.monotonic()
        experiences, education = await asyncio.gather(
            self.store.fetch_experiences(user_id),
            self.store.fetch_education(user_id),
        )
        if not experiences:
            raise NoDataError(
                "No experiences found. Please add experiences to your profile first."
            )

        experiences_by_role = group_experiences_by_role(experiences)
        logger.info(
            "Analyzing job fit: user=%s experiences=%s roles=%s education=%s",
            user_id,
            len(experiences),
            len(experiences_by_role),
            len(education),
        )

        extraction = await self.extractor.extract(text, user_id=user_id)
        match = await self.matcher.match(extraction, experiences, education, today=today)

        resume_bullets: ResumeBullets | None = None
        if match.is_fit:
            generated = await self.bullets.generate(
                match_result=match,
                experiences_by_role=experiences_by_role,
                all_keywords=extraction.all_keywords,
                keyword_match_type=keyword_match_type,  # type: ignore[arg-type]
            )
            resume_bullets = ResumeBullets(
                bullet_points=generated.bullet_points,
                keywords_used=generated.keywords_used,
                keywords_not_used=generated.keywords_not_used,
                generated_from=GeneratedFrom(
                    total_experiences=len(experiences),
                    keyword_match_type=keyword_match_type,  # type: ignore[arg-type]
                    score_threshold=self.config.fit_threshold,
                    visual_width_range=VisualWidthRange(
                        min=self.config.visual_width_min,
                        max=self.config.visual_width_max,
                        target=self.config.visual_width_target,
                    ),
                ),
            )
        else:
            logger.info(
                "Skipping bullet generation: score %s below threshold %s",
                match.overall_score,
                self.config.fit_threshold,
            )

        logger.info(
            "Analysis complete in %.2fs: score=%s fit_level=%s",
            time.monotonic() - started,
            match.overall_score,
            match.fit_level,
        )

        return AnalysisResult(
            job_requirements=extraction.job_requirements,
            all_keywords=extraction.all_keywords,
            job_title=extraction.job_title,
            company_summary=extraction.company_summary,
            overall_score=match.overall_score,
            fit_level=match.fit_level,
            is_fit=match.is_fit,
            matched_requirements=match.matched_requirements,
            unmatched_requirements=match.unmatched_requirements,
            critical_gaps=match.critical_gaps,
            absolute_gaps=match.absolute_gaps,
            absolute_gap_explanation=match.absolute_gap_explanation,
            recommendations=match.recommendations,
            weak_evidence_experiences=match.weak_evidence_experiences,
            score_breakdown=match.score_breakdown,
            resume_bullets=resume_bullets,
            action_plan=ActionPlan(
                ready_for_application=match.is_fit,
                ready_for_bullet_generation=match.is_fit,
                critical_gaps=match.critical_gaps,
                absolute_gaps=match.absolute_gaps,
            ),
        )
