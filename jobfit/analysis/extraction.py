"""Stage 1: requirement and keyword extraction."""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Protocol

from jobfit.analysis.config import AnalysisConfig, get_analysis_config
from jobfit.analysis.errors import UpstreamFormatError, ValidationError
from jobfit.analysis.llm import GeneratorClient
from jobfit.analysis.models import ExtractionResult
from jobfit.analysis.prompts import EXTRACTION_SYSTEM_PROMPT, build_extraction_prompt
from jobfit.analysis.schemas import EXTRACTION_SCHEMA

logger = logging.getLogger(__name__)

MIN_JOB_DESCRIPTION_CHARS = 400
MAX_JOB_DESCRIPTION_CHARS = 10_000
MIN_JOB_DESCRIPTION_WORDS = 50

_REQUIRED_REQUIREMENT_FIELDS = ("requirement", "importance", "category")


def validate_job_description(text: str | None) -> str:
    """Return the trimmed job description or raise ValidationError."""
    trimmed = (text or "").strip()
    if not trimmed:
        raise ValidationError("Job description is required")
    if len(trimmed) < MIN_JOB_DESCRIPTION_CHARS:
        raise ValidationError(
            f"Job description too short ({len(trimmed)} chars). Need at least "
            f"{MIN_JOB_DESCRIPTION_CHARS} characters for meaningful analysis."
        )
    if len(trimmed) > MAX_JOB_DESCRIPTION_CHARS:
        raise ValidationError(
            "Job description too long (max 10,000 characters). "
            "Please provide a more concise version."
        )
    if len(trimmed.split()) < MIN_JOB_DESCRIPTION_WORDS:
        raise ValidationError(
            f"Job description must contain at least {MIN_JOB_DESCRIPTION_WORDS} words"
        )
    return trimmed


def hash_job_description(text: str) -> str:
    return hashlib.sha256(text.strip().lower().encode("utf-8")).hexdigest()


def validate_extraction_payload(payload: dict[str, Any]) -> ExtractionResult:
    """Check the Stage 1 reply has every required field before parsing it."""
    requirements = payload.get("jobRequirements")
    if not isinstance(requirements, list):
        raise UpstreamFormatError("missing jobRequirements array")
    if not isinstance(payload.get("allKeywords"), list):
        raise UpstreamFormatError("missing allKeywords array")

    for index, item in enumerate(requirements):
        if not isinstance(item, dict):
            raise UpstreamFormatError(f"jobRequirements[{index}] must be an object")
        missing = [name for name in _REQUIRED_REQUIREMENT_FIELDS if not item.get(name)]
        if missing:
            raise UpstreamFormatError(
                f"jobRequirements[{index}] is missing {', '.join(missing)}"
            )

    data = dict(payload)
    for field, default in (("jobTitle", "Position"), ("companySummary", "Company")):
        value = data.get(field)
        if not isinstance(value, str) or not value.strip():
            logger.warning("Stage 1 response has no %s, using '%s'", field, default)
            data[field] = default

    return ExtractionResult.model_validate(data)


class ExtractionCache(Protocol):
    async def get_cached_extraction(self, user_id: str, jd_hash: str) -> dict | None: ...

    async def set_cached_extraction(
        self, user_id: str, jd_hash: str, payload: dict, ttl_hours: int
    ) -> None: ...


class RequirementExtractor:
    """Extracts structured requirements from a job description."""

    def __init__(
        self,
        client: GeneratorClient,
        config: AnalysisConfig | None = None,
        cache: ExtractionCache | None = None,
    ) -> None:
        self.client = client
        self.config = config or get_analysis_config()
        self.cache = cache

    async def extract(self, job_description: str, *, user_id: str | None = None) -> ExtractionResult:
        text = validate_job_description(job_description)
        jd_hash = hash_job_description(text)

        cached = await self._load_cached(user_id, jd_hash)
        if cached is not None:
            return cached

        result = await self.client.call_with_retry(
            [
                {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
                {"role": "user", "content": build_extraction_prompt(text)},
            ],
            validator=validate_extraction_payload,
            json_schema=EXTRACTION_SCHEMA,
            schema_name="job_requirements",
            max_tokens=self.config.extraction_max_tokens,
            temperature=self.config.extraction_temperature,
            max_attempts=self.config.extraction_max_attempts,
            stage="stage1",
        )
        logger.info(
            "Extracted %s requirements and %s keywords for '%s'",
            len(result.job_requirements),
            len(result.all_keywords),
            result.job_title,
        )

        await self._store_cached(user_id, jd_hash, result)
        return result

    async def _load_cached(self, user_id: str | None, jd_hash: str) -> ExtractionResult | None:
        if self.cache is None or user_id is None or not self.config.cache_enabled:
            return None
        try:
            payload = await self.cache.get_cached_extraction(user_id, jd_hash)
            if payload is None:
                logger.debug("Stage 1 cache miss for %s", jd_hash[:12])
                return None
            logger.info("Stage 1 cache hit for %s", jd_hash[:12])
            return ExtractionResult.model_validate(payload)
        except Exception as e:
            logger.warning("Stage 1 cache lookup failed, proceeding without cache: %s", e)
            return None

    async def _store_cached(self, user_id: str | None, jd_hash: str, result: ExtractionResult) -> None:
        if self.cache is None or user_id is None or not self.config.cache_enabled:
            return
        try:
            await self.cache.set_cached_extraction(
                user_id, jd_hash, result.to_dict(), self.config.cache_ttl_hours
            )
        except Exception as e:
            logger.warning("Failed to cache Stage 1 results: %s", e)
