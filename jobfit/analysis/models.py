"""Data models for the job-fit analysis pipeline.

Contains Pydantic models for:
- Stage 1 output: JobRequirement, ExtractionResult
- Stage 2a output: MatchedRequirement, UnmatchedRequirement, MatchResult
- Stage 2b output: BulletPoint, BulletResult, ResumeBullets
- The unified AnalysisResult returned to callers

Models that cross the generator or HTTP boundary use camelCase aliases and
accept either the alias or the field name on input.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Importance = Literal["absolute", "critical", "high", "medium", "low"]
RequirementCategory = Literal[
    "education_degree",
    "education_field",
    "years_experience",
    "role_title",
    "technical_skill",
    "soft_skill",
    "domain_knowledge",
]
DegreeLevel = Literal["Other", "Diploma", "Associate", "Bachelor's", "Master's", "PhD"]
MatchType = Literal["exact", "semantic", "synonym", "transferable", "contextual"]
EvidenceStrength = Literal["quantified", "demonstrated", "mentioned", "implied"]
KeywordMatchType = Literal["exact", "flexible"]
FitLevel = Literal["Excellent", "Good", "Fair", "Poor"]

IMPORTANCE_LEVELS: tuple[str, ...] = ("absolute", "critical", "high", "medium", "low")
REQUIREMENT_CATEGORIES: tuple[str, ...] = (
    "education_degree",
    "education_field",
    "years_experience",
    "role_title",
    "technical_skill",
    "soft_skill",
    "domain_knowledge",
)


class CamelModel(BaseModel):
    """Base model serialising with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-ready dictionary using camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


def _strip_required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


class JobRequirement(CamelModel):
    """A single requirement extracted from a job description."""

    model_config = ConfigDict(frozen=True)

    requirement: str = Field(..., description="Requirement text")
    importance: Importance
    category: RequirementCategory
    minimum_degree_level: DegreeLevel | None = None
    required_field: str | None = None
    field_criteria: str | None = None
    minimum_years: float | None = Field(default=None, ge=0)
    specific_role: str | None = None
    required_title_keywords: list[str] | None = None

    @field_validator("requirement")
    @classmethod
    def validate_requirement(cls, v: str) -> str:
        return _strip_required(v)


class ExtractionResult(CamelModel):
    """Stage 1 output: requirements and keywords for a job description."""

    job_requirements: list[JobRequirement]
    all_keywords: list[str]
    job_title: str = "Position"
    company_summary: str = "Company"

    @field_validator("all_keywords")
    @classmethod
    def dedupe_keywords(cls, v: list[str]) -> list[str]:
        seen: set[str] = set()
        keywords: list[str] = []
        for keyword in v:
            cleaned = keyword.strip()
            if cleaned and cleaned.lower() not in seen:
                seen.add(cleaned.lower())
                keywords.append(cleaned)
        return keywords


class MatchedRequirement(CamelModel):
    """A requirement with the experience evidence that satisfies it."""

    job_requirement: str
    experience_evidence: str
    experience_source: str
    match_type: MatchType | None = None
    evidence_strength: EvidenceStrength | None = None


class UnmatchedRequirement(CamelModel):
    """A requirement the candidate's history does not cover."""

    requirement: str
    importance: Importance


class MatchingResponse(CamelModel):
    """Raw Stage 2a generator output after validation."""

    matched_requirements: list[MatchedRequirement]
    unmatched_requirements: list[UnmatchedRequirement]
    recommendations: list[str] = Field(default_factory=list)


class WeakEvidence(CamelModel):
    """A matched requirement backed by low-confidence evidence."""

    requirement: str
    evidence: str
    source: str
    evidence_strength: EvidenceStrength
    suggestion: str


class CategoryScore(CamelModel):
    possible: float
    achieved: float
    percentage: int


class MatchResult(CamelModel):
    """Stage 2a output: deterministic score plus reconciled matches."""

    overall_score: int = Field(..., ge=0, le=100)
    fit_level: FitLevel
    is_fit: bool
    matched_requirements: list[MatchedRequirement] = Field(default_factory=list)
    unmatched_requirements: list[UnmatchedRequirement] = Field(default_factory=list)
    critical_gaps: list[str] = Field(default_factory=list)
    absolute_gaps: list[str] = Field(default_factory=list)
    absolute_gap_explanation: str | None = None
    recommendations: list[str] = Field(default_factory=list)
    weak_evidence_experiences: list[WeakEvidence] | None = None
    score_breakdown: dict[str, CategoryScore] = Field(default_factory=dict)


class GeneratedBullet(CamelModel):
    """A bullet as returned by the generator, before verification."""

    text: str
    experience_id: str
    keywords_used: list[str] = Field(default_factory=list)
    relevance_score: float = Field(default=5.0, ge=0, le=10)

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("relevance_score", mode="before")
    @classmethod
    def default_relevance(cls, v: object) -> object:
        return 5.0 if v is None else v


class RoleBullets(CamelModel):
    role_key: str
    bullets: list[GeneratedBullet]


class BulletResponse(CamelModel):
    """Raw Stage 2b generator output after validation."""

    bullet_points: list[RoleBullets]
    keywords_used: list[str] = Field(default_factory=list)
    keywords_not_used: list[str] = Field(default_factory=list)

    def by_role(self) -> dict[str, list[GeneratedBullet]]:
        """Merge role entries into a ``{role_key: bullets}`` mapping."""
        grouped: dict[str, list[GeneratedBullet]] = {}
        for entry in self.bullet_points:
            grouped.setdefault(entry.role_key.strip(), []).extend(entry.bullets)
        return grouped


class BulletPoint(CamelModel):
    """A verified, width-annotated resume bullet."""

    text: str
    visual_width: int
    exceeds_max: bool
    below_min: bool
    is_within_range: bool
    keywords_used: list[str] = Field(default_factory=list)
    experience_id: str
    relevance_score: float = 5.0
    has_quantitative_result: bool = False
    was_optimized: bool = False


class BulletResult(CamelModel):
    """Stage 2b output."""

    bullet_points: dict[str, list[BulletPoint]]
    keywords_used: list[str] = Field(default_factory=list)
    keywords_not_used: list[str] = Field(default_factory=list)


class VisualWidthRange(CamelModel):
    min: float
    max: float
    target: float


class GeneratedFrom(CamelModel):
    total_experiences: int
    keyword_match_type: KeywordMatchType
    score_threshold: int
    visual_width_range: VisualWidthRange


class ResumeBullets(CamelModel):
    bullet_points: dict[str, list[BulletPoint]]
    keywords_used: list[str] = Field(default_factory=list)
    keywords_not_used: list[str] = Field(default_factory=list)
    generated_from: GeneratedFrom


class ActionPlan(CamelModel):
    ready_for_application: bool
    ready_for_bullet_generation: bool
    critical_gaps: list[str] = Field(default_factory=list)
    absolute_gaps: list[str] = Field(default_factory=list)


class AnalysisResult(CamelModel):
    """Unified pipeline result returned to API and CLI callers."""

    job_requirements: list[JobRequirement]
    all_keywords: list[str]
    job_title: str
    company_summary: str
    overall_score: int = Field(..., ge=0, le=100)
    fit_level: FitLevel
    is_fit: bool
    matched_requirements: list[MatchedRequirement] = Field(default_factory=list)
    unmatched_requirements: list[UnmatchedRequirement] = Field(default_factory=list)
    critical_gaps: list[str] = Field(default_factory=list)
    absolute_gaps: list[str] = Field(default_factory=list)
    absolute_gap_explanation: str | None = None
    recommendations: list[str] = Field(default_factory=list)
    weak_evidence_experiences: list[WeakEvidence] | None = None
    score_breakdown: dict[str, CategoryScore] = Field(default_factory=dict)
    resume_bullets: ResumeBullets | None = None
    action_plan: ActionPlan

    def to_dict(self) -> dict[str, Any]:
        """Serialize, omitting optional sections that are absent."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
