"""Configuration settings for the job-fit analysis pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Annotated

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Confidence multipliers for evidence strength; <= weak_evidence_cutoff is "weak"
EVIDENCE_STRENGTH_MULTIPLIERS: dict[str, float] = {
    "quantified": 1.0,
    "demonstrated": 0.8,
    "mentioned": 0.5,
    "implied": 0.3,
}

# Used only by the diagnostic category breakdown
MATCH_TYPE_MULTIPLIERS: dict[str, float] = {
    "exact": 1.0,
    "synonym": 0.9,
    "semantic": 0.8,
    "transferable": 0.6,
    "contextual": 0.5,
}


@dataclass(frozen=True)
class ScoringPolicy:
    """Immutable scoring rules handed to the scoring functions."""

    importance_weights: dict[str, float] = field(
        default_factory=lambda: {
            "absolute": 3.0,
            "critical": 3.0,
            "high": 2.0,
            "medium": 1.0,
            "low": 0.5,
        }
    )
    fit_threshold: int = 80
    excellent_threshold: int = 90
    fair_threshold: int = 60
    absolute_gap_cap: int = 79
    weak_evidence_cutoff: float = 0.5
    weak_evidence_limit: int = 5
    evidence_multipliers: dict[str, float] = field(
        default_factory=lambda: dict(EVIDENCE_STRENGTH_MULTIPLIERS)
    )
    match_type_multipliers: dict[str, float] = field(
        default_factory=lambda: dict(MATCH_TYPE_MULTIPLIERS)
    )

    def weight_for(self, importance: str) -> float:
        return self.importance_weights.get(importance, 1.0)


class AnalysisConfig(BaseSettings):
    """Analysis pipeline settings.

    All settings have sensible defaults and can be overridden via
    environment variables with the ``ANALYSIS_`` prefix or a .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="ANALYSIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # LLM settings
    llm_provider: str = Field(
        default="openai",
        description="LLM provider (openai, anthropic, azure, etc.)",
    )
    llm_model: str = Field(default="gpt-4o-mini", description="LLM model name")
    llm_api_key: str | None = Field(
        default=None,
        description="API key for LLM provider",
    )
    llm_base_url: str | None = Field(
        default=None,
        description="Base URL for OpenAI-compatible endpoints",
    )
    llm_timeout: Annotated[float, Field(gt=0)] = Field(
        default=90.0,
        description="Timeout in seconds for a single LLM call",
    )

    # Per-stage generation budgets
    extraction_max_attempts: Annotated[int, Field(ge=1)] = Field(default=2)
    matching_max_attempts: Annotated[int, Field(ge=1)] = Field(default=2)
    bullets_max_attempts: Annotated[int, Field(ge=1)] = Field(default=3)
    extraction_temperature: Annotated[float, Field(ge=0.0, le=2.0)] = Field(default=0.1)
    matching_temperature: Annotated[float, Field(ge=0.0, le=2.0)] = Field(default=0.0)
    bullets_temperature: Annotated[float, Field(ge=0.0, le=2.0)] = Field(default=0.15)
    extraction_max_tokens: Annotated[int, Field(gt=0)] = Field(default=3000)
    matching_max_tokens: Annotated[int, Field(gt=0)] = Field(default=4000)
    bullets_max_tokens: Annotated[int, Field(gt=0)] = Field(default=4000)

    # Retry delays (seconds, exponential from base up to max)
    retry_base_delay: Annotated[float, Field(ge=0.0)] = Field(default=1.0)
    retry_max_delay: Annotated[float, Field(ge=0.0)] = Field(default=8.0)

    # Scoring
    fit_threshold: Annotated[int, Field(ge=0, le=100)] = Field(
        default=80,
        description="Minimum score for a candidate to count as a fit",
    )
    weight_absolute: Annotated[float, Field(gt=0)] = Field(default=3.0)
    weight_critical: Annotated[float, Field(gt=0)] = Field(default=3.0)
    weight_high: Annotated[float, Field(gt=0)] = Field(default=2.0)
    weight_medium: Annotated[float, Field(gt=0)] = Field(default=1.0)
    weight_low: Annotated[float, Field(gt=0)] = Field(default=0.5)
    absolute_gap_cap: Annotated[int, Field(ge=0, le=100)] = Field(
        default=79,
        description="Score ceiling applied when an absolute requirement is missing",
    )
    weak_evidence_limit: Annotated[int, Field(ge=0)] = Field(default=5)

    # Bullets
    visual_width_min: Annotated[float, Field(gt=0)] = Field(default=125.0)
    visual_width_target: Annotated[float, Field(gt=0)] = Field(default=150.0)
    visual_width_max: Annotated[float, Field(gt=0)] = Field(default=179.0)
    max_bullets_per_role: Annotated[int, Field(gt=0)] = Field(default=6)

    # Stage 1 cache
    cache_enabled: bool = Field(default=True)
    cache_ttl_hours: Annotated[int, Field(gt=0)] = Field(default=24)

    @model_validator(mode="after")
    def validate_width_range(self) -> AnalysisConfig:
        """Ensure min <= target <= max for visual width."""
        if not (self.visual_width_min <= self.visual_width_target <= self.visual_width_max):
            raise ValueError(
                "Visual width settings must satisfy min <= target <= max. "
                f"Got min={self.visual_width_min}, target={self.visual_width_target}, "
                f"max={self.visual_width_max}."
            )
        if self.absolute_gap_cap >= self.fit_threshold:
            raise ValueError("absolute_gap_cap must be below fit_threshold")
        return self

    def scoring_policy(self) -> ScoringPolicy:
        """Freeze the scoring-related settings into a ScoringPolicy."""
        return ScoringPolicy(
            importance_weights={
                "absolute": self.weight_absolute,
                "critical": self.weight_critical,
                "high": self.weight_high,
                "medium": self.weight_medium,
                "low": self.weight_low,
            },
            fit_threshold=self.fit_threshold,
            absolute_gap_cap=self.absolute_gap_cap,
            weak_evidence_limit=self.weak_evidence_limit,
        )


_analysis_config: AnalysisConfig | None = None


def get_analysis_config() -> AnalysisConfig:
    """Get the analysis configuration singleton."""
    global _analysis_config
    if _analysis_config is None:
        _analysis_config = AnalysisConfig()
    return _analysis_config


def reset_analysis_config() -> None:
    """Reset the configuration singleton (useful for testing)."""
    global _analysis_config
    _analysis_config = None
