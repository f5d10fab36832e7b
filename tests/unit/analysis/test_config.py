"""Tests for AnalysisConfig."""

from __future__ import annotations

import pytest


class TestAnalysisConfigDefaults:
    def test_defaults(self):
        from jobfit.analysis.config import AnalysisConfig

        config = AnalysisConfig(_env_file=None)  # type: ignore[call-arg]

        assert config.llm_provider == "openai"
        assert config.llm_model == "gpt-4o-mini"
        assert config.fit_threshold == 80
        assert config.absolute_gap_cap == 79
        assert (config.visual_width_min, config.visual_width_target, config.visual_width_max) == (
            125.0,
            150.0,
            179.0,
        )
        assert config.max_bullets_per_role == 6
        assert config.extraction_max_attempts == 2
        assert config.bullets_max_attempts == 3
        assert config.cache_enabled is True

    def test_reads_prefixed_env(self, monkeypatch):
        monkeypatch.setenv("ANALYSIS_LLM_MODEL", "gpt-4o")
        monkeypatch.setenv("ANALYSIS_FIT_THRESHOLD", "85")

        from jobfit.analysis.config import AnalysisConfig

        config = AnalysisConfig(_env_file=None)  # type: ignore[call-arg]
        assert config.llm_model == "gpt-4o"
        assert config.fit_threshold == 85


class TestAnalysisConfigValidation:
    def test_width_range_must_be_ordered(self):
        from jobfit.analysis.config import AnalysisConfig

        with pytest.raises(ValueError, match="min <= target <= max"):
            AnalysisConfig(_env_file=None, visual_width_target=200.0)  # type: ignore[call-arg]

    def test_gap_cap_must_stay_below_threshold(self):
        from jobfit.analysis.config import AnalysisConfig

        with pytest.raises(ValueError, match="absolute_gap_cap"):
            AnalysisConfig(_env_file=None, fit_threshold=70)  # type: ignore[call-arg]

    def test_attempts_must_be_positive(self):
        from jobfit.analysis.config import AnalysisConfig

        with pytest.raises(ValueError):
            AnalysisConfig(_env_file=None, bullets_max_attempts=0)  # type: ignore[call-arg]


class TestScoringPolicy:
    def test_policy_reflects_config(self):
        from jobfit.analysis.config import AnalysisConfig

        config = AnalysisConfig(  # type: ignore[call-arg]
            _env_file=None, weight_high=2.5, fit_threshold=85, absolute_gap_cap=70
        )
        policy = config.scoring_policy()

        assert policy.weight_for("high") == 2.5
        assert policy.weight_for("absolute") == 3.0
        assert policy.fit_threshold == 85
        assert policy.absolute_gap_cap == 70

    def test_unknown_importance_weighs_one(self):
        from jobfit.analysis.config import ScoringPolicy

        assert ScoringPolicy().weight_for("unheard-of") == 1.0

    def test_policy_is_frozen(self):
        from dataclasses import FrozenInstanceError

        from jobfit.analysis.config import ScoringPolicy

        with pytest.raises(FrozenInstanceError):
            ScoringPolicy().fit_threshold = 50  # type: ignore[misc]


class TestAnalysisConfigSingleton:
    def test_get_caches_until_reset(self):
        from jobfit.analysis.config import get_analysis_config, reset_analysis_config

        first = get_analysis_config()
        assert get_analysis_config() is first

        reset_analysis_config()
        assert get_analysis_config() is not first
