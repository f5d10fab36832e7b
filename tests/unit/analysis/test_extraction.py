"""Tests for Stage 1 requirement extraction."""

from __future__ import annotations

import pytest

EXTRACTION_REPLY = {
    "jobRequirements": [
        {
            "requirement": "Bachelor's degree in a quantitative field",
            "importance": "critical",
            "category": "education_degree",
            "minimumDegreeLevel": "Bachelor's",
            "requiredField": None,
            "fieldCriteria": "Quantitative field",
            "minimumYears": None,
            "specificRole": None,
            "requiredTitleKeywords": None,
        },
        {
            "requirement": "Strong SQL skills",
            "importance": "high",
            "category": "technical_skill",
            "minimumDegreeLevel": None,
            "requiredField": None,
            "fieldCriteria": None,
            "minimumYears": None,
            "specificRole": None,
            "requiredTitleKeywords": None,
        },
    ],
    "allKeywords": ["SQL", "analytics", "sql", " A/B testing "],
    "jobTitle": "Senior Product Analyst",
    "companySummary": "An e-commerce company growing its shopping experience.",
}


class _MemoryCache:
    def __init__(self, fail: bool = False):
        self.entries: dict[tuple[str, str], dict] = {}
        self.fail = fail

    async def get_cached_extraction(self, user_id, jd_hash):
        if self.fail:
            raise RuntimeError("cache down")
        return self.entries.get((user_id, jd_hash))

    async def set_cached_extraction(self, user_id, jd_hash, payload, ttl_hours):
        if self.fail:
            raise RuntimeError("cache down")
        self.entries[(user_id, jd_hash)] = payload


class TestValidateJobDescription:
    def test_rejects_empty(self):
        from jobfit.analysis.errors import ValidationError
        from jobfit.analysis.extraction import validate_job_description

        with pytest.raises(ValidationError, match="required"):
            validate_job_description("   ")

    def test_rejects_short_text(self):
        from jobfit.analysis.errors import ValidationError
        from jobfit.analysis.extraction import validate_job_description

        with pytest.raises(ValidationError, match="too short") as exc_info:
            validate_job_description("Looking for an analyst. " * 5)

        assert exc_info.value.status_code == 400

    def test_rejects_long_text(self):
        from jobfit.analysis.errors import ValidationError
        from jobfit.analysis.extraction import validate_job_description

        with pytest.raises(ValidationError, match="too long"):
            validate_job_description("word " * 2_500)

    def test_rejects_too_few_words(self):
        from jobfit.analysis.errors import ValidationError
        from jobfit.analysis.extraction import validate_job_description

        with pytest.raises(ValidationError, match="at least 50 words"):
            validate_job_description("supercalifragilistic " * 30)

    def test_returns_trimmed_text(self, job_description):
        from jobfit.analysis.extraction import validate_job_description

        assert validate_job_description(f"\n\n{job_description}  ") == job_description.strip()


class TestValidateExtractionPayload:
    def test_parses_payload_and_dedupes_keywords(self):
        from jobfit.analysis.extraction import validate_extraction_payload

        result = validate_extraction_payload(EXTRACTION_REPLY)

        assert len(result.job_requirements) == 2
        assert result.job_requirements[0].minimum_degree_level == "Bachelor's"
        assert result.all_keywords == ["SQL", "analytics", "A/B testing"]
        assert result.job_title == "Senior Product Analyst"

    def test_missing_arrays_raise(self):
        from jobfit.analysis.errors import UpstreamFormatError
        from jobfit.analysis.extraction import validate_extraction_payload

        with pytest.raises(UpstreamFormatError, match="jobRequirements"):
            validate_extraction_payload({"allKeywords": []})

        with pytest.raises(UpstreamFormatError, match="allKeywords"):
            validate_extraction_payload({"jobRequirements": []})

    def test_requirement_missing_fields_raise(self):
        from jobfit.analysis.errors import UpstreamFormatError
        from jobfit.analysis.extraction import validate_extraction_payload

        payload = {
            "jobRequirements": [{"requirement": "SQL", "category": "technical_skill"}],
            "allKeywords": [],
        }
        with pytest.raises(UpstreamFormatError, match=r"jobRequirements\[0\] is missing importance"):
            validate_extraction_payload(payload)

    def test_defaults_title_and_summary(self):
        from jobfit.analysis.extraction import validate_extraction_payload

        result = validate_extraction_payload(
            {"jobRequirements": [], "allKeywords": [], "jobTitle": "  "}
        )

        assert result.job_title == "Position"
        assert result.company_summary == "Company"


class TestRequirementExtractor:
    @pytest.mark.asyncio
    async def test_extracts_with_stage_settings(self, scripted_client, analysis_config, job_description):
        from jobfit.analysis.extraction import RequirementExtractor

        client = scripted_client(job_requirements=[EXTRACTION_REPLY])
        extractor = RequirementExtractor(client, analysis_config)

        result = await extractor.extract(job_description)

        assert [r.requirement for r in result.job_requirements] == [
            "Bachelor's degree in a quantitative field",
            "Strong SQL skills",
        ]
        call = client.calls[0]
        assert call["temperature"] == analysis_config.extraction_temperature
        assert call["max_tokens"] == analysis_config.extraction_max_tokens
        assert "Senior Product Analyst" in call["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_invalid_job_description_never_calls_generator(self, scripted_client, analysis_config):
        from jobfit.analysis.errors import ValidationError
        from jobfit.analysis.extraction import RequirementExtractor

        client = scripted_client(job_requirements=[])
        extractor = RequirementExtractor(client, analysis_config)

        with pytest.raises(ValidationError):
            await extractor.extract("too short")

        assert client.calls == []

    @pytest.mark.asyncio
    async def test_second_extraction_is_served_from_cache(
        self, scripted_client, analysis_config, job_description
    ):
        from jobfit.analysis.extraction import RequirementExtractor, hash_job_description

        cache = _MemoryCache()
        client = scripted_client(job_requirements=[EXTRACTION_REPLY])
        extractor = RequirementExtractor(client, analysis_config, cache=cache)

        first = await extractor.extract(job_description, user_id="alice")
        second = await extractor.extract(job_description.upper(), user_id="alice")

        assert len(client.calls) == 1
        assert second == first
        assert ("alice", hash_job_description(job_description)) in cache.entries

    @pytest.mark.asyncio
    async def test_cache_failures_do_not_fail_extraction(
        self, scripted_client, analysis_config, job_description
    ):
        from jobfit.analysis.extraction import RequirementExtractor

        client = scripted_client(job_requirements=[EXTRACTION_REPLY])
        extractor = RequirementExtractor(client, analysis_config, cache=_MemoryCache(fail=True))

        result = await extractor.extract(job_description, user_id="alice")

        assert len(result.job_requirements) == 2

    @pytest.mark.asyncio
    async def test_cache_disabled_by_config(self, scripted_client, job_description):
        from jobfit.analysis.config import AnalysisConfig
        from jobfit.analysis.extraction import RequirementExtractor

        config = AnalysisConfig(_env_file=None, cache_enabled=False, retry_base_delay=0)  # type: ignore[call-arg]
        cache = _MemoryCache()
        client = scripted_client(job_requirements=[EXTRACTION_REPLY])
        extractor = RequirementExtractor(client, config, cache=cache)

        await extractor.extract(job_description, user_id="alice")

        assert cache.entries == {}
