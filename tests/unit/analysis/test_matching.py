"""Tests for Stage 2a matching and reconciliation."""

from __future__ import annotations

from datetime import date

import pytest


def _req(text: str, importance: str = "critical", category: str = "technical_skill", **extra):
    from jobfit.analysis.models import JobRequirement

    return JobRequirement(requirement=text, importance=importance, category=category, **extra)


def _extraction(*requirements):
    from jobfit.analysis.models import ExtractionResult

    return ExtractionResult(job_requirements=list(requirements), all_keywords=["SQL"])


def _matched(text: str, strength: str = "quantified") -> dict:
    return {
        "jobRequirement": text,
        "experienceEvidence": "Analyzed funnel data in SQL",
        "experienceSource": "Shopwise - Senior Product Analyst",
        "matchType": "exact",
        "evidenceStrength": strength,
    }


class TestValidateMatchingPayload:
    def test_parses_valid_payload(self):
        from jobfit.analysis.matching import validate_matching_payload

        result = validate_matching_payload(
            {
                "matchedRequirements": [_matched("SQL")],
                "unmatchedRequirements": [{"requirement": "Go", "importance": "urgent"}],
                "recommendations": {"forCandidate": ["Learn Go"]},
            }
        )

        assert result.matched_requirements[0].evidence_strength == "quantified"
        assert result.unmatched_requirements[0].importance == "medium"
        assert result.recommendations == ["Learn Go"]

    def test_missing_match_fields_raise(self):
        from jobfit.analysis.errors import UpstreamFormatError
        from jobfit.analysis.matching import validate_matching_payload

        match = _matched("SQL")
        del match["evidenceStrength"]

        with pytest.raises(UpstreamFormatError, match="evidenceStrength"):
            validate_matching_payload(
                {"matchedRequirements": [match], "unmatchedRequirements": []}
            )

    def test_missing_arrays_raise(self):
        from jobfit.analysis.errors import UpstreamFormatError
        from jobfit.analysis.matching import validate_matching_payload

        with pytest.raises(UpstreamFormatError, match="unmatchedRequirements"):
            validate_matching_payload({"matchedRequirements": []})

    def test_malformed_recommendations_raise(self):
        from jobfit.analysis.errors import UpstreamFormatError
        from jobfit.analysis.matching import validate_matching_payload

        with pytest.raises(UpstreamFormatError, match="forCandidate"):
            validate_matching_payload(
                {
                    "matchedRequirements": [],
                    "unmatchedRequirements": [],
                    "recommendations": {"forCandidate": "Learn Go"},
                }
            )


class TestEducationPrepass:
    def test_matches_degree_requirements(self, education):
        from jobfit.analysis.matching import education_prepass

        requirements = [
            _req("Bachelor's degree", category="education_degree", minimum_degree_level="Bachelor's"),
            _req("SQL"),
        ]

        matched, unmatched = education_prepass(requirements, education)

        assert unmatched == []
        assert len(matched) == 1
        assert matched[0].job_requirement == "Bachelor's degree"
        assert matched[0].experience_source == "Education: B.S. in Statistics from State University"
        assert matched[0].match_type is None

    def test_unmet_degree_keeps_importance(self, education):
        from jobfit.analysis.matching import education_prepass

        requirements = [
            _req("PhD in Physics", "absolute", "education_degree", minimum_degree_level="PhD"),
        ]

        matched, unmatched = education_prepass(requirements, education)

        assert matched == []
        assert unmatched[0].requirement == "PhD in Physics"
        assert unmatched[0].importance == "absolute"

    def test_no_degree_requirements(self, education):
        from jobfit.analysis.matching import education_prepass

        assert education_prepass([_req("SQL")], education) == ([], [])


class TestReconcileMatches:
    def test_each_requirement_lands_in_exactly_one_list(self):
        from jobfit.analysis.matching import reconcile_matches, validate_matching_payload

        requirements = [_req("Strong SQL skills", "high"), _req("Python"), _req("Tableau", "low")]
        response = validate_matching_payload(
            {
                "matchedRequirements": [
                    _matched("strong  sql SKILLS"),
                    _matched("Strong SQL skills"),
                    _matched("Kubernetes"),
                ],
                "unmatchedRequirements": [{"requirement": "Python", "importance": "low"}],
            }
        )

        matched, unmatched = reconcile_matches(requirements, response)

        assert [m.job_requirement for m in matched] == ["Strong SQL skills"]
        assert [(u.requirement, u.importance) for u in unmatched] == [
            ("Python", "critical"),
            ("Tableau", "low"),
        ]


class TestMatchingEngine:
    @pytest.mark.asyncio
    async def test_scores_with_prepass_and_generator(
        self, scripted_client, analysis_config, experiences, education
    ):
        from jobfit.analysis.matching import MatchingEngine

        extraction = _extraction(
            _req("Bachelor's degree", category="education_degree", minimum_degree_level="Bachelor's"),
            _req("Strong SQL skills", "high"),
            _req("Kubernetes", "critical"),
        )
        client = scripted_client(
            requirement_matching=[
                {
                    "matchedRequirements": [_matched("Strong SQL skills")],
                    "unmatchedRequirements": [{"requirement": "Kubernetes", "importance": "critical"}],
                    "recommendations": {"forCandidate": ["Get hands-on with Kubernetes"]},
                }
            ]
        )
        engine = MatchingEngine(client, analysis_config)

        result = await engine.match(extraction, experiences, education, today=date(2024, 1, 1))

        # (3 + 2) / (3 + 2 + 3) = 62.5 -> 63
        assert result.overall_score == 63
        assert result.fit_level == "Fair"
        assert result.critical_gaps == ["Kubernetes"]
        assert result.recommendations == ["Get hands-on with Kubernetes"]
        assert len(result.matched_requirements) == 2

        prompt = client.calls[0]["messages"][1]["content"]
        assert "Bachelor's degree" not in prompt.split("JOB REQUIREMENTS TO MATCH")[1]
        assert "Senior Product Analyst (Growth, E-commerce) at Shopwise: 3 years (36 months)" in prompt
        assert "TOTAL EXPERIENCE: 5 years (66 months)" in prompt

    @pytest.mark.asyncio
    async def test_only_degree_requirements_skip_generator(
        self, scripted_client, analysis_config, experiences, education
    ):
        from jobfit.analysis.matching import MatchingEngine

        client = scripted_client(requirement_matching=[])
        engine = MatchingEngine(client, analysis_config)

        result = await engine.match(
            _extraction(
                _req("Bachelor's degree", category="education_degree", minimum_degree_level="Bachelor's")
            ),
            experiences,
            education,
        )

        assert client.calls == []
        assert result.overall_score == 100
        assert result.is_fit is True
