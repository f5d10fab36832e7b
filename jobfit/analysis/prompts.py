"""Prompt builders for the three generator stages."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence

from jobfit.analysis.config import AnalysisConfig
from jobfit.analysis.education import format_education_summary
from jobfit.analysis.experience import (
    RoleDuration,
    format_role_durations,
    total_experience_months,
)
from jobfit.analysis.models import JobRequirement, KeywordMatchType, MatchedRequirement
from jobfit.profile.models import Education, Experience

EXTRACTION_SYSTEM_PROMPT = """You extract requirements and keywords from job descriptions. You never see candidate information.

You must follow these rules:
- Only extract what the job description states or clearly implies. Do NOT invent requirements.
- IGNORE "or equivalent experience" alternatives to degrees; extract only the degree itself.
- Split compound requirements ("SQL and Python" is two requirements).
- Do NOT extract company names, project names, or candidate-specific details.
- Output MUST be valid JSON only (no markdown), matching the required schema.
"""

MATCHING_SYSTEM_PROMPT = """You match a candidate against job requirements with precise evidence.

You must follow these rules:
- Only use evidence present in the provided candidate data. Do NOT fabricate experience.
- Every requirement you are given must appear in exactly one of matchedRequirements or unmatchedRequirements, with its text copied verbatim.
- For years-of-experience requirements you MUST show the calculation with every qualifying role duration.
- Output MUST be valid JSON only (no markdown), matching the required schema.
"""

BULLETS_SYSTEM_PROMPT = """You write resume bullets from a candidate's recorded experiences.

You must follow these rules:
- Use ONLY facts present in the supplied experiences. Never invent numbers, tools, or outcomes.
- Start each bullet with a strong action verb and prefer quantified results.
- Do not use abbreviations, semicolons, or em-dashes.
- Output MUST be valid JSON only (no markdown), matching the required schema.
"""


def build_extraction_prompt(job_description: str) -> str:
    """Build the Stage 1 user prompt."""
    return "\n".join(
        [
            "Extract the requirements and keywords from the job description below.",
            "",
            "JOB DESCRIPTION:",
            job_description.strip(),
            "",
            "Categories:",
            "- education_degree: degree level. Set minimumDegreeLevel to one of "
            "Other, Diploma, Associate, Bachelor's, Master's, PhD.",
            "- education_field: field of study. Set requiredField and/or fieldCriteria "
            "(e.g. 'STEM', 'Technical field').",
            "- years_experience: set minimumYears; set specificRole when the years are "
            "tied to a role or function ('3+ years in product management'), else null.",
            "- role_title: set requiredTitleKeywords (e.g. ['Product Manager']).",
            "- technical_skill: tools, technologies, programming languages, certifications.",
            "- soft_skill: leadership, communication, problem-solving.",
            "- domain_knowledge: industry knowledge, methodologies, eligibility rules.",
            "",
            "Importance levels:",
            "- absolute: explicitly non-negotiable (e.g. 'Must be US citizen', "
            "'Security clearance required').",
            "- critical: must-have, required, essential.",
            "- high: preferred, strongly desired.",
            "- medium: nice to have.",
            "- low: bonus.",
            "",
            "Keywords: list ALL relevant terms from the job description (technical terms, "
            "skills, domain terms, action verbs, industry jargon) as allKeywords.",
            "",
            "Also return jobTitle (the title of the position) and companySummary "
            "(one or two sentences about the company and role).",
            "Set fields that do not apply to a requirement to null.",
        ]
    )


def _format_experiences(
    experiences_by_role: Mapping[str, Sequence[Experience]], *, include_role_details: bool
) -> str:
    blocks: list[str] = []
    for role_key, experiences in experiences_by_role.items():
        role = experiences[0].role
        lines = [f"=== {role_key} ===", f"Role: {role.title}"]
        if include_role_details and role.specialty:
            lines[-1] += f" | Specialty: {role.specialty}"
        lines.append(f"Company: {role.company.name}")
        if include_role_details:
            end = "Present" if role.is_current or role.end_date is None else role.end_date.isoformat()
            lines.append(f"Duration: {role.start_date.isoformat()} to {end}")
            lines.append(f"Number of experiences for this role: {len(experiences)}")

        for index, exp in enumerate(experiences, start=1):
            lines.append("")
            lines.append(f"  Experience {index}:")
            lines.append(f"  - ID: {exp.id}")
            lines.append(f"  - Title: {exp.title}")
            if exp.situation:
                lines.append(f"  - Situation: {exp.situation}")
            if exp.task:
                lines.append(f"  - Task: {exp.task}")
            lines.append(f"  - Action: {exp.action}")
            lines.append(f"  - Result: {exp.result}")
            if exp.tags:
                lines.append(f"  - Tags: {', '.join(exp.tags)}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def build_matching_prompt(
    *,
    requirements: Sequence[JobRequirement],
    experiences_by_role: Mapping[str, Sequence[Experience]],
    education: Sequence[Education],
    durations: Sequence[RoleDuration],
) -> str:
    """Build the Stage 2a user prompt."""
    total_months = total_experience_months(durations)
    requirements_payload = [
        req.model_dump(mode="json", by_alias=True, exclude_none=True) for req in requirements
    ]

    return "\n".join(
        [
            "Match the candidate below against the job requirements.",
            "",
            "EDUCATION:",
            format_education_summary(education),
            "",
            f"TOTAL EXPERIENCE: {total_months // 12} years ({total_months} months)",
            "",
            "ROLES WITH DURATIONS (USE THESE FOR CALCULATIONS):",
            format_role_durations(durations) or "- None recorded",
            "",
            "EXPERIENCES BY ROLE:",
            _format_experiences(experiences_by_role, include_role_details=True),
            "",
            "JOB REQUIREMENTS TO MATCH (JSON):",
            json.dumps(requirements_payload, indent=2, ensure_ascii=False),
            "",
            "Matching instructions:",
            "- Education field: judge whether the candidate's field satisfies the "
            "requirement. Degree level has already been checked and is not listed.",
            "- Years of experience: list EVERY qualifying role with company and months, "
            "then sum them. experienceSource MUST use the form "
            "'Role1 at Company1 (12mo) + Role2 at Company2 (15mo) = 27mo ÷ 12 = 2.3yr'. "
            "For general experience use the total above.",
            "- Specialties: check every role's Specialty against every requirement; a "
            "matching specialty term counts as evidence.",
            "- Technical skills must appear in the experience text; soft skills need clear evidence.",
            "",
            "For each match set:",
            "- matchType: exact | synonym | semantic | transferable | contextual",
            "- evidenceStrength: quantified (measurable result) | demonstrated (clear "
            "example) | mentioned (named without detail) | implied (inferred only)",
            "",
            "Unmatched requirements keep their original importance.",
            "recommendations.forCandidate: 2-3 specific suggestions when several "
            "important requirements are unmatched, otherwise an empty list.",
        ]
    )


def build_bullets_prompt(
    *,
    experiences_by_role: Mapping[str, Sequence[Experience]],
    matched_requirements: Sequence[MatchedRequirement],
    all_keywords: Sequence[str],
    keyword_match_type: KeywordMatchType,
    config: AnalysisConfig,
) -> str:
    """Build the Stage 2b user prompt."""
    total = sum(len(exps) for exps in experiences_by_role.values())
    if keyword_match_type == "exact":
        keyword_instruction = "Use keywords EXACTLY as they appear in the list."
    else:
        keyword_instruction = (
            "Use keywords or their natural variations (managed/managing, "
            "developed/development, etc.)."
        )

    return "\n".join(
        [
            "Write resume bullets for a candidate who matched this job.",
            "",
            "MATCHED REQUIREMENTS (context for what is relevant):",
            json.dumps([m.job_requirement for m in matched_requirements], indent=2),
            "",
            "CANDIDATE EXPERIENCES:",
            _format_experiences(experiences_by_role, include_role_details=False),
            "",
            "KEYWORDS TO EMBED:",
            json.dumps(list(all_keywords), indent=2),
            "",
            "Rules:",
            f"1. Write exactly one bullet for each of the {total} experiences; each "
            "experience ID appears exactly once. Never more than "
            f"{config.max_bullets_per_role} bullets per role.",
            "2. Group bullets under the 'Company - Role' keys exactly as shown above "
            "(roleKey).",
            "3. relevanceScore 1-10: 10 directly addresses several key requirements with "
            "quantified impact; 1-3 only tangentially relevant.",
            "4. Start with an action verb; include numbers, percentages, time periods, "
            "or metrics whenever the experience provides them.",
            f"5. Length: target {config.visual_width_target:.0f} characters "
            f"(range {config.visual_width_min:.0f}-{config.visual_width_max:.0f}).",
            f"6. Keywords: {keyword_instruction} Only embed keywords that fit naturally.",
            "7. keywordsUsed per bullet lists the keywords actually present in its text; "
            "top-level keywordsUsed/keywordsNotUsed split the full keyword list.",
        ]
    )
