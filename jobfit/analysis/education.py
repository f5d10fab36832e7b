"""Deterministic education matching.

Degree-level requirements have one correct answer, so they are resolved here
rather than by the generator.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from jobfit.analysis.models import JobRequirement
from jobfit.profile.models import Education

DEGREE_HIERARCHY: dict[str, int] = {
    "Other": 0,
    "Diploma": 1,
    "Associate": 2,
    "Bachelor's": 3,
    "Master's": 4,
    "PhD": 5,
}

# Checked in order; the first pattern that matches wins
_DEGREE_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("PhD", re.compile(r"\b(ph\.?\s?d|doctor(ate|al)?|d\.?phil|ed\.?d)\b", re.I)),
    (
        "Master's",
        re.compile(r"\b(master'?s?|m\.?sc?|m\.?a|mba|m\.?eng|m\.?ed|mphil)\b", re.I),
    ),
    (
        "Bachelor's",
        re.compile(r"\b(bachelor'?s?|b\.?sc?|b\.?a|b\.?eng|b\.?tech|undergraduate)\b", re.I),
    ),
    ("Associate", re.compile(r"\bassociate|\ba\.a\.|\ba\.s\.|\baas\b", re.I)),
    ("Diploma", re.compile(r"\b(diploma|high school|ged|certificate)\b", re.I)),
)


def normalize_degree(degree: str | None) -> str:
    """Map free-text degree names onto the hierarchy; unknown text is 'Other'."""
    if not degree:
        return "Other"
    cleaned = degree.strip()
    if cleaned in DEGREE_HIERARCHY:
        return cleaned
    for level, pattern in _DEGREE_PATTERNS:
        if pattern.search(cleaned):
            return level
    return "Other"


def lowest_degree_in_text(text: str | None) -> str:
    """Return the most lenient level named anywhere in requirement text.

    "Bachelor's or Master's degree" resolves to Bachelor's, unlike
    normalize_degree which keeps the first (highest) hit.
    """
    if not text:
        return "Other"
    cleaned = text.strip()
    if cleaned in DEGREE_HIERARCHY:
        return cleaned
    levels = [level for level, pattern in _DEGREE_PATTERNS if pattern.search(cleaned)]
    if not levels:
        return "Other"
    return min(levels, key=lambda level: DEGREE_HIERARCHY[level])


def degree_level(degree: str | None) -> int:
    return DEGREE_HIERARCHY[normalize_degree(degree)]


@dataclass(frozen=True)
class EducationCheck:
    meets: bool
    evidence: str
    source: str


def _describe(edu: Education) -> str:
    label = edu.degree or edu.field or "Studies"
    if edu.degree and edu.field:
        return f"{edu.degree} in {edu.field}"
    return label


def highest_degree(education: Sequence[Education]) -> Education | None:
    """Return the highest-ranked record; ties keep the earliest one."""
    best: Education | None = None
    for edu in education:
        if best is None or degree_level(edu.degree) > degree_level(best.degree):
            best = edu
    return best


def meets_education_requirement(
    education: Sequence[Education], required_level: str
) -> EducationCheck:
    """Compare the user's highest degree with ``required_level``.

    With no records the requirement is not met. When records exist but none
    has a degree filled in, the requirement passes leniently with the
    school/field as evidence.
    """
    if not education:
        return EducationCheck(meets=False, evidence="", source="")

    if not any(edu.degree for edu in education):
        edu = education[0]
        evidence = edu.field or edu.school
        return EducationCheck(
            meets=True,
            evidence=evidence,
            source=f"Education: {_describe(edu)} from {edu.school}",
        )

    best = highest_degree(education) or education[0]
    meets = degree_level(best.degree) >= DEGREE_HIERARCHY[normalize_degree(required_level)]
    return EducationCheck(
        meets=meets,
        evidence=_describe(best),
        source=f"Education: {_describe(best)} from {best.school}",
    )


def lowest_degree_requirement(requirements: Sequence[JobRequirement]) -> str | None:
    """Return the most lenient degree level among education_degree requirements.

    A requirement without ``minimum_degree_level`` has its level inferred from
    its text.
    """
    levels = [
        req.minimum_degree_level or lowest_degree_in_text(req.requirement)
        for req in requirements
        if req.category == "education_degree"
    ]
    if not levels:
        return None
    return min(levels, key=lambda level: DEGREE_HIERARCHY[level])


def format_education_summary(education: Sequence[Education]) -> str:
    if not education:
        return "No formal education provided"

    best = highest_degree(education) or education[0]
    lines = "\n".join(f"- {_describe(edu)} from {edu.school}" for edu in education)
    return f"Highest Degree: {_describe(best)}\n\nAll Education:\n{lines}"
