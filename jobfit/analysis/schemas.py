"""JSON schemas sent with each generator request.

Strict structured outputs require every property to be listed in
``required`` and ``additionalProperties`` to be false, so optional values are
expressed as nullable types. Dynamic object keys are not allowed, which is
why bullets come back as a list of ``{roleKey, bullets}`` entries.
"""

from __future__ import annotations

from typing import Any

from jobfit.analysis.models import IMPORTANCE_LEVELS, REQUIREMENT_CATEGORIES


def _nullable(type_name: str, **extra: Any) -> dict[str, Any]:
    return {"type": [type_name, "null"], **extra}


def _object(properties: dict[str, Any], **extra: Any) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": properties,
        "required": list(properties),
        "additionalProperties": False,
        **extra,
    }


_STRING_ARRAY: dict[str, Any] = {"type": "array", "items": {"type": "string"}}

EXTRACTION_SCHEMA: dict[str, Any] = _object(
    {
        "jobRequirements": {
            "type": "array",
            "items": _object(
                {
                    "requirement": {"type": "string"},
                    "importance": {"type": "string", "enum": list(IMPORTANCE_LEVELS)},
                    "category": {"type": "string", "enum": list(REQUIREMENT_CATEGORIES)},
                    "minimumDegreeLevel": {
                        "type": ["string", "null"],
                        "enum": [
                            "Other",
                            "Diploma",
                            "Associate",
                            "Bachelor's",
                            "Master's",
                            "PhD",
                            None,
                        ],
                    },
                    "requiredField": _nullable("string"),
                    "fieldCriteria": _nullable("string"),
                    "minimumYears": _nullable("number"),
                    "specificRole": _nullable("string"),
                    "requiredTitleKeywords": _nullable("array", items={"type": "string"}),
                }
            ),
        },
        "allKeywords": _STRING_ARRAY,
        "jobTitle": {"type": "string"},
        "companySummary": {"type": "string"},
    }
)

MATCHING_SCHEMA: dict[str, Any] = _object(
    {
        "matchedRequirements": {
            "type": "array",
            "items": _object(
                {
                    "jobRequirement": {
                        "type": "string",
                        "description": "The requirement text, copied verbatim",
                    },
                    "experienceEvidence": {"type": "string"},
                    "experienceSource": {
                        "type": "string",
                        "description": (
                            "Source citation. For years-of-experience requirements: "
                            "Role1 at Company1 (Xmo) + Role2 at Company2 (Ymo) = "
                            "Total ÷ 12 = Y years"
                        ),
                    },
                    "matchType": {
                        "type": "string",
                        "enum": ["exact", "semantic", "synonym", "transferable", "contextual"],
                    },
                    "evidenceStrength": {
                        "type": "string",
                        "enum": ["quantified", "demonstrated", "mentioned", "implied"],
                    },
                }
            ),
        },
        "unmatchedRequirements": {
            "type": "array",
            "items": _object(
                {
                    "requirement": {"type": "string"},
                    "importance": {"type": "string", "enum": list(IMPORTANCE_LEVELS)},
                }
            ),
        },
        "recommendations": _object(
            {
                "forCandidate": {
                    **_STRING_ARRAY,
                    "description": "2-3 specific recommendations when the fit is weak",
                }
            }
        ),
    }
)

BULLETS_SCHEMA: dict[str, Any] = _object(
    {
        "bulletPoints": {
            "type": "array",
            "items": _object(
                {
                    "roleKey": {
                        "type": "string",
                        "description": "'Company - Role' key exactly as provided",
                    },
                    "bullets": {
                        "type": "array",
                        "items": _object(
                            {
                                "text": {"type": "string"},
                                "experienceId": {"type": "string"},
                                "keywordsUsed": _STRING_ARRAY,
                                "relevanceScore": {
                                    "type": "number",
                                    "description": "Relevance score 1-10",
                                },
                            }
                        ),
                    },
                }
            ),
        },
        "keywordsUsed": _STRING_ARRAY,
        "keywordsNotUsed": _STRING_ARRAY,
    }
)
