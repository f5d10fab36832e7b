"""Job fit analysis pipeline.

This module scores a candidate's stored experiences against a job
description and, for fit candidates, writes tailored resume bullets.

Public API:
    - JobFitService: Runs the full three-stage analysis
    - AnalysisResult: Unified pipeline output
    - AnalysisConfig: Configuration settings
    - AnalysisError: Base class for pipeline errors
"""

from jobfit.analysis.config import AnalysisConfig, get_analysis_config, reset_analysis_config
from jobfit.analysis.errors import (
    AnalysisError,
    AuthError,
    BusinessRuleError,
    NoDataError,
    RetriesExhaustedError,
    UpstreamFormatError,
    UpstreamServiceError,
    ValidationError,
)
from jobfit.analysis.models import AnalysisResult
from jobfit.analysis.service import JobFitService

__all__ = [
    "JobFitService",
    "AnalysisResult",
    "AnalysisConfig",
    "get_analysis_config",
    "reset_analysis_config",
    "AnalysisError",
    "AuthError",
    "BusinessRuleError",
    "NoDataError",
    "RetriesExhaustedError",
    "UpstreamFormatError",
    "UpstreamServiceError",
    "ValidationError",
]
