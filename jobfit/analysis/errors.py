"""Typed errors raised by the analysis pipeline.

Every error carries an HTTP-style ``status_code`` and a ``retryable`` flag so
callers can apply their own outer retry policy without inspecting messages.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any


class AnalysisError(Exception):
    """Base exception for analysis failures."""

    code = "ANALYSIS_ERROR"
    status_code = 500
    retryable = False

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
        retryable: bool | None = None,
        original_error: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        if retryable is not None:
            self.retryable = retryable
        self.original_error = original_error

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "code": self.code,
            "retryable": self.retryable,
            "timestamp": datetime.now(UTC).isoformat(),
        }


class ValidationError(AnalysisError):
    """Input failed shape or length checks."""

    code = "VALIDATION_ERROR"
    status_code = 400


class AuthError(AnalysisError):
    """Missing or unknown credentials."""

    code = "UNAUTHORIZED"
    status_code = 401


class UpstreamFormatError(AnalysisError):
    """The generator returned non-JSON or schema-invalid output."""

    code = "INVALID_RESPONSE"
    status_code = 500
    retryable = True


class RetriesExhaustedError(UpstreamFormatError):
    """Every attempt produced invalid output; carries the last failure reason."""

    code = "RETRIES_EXHAUSTED"
    retryable = False

    def __init__(self, message: str, *, last_reason: str, attempts: int, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.last_reason = last_reason
        self.attempts = attempts


class UpstreamServiceError(AnalysisError):
    """The generator service itself failed (rate limit, 5xx, transport)."""

    code = "UPSTREAM_ERROR"
    status_code = 500
    retryable = True


class BusinessRuleError(AnalysisError):
    """The request is well formed but not allowed in the current state."""

    code = "BUSINESS_RULE"
    status_code = 422


class NoDataError(AnalysisError):
    """The user has nothing on file to analyze."""

    code = "NO_DATA"
    status_code = 404
