"""Retrying LLM client for the analysis stages.

Uses LiteLLM with strict JSON-schema response formats. The schema is a
request, not a guarantee, so every reply is re-parsed and validated. Invalid
replies are fed back to the model with a corrective turn naming the problem.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import warnings
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from litellm import Timeout, acompletion
from pydantic import ValidationError as PydanticValidationError

from jobfit.analysis.config import AnalysisConfig, get_analysis_config
from jobfit.analysis.errors import (
    RetriesExhaustedError,
    UpstreamFormatError,
    UpstreamServiceError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
Message = dict[str, str]
Validator = Callable[[dict[str, Any]], T]

warnings.filterwarnings(
    "ignore",
    message=r"(?s)^Pydantic serializer warnings:.*",
    category=UserWarning,
)

# LiteLLM loads `.env` into the process environment in DEV mode.
os.environ.setdefault("LITELLM_MODE", "PRODUCTION")


def with_correction(messages: Sequence[Message], reply: str, reason: str) -> list[Message]:
    """Return a new conversation asking the model to fix its last reply.

    The input sequence is left untouched.
    """
    return [
        *messages,
        {"role": "assistant", "content": reply},
        {
            "role": "user",
            "content": (
                f"Your previous response was invalid: {reason}. "
                "Respond again with ONLY a single valid JSON object that matches the "
                "required schema, including every required field."
            ),
        },
    ]


def describe_validation_error(error: PydanticValidationError) -> str:
    """Condense a pydantic error into a short, model-readable reason."""
    parts = []
    for item in error.errors()[:5]:
        location = ".".join(str(p) for p in item.get("loc", ())) or "response"
        parts.append(f"{location}: {item.get('msg', 'invalid value')}")
    return "; ".join(parts)


def extract_json_object(content: str) -> str:
    """Return the first balanced top-level ``{...}`` block in ``content``.

    Markdown code fences are stripped first. Braces inside JSON strings are
    ignored while balancing.
    """
    text = content.strip()
    if text.startswith("```"):
        first_newline = text.find("\n")
        text = text[first_newline + 1 :] if first_newline != -1 else text[3:]
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
        text = text.strip()

    start = text.find("{")
    if start == -1:
        raise UpstreamFormatError("no JSON object found in response")

    depth = 0
    in_string = False
    escaped = False
    for idx in range(start, len(text)):
        ch = text[idx]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : idx + 1]

    raise UpstreamFormatError("unterminated JSON object in response")


def classify_upstream_error(error: Exception) -> UpstreamServiceError:
    """Map a transport/provider exception onto UpstreamServiceError.

    429 and 5xx (and timeouts or connection failures without a status) are
    retryable; any other 4xx is not.
    """
    status = getattr(error, "status_code", None)
    if isinstance(error, Timeout | asyncio.TimeoutError):
        return UpstreamServiceError(
            f"Generator request timed out: {error}", retryable=True, original_error=error
        )
    if status == 429:
        return UpstreamServiceError(
            "Generator rate limit exceeded",
            code="UPSTREAM_RATE_LIMITED",
            status_code=429,
            retryable=True,
            original_error=error,
        )
    if isinstance(status, int) and 400 <= status < 500:
        return UpstreamServiceError(
            f"Generator rejected the request ({status}): {error}",
            retryable=False,
            original_error=error,
        )
    return UpstreamServiceError(
        f"Generator service error: {error}", retryable=True, original_error=error
    )


class GeneratorClient:
    """LLM client that enforces a JSON contract with bounded retries."""

    def __init__(self, config: AnalysisConfig | None = None) -> None:
        self.config = config or get_analysis_config()
        self._setup_provider_env()

    def _setup_provider_env(self) -> None:
        """Anthropic reads custom base URLs from the environment."""
        if self.config.llm_base_url and self.config.llm_provider == "anthropic":
            base_url = self.config.llm_base_url.rstrip("/")
            if base_url.endswith("/v1"):
                base_url = base_url[:-3]
            os.environ["ANTHROPIC_BASE_URL"] = base_url
            if self.config.llm_api_key:
                os.environ["ANTHROPIC_API_KEY"] = self.config.llm_api_key

    def _get_model_name(self) -> str:
        """Return provider-qualified model name for LiteLLM routing."""
        if self.config.llm_provider == "anthropic":
            if "/" in self.config.llm_model:
                return self.config.llm_model
            return f"anthropic/{self.config.llm_model}"

        if self.config.llm_base_url:
            if "/" in self.config.llm_model:
                return self.config.llm_model
            return f"openai/{self.config.llm_model}"

        if self.config.llm_provider == "openai":
            return self.config.llm_model

        return f"{self.config.llm_provider}/{self.config.llm_model}"

    def _retry_delay(self, attempt: int) -> float:
        return min(self.config.retry_base_delay * (2 ** (attempt - 1)), self.config.retry_max_delay)

    async def call_with_retry(
        self,
        messages: Sequence[Message],
        *,
        validator: Validator[T],
        json_schema: dict[str, Any],
        schema_name: str,
        max_tokens: int,
        temperature: float,
        max_attempts: int,
        stage: str,
    ) -> T:
        """Call the generator until ``validator`` accepts a reply.

        Raises:
            UpstreamServiceError: The provider failed and either the failure is
                not retryable or the attempt budget ran out.
            RetriesExhaustedError: Every attempt returned invalid output.
        """
        conversation = list(messages)
        last_reason = ""

        for attempt in range(1, max_attempts + 1):
            logger.info(
                "[%s] Calling generator (attempt %s/%s, max_tokens=%s, temperature=%s)",
                stage,
                attempt,
                max_attempts,
                max_tokens,
                temperature,
            )
            try:
                response = await self._call_completion(
                    messages=conversation,
                    response_format={
                        "type": "json_schema",
                        "json_schema": {
                            "name": schema_name,
                            "strict": True,
                            "schema": json_schema,
                        },
                    },
                    max_tokens=max_tokens,
                    temperature=temperature,
                )
            except Exception as e:
                error = classify_upstream_error(e)
                if not error.retryable or attempt == max_attempts:
                    logger.error(
                        "[%s] Generator call failed on attempt %s, giving up: %s",
                        stage,
                        attempt,
                        error,
                    )
                    raise error from e
                delay = self._retry_delay(attempt)
                logger.warning(
                    "[%s] Generator call failed (attempt %s), retrying in %.1fs: %s",
                    stage,
                    attempt,
                    delay,
                    error,
                )
                await asyncio.sleep(delay)
                continue

            content = ""
            try:
                content = self._response_content(response)
                return validator(self._parse_payload(content))
            except UpstreamFormatError as e:
                last_reason = e.message
            except PydanticValidationError as e:
                last_reason = describe_validation_error(e)

            if attempt == max_attempts:
                logger.error(
                    "[%s] Invalid response on final attempt %s: %s",
                    stage,
                    attempt,
                    last_reason,
                )
                break

            delay = self._retry_delay(attempt)
            logger.warning(
                "[%s] Invalid response (attempt %s), asking for a correction in %.1fs: %s",
                stage,
                attempt,
                delay,
                last_reason,
            )
            conversation = with_correction(conversation, content, last_reason)
            await asyncio.sleep(delay)

        raise RetriesExhaustedError(
            f"{stage}: generator returned invalid output after {max_attempts} attempts: "
            f"{last_reason}",
            last_reason=last_reason,
            attempts=max_attempts,
        )

    async def _call_completion(
        self,
        *,
        messages: list[Message],
        response_format: dict[str, Any],
        max_tokens: int,
        temperature: float,
    ):
        kwargs: dict[str, Any] = {
            "model": self._get_model_name(),
            "messages": messages,
            "timeout": self.config.llm_timeout,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "response_format": response_format,
        }

        if self.config.llm_api_key:
            kwargs["api_key"] = self.config.llm_api_key

        if self.config.llm_base_url and self.config.llm_provider != "anthropic":
            kwargs["base_url"] = self.config.llm_base_url

        return await acompletion(**kwargs)

    @staticmethod
    def _response_content(response) -> str:
        choices = getattr(response, "choices", None)
        if not choices:
            raise UpstreamFormatError("response has no choices")
        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)

        if not content:
            tool_calls = getattr(message, "tool_calls", None) or []
            if tool_calls:
                function = getattr(tool_calls[0], "function", None)
                arguments = getattr(function, "arguments", None)
                if isinstance(arguments, str) and arguments.strip():
                    content = arguments

        return str(content or "")

    @staticmethod
    def _parse_payload(content: str) -> dict[str, Any]:
        if not content.strip():
            raise UpstreamFormatError("empty response")
        try:
            payload = json.loads(extract_json_object(content))
        except json.JSONDecodeError as e:
            raise UpstreamFormatError(f"invalid JSON syntax ({e.msg})") from e
        if not isinstance(payload, dict):
            raise UpstreamFormatError("response must be a JSON object")
        return payload
