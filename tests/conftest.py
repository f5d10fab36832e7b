"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import json
from datetime import date

import pytest

from jobfit.analysis.config import AnalysisConfig
from jobfit.analysis.llm import GeneratorClient
from jobfit.profile.models import Company, Education, Experience, Role

JOB_DESCRIPTION = """
Senior Product Analyst, Shopping Experience

We are looking for a Senior Product Analyst to join our growth team. You will
partner with product managers, engineers and designers to understand how
shoppers use our storefronts and where they drop off. You will own the
analytics behind checkout, search and recommendations.

Requirements:
- Bachelor's degree in a quantitative field
- 3+ years of product analytics experience
- Strong SQL skills and comfort with large datasets
- Experience running A/B experiments and explaining the results

Nice to have: experience with cloud data warehouses and cost optimization.
"""


class _DummyMessage:
    def __init__(self, content: str | None, tool_calls: list[object] | None = None):
        self.content = content
        self.tool_calls = tool_calls


class _DummyChoice:
    def __init__(self, message: _DummyMessage):
        self.message = message


class _DummyResponse:
    def __init__(self, message: _DummyMessage):
        self.choices = [_DummyChoice(message)]


class ScriptedClient(GeneratorClient):
    """GeneratorClient whose replies come from a per-schema script."""

    def __init__(self, config: AnalysisConfig, script: dict[str, list[object]]):
        super().__init__(config=config)
        self.script = {name: list(replies) for name, replies in script.items()}
        self.calls: list[dict] = []

    async def _call_completion(self, *, messages, response_format, max_tokens, temperature):
        name = response_format["json_schema"]["name"]
        self.calls.append(
            {
                "schema": name,
                "messages": list(messages),
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        reply = self.script[name].pop(0)
        if isinstance(reply, Exception):
            raise reply
        if not isinstance(reply, str):
            reply = json.dumps(reply)
        return _DummyResponse(_DummyMessage(reply))

    def calls_for(self, schema_name: str) -> list[dict]:
        return [call for call in self.calls if call["schema"] == schema_name]


@pytest.fixture
def job_description() -> str:
    """A job description long enough to pass input validation."""
    return JOB_DESCRIPTION


@pytest.fixture
def analysis_config() -> AnalysisConfig:
    """Analysis config isolated from the environment with no retry delay."""
    return AnalysisConfig(  # type: ignore[call-arg]
        _env_file=None,
        llm_api_key="test-key",
        retry_base_delay=0,
        retry_max_delay=0,
    )


@pytest.fixture
def scripted_client(analysis_config):
    """Factory for a GeneratorClient that replays scripted replies."""

    def _build(**script: list[object]) -> ScriptedClient:
        return ScriptedClient(analysis_config, script)

    return _build


@pytest.fixture
def shopwise_role() -> Role:
    return Role(
        id="role-1",
        title="Senior Product Analyst",
        specialty="Growth, E-commerce",
        company=Company(id="co-1", name="Shopwise"),
        start_date=date(2021, 1, 1),
        is_current=True,
    )


@pytest.fixture
def cloudco_role() -> Role:
    return Role(
        id="role-2",
        title="Data Analyst",
        company=Company(id="co-2", name="CloudCo"),
        start_date=date(2018, 6, 1),
        end_date=date(2020, 12, 1),
    )


@pytest.fixture
def experiences(shopwise_role, cloudco_role) -> list[Experience]:
    return [
        Experience(
            id="exp-1",
            role=shopwise_role,
            title="Checkout redesign",
            situation="Checkout conversion had stalled",
            action="Analyzed funnel data in SQL and ran A/B tests on a new payment flow",
            result="Increased checkout conversion 18% for 40,000 weekly shoppers",
            tags=["sql", "experimentation"],
        ),
        Experience(
            id="exp-2",
            role=shopwise_role,
            title="Experimentation program",
            action="Led a six person analytics squad running experiments every quarter",
            result="Lifted average order value 9% over twelve months",
        ),
        Experience(
            id="exp-3",
            role=cloudco_role,
            title="Cloud cost reduction",
            action="Rightsized database clusters and automated nightly shutdowns",
            result="Reduced monthly cloud spend 32% within two quarters",
            tags=["cloud"],
        ),
    ]


@pytest.fixture
def education() -> list[Education]:
    return [
        Education(
            school="State University",
            degree="B.S.",
            field="Statistics",
            graduation_date=date(2018, 5, 15),
        )
    ]


@pytest.fixture(autouse=True)
def _reset_singletons():
    """Keep logging and settings singletons from leaking between tests."""
    yield
    from jobfit.analysis.config import reset_analysis_config
    from jobfit.config.settings import reset_settings
    from jobfit.utils.logging import reset_logging

    reset_logging()
    reset_settings()
    reset_analysis_config()
