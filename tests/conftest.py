"""
Pytest Configuration and Shared Fixtures

Provides common patterns, corpora and execution providers for all test
modules.
"""

import asyncio
from datetime import datetime, timezone
from typing import Dict, Optional

import pytest

from patterncert.execution import ExecutionOutput, ExecutionProvider, SampleExecutionError
from patterncert.models import (
    CategoryScores,
    ExpectedOutputSchema,
    PatternDefinition,
    SampleCase,
    SampleCorpus,
)
from patterncert.source import parse_pattern


# ============================================================================
# Pattern Fixtures
# ============================================================================

GOOD_PATTERN_MD = """# IDENTITY and PURPOSE

You are an expert content analyst who specializes in extracting the most valuable insights from long-form text. You read articles, interview transcripts, research papers and business reports with great care, and you turn them into a concise, prioritized summary that a busy reader can act on immediately. Your goal is to surface the ideas, facts and recommendations that matter most, and to explain why each one matters to the reader.

Take a deep breath and think step by step about how to achieve the best possible results by following the steps below.

# STEPS

- Read the entire input carefully and identify its main topic, its author and its intended audience.
- Extract every distinct idea, claim and supporting fact that the input presents.
- Group related ideas together and discard repetition, filler and marketing language.
- Rate each idea by how useful it is to the reader on a scale from 1 to 10.
- Turn the most useful ideas into concrete recommendations and assign each a priority of HIGH, MEDIUM or LOW.

# OUTPUT SECTIONS

- SUMMARY
- IDEAS
- RECOMMENDATIONS
- SCORE

# OUTPUT INSTRUCTIONS

- Output each section as a level one markdown header followed by bullet points.
- Write the SUMMARY section as a single sentence of no more than 30 words that captures the core message of the input.
- Write between 5 and 15 bullet points in the IDEAS section, each no longer than 20 words.
- Give at least one specific example from the input for every idea so the reader can verify it.
- In the RECOMMENDATIONS section label every item with its priority: HIGH, MEDIUM or LOW, with the highest priority items first.
- In the SCORE section give an overall quality score for the input from 0 to 100 and one sentence explaining the score.
- Do not repeat ideas, quotes or recommendations across sections.
- Do not add warnings, disclaimers or notes about your own process.
- Do not start consecutive bullet points with the same opening words.
- Use plain, direct language that a reader outside the field can follow without a glossary.
- Output only the sections listed above, in the order listed, using markdown and nothing else.

# INPUT

INPUT:
"""

MINIMAL_PATTERN_MD = """# IDENTITY

Summarize text.

# STEPS

- Analyze it.
"""

EXPECTED_SECTIONS = ("SUMMARY", "IDEAS", "RECOMMENDATIONS", "SCORE")

SAMPLE_INPUTS = [
    "Solid-state batteries replace the liquid electrolyte with a ceramic layer, cutting fire risk and raising energy density.",
    "The city council approved a plan to convert two downtown parking garages into housing over the next five years.",
    "A new study of 4,000 remote workers found that fixed meeting-free days improved reported focus by 23 percent.",
    "The open-source project moved its build system to a declarative format and cut release time from days to hours.",
    "Researchers trained a small model on curated textbooks and matched larger models on several reasoning benchmarks.",
]


@pytest.fixture
def good_pattern() -> PatternDefinition:
    """A pattern that passes every structural check."""
    return parse_pattern("extract_insights", GOOD_PATTERN_MD)


@pytest.fixture
def minimal_pattern() -> PatternDefinition:
    """A pattern missing most required structure."""
    return parse_pattern("minimal", MINIMAL_PATTERN_MD, has_scoring=False, has_prioritization=False)


def make_corpus(pattern_id: str, inputs=SAMPLE_INPUTS, sections=EXPECTED_SECTIONS, score_range=(0, 100)) -> SampleCorpus:
    return SampleCorpus(
        pattern_id=pattern_id,
        samples=tuple(
            SampleCase(
                sample_id=f"sample_{i + 1}",
                input_text=text,
                expected_output=ExpectedOutputSchema(sections=tuple(sections), score_range=score_range),
            )
            for i, text in enumerate(inputs)
        ),
    )


@pytest.fixture
def good_corpus() -> SampleCorpus:
    """Five samples expecting the good pattern's four sections."""
    return make_corpus("extract_insights")


# ============================================================================
# Execution Providers
# ============================================================================

class FailingProvider(ExecutionProvider):
    """Delegates to another provider, failing samples that contain a marker."""

    def __init__(self, inner: ExecutionProvider, marker: str = "FAIL"):
        self.inner = inner
        self.marker = marker
        self.calls = 0

    async def execute(self, pattern, sample_input):
        self.calls += 1
        if self.marker in sample_input:
            raise SampleExecutionError("service unavailable", pattern_id=pattern.pattern_id)
        return await self.inner.execute(pattern, sample_input)


class StaticProvider(ExecutionProvider):
    """Returns the same body for every sample."""

    def __init__(self, body: str, execution_time_ms: Optional[float] = None):
        self.body = body
        self.execution_time_ms = execution_time_ms

    async def execute(self, pattern, sample_input):
        return ExecutionOutput.from_body(self.body, execution_time_ms=self.execution_time_ms)


class SleepingProvider(ExecutionProvider):
    """Sleeps before answering; used for timeout and cancellation tests."""

    def __init__(self, delay: float):
        self.delay = delay

    async def execute(self, pattern, sample_input):
        await asyncio.sleep(self.delay)
        return ExecutionOutput.from_body("# SUMMARY\n- done")


@pytest.fixture
def failing_provider_cls():
    return FailingProvider


@pytest.fixture
def static_provider_cls():
    return StaticProvider


@pytest.fixture
def sleeping_provider_cls():
    return SleepingProvider


# ============================================================================
# Score Fixtures
# ============================================================================

def uniform_scores(value: int, **overrides) -> CategoryScores:
    """All eight categories at ``value``, with per-category overrides."""
    values: Dict[str, int] = {
        "syntax": value,
        "structure": value,
        "output": value,
        "integration": value,
        "performance": value,
        "usability": value,
        "maintainability": value,
        "documentation": value,
    }
    values.update(overrides)
    return CategoryScores(**values)


ALL_COMPLIANT = {
    "pattern_standards": True,
    "output_formatting": True,
    "content_quality": True,
    "performance_standards": True,
    "error_handling": True,
    "documentation": True,
}


@pytest.fixture
def fixed_time() -> datetime:
    return datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_scores():
    return uniform_scores


@pytest.fixture
def all_compliant() -> Dict[str, bool]:
    return dict(ALL_COMPLIANT)


@pytest.fixture
def corpus_factory():
    return make_corpus
