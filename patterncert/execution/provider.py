"""
Sample Execution Providers

A provider runs a pattern against one sample input and returns the produced
section names and body text. The simulated provider is deterministic and
needs no network access.
"""

import re
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..models import PatternDefinition

logger = logging.getLogger(__name__)

OUTPUT_HEADER_RE = re.compile(r"^#{1,2}\s+(.+?)\s*$", re.MULTILINE)


class SampleExecutionError(Exception):
    """Raised when a provider cannot produce output for a sample."""

    def __init__(self, message: str, pattern_id: str = None, sample_id: str = None, status_code: int = None):
        super().__init__(message)
        self.pattern_id = pattern_id
        self.sample_id = sample_id
        self.status_code = status_code


def extract_sections(body: str) -> List[str]:
    """Section names from the markdown headers of produced output."""
    return [m.strip() for m in OUTPUT_HEADER_RE.findall(body)]


@dataclass(frozen=True)
class ExecutionOutput:
    """What a provider produced for one sample."""
    sections: Tuple[str, ...]
    body: str
    execution_time_ms: Optional[float] = None  # Provider-reported; overrides local timing

    @classmethod
    def from_body(cls, body: str, execution_time_ms: Optional[float] = None) -> "ExecutionOutput":
        return cls(sections=tuple(extract_sections(body)), body=body, execution_time_ms=execution_time_ms)


class ExecutionProvider(ABC):
    """Runs a pattern against a sample input."""

    @abstractmethod
    async def execute(self, pattern: PatternDefinition, sample_input: str) -> ExecutionOutput:
        """
        Produce output for one sample.

        Raises:
            SampleExecutionError: If no output can be produced
        """

    async def close(self):
        """Release provider resources."""


class SimulatedExecutionProvider(ExecutionProvider):
    """
    Deterministic provider that renders the pattern's declared output sections.

    Each section quotes the opening words of the input, gives an example and a
    recommendation, and adds priority labels and a score when the pattern
    declares them. Identical inputs always produce identical output.
    """

    def __init__(self, quote_words: int = 8):
        self.quote_words = quote_words

    async def execute(self, pattern: PatternDefinition, sample_input: str) -> ExecutionOutput:
        if not isinstance(sample_input, str):
            raise SampleExecutionError(
                "Sample input is not text",
                pattern_id=pattern.pattern_id,
            )

        words = sample_input.split()
        excerpt = " ".join(words[: self.quote_words]) or "the provided input"
        lines: List[str] = []

        for name in pattern.output_sections:
            lines.append(f"# {name}")
            lines.append("")
            lines.append(f'- For example, the input states "{excerpt}", which is the clearest specific instance.')
            lines.append("- We recommend acting on the most significant finding in this section first.")
            if pattern.has_prioritization:
                level = ("HIGH", "MEDIUM", "LOW")[len(words) % 3]
                lines.append(f"- Priority: {level}")
            lines.append("")

        if pattern.has_scoring:
            lines.append(f"Score: {50 + len(words) % 50}/100")

        return ExecutionOutput.from_body("\n".join(lines))
