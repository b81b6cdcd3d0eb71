"""
Pattern Source

Reads pattern definitions written as structured markdown with top-level
'#' headers, and sample corpora stored as JSON.

Layout conventions:
- patterns/<pattern_id>/system.md, or any <pattern_id>.md file
- corpus JSON: {"pattern_id": ..., "samples": [{"sample_id", "input",
  "expected_output": {"sections": [...], "score_range": [low, high]}}]}
"""

import json
import re
import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..models import (
    ExpectedOutputSchema,
    PatternDefinition,
    PatternSection,
    SampleCase,
    SampleCorpus,
)

logger = logging.getLogger(__name__)

HEADER_RE = re.compile(r"^#\s+(.+?)\s*$")
SCORING_HINT_RE = re.compile(r"\b(?:score|rating)\b", re.IGNORECASE)
PRIORITY_HINT_RE = re.compile(r"\b(?:HIGH|MEDIUM|LOW)\b|\bpriorit", re.IGNORECASE)

PathLike = Union[str, Path]


class InputNotReadableError(Exception):
    """Raised when a pattern or corpus cannot be read as text."""

    def __init__(self, message: str, pattern_id: str = None, path: str = None):
        super().__init__(message)
        self.pattern_id = pattern_id
        self.path = path


# ============================================================================
# CORPUS FILE SCHEMA
# ============================================================================

class ExpectedOutputModel(BaseModel):
    """Expected output block of a sample."""
    sections: List[str] = Field(default_factory=list)
    score_range: Optional[Tuple[float, float]] = None

    @field_validator("score_range")
    @classmethod
    def check_range(cls, value):
        if value is not None and value[0] > value[1]:
            raise ValueError("score_range low must not exceed high")
        return value


class SampleModel(BaseModel):
    """One sample case as stored on disk."""
    sample_id: str
    input: str
    expected_output: ExpectedOutputModel = Field(default_factory=ExpectedOutputModel)


class CorpusModel(BaseModel):
    """Sample corpus file."""
    pattern_id: str
    samples: List[SampleModel] = Field(default_factory=list)

    def to_corpus(self) -> SampleCorpus:
        return SampleCorpus(
            pattern_id=self.pattern_id,
            samples=tuple(
                SampleCase(
                    sample_id=s.sample_id,
                    input_text=s.input,
                    expected_output=ExpectedOutputSchema(
                        sections=tuple(s.expected_output.sections),
                        score_range=s.expected_output.score_range,
                    ),
                )
                for s in self.samples
            ),
        )


# ============================================================================
# MARKDOWN PARSING
# ============================================================================

def split_sections(markdown: str) -> List[PatternSection]:
    """Split markdown into sections at each top-level '#' header."""
    sections: List[PatternSection] = []
    name: Optional[str] = None
    lines: List[str] = []

    for line in markdown.splitlines():
        match = HEADER_RE.match(line)
        if match:
            if name is not None:
                sections.append(PatternSection(name=name, body="\n".join(lines).strip()))
            name = match.group(1)
            lines = []
        elif name is not None:
            lines.append(line)

    if name is not None:
        sections.append(PatternSection(name=name, body="\n".join(lines).strip()))
    return sections


def parse_pattern(
    pattern_id: str,
    markdown: str,
    has_scoring: Optional[bool] = None,
    has_prioritization: Optional[bool] = None,
) -> PatternDefinition:
    """
    Build a PatternDefinition from markdown text.

    Capabilities not given explicitly are inferred from the output blocks:
    a pattern that asks for a score declares scoring, one that names
    priority levels declares prioritization.
    """
    if not isinstance(markdown, str):
        raise InputNotReadableError(f"Pattern {pattern_id} is not text", pattern_id=pattern_id)

    sections = tuple(split_sections(markdown))
    output_text = "\n".join(s.body for s in sections if "OUTPUT" in s.key)

    if has_scoring is None:
        has_scoring = bool(SCORING_HINT_RE.search(output_text))
    if has_prioritization is None:
        has_prioritization = bool(PRIORITY_HINT_RE.search(output_text))

    return PatternDefinition(
        pattern_id=pattern_id,
        sections=sections,
        body=markdown,
        has_scoring=has_scoring,
        has_prioritization=has_prioritization,
    )


def pattern_id_for_path(path: Path) -> str:
    """Directory name for patterns/<id>/system.md, otherwise the file stem."""
    if path.stem.lower() == "system" and path.parent.name:
        return path.parent.name
    return path.stem


def _read_text(path: Path, pattern_id: str = None) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise InputNotReadableError(f"Cannot read {path}: {e}", pattern_id=pattern_id, path=str(path)) from e


def load_pattern(path: PathLike, pattern_id: Optional[str] = None, **capabilities) -> PatternDefinition:
    """
    Read a pattern markdown file.

    Raises:
        InputNotReadableError: If the file is missing or not UTF-8 text
    """
    path = Path(path)
    pattern_id = pattern_id or pattern_id_for_path(path)
    pattern = parse_pattern(pattern_id, _read_text(path, pattern_id), **capabilities)
    logger.debug(f"Loaded pattern {pattern_id} with {len(pattern.sections)} sections from {path}")
    return pattern


def parse_corpus(data: Union[str, dict]) -> SampleCorpus:
    """
    Build a SampleCorpus from JSON text or an already decoded dict.

    Raises:
        InputNotReadableError: If the JSON is malformed or fails the schema
    """
    try:
        if isinstance(data, str):
            return CorpusModel.model_validate_json(data).to_corpus()
        return CorpusModel.model_validate(data).to_corpus()
    except ValidationError as e:
        raise InputNotReadableError(f"Invalid sample corpus: {e.error_count()} errors") from e


def load_corpus(path: PathLike) -> SampleCorpus:
    """Read a sample corpus JSON file."""
    path = Path(path)
    try:
        return parse_corpus(_read_text(path))
    except InputNotReadableError as e:
        e.path = str(path)
        raise


def find_corpus_for(pattern_path: PathLike) -> Optional[Path]:
    """
    Locate the corpus stored beside a pattern.

    Looks for <stem>.samples.json, then samples.json beside a system.md.
    """
    pattern_path = Path(pattern_path)
    candidates = [pattern_path.with_name(f"{pattern_path.stem}.samples.json")]
    if pattern_path.stem.lower() == "system":
        candidates.append(pattern_path.parent / "samples.json")
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def dump_corpus(corpus: SampleCorpus) -> str:
    """Serialise a corpus back to its JSON file format."""
    return json.dumps({
        "pattern_id": corpus.pattern_id,
        "samples": [
            {
                "sample_id": s.sample_id,
                "input": s.input_text,
                "expected_output": {
                    "sections": list(s.expected_output.sections),
                    "score_range": list(s.expected_output.score_range) if s.expected_output.score_range else None,
                },
            }
            for s in corpus.samples
        ],
    }, indent=2)
