"""
Structural Validator

Lints a pattern definition against the standard pattern layout and returns
issues, suggestions, a compliance checklist and a validation score.

Checks are registered once with their severity:
- critical: required for the pattern to execute (steps, output block)
- major: degrades usefulness (identity, instructions, input, declared
  scoring and prioritization)
- minor: style and documentation gaps
"""

import re
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..models import (
    PatternDefinition,
    Severity,
    ValidationIssue,
    ValidationResult,
)
from ..source.loader import InputNotReadableError
from ..utils.helpers import round_half_up
from .anti_patterns import AntiPatternDetector

logger = logging.getLogger(__name__)


BULLET_RE = re.compile(r"^\s*(?:[-*]|\d+\.)\s+\S")
TOP_HEADER_RE = re.compile(r"^#(?!#)\s*(.*)$", re.MULTILINE)
INPUT_PLACEHOLDER_RE = re.compile(r"^\s*INPUT:|\{\{\s*input\s*\}\}", re.MULTILINE | re.IGNORECASE)
SCORING_RE = re.compile(r"\b(?:score|scoring|rating|rate\b)", re.IGNORECASE)
PRIORITIZATION_RE = re.compile(r"\b(?:(?i:priorit(?:y|ies|i[sz]e|i[sz]ation))|HIGH|MEDIUM|LOW)\b")
EXPERTISE_RE = re.compile(r"\b(?:expert|specialist|analyst)\b", re.IGNORECASE)

REQUIRED_SECTIONS = ("identity", "steps", "output", "output_instructions", "input")
MIN_IDENTITY_LENGTH = 20


@dataclass
class StructuralCheck:
    """Definition of a single structural check."""
    name: str
    severity: Severity
    category: str
    message: str
    suggestion: str
    check_fn: Callable[[PatternDefinition, Dict[str, Any]], bool]
    applies_fn: Optional[Callable[[PatternDefinition], bool]] = None

    def applies(self, pattern: PatternDefinition) -> bool:
        return self.applies_fn is None or self.applies_fn(pattern)


def measure_pattern(pattern: PatternDefinition) -> Dict[str, Any]:
    """
    Collect the structural facts every check reads.

    Returns:
        Dict of counts plus the located section bodies
    """
    identity = pattern.find_section_containing("IDENTITY") or pattern.find_section_containing("PURPOSE")
    steps = pattern.find_section("STEPS") or pattern.find_section_containing("STEPS")
    output_block = pattern.find_section("OUTPUT", "OUTPUT SECTIONS", "OUTPUT FORMAT")
    instructions = pattern.find_section("OUTPUT INSTRUCTIONS") or pattern.find_section_containing("INSTRUCTIONS")
    input_section = pattern.find_section("INPUT")

    step_lines = [line for line in (steps.body if steps else "").splitlines() if BULLET_RE.match(line)]
    has_placeholder = bool(INPUT_PLACEHOLDER_RE.search(pattern.body)) or input_section is not None

    present = {
        "identity": identity is not None and bool(identity.body.strip()),
        "steps": steps is not None,
        "output": output_block is not None,
        "output_instructions": instructions is not None,
        "input": has_placeholder,
    }

    return {
        "identity_text": identity.body.strip() if identity else "",
        "instructions_text": instructions.body if instructions else "",
        "word_count": len(pattern.body.split()),
        "step_count": len(step_lines),
        "output_section_count": len(pattern.output_sections),
        "identity_length": len(identity.body.strip()) if identity else 0,
        "section_count": len(pattern.sections),
        "required_sections_present": sum(1 for v in present.values() if v),
        "required_sections_total": len(REQUIRED_SECTIONS),
        "has_output_block": present["output"],
        "has_input_placeholder": has_placeholder,
    }


class StructuralValidator:
    """
    Validates pattern definitions against the standard layout.

    Usage:
        validator = StructuralValidator()
        result = validator.validate(pattern)
        if not result.is_valid:
            print(result.suggestions[0])
    """

    def __init__(self, min_word_count: int = 300, min_step_count: int = 3):
        self.min_word_count = min_word_count
        self.min_step_count = min_step_count
        self.anti_patterns = AntiPatternDetector()
        self.checks: List[StructuralCheck] = []
        self._register_all_checks()

    def _register_all_checks(self):
        """Register structural checks in reporting order."""

        # ===== CRITICAL: required to execute =====

        self.checks.append(StructuralCheck(
            name="has_steps",
            severity=Severity.CRITICAL,
            category="structure",
            message=f"Pattern needs a STEPS section with at least {self.min_step_count} bullet steps",
            suggestion="Add a STEPS section with clear, numbered or bulleted instructions",
            check_fn=lambda p, m: m["step_count"] >= self.min_step_count,
        ))

        self.checks.append(StructuralCheck(
            name="has_output_section",
            severity=Severity.CRITICAL,
            category="structure",
            message="Pattern is missing an OUTPUT SECTIONS block listing the sections to produce",
            suggestion="Add an OUTPUT SECTIONS block listing each output section as a bullet",
            check_fn=lambda p, m: m["has_output_block"] and m["output_section_count"] > 0,
        ))

        # ===== MAJOR: degrade usefulness =====

        self.checks.append(StructuralCheck(
            name="has_identity",
            severity=Severity.MAJOR,
            category="syntax",
            message="Identity and purpose statement is missing or too short",
            suggestion="Add an IDENTITY and PURPOSE section defining the role and goal",
            check_fn=lambda p, m: m["identity_length"] >= MIN_IDENTITY_LENGTH,
        ))

        self.checks.append(StructuralCheck(
            name="has_output_instructions",
            severity=Severity.MAJOR,
            category="usability",
            message="Pattern has no explicit OUTPUT INSTRUCTIONS block",
            suggestion="Add OUTPUT INSTRUCTIONS describing format, length and constraints",
            check_fn=lambda p, m: bool(m["instructions_text"].strip()),
        ))

        self.checks.append(StructuralCheck(
            name="has_input_placeholder",
            severity=Severity.MAJOR,
            category="syntax",
            message="Pattern has no input placeholder",
            suggestion="End the pattern with an INPUT: placeholder",
            check_fn=lambda p, m: m["has_input_placeholder"],
        ))

        self.checks.append(StructuralCheck(
            name="has_scoring_system",
            severity=Severity.MAJOR,
            category="structure",
            message="Pattern declares scoring but never defines a scoring system",
            suggestion="Describe the score scale and what each range means",
            check_fn=lambda p, m: bool(SCORING_RE.search(p.body)),
            applies_fn=lambda p: p.has_scoring,
        ))

        self.checks.append(StructuralCheck(
            name="has_prioritization",
            severity=Severity.MAJOR,
            category="usability",
            message="Pattern declares prioritization but defines no priority levels",
            suggestion="Define priority levels such as HIGH, MEDIUM and LOW",
            check_fn=lambda p, m: bool(PRIORITIZATION_RE.search(p.body)),
            applies_fn=lambda p: p.has_prioritization,
        ))

        # ===== MINOR: style and documentation =====

        self.checks.append(StructuralCheck(
            name="meets_word_count",
            severity=Severity.MINOR,
            category="documentation",
            message=f"Pattern is shorter than {self.min_word_count} words",
            suggestion="Expand steps and instructions with more detail",
            check_fn=lambda p, m: m["word_count"] >= self.min_word_count,
        ))

        self.checks.append(StructuralCheck(
            name="expertise_indicator",
            severity=Severity.MINOR,
            category="documentation",
            message="Identity lacks a clear expertise indicator",
            suggestion='Include expertise terms like "expert", "specialist" or "analyst"',
            check_fn=lambda p, m: bool(EXPERTISE_RE.search(m["identity_text"])),
        ))

        self.checks.append(StructuralCheck(
            name="consistent_formatting",
            severity=Severity.MINOR,
            category="maintainability",
            message="Top-level headers are not consistently formatted",
            suggestion="Write every top-level header as '# NAME' with the leading word in capitals",
            check_fn=lambda p, m: self._has_consistent_headers(p.body),
        ))

        self.checks.append(StructuralCheck(
            name="has_examples",
            severity=Severity.MINOR,
            category="usability",
            message="Output instructions do not ask for concrete examples",
            suggestion="Ask for specific examples in the OUTPUT INSTRUCTIONS",
            check_fn=lambda p, m: "example" in m["instructions_text"].lower(),
        ))

        self.checks.append(StructuralCheck(
            name="free_of_anti_patterns",
            severity=Severity.MINOR,
            category="maintainability",
            message="Pattern contains placeholder, hedging or vague wording",
            suggestion="Remove template markers and state each instruction as a directive",
            check_fn=lambda p, m: self.anti_patterns.scan(p.body).passes,
        ))

    @staticmethod
    def _has_consistent_headers(body: str) -> bool:
        headers = TOP_HEADER_RE.findall(body)
        if not headers:
            return False
        for line in re.findall(r"^#(?!#).*$", body, re.MULTILINE):
            if not line.startswith("# "):
                return False
        # Leading word in capitals, e.g. "# IDENTITY and PURPOSE"
        return all(h.split() and h.split()[0] == h.split()[0].upper() for h in headers)

    def validate(self, pattern: PatternDefinition) -> ValidationResult:
        """
        Validate a pattern definition.

        Args:
            pattern: Parsed pattern definition

        Returns:
            ValidationResult with one issue per failed check

        Raises:
            InputNotReadableError: If the pattern body is not text
        """
        if not isinstance(pattern.body, str):
            raise InputNotReadableError(
                f"Pattern body is not text ({type(pattern.body).__name__})",
                pattern_id=pattern.pattern_id,
            )

        metrics = measure_pattern(pattern)
        checklist: Dict[str, bool] = {}
        issues: List[ValidationIssue] = []

        for check in self.checks:
            if not check.applies(pattern):
                continue
            passed = bool(check.check_fn(pattern, metrics))
            checklist[check.name] = passed
            logger.debug(f"{pattern.pattern_id}: {check.name} -> {'pass' if passed else 'fail'}")
            if not passed:
                issues.append(ValidationIssue(
                    severity=check.severity,
                    category=check.category,
                    message=check.message,
                    suggestion=check.suggestion,
                ))

        passed_count = sum(1 for v in checklist.values() if v)
        score = round_half_up(passed_count / len(checklist) * 100) if checklist else 0

        result = ValidationResult(
            pattern_id=pattern.pattern_id,
            issues=issues,
            suggestions=self._build_suggestions(issues),
            compliance_checklist=checklist,
            validation_score=score,
            metrics={k: v for k, v in metrics.items() if isinstance(v, int) and not isinstance(v, bool)},
        )

        logger.info(
            f"Validated {pattern.pattern_id}: score {score}, "
            f"{passed_count}/{len(checklist)} checks passed, {result.critical_count} critical"
        )
        return result

    @staticmethod
    def _build_suggestions(issues: List[ValidationIssue]) -> List[str]:
        """Suggestions ordered critical first, without duplicates."""
        order = [Severity.CRITICAL, Severity.MAJOR, Severity.MINOR]
        suggestions: List[str] = []
        if any(i.severity == Severity.CRITICAL for i in issues):
            suggestions.append("Fix critical structural issues before deployment")
        for issue in sorted(issues, key=lambda i: order.index(i.severity)):
            if issue.suggestion and issue.suggestion not in suggestions:
                suggestions.append(issue.suggestion)
        return suggestions
