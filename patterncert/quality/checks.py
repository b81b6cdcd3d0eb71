"""
Content Quality Checks for Produced Output

Runs the equal-weight content checks on one produced output body:
- has_examples: concrete examples or specific instances
- has_actionable_recommendation: at least one recommendation
- has_numeric_assessment: a score (only when the pattern declares scoring)
- has_priority_label: HIGH/MEDIUM/LOW (only when the pattern prioritizes)
- meets_token_minimum: more than the minimum number of tokens
"""

import re
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


EXAMPLE_RE = re.compile(r"\b(?:examples?|for instance|instance|specific(?:ally)?|e\.g\.)", re.IGNORECASE)
RECOMMENDATION_RE = re.compile(r"\b(?:recommend\w*|improve\w*|optimi[sz]\w*|should|implement)\b", re.IGNORECASE)
PRIORITY_LABEL_RE = re.compile(r"\b(?:HIGH|MEDIUM|LOW|P[1-3])\b")

# Ordered from most to least explicit
SCORE_VALUE_RES = [
    re.compile(r"\bscore\b[^\d\n]{0,20}(\d+(?:\.\d+)?)", re.IGNORECASE),
    re.compile(r"(\d+(?:\.\d+)?)\s*/\s*\d+"),
    re.compile(r"(\d+(?:\.\d+)?)\s*%"),
]


@dataclass
class ContentCheck:
    """Definition of a single content quality check."""
    name: str
    description: str
    check_fn: Callable[[str, Dict[str, Any]], bool]
    applies_fn: Optional[Callable[[Dict[str, Any]], bool]] = None

    def applies(self, context: Dict[str, Any]) -> bool:
        return self.applies_fn is None or self.applies_fn(context)


def extract_score_values(text: str) -> List[float]:
    """All numeric assessments found in text, most explicit forms first."""
    values: List[float] = []
    for regex in SCORE_VALUE_RES:
        values.extend(float(m) for m in regex.findall(text))
    return values


class ContentQualityChecker:
    """
    Evaluates produced output against the content checks.

    Usage:
        checker = ContentQualityChecker(min_output_tokens=50)
        flags = checker.run_all_checks(body, has_scoring=True, score_range=(0, 100))
    """

    def __init__(self, min_output_tokens: int = 50):
        self.min_output_tokens = min_output_tokens
        self.checks: List[ContentCheck] = []
        self._register_all_checks()

    def _register_all_checks(self):
        self.checks.append(ContentCheck(
            name="has_examples",
            description="Includes concrete examples or specific instances",
            check_fn=lambda text, ctx: bool(EXAMPLE_RE.search(text)),
        ))

        self.checks.append(ContentCheck(
            name="has_actionable_recommendation",
            description="Contains at least one actionable recommendation",
            check_fn=lambda text, ctx: bool(RECOMMENDATION_RE.search(text)),
        ))

        self.checks.append(ContentCheck(
            name="has_numeric_assessment",
            description="Provides a numeric assessment within the expected range",
            check_fn=self._check_numeric_assessment,
            applies_fn=lambda ctx: ctx.get("has_scoring", False),
        ))

        self.checks.append(ContentCheck(
            name="has_priority_label",
            description="Labels findings with priority levels",
            check_fn=lambda text, ctx: bool(PRIORITY_LABEL_RE.search(text)),
            applies_fn=lambda ctx: ctx.get("has_prioritization", False),
        ))

        self.checks.append(ContentCheck(
            name="meets_token_minimum",
            description="Output is longer than the token minimum",
            check_fn=lambda text, ctx: len(text.split()) > self.min_output_tokens,
        ))

    @staticmethod
    def _check_numeric_assessment(text: str, context: Dict[str, Any]) -> bool:
        values = extract_score_values(text)
        if not values:
            return False
        score_range: Optional[Tuple[float, float]] = context.get("score_range")
        if score_range is None:
            return True
        low, high = score_range
        return any(low <= v <= high for v in values)

    def run_all_checks(
        self,
        text: str,
        has_scoring: bool = False,
        has_prioritization: bool = False,
        score_range: Optional[Tuple[float, float]] = None,
    ) -> Dict[str, bool]:
        """
        Run every applicable check on produced output.

        Returns:
            Mapping of check name to outcome; inapplicable checks are absent
        """
        context = {
            "has_scoring": has_scoring,
            "has_prioritization": has_prioritization,
            "score_range": score_range,
        }
        flags: Dict[str, bool] = {}
        for check in self.checks:
            if check.applies(context):
                flags[check.name] = bool(check.check_fn(text, context))
        return flags
