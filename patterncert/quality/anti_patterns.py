"""
Anti-Pattern Detection for Pattern Definitions

Detects prompt-writing anti-patterns that make a pattern produce generic
or unreliable output:

1. Placeholder Text - Unfinished template content
2. Hedging Language - Instructions that never commit
3. Vague Steps - Steps with no concrete action
4. Contradictory Instructions - Conflicting directives
"""

import re
import logging
from dataclasses import dataclass
from typing import Dict, Any, List
from enum import Enum

logger = logging.getLogger(__name__)


class AntiPatternSeverity(Enum):
    """Severity of detected anti-pattern."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class AntiPatternMatch:
    """A detected anti-pattern instance."""
    pattern_name: str
    severity: AntiPatternSeverity
    description: str
    location: str  # Excerpt where found
    suggestion: str


@dataclass
class AntiPatternResult:
    """Result of anti-pattern scan."""
    total_matches: int
    critical_count: int
    high_count: int
    medium_count: int
    low_count: int
    matches: List[AntiPatternMatch]
    passes: bool  # True if no critical/high issues


class AntiPatternDetector:
    """
    Detects anti-patterns in a pattern body.

    Usage:
        detector = AntiPatternDetector()
        result = detector.scan(pattern.body)
        if not result.passes:
            print(f"Found {result.critical_count} critical issues")
    """

    def __init__(self):
        self._patterns = self._define_patterns()

    def _define_patterns(self) -> Dict[str, Dict[str, Any]]:
        """Define all anti-patterns with their detection rules."""
        return {
            "placeholder_text": {
                "name": "Placeholder Text",
                "description": "Template or filler content left in the pattern",
                "patterns": [
                    (r'\[.*?(?:placeholder|insert|your\s+\w+\s+here).*?\]', AntiPatternSeverity.CRITICAL),
                    (r'lorem\s+ipsum', AntiPatternSeverity.CRITICAL),
                    (r'\bTBD\b|\bTODO\b|\bFIXME\b', AntiPatternSeverity.CRITICAL),
                    (r'<\s*(?:describe|fill\s+in|add)\b[^>]*>', AntiPatternSeverity.HIGH),
                ],
                "suggestion": "Replace template markers with the actual instructions for this pattern.",
            },

            "hedging_language": {
                "name": "Hedging Language",
                "description": "Instructions that suggest instead of directing",
                "patterns": [
                    (r'\byou\s+(?:might|may|could)\s+(?:want|consider|try)\b', AntiPatternSeverity.MEDIUM),
                    (r'\bif\s+possible\b', AntiPatternSeverity.LOW),
                    (r'\b(?:try\s+to|attempt\s+to)\s+\w+', AntiPatternSeverity.LOW),
                    (r'\bit\s+(?:might|may|could)\s+be\s+(?:worth|beneficial|helpful)\b', AntiPatternSeverity.HIGH),
                ],
                "suggestion": "State each instruction as a directive: 'Extract X', not 'try to extract X if possible'.",
            },

            "vague_steps": {
                "name": "Vague Steps",
                "description": "Steps that name no concrete action",
                "patterns": [
                    (r'^\s*[-*]\s*(?:analy[sz]e|review|process|handle)\s+(?:it|the\s+input|everything)\.?\s*$', AntiPatternSeverity.HIGH),
                    (r'^\s*[-*]\s*(?:do|perform)\s+(?:the\s+)?(?:analysis|task|work)\.?\s*$', AntiPatternSeverity.HIGH),
                    (r'^\s*[-*]\s*(?:etc|and\s+so\s+on)\.?\s*$', AntiPatternSeverity.MEDIUM),
                ],
                "suggestion": "Rewrite each step to name what is examined and what is produced.",
            },

            "contradictory_instructions": {
                "name": "Contradictory Instructions",
                "description": "Directives that conflict within the same pattern",
                "patterns": [
                    (r'\bbe\s+(?:brief|concise)\b.*?\b(?:be\s+exhaustive|include\s+every\s+detail)\b', AntiPatternSeverity.HIGH),
                    (r'\bdo\s+not\s+use\s+(?:bullets|lists)\b.*?\b(?:use|output)\s+(?:bullets|bulleted\s+lists?)\b', AntiPatternSeverity.HIGH),
                ],
                "suggestion": "Resolve conflicting directives so the model receives one consistent instruction.",
            },
        }

    def scan(self, text: str) -> AntiPatternResult:
        """
        Scan text for all anti-patterns.

        Args:
            text: Pattern body to scan

        Returns:
            AntiPatternResult with all matches
        """
        all_matches: List[AntiPatternMatch] = []

        for pattern_def in self._patterns.values():
            all_matches.extend(self._detect_pattern(text, pattern_def))

        critical = sum(1 for m in all_matches if m.severity == AntiPatternSeverity.CRITICAL)
        high = sum(1 for m in all_matches if m.severity == AntiPatternSeverity.HIGH)
        medium = sum(1 for m in all_matches if m.severity == AntiPatternSeverity.MEDIUM)
        low = sum(1 for m in all_matches if m.severity == AntiPatternSeverity.LOW)

        passes = critical == 0 and high == 0

        if all_matches:
            logger.debug(f"Anti-pattern scan: {len(all_matches)} matches ({critical} critical, {high} high)")

        return AntiPatternResult(
            total_matches=len(all_matches),
            critical_count=critical,
            high_count=high,
            medium_count=medium,
            low_count=low,
            matches=all_matches,
            passes=passes,
        )

    def _detect_pattern(self, text: str, pattern_def: Dict[str, Any]) -> List[AntiPatternMatch]:
        """Detect a specific anti-pattern in text."""
        matches = []

        for regex, severity in pattern_def["patterns"]:
            for match in re.finditer(regex, text, re.IGNORECASE | re.MULTILINE):
                start = max(0, match.start() - 40)
                end = min(len(text), match.end() + 40)
                location = "..." + text[start:end].replace("\n", " ") + "..."

                matches.append(AntiPatternMatch(
                    pattern_name=pattern_def["name"],
                    severity=severity,
                    description=pattern_def["description"],
                    location=location,
                    suggestion=pattern_def["suggestion"],
                ))

        return matches

    def get_improvement_suggestions(self, result: AntiPatternResult) -> List[str]:
        """
        Get improvement suggestions ordered by severity, one per anti-pattern.
        """
        order = ["critical", "high", "medium", "low"]
        suggestions: List[str] = []
        seen = set()
        for match in sorted(result.matches, key=lambda m: order.index(m.severity.value)):
            if match.pattern_name in seen:
                continue
            seen.add(match.pattern_name)
            suggestions.append(f"[{match.severity.value.upper()}] {match.pattern_name}: {match.suggestion}")
        return suggestions
