"""
Compatibility Checks

Cross-system checks that feed the integration category: whether a pattern
can be registered, chained and exported alongside other patterns.
"""

import re
import logging
from typing import Dict, Optional

from ..models import PatternDefinition

logger = logging.getLogger(__name__)

COMMAND_NAME_RE = re.compile(r"^[a-z][a-z0-9_]*$")
EXPORTABLE_SECTION_RE = re.compile(r"^[A-Z0-9][A-Z0-9 _&/-]*$")
INPUT_PLACEHOLDER_RE = re.compile(r"^\s*INPUT:|\{\{\s*input\s*\}\}", re.MULTILINE | re.IGNORECASE)

LAYOUT_ORDER = ("IDENTITY", "STEPS", "OUTPUT")


class CompatibilityChecker:
    """
    Derives compatibility checks from a pattern definition.

    Usage:
        checks = CompatibilityChecker().check(pattern)
        # {"registry_safe_name": True, "chainable_input": True, ...}
    """

    def check(self, pattern: PatternDefinition, reported: Optional[Dict[str, bool]] = None) -> Dict[str, bool]:
        """
        Run compatibility checks.

        Args:
            pattern: Pattern definition
            reported: Extra checks reported by a collaborator; they win on
                name clashes

        Returns:
            Mapping of check name to outcome
        """
        results = {
            "registry_safe_name": bool(COMMAND_NAME_RE.match(pattern.pattern_id)),
            "chainable_input": self._has_chainable_input(pattern),
            "exportable_output": self._has_exportable_output(pattern),
            "standard_layout": self._follows_standard_layout(pattern),
        }
        if reported:
            results.update({name: bool(value) for name, value in reported.items()})

        failed = [name for name, ok in results.items() if not ok]
        if failed:
            logger.debug(f"{pattern.pattern_id}: compatibility checks failed: {', '.join(failed)}")
        return results

    @staticmethod
    def _has_chainable_input(pattern: PatternDefinition) -> bool:
        return pattern.find_section("INPUT") is not None or bool(INPUT_PLACEHOLDER_RE.search(pattern.body))

    @staticmethod
    def _has_exportable_output(pattern: PatternDefinition) -> bool:
        names = pattern.output_sections
        return bool(names) and all(EXPORTABLE_SECTION_RE.match(n) for n in names)

    @staticmethod
    def _follows_standard_layout(pattern: PatternDefinition) -> bool:
        """Identity, steps and output appear, in that order."""
        positions = []
        for keyword in LAYOUT_ORDER:
            index = next((i for i, key in enumerate(pattern.section_names) if keyword in key), None)
            if index is None:
                return False
            positions.append(index)
        return positions == sorted(positions)
