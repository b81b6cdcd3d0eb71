"""
Quality Policy Configuration

Versioned value objects for category weights, deployment thresholds and
certification requirements. Each is validated at construction and passed
explicitly into the aggregator, so concurrent batches can run under
different policies.
"""

from dataclasses import dataclass, field, replace
from fractions import Fraction
from types import MappingProxyType
from typing import Dict, Mapping

from ..models import CATEGORY_NAMES, Grade


class ConfigurationError(Exception):
    """Raised when a quality policy is structurally invalid."""

    def __init__(self, message: str, field_name: str = None):
        super().__init__(message)
        self.field_name = field_name


def _check_category_table(table: Mapping[str, int], name: str):
    missing = [c for c in CATEGORY_NAMES if c not in table]
    if missing:
        raise ConfigurationError(f"{name} is missing categories: {', '.join(missing)}", name)
    unknown = [c for c in table if c not in CATEGORY_NAMES]
    if unknown:
        raise ConfigurationError(f"{name} has unknown categories: {', '.join(unknown)}", name)
    for category, value in table.items():
        if not isinstance(value, int) or isinstance(value, bool):
            raise ConfigurationError(f"{name}[{category}] must be an integer, got {value!r}", name)
        if not 0 <= value <= 100:
            raise ConfigurationError(f"{name}[{category}] must be within 0-100, got {value}", name)


# ============================================================================
# CATEGORY WEIGHTS
# ============================================================================

DEFAULT_WEIGHT_PERCENTAGES: Dict[str, int] = {
    "syntax": 15,
    "structure": 20,
    "output": 25,
    "integration": 10,
    "performance": 10,
    "usability": 10,
    "maintainability": 5,
    "documentation": 5,
}


@dataclass(frozen=True)
class CategoryWeightTable:
    """
    Category weights in whole percentage points.

    Stored as integers so the sum is exactly 100 and the weighted total is
    computed without floating point drift.
    """
    percentages: Mapping[str, int] = field(default_factory=lambda: dict(DEFAULT_WEIGHT_PERCENTAGES))
    version: str = "1.0"

    def __post_init__(self):
        _check_category_table(self.percentages, "weights")
        total = sum(self.percentages.values())
        if total != 100:
            raise ConfigurationError(f"Category weights must sum to 100%, got {total}%", "weights")
        object.__setattr__(self, "percentages", MappingProxyType(dict(self.percentages)))

    def weight(self, category: str) -> Fraction:
        """Exact weight of a category as a fraction of 1."""
        return Fraction(self.percentages[category], 100)

    def weighted_total(self, scores: Mapping[str, int]) -> Fraction:
        """Exact weighted sum of category scores."""
        return sum(
            (Fraction(self.percentages[c] * scores[c], 100) for c in CATEGORY_NAMES),
            Fraction(0),
        )


# ============================================================================
# DEPLOYMENT THRESHOLDS
# ============================================================================

DEFAULT_CATEGORY_MINIMUMS: Dict[str, int] = {
    "syntax": 75,
    "structure": 70,
    "output": 75,
    "integration": 65,
    "performance": 60,
    "usability": 65,
    "maintainability": 60,
    "documentation": 60,
}


@dataclass(frozen=True)
class QualityThresholdConfig:
    """Minimums a pattern must meet to pass the deployment gate."""
    category_minimums: Mapping[str, int] = field(default_factory=lambda: dict(DEFAULT_CATEGORY_MINIMUMS))
    min_overall: int = 70
    min_grade: Grade = Grade.C
    critical_floor: int = 50
    warning_ceiling: int = 70
    version: str = "1.0"

    def __post_init__(self):
        _check_category_table(self.category_minimums, "category_minimums")
        for name in ("min_overall", "critical_floor", "warning_ceiling"):
            value = getattr(self, name)
            if not isinstance(value, int) or not 0 <= value <= 100:
                raise ConfigurationError(f"{name} must be an integer within 0-100, got {value!r}", name)
        if isinstance(self.min_grade, str):
            try:
                object.__setattr__(self, "min_grade", Grade(self.min_grade.upper()))
            except ValueError:
                raise ConfigurationError(f"Unknown grade: {self.min_grade!r}", "min_grade")
        if not isinstance(self.min_grade, Grade):
            raise ConfigurationError(f"Unknown grade: {self.min_grade!r}", "min_grade")
        object.__setattr__(self, "category_minimums", MappingProxyType(dict(self.category_minimums)))

    def minimum_for(self, category: str) -> int:
        return self.category_minimums[category]

    def with_updates(self, **changes) -> "QualityThresholdConfig":
        """Copy with fields replaced; category_minimums may be partial."""
        minimums = changes.pop("category_minimums", None)
        if minimums is not None:
            changes["category_minimums"] = {**self.category_minimums, **minimums}
        return replace(self, **changes)

    def to_dict(self) -> Dict:
        return {
            "category_minimums": dict(self.category_minimums),
            "min_overall": self.min_overall,
            "min_grade": self.min_grade.value,
            "critical_floor": self.critical_floor,
            "warning_ceiling": self.warning_ceiling,
            "version": self.version,
        }


# ============================================================================
# CERTIFICATION
# ============================================================================

@dataclass(frozen=True)
class CertificationPolicy:
    """Requirement thresholds and tier cut-offs for certification."""
    min_overall: int = 75
    min_functionality: int = 80
    min_reliability: int = 85
    min_compliance_flags: int = 5
    required_passes: int = 4
    platinum_score: int = 95
    gold_score: int = 90
    silver_score: int = 85
    version: str = "1.0"

    def __post_init__(self):
        if not self.platinum_score >= self.gold_score >= self.silver_score:
            raise ConfigurationError(
                "Tier scores must be ordered platinum >= gold >= silver", "tier_scores"
            )
        if not 1 <= self.required_passes <= 5:
            raise ConfigurationError(
                f"required_passes must be within 1-5, got {self.required_passes}", "required_passes"
            )
        if not 0 <= self.min_compliance_flags <= 6:
            raise ConfigurationError(
                f"min_compliance_flags must be within 0-6, got {self.min_compliance_flags}",
                "min_compliance_flags",
            )
