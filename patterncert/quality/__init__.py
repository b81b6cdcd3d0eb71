"""
Quality Assessment

Validation, content checks, gates and the certification aggregator.

Components:
- StructuralValidator: lints a pattern against the standard layout
- ContentQualityChecker: equal-weight checks on produced output
- CompatibilityChecker: integration checks across systems
- AntiPatternDetector: placeholder, hedging and vague wording
- QualityCertificationAggregator: category scores, grade, gates, tier
"""

from .config import (
    CategoryWeightTable,
    CertificationPolicy,
    ConfigurationError,
    QualityThresholdConfig,
)
from .validators import StructuralValidator, StructuralCheck, measure_pattern
from .checks import ContentQualityChecker, ContentCheck
from .compatibility import CompatibilityChecker
from .anti_patterns import AntiPatternDetector, AntiPatternMatch, AntiPatternResult, AntiPatternSeverity
from .gates import CertificationEvaluator, GateStatus, QualityResult, ThresholdGate
from .aggregator import COMPLIANCE_FLAGS, QualityCertificationAggregator
from .strategies import score_to_grade

__all__ = [
    # Policy
    "CategoryWeightTable",
    "CertificationPolicy",
    "ConfigurationError",
    "QualityThresholdConfig",
    # Validation
    "StructuralValidator",
    "StructuralCheck",
    "measure_pattern",
    # Output checks
    "ContentQualityChecker",
    "ContentCheck",
    "CompatibilityChecker",
    # Anti-Pattern Detection
    "AntiPatternDetector",
    "AntiPatternMatch",
    "AntiPatternResult",
    "AntiPatternSeverity",
    # Gates
    "CertificationEvaluator",
    "GateStatus",
    "QualityResult",
    "ThresholdGate",
    # Aggregation
    "COMPLIANCE_FLAGS",
    "QualityCertificationAggregator",
    "score_to_grade",
]
