"""
Quality Certification Aggregator

Reduces a validation result, a test suite result and the pattern's history
into one immutable AssessmentRecord.

    overall = round_half_up(sum(weight_i * score_i))

Grade: A >= 90, B 80-89, C 70-79, D 60-69, F < 60.
Trend compares the new overall score with the mean of the last three prior
scores: +3 or more is improving, -3 or less is declining.

The aggregator is pure and synchronous. Weights, thresholds and the
certification policy are passed in, never read from module state.
"""

import logging
from datetime import datetime, timezone
from fractions import Fraction
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from ..models import (
    AssessmentRecord,
    CategoryScores,
    Priority,
    QualityWarning,
    Recommendation,
    TestSuiteResult,
    Trend,
    ValidationResult,
)
from ..utils.helpers import clamp, mean, round_half_up
from .config import CategoryWeightTable, CertificationPolicy, QualityThresholdConfig
from .gates import CertificationEvaluator, ThresholdGate
from .strategies import estimate_effort, get_action_items, get_resources, score_to_grade

logger = logging.getLogger(__name__)


TREND_WINDOW = 3
TREND_DELTA = 3

SYNTAX_CHECKS = (
    "has_identity",
    "has_steps",
    "has_output_section",
    "has_output_instructions",
    "has_input_placeholder",
)

COMPLIANCE_FLAGS = (
    "pattern_standards",
    "output_formatting",
    "content_quality",
    "performance_standards",
    "error_handling",
    "documentation",
)


def _percent(ratio: Fraction) -> int:
    return round_half_up(clamp(ratio, 0, 1) * 100)


def _ratio(outcomes: Sequence[bool]) -> Fraction:
    return Fraction(sum(1 for o in outcomes if o), len(outcomes)) if outcomes else Fraction(0)


def _capped(count: int, target: int) -> Fraction:
    return min(Fraction(1), Fraction(count, target))


def _pass_fraction(tests: TestSuiteResult) -> Fraction:
    return _ratio([c.passed for c in tests.cases])


class QualityCertificationAggregator:
    """
    Scores the eight quality categories and certifies the result.

    Usage:
        aggregator = QualityCertificationAggregator()
        record = aggregator.assess("summarize", validation, suite, history, thresholds)
        print(record.grade, record.certification_tier)
    """

    def __init__(
        self,
        weights: Optional[CategoryWeightTable] = None,
        policy: Optional[CertificationPolicy] = None,
        thresholds: Optional[QualityThresholdConfig] = None,
        max_execution_time_ms: float = 5000,
    ):
        self.weights = weights or CategoryWeightTable()
        self.thresholds = thresholds or QualityThresholdConfig()
        self.certifier = CertificationEvaluator(policy)
        self.threshold_gate = ThresholdGate()
        self.max_execution_time_ms = max_execution_time_ms

    # ========================================================================
    # PUBLIC API
    # ========================================================================

    def assess(
        self,
        pattern_id: str,
        validation: ValidationResult,
        tests: TestSuiteResult,
        history: Sequence[AssessmentRecord] = (),
        thresholds: Optional[QualityThresholdConfig] = None,
        timestamp: Optional[datetime] = None,
    ) -> AssessmentRecord:
        """
        Produce the assessment record for one pattern.

        Args:
            pattern_id: Pattern being assessed
            validation: Structural validation result
            tests: Sample execution suite result
            history: Prior records for this pattern, oldest first
            thresholds: Threshold config; defaults to the aggregator's own
            timestamp: Record time; defaults to now (UTC)

        Returns:
            AssessmentRecord
        """
        scores = self.score_categories(validation, tests)
        compliance = self.derive_compliance(validation, tests)
        return self.evaluate(
            pattern_id,
            scores,
            compliance,
            history=history,
            thresholds=thresholds,
            extra_warnings=self._suite_warnings(tests),
            timestamp=timestamp,
        )

    def evaluate(
        self,
        pattern_id: str,
        scores: CategoryScores,
        compliance_flags: Mapping[str, bool],
        history: Sequence[AssessmentRecord] = (),
        thresholds: Optional[QualityThresholdConfig] = None,
        extra_warnings: Iterable[QualityWarning] = (),
        timestamp: Optional[datetime] = None,
    ) -> AssessmentRecord:
        """Build a record from already computed category scores."""
        thresholds = thresholds or self.thresholds

        overall = self.overall_score(scores)
        grade = score_to_grade(overall)
        gate = self.threshold_gate.check(scores, overall, grade, thresholds)

        recommendations = self.build_recommendations(scores, thresholds)
        critical_issues = tuple(r for r in recommendations if r.priority == Priority.CRITICAL)

        certification = self.certifier.evaluate(scores, overall, compliance_flags, len(critical_issues))
        trend = self.compute_trend(overall, [r.overall_score for r in history])

        warnings = self.build_warnings(scores, thresholds) + list(extra_warnings)

        record = AssessmentRecord(
            pattern_id=pattern_id,
            timestamp=timestamp or datetime.now(timezone.utc),
            category_scores=scores,
            overall_score=overall,
            grade=grade,
            meets_threshold=gate.passed,
            certification_tier=certification.tier,
            trend=trend,
            critical_issues=critical_issues,
            recommendations=tuple(recommendations),
            certification=certification,
            warnings=tuple(warnings),
            thresholds_version=thresholds.version,
            weights_version=self.weights.version,
        )

        logger.info(
            f"Assessed {pattern_id}: overall {overall} ({grade.value}), "
            f"threshold {'met' if gate.passed else 'not met'}, "
            f"tier {certification.tier.value}, trend {trend.value}"
        )
        return record

    def overall_score(self, scores: CategoryScores) -> int:
        """Weighted overall score, rounded half up."""
        total: Fraction = self.weights.weighted_total(scores.to_dict())
        return round_half_up(total)

    # ========================================================================
    # CATEGORY SCORING
    # ========================================================================

    def score_categories(self, validation: ValidationResult, tests: TestSuiteResult) -> CategoryScores:
        """
        Compute the eight category scores.

        Categories without inputs (no samples, no compatibility checks) take
        the minimum observed score.
        """
        metrics = validation.metrics
        cases = tests.cases

        raw: Dict[str, Optional[int]] = {
            "syntax": _percent(_ratio([validation.check(name) for name in SYNTAX_CHECKS])),
            "structure": self._structure_score(metrics),
            "output": self._output_score(tests) if cases else None,
            "integration": (
                _percent(_ratio(list(tests.compatibility_checks.values())))
                if tests.compatibility_checks else None
            ),
            "performance": self._performance_score(tests) if cases else None,
            "usability": self._usability_score(validation),
            "maintainability": self._maintainability_score(validation),
            "documentation": self._documentation_score(validation),
        }
        scores = CategoryScores.from_mapping(raw)
        logger.debug(f"{validation.pattern_id}: category scores {scores.to_dict()}")
        return scores

    @staticmethod
    def _structure_score(metrics: Mapping[str, int]) -> int:
        required_total = metrics.get("required_sections_total", 0)
        required = (
            Fraction(metrics.get("required_sections_present", 0), required_total)
            if required_total else Fraction(0)
        )
        steps = _capped(metrics.get("step_count", 0), 5)
        outputs = _capped(metrics.get("output_section_count", 0), 3)
        return _percent(Fraction(40, 100) * required + Fraction(35, 100) * steps + Fraction(25, 100) * outputs)

    @staticmethod
    def _output_score(tests: TestSuiteResult) -> int:
        coverage = mean(c.coverage_ratio for c in tests.cases)
        quality = mean(c.quality_ratio for c in tests.cases)
        return _percent(Fraction(2, 5) * coverage + Fraction(2, 5) * quality + Fraction(1, 5) * _pass_fraction(tests))

    def _performance_score(self, tests: TestSuiteResult) -> int:
        budget = Fraction(self.max_execution_time_ms)
        time_scores = []
        for case in tests.cases:
            elapsed = Fraction(case.execution_time_ms)
            if case.error is not None:
                time_scores.append(Fraction(0))
            elif elapsed <= budget:
                time_scores.append(Fraction(1))
            else:
                time_scores.append(max(Fraction(0), 1 - (elapsed - budget) / budget))
        return _percent((mean(time_scores) + _pass_fraction(tests)) / 2)

    @staticmethod
    def _usability_score(validation: ValidationResult) -> int:
        names = ["has_output_instructions", "has_examples"]
        if "has_prioritization" in validation.compliance_checklist:
            names.append("has_prioritization")
        return _percent(_ratio([validation.check(n) for n in names]))

    @staticmethod
    def _maintainability_score(validation: ValidationResult) -> int:
        metrics = validation.metrics
        outcomes = [
            validation.check("consistent_formatting"),
            validation.check("free_of_anti_patterns"),
            validation.check("has_identity"),
            metrics.get("required_sections_present", 0) == metrics.get("required_sections_total", -1),
            metrics.get("section_count", 0) >= 4,
        ]
        return _percent(_ratio(outcomes))

    @staticmethod
    def _documentation_score(validation: ValidationResult) -> int:
        outcomes = [
            validation.metrics.get("identity_length", 0) >= 200,
            validation.check("meets_word_count"),
            validation.check("expertise_indicator"),
            validation.check("has_output_instructions"),
            validation.check("has_examples"),
        ]
        return _percent(_ratio(outcomes))

    # ========================================================================
    # COMPLIANCE
    # ========================================================================

    @staticmethod
    def derive_compliance(validation: ValidationResult, tests: TestSuiteResult) -> Dict[str, bool]:
        """The six standards-compliance flags used by certification."""
        cases = tests.cases
        metrics = validation.metrics
        outcomes = (
            validation.is_valid
            and metrics.get("required_sections_present", 0) == metrics.get("required_sections_total", -1),
            bool(cases) and mean(c.coverage_ratio for c in cases) >= Fraction(4, 5),
            bool(cases) and mean(c.quality_ratio for c in cases) >= Fraction(3, 5),
            bool(cases) and not tests.slow_cases,
            bool(cases) and not tests.errored_cases,
            all(validation.check(n) for n in ("has_output_instructions", "has_examples", "meets_word_count")),
        )
        return dict(zip(COMPLIANCE_FLAGS, outcomes))

    # ========================================================================
    # TREND, RECOMMENDATIONS, WARNINGS
    # ========================================================================

    @staticmethod
    def compute_trend(overall: int, prior_scores: Sequence[int]) -> Trend:
        """
        Direction of the new score against recent history.

        Args:
            overall: New overall score
            prior_scores: Prior overall scores, oldest first

        Returns:
            UNKNOWN with fewer than two prior scores
        """
        if len(prior_scores) < 2:
            return Trend.UNKNOWN
        window = prior_scores[-TREND_WINDOW:]
        delta = overall - Fraction(sum(window), len(window))
        if delta >= TREND_DELTA:
            return Trend.IMPROVING
        if delta <= -TREND_DELTA:
            return Trend.DECLINING
        return Trend.STABLE

    @staticmethod
    def build_recommendations(
        scores: CategoryScores,
        thresholds: QualityThresholdConfig,
    ) -> List[Recommendation]:
        """
        One recommendation per category below its minimum.

        Priority is critical below the critical floor; otherwise high when the
        category is the lowest-scoring of all eight and medium for the rest.
        Sorted by priority then impact, both descending.
        """
        deficient = [
            (category, score, thresholds.minimum_for(category))
            for category, score in scores.items()
            if score < thresholds.minimum_for(category)
        ]
        lowest = scores.lowest()

        recommendations = []
        for category, score, minimum in deficient:
            if score < thresholds.critical_floor:
                priority = Priority.CRITICAL
            elif score == lowest:
                priority = Priority.HIGH
            else:
                priority = Priority.MEDIUM

            gap = minimum - score
            recommendations.append(Recommendation(
                category=category,
                priority=priority,
                title=f"Improve {category.capitalize()} Quality",
                description=(
                    f"Current {category} score is {score}, below the minimum of {minimum}. "
                    f"Focus on this area to raise overall pattern quality."
                ),
                estimated_impact=int(clamp(gap, 0, 100)),
                estimated_effort=estimate_effort(gap),
                action_items=tuple(get_action_items(category)),
                resources=tuple(get_resources(category)),
            ))

        return sorted(
            recommendations,
            key=lambda r: (r.priority.rank, r.estimated_impact),
            reverse=True,
        )

    @staticmethod
    def build_warnings(scores: CategoryScores, thresholds: QualityThresholdConfig) -> List[QualityWarning]:
        """Categories between the critical floor and the warning ceiling."""
        warnings = []
        for category, score in scores.items():
            if thresholds.critical_floor <= score < thresholds.warning_ceiling:
                warnings.append(QualityWarning(
                    category=category,
                    message=f"{category} score ({score}) is below the recommended level ({thresholds.warning_ceiling})",
                    suggestion=f"Consider {category} improvements to strengthen pattern quality",
                ))
        return warnings

    @staticmethod
    def _suite_warnings(tests: TestSuiteResult) -> List[QualityWarning]:
        warnings = []
        if tests.slow_cases:
            warnings.append(QualityWarning(
                category="performance",
                message=f"{len(tests.slow_cases)} sample(s) exceeded the execution time budget",
                suggestion="Reduce prompt size or split the pattern into chained steps",
            ))
        if tests.errored_cases:
            warnings.append(QualityWarning(
                category="output",
                message=f"{len(tests.errored_cases)} sample(s) failed to execute",
                suggestion="Check the execution provider and sample inputs",
            ))
        return warnings
