"""
Quality Gates Implementation

Two independent gates run on every assessment:
- ThresholdGate: the deployment gate (overall, grade, per-category minimums)
- CertificationEvaluator: five requirements, then the tier chain

Certification is always computed from the current scores; a previous tier
never carries over.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Mapping, Optional

from ..models import (
    CategoryScores,
    CertificationRequirement,
    CertificationStatus,
    CertificationTier,
    Grade,
)
from .config import CertificationPolicy, QualityThresholdConfig

logger = logging.getLogger(__name__)


class GateStatus(Enum):
    """Quality gate status."""
    PASSED = "passed"
    FAILED = "failed"


@dataclass
class QualityResult:
    """Result of a single gate check."""
    gate_name: str
    status: GateStatus
    score: Optional[float] = None
    threshold: Optional[float] = None
    message: str = ""

    @property
    def passed(self) -> bool:
        return self.status == GateStatus.PASSED


@dataclass
class ThresholdGateResult:
    """Combined outcome of the deployment gate."""
    passed: bool
    results: List[QualityResult] = field(default_factory=list)

    @property
    def failures(self) -> List[QualityResult]:
        return [r for r in self.results if not r.passed]


def _gate(name: str, score: float, threshold: float, message: str) -> QualityResult:
    status = GateStatus.PASSED if score >= threshold else GateStatus.FAILED
    return QualityResult(gate_name=name, status=status, score=score, threshold=threshold, message=message)


class ThresholdGate:
    """
    Deployment gate.

    Passes iff overall >= min_overall, grade >= min_grade and every category
    meets its minimum.
    """

    def check(
        self,
        scores: CategoryScores,
        overall: int,
        grade: Grade,
        thresholds: QualityThresholdConfig,
    ) -> ThresholdGateResult:
        results = [
            _gate("overall_score", overall, thresholds.min_overall,
                  f"Overall score {overall} vs minimum {thresholds.min_overall}"),
            _gate("grade", grade.rank, thresholds.min_grade.rank,
                  f"Grade {grade.value} vs minimum {thresholds.min_grade.value}"),
        ]
        for category, score in scores.items():
            minimum = thresholds.minimum_for(category)
            results.append(_gate(category, score, minimum, f"{category} score {score} vs minimum {minimum}"))

        gate = ThresholdGateResult(passed=all(r.passed for r in results), results=results)
        if not gate.passed:
            logger.debug(f"Threshold gate failed: {', '.join(r.gate_name for r in gate.failures)}")
        return gate


# ============================================================================
# CERTIFICATION
# ============================================================================

TIER_ORDER = [
    CertificationTier.NONE,
    CertificationTier.BRONZE,
    CertificationTier.SILVER,
    CertificationTier.GOLD,
    CertificationTier.PLATINUM,
]


def next_tier_after(tier: CertificationTier) -> Optional[CertificationTier]:
    """The tier above ``tier``; None at platinum."""
    index = TIER_ORDER.index(tier)
    return TIER_ORDER[index + 1] if index + 1 < len(TIER_ORDER) else None


class CertificationEvaluator:
    """
    Evaluates the five certification requirements and assigns a tier.

    Requirements:
    1. overall score >= 75
    2. functionality = mean(output, structure) >= 80
    3. reliability = mean(performance, integration) >= 85
    4. at least 5 of 6 standards-compliance flags
    5. no critical issues

    Certified with at least 4 of 5. Tier chain, highest first:
    platinum (overall >= 95 and 5/5), gold (>= 90), silver (>= 85), bronze.
    """

    def __init__(self, policy: Optional[CertificationPolicy] = None):
        self.policy = policy or CertificationPolicy()

    def evaluate(
        self,
        scores: CategoryScores,
        overall: int,
        compliance_flags: Mapping[str, bool],
        critical_issue_count: int,
    ) -> CertificationStatus:
        policy = self.policy
        functionality = (scores.output + scores.structure) / 2
        reliability = (scores.performance + scores.integration) / 2
        compliance_met = sum(1 for v in compliance_flags.values() if v)

        requirements = (
            CertificationRequirement(
                name="overall_score",
                met=overall >= policy.min_overall,
                threshold=policy.min_overall,
                actual=overall,
                description=f"Overall score of at least {policy.min_overall}",
            ),
            CertificationRequirement(
                name="functionality",
                met=functionality >= policy.min_functionality,
                threshold=policy.min_functionality,
                actual=functionality,
                description=f"Average of output and structure of at least {policy.min_functionality}",
            ),
            CertificationRequirement(
                name="reliability",
                met=reliability >= policy.min_reliability,
                threshold=policy.min_reliability,
                actual=reliability,
                description=f"Average of performance and integration of at least {policy.min_reliability}",
            ),
            CertificationRequirement(
                name="standards_compliance",
                met=compliance_met >= policy.min_compliance_flags,
                threshold=policy.min_compliance_flags,
                actual=compliance_met,
                description=f"At least {policy.min_compliance_flags} of {len(compliance_flags)} standards met",
            ),
            CertificationRequirement(
                name="no_critical_issues",
                met=critical_issue_count == 0,
                threshold=0,
                actual=critical_issue_count,
                description="No critical issues",
            ),
        )

        met = sum(1 for r in requirements if r.met)
        certified = met >= policy.required_passes
        tier = self._tier_for(overall, met, len(requirements)) if certified else CertificationTier.NONE

        return CertificationStatus(
            certified=certified,
            tier=tier,
            requirements=requirements,
            next_tier=next_tier_after(tier),
            improvements_needed=tuple(self._improvements(requirements, tier, overall)),
        )

    def _tier_for(self, overall: int, met: int, total: int) -> CertificationTier:
        policy = self.policy
        if overall >= policy.platinum_score and met == total:
            return CertificationTier.PLATINUM
        if overall >= policy.gold_score:
            return CertificationTier.GOLD
        if overall >= policy.silver_score:
            return CertificationTier.SILVER
        return CertificationTier.BRONZE

    def _improvements(self, requirements, tier: CertificationTier, overall: int) -> List[str]:
        improvements = [r.description for r in requirements if not r.met]
        targets = {
            CertificationTier.SILVER: self.policy.silver_score,
            CertificationTier.GOLD: self.policy.gold_score,
            CertificationTier.PLATINUM: self.policy.platinum_score,
        }
        upcoming = next_tier_after(tier)
        if upcoming in targets and overall < targets[upcoming]:
            improvements.append(f"Raise overall score to {targets[upcoming]} for {upcoming.value}")
        return improvements
