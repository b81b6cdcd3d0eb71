"""
Quality Summary and Report

Aggregate statistics over a set of assessment records, and a markdown
rendering for humans. Failed batch items are listed but never counted.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..models import (
    CATEGORY_NAMES,
    AssessmentRecord,
    CertificationTier,
    Grade,
    Trend,
)
from ..utils.helpers import mean, round_half_up

logger = logging.getLogger(__name__)

TOP_PERFORMER_COUNT = 5
SYSTEM_AVERAGE_FLOOR = 70
SYSTEM_PASSING_FRACTION = 0.8


@dataclass
class QualitySummary:
    """Aggregate quality metrics for a batch."""
    total_patterns: int
    patterns_passing_threshold: int
    average_score: int
    grade_distribution: Dict[str, int]
    tier_distribution: Dict[str, int]
    trend_distribution: Dict[str, int]
    category_averages: Dict[str, int]
    top_performers: List[str]
    patterns_needing_attention: List[str]
    system_recommendations: List[str]
    failed_items: Dict[str, str] = field(default_factory=dict)

    @property
    def overall_trend(self) -> Trend:
        """Majority direction across patterns with a known trend."""
        improving = self.trend_distribution.get(Trend.IMPROVING.value, 0)
        declining = self.trend_distribution.get(Trend.DECLINING.value, 0)
        if improving > declining:
            return Trend.IMPROVING
        if declining > improving:
            return Trend.DECLINING
        if improving == declining == 0 and not self.trend_distribution.get(Trend.STABLE.value, 0):
            return Trend.UNKNOWN
        return Trend.STABLE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_patterns": self.total_patterns,
            "patterns_passing_threshold": self.patterns_passing_threshold,
            "average_score": self.average_score,
            "grade_distribution": dict(self.grade_distribution),
            "tier_distribution": dict(self.tier_distribution),
            "trend_distribution": dict(self.trend_distribution),
            "overall_trend": self.overall_trend.value,
            "category_averages": dict(self.category_averages),
            "top_performers": list(self.top_performers),
            "patterns_needing_attention": list(self.patterns_needing_attention),
            "system_recommendations": list(self.system_recommendations),
            "failed_items": dict(self.failed_items),
        }


def needs_attention(record: AssessmentRecord) -> bool:
    """Fails the threshold, has critical issues, or is declining."""
    return (
        not record.meets_threshold
        or bool(record.critical_issues)
        or record.trend == Trend.DECLINING
    )


def build_quality_summary(
    records: Sequence[AssessmentRecord],
    failed_items: Optional[Mapping[str, str]] = None,
) -> QualitySummary:
    """
    Summarise a set of assessment records.

    Args:
        records: One record per pattern (typically the latest)
        failed_items: pattern_id -> error for items that produced no record

    Returns:
        QualitySummary
    """
    total = len(records)
    passing = sum(1 for r in records if r.meets_threshold)

    grade_distribution = {g.value: 0 for g in Grade}
    tier_distribution = {t.value: 0 for t in CertificationTier}
    trend_distribution = {t.value: 0 for t in Trend}
    for record in records:
        grade_distribution[record.grade.value] += 1
        tier_distribution[record.certification_tier.value] += 1
        trend_distribution[record.trend.value] += 1

    category_averages = {
        name: round_half_up(mean(getattr(r.category_scores, name) for r in records))
        for name in CATEGORY_NAMES
    }

    ranked = sorted(records, key=lambda r: (-r.overall_score, r.pattern_id))
    top_performers = [r.pattern_id for r in ranked[:TOP_PERFORMER_COUNT]]
    attention = sorted(r.pattern_id for r in records if needs_attention(r))

    summary = QualitySummary(
        total_patterns=total,
        patterns_passing_threshold=passing,
        average_score=round_half_up(mean(r.overall_score for r in records)),
        grade_distribution=grade_distribution,
        tier_distribution=tier_distribution,
        trend_distribution=trend_distribution,
        category_averages=category_averages,
        top_performers=top_performers,
        patterns_needing_attention=attention,
        system_recommendations=[],
        failed_items=dict(failed_items or {}),
    )
    summary.system_recommendations = _system_recommendations(summary)

    logger.info(
        f"Summary: {passing}/{total} patterns passing, average {summary.average_score}, "
        f"{len(summary.failed_items)} failed"
    )
    return summary


def _system_recommendations(summary: QualitySummary) -> List[str]:
    recommendations: List[str] = []
    if summary.total_patterns == 0:
        return recommendations

    if summary.average_score < SYSTEM_AVERAGE_FLOOR:
        recommendations.append("System-wide quality improvement needed: average score below threshold")

    if summary.patterns_passing_threshold / summary.total_patterns < SYSTEM_PASSING_FRACTION:
        recommendations.append("Focus on bringing more patterns up to minimum quality standards")

    if summary.overall_trend == Trend.DECLINING:
        recommendations.append("Quality trend is declining: schedule improvement work before new patterns")

    if summary.patterns_needing_attention:
        recommendations.append(f"{len(summary.patterns_needing_attention)} patterns require immediate attention")

    weakest = min(summary.category_averages, key=lambda c: (summary.category_averages[c], c))
    if summary.category_averages[weakest] < SYSTEM_AVERAGE_FLOOR:
        recommendations.append(
            f"Weakest category across patterns is {weakest} (average {summary.category_averages[weakest]})"
        )

    return recommendations


# ============================================================================
# MARKDOWN REPORT
# ============================================================================

def render_markdown_report(
    summary: QualitySummary,
    records: Sequence[AssessmentRecord],
    generated_at: Optional[datetime] = None,
) -> str:
    """Render the summary and per-pattern records as markdown."""
    generated_at = generated_at or datetime.now(timezone.utc)
    lines = [
        "# Pattern Quality Report",
        "",
        f"Generated: {generated_at.isoformat()}",
        "",
        "## Summary",
        "",
        f"- Patterns assessed: {summary.total_patterns}",
        f"- Passing threshold: {summary.patterns_passing_threshold}",
        f"- Average score: {summary.average_score}",
        f"- Overall trend: {summary.overall_trend.value}",
        "",
        "## Grade Distribution",
        "",
        "| Grade | Patterns |",
        "|---|---|",
    ]
    lines.extend(f"| {grade} | {count} |" for grade, count in summary.grade_distribution.items())

    lines.extend(["", "## Certification Tiers", "", "| Tier | Patterns |", "|---|---|"])
    lines.extend(f"| {tier} | {count} |" for tier, count in summary.tier_distribution.items())

    if summary.top_performers:
        lines.extend(["", "## Top Performers", ""])
        lines.extend(f"- {pid}" for pid in summary.top_performers)

    if summary.patterns_needing_attention:
        lines.extend(["", "## Needs Attention", ""])
        lines.extend(f"- {pid}" for pid in summary.patterns_needing_attention)

    if summary.system_recommendations:
        lines.extend(["", "## System Recommendations", ""])
        lines.extend(f"- {rec}" for rec in summary.system_recommendations)

    lines.extend(["", "## Patterns", ""])
    for record in sorted(records, key=lambda r: r.pattern_id):
        lines.extend([
            f"### {record.pattern_id}",
            "",
            f"- Overall: {record.overall_score} ({record.grade.value})",
            f"- Meets threshold: {'yes' if record.meets_threshold else 'no'}",
            f"- Certification: {record.certification_tier.value}",
            f"- Trend: {record.trend.value}",
            "",
            "| Category | Score |",
            "|---|---|",
        ])
        lines.extend(f"| {name} | {score} |" for name, score in record.category_scores.items())
        if record.recommendations:
            lines.extend(["", "Recommendations:", ""])
            for rec in record.recommendations:
                lines.append(
                    f"- [{rec.priority.value.upper()}] {rec.title} "
                    f"(impact {rec.estimated_impact}, effort {rec.estimated_effort.value})"
                )
        lines.append("")

    if summary.failed_items:
        lines.extend(["## Failed Items", ""])
        lines.extend(f"- {pid}: {error}" for pid, error in sorted(summary.failed_items.items()))
        lines.append("")

    return "\n".join(lines)
