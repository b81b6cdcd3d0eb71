"""
Test Suite for Quality Summaries and Reports

Tests batch statistics, attention lists and the markdown report.
"""

from datetime import timedelta

import pytest

from patterncert.models import Trend
from patterncert.quality import QualityCertificationAggregator
from patterncert.reporter import build_quality_summary, needs_attention, render_markdown_report


@pytest.fixture
def records(make_scores, all_compliant, fixed_time):
    aggregator = QualityCertificationAggregator()
    return [
        aggregator.evaluate("alpha", make_scores(95), all_compliant, timestamp=fixed_time),
        aggregator.evaluate("bravo", make_scores(82), all_compliant, timestamp=fixed_time),
        aggregator.evaluate("charlie", make_scores(92, integration=40), all_compliant, timestamp=fixed_time),
        aggregator.evaluate("delta", make_scores(55), all_compliant, timestamp=fixed_time),
    ]


class TestBuildQualitySummary:
    """Test aggregate statistics."""

    def test_counts(self, records):
        summary = build_quality_summary(records)

        assert summary.total_patterns == 4
        # charlie fails the integration minimum, delta fails everything
        assert summary.patterns_passing_threshold == 2
        assert summary.average_score == 80  # (95 + 82 + 87 + 55) / 4 = 79.75

    def test_distributions(self, records):
        summary = build_quality_summary(records)

        assert summary.grade_distribution == {"A": 1, "B": 2, "C": 0, "D": 0, "F": 1}
        assert summary.tier_distribution["platinum"] == 1
        assert summary.tier_distribution["none"] == 2
        assert sum(summary.tier_distribution.values()) == 4

    def test_top_performers_and_attention(self, records):
        summary = build_quality_summary(records)

        assert summary.top_performers == ["alpha", "charlie", "bravo", "delta"]
        assert summary.patterns_needing_attention == ["charlie", "delta"]

    def test_system_recommendations(self, records):
        summary = build_quality_summary(records)

        assert "Focus on bringing more patterns up to minimum quality standards" in summary.system_recommendations
        assert "2 patterns require immediate attention" in summary.system_recommendations

    def test_failed_items_are_listed_not_counted(self, records):
        summary = build_quality_summary(records[:1], failed_items={"broken": "Cannot read broken.md"})

        assert summary.total_patterns == 1
        assert summary.failed_items == {"broken": "Cannot read broken.md"}

    def test_empty(self):
        summary = build_quality_summary([])

        assert summary.total_patterns == 0
        assert summary.average_score == 0
        assert summary.system_recommendations == []
        assert summary.overall_trend == Trend.UNKNOWN

    def test_to_dict(self, records):
        data = build_quality_summary(records).to_dict()

        assert data["overall_trend"] == "unknown"
        assert data["category_averages"]["syntax"] == 81


class TestNeedsAttention:
    """Test the attention rule."""

    def test_declining_pattern_needs_attention(self, make_scores, all_compliant, fixed_time):
        aggregator = QualityCertificationAggregator()
        history = [
            aggregator.evaluate("p", make_scores(96), all_compliant, timestamp=fixed_time),
            aggregator.evaluate("p", make_scores(96), all_compliant, timestamp=fixed_time + timedelta(days=1)),
        ]
        record = aggregator.evaluate(
            "p", make_scores(90), all_compliant, history=history, timestamp=fixed_time + timedelta(days=2)
        )

        assert record.meets_threshold
        assert record.trend == Trend.DECLINING
        assert needs_attention(record)
        assert build_quality_summary([record]).overall_trend == Trend.DECLINING

    def test_healthy_pattern(self, records):
        assert not needs_attention(records[0])


class TestMarkdownReport:
    """Test markdown rendering."""

    def test_report_sections(self, records, fixed_time):
        summary = build_quality_summary(records, failed_items={"broken": "Cannot read broken.md"})
        report = render_markdown_report(summary, records, generated_at=fixed_time)

        assert report.startswith("# Pattern Quality Report")
        for header in (
            "## Summary",
            "## Grade Distribution",
            "## Certification Tiers",
            "## Top Performers",
            "## Needs Attention",
            "## Patterns",
            "### alpha",
            "## Failed Items",
        ):
            assert header in report
        assert "- broken: Cannot read broken.md" in report
        assert "[CRITICAL] Improve Integration Quality" in report

    def test_report_is_deterministic(self, records, fixed_time):
        summary = build_quality_summary(records)

        first = render_markdown_report(summary, records, generated_at=fixed_time)
        second = render_markdown_report(summary, list(reversed(records)), generated_at=fixed_time)

        assert first == second
