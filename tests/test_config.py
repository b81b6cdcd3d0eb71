"""
Test Suite for Quality Policy Configuration

Tests validation of weight tables, threshold configs and certification
policies, plus the environment-backed settings.
"""

from fractions import Fraction

import pytest

from patterncert.models import Grade
from patterncert.quality import (
    CategoryWeightTable,
    CertificationPolicy,
    ConfigurationError,
    QualityCertificationAggregator,
    QualityThresholdConfig,
)
from patterncert.quality.config import DEFAULT_CATEGORY_MINIMUMS, DEFAULT_WEIGHT_PERCENTAGES
from patterncert.utils.config import Settings, configure_logging
from patterncert.utils.helpers import clamp, mean, round_half_up


class TestCategoryWeightTable:
    """Test weight table validation."""

    def test_defaults(self):
        table = CategoryWeightTable()

        assert dict(table.percentages) == DEFAULT_WEIGHT_PERCENTAGES
        assert sum(table.percentages.values()) == 100

    def test_sum_must_be_100(self):
        weights = dict(DEFAULT_WEIGHT_PERCENTAGES, syntax=20)

        with pytest.raises(ConfigurationError, match="sum to 100"):
            CategoryWeightTable(weights)

    def test_missing_category(self):
        weights = dict(DEFAULT_WEIGHT_PERCENTAGES)
        del weights["documentation"]

        with pytest.raises(ConfigurationError, match="missing categories: documentation"):
            CategoryWeightTable(weights)

    def test_unknown_category(self):
        weights = dict(DEFAULT_WEIGHT_PERCENTAGES, security=0)

        with pytest.raises(ConfigurationError, match="unknown categories"):
            CategoryWeightTable(weights)

    def test_table_is_read_only(self):
        table = CategoryWeightTable()

        with pytest.raises(TypeError):
            table.percentages["syntax"] = 50

    def test_custom_weights_change_overall(self, make_scores):
        weights = dict.fromkeys(DEFAULT_WEIGHT_PERCENTAGES, 0)
        weights["output"] = 100
        aggregator = QualityCertificationAggregator(weights=CategoryWeightTable(weights, version="output-only"))

        assert aggregator.overall_score(make_scores(90, output=40)) == 40


class TestQualityThresholdConfig:
    """Test threshold config validation and updates."""

    def test_defaults(self):
        config = QualityThresholdConfig()

        assert config.min_overall == 70
        assert config.min_grade == Grade.C
        assert config.minimum_for("output") == 75
        assert config.critical_floor == 50

    def test_grade_from_string(self):
        assert QualityThresholdConfig(min_grade="b").min_grade == Grade.B

    def test_unknown_grade(self):
        with pytest.raises(ConfigurationError) as exc_info:
            QualityThresholdConfig(min_grade="E")
        assert exc_info.value.field_name == "min_grade"

    def test_minimum_out_of_range(self):
        minimums = dict(DEFAULT_CATEGORY_MINIMUMS, usability=120)

        with pytest.raises(ConfigurationError, match="0-100"):
            QualityThresholdConfig(category_minimums=minimums)

    def test_unknown_category(self):
        minimums = dict(DEFAULT_CATEGORY_MINIMUMS, speed=50)

        with pytest.raises(ConfigurationError):
            QualityThresholdConfig(category_minimums=minimums)

    def test_min_overall_out_of_range(self):
        with pytest.raises(ConfigurationError) as exc_info:
            QualityThresholdConfig(min_overall=-1)
        assert exc_info.value.field_name == "min_overall"

    def test_with_updates_merges_minimums(self):
        config = QualityThresholdConfig()
        updated = config.with_updates(category_minimums={"output": 85}, min_overall=80, version="2.0")

        assert updated.minimum_for("output") == 85
        assert updated.minimum_for("syntax") == 75
        assert updated.min_overall == 80
        assert updated.version == "2.0"
        assert config.minimum_for("output") == 75

    def test_with_updates_validates(self):
        with pytest.raises(ConfigurationError):
            QualityThresholdConfig().with_updates(min_grade="Z")

    def test_to_dict(self):
        data = QualityThresholdConfig().to_dict()

        assert data["min_grade"] == "C"
        assert data["category_minimums"] == DEFAULT_CATEGORY_MINIMUMS


class TestCertificationPolicy:
    """Test certification policy validation."""

    def test_defaults(self):
        policy = CertificationPolicy()

        assert (policy.platinum_score, policy.gold_score, policy.silver_score) == (95, 90, 85)
        assert policy.required_passes == 4

    def test_tier_order(self):
        with pytest.raises(ConfigurationError, match="ordered"):
            CertificationPolicy(gold_score=96)

    def test_required_passes_range(self):
        with pytest.raises(ConfigurationError):
            CertificationPolicy(required_passes=6)

    def test_compliance_flags_range(self):
        with pytest.raises(ConfigurationError):
            CertificationPolicy(min_compliance_flags=7)


class TestSettings:
    """Test environment-backed settings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("EXECUTION_PROVIDER_URL", raising=False)
        settings = Settings(_env_file=None)

        assert settings.MIN_WORD_COUNT == 300
        assert settings.CASE_PASS_SCORE == 60
        assert settings.SUITE_PASS_FRACTION == 0.7
        assert settings.MAX_CONCURRENCY == 4

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("MAX_CONCURRENCY", "8")
        monkeypatch.setenv("MIN_STEP_COUNT", "5")

        settings = Settings(_env_file=None)

        assert settings.MAX_CONCURRENCY == 8
        assert settings.MIN_STEP_COUNT == 5


class TestHelpers:
    """Test numeric helpers."""

    @pytest.mark.parametrize("value,expected", [
        (62.5, 63),
        (62.4, 62),
        (0.5, 1),
        (99.5, 100),
        (70, 70),
    ])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_clamp(self):
        assert clamp(120, 0, 100) == 100
        assert clamp(-3, 0, 100) == 0

    def test_mean_of_nothing(self):
        assert mean([]) == 0

    def test_configure_logging_accepts_settings(self):
        configure_logging(Settings(_env_file=None, LOG_LEVEL="debug"))

    def test_round_half_up_fraction_is_exact(self):
        assert round_half_up(Fraction(161, 2)) == 81
        assert round_half_up(Fraction(99, 200) * 100) == 50
        assert round_half_up(Fraction(-5, 2)) == -3
