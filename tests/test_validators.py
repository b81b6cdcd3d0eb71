"""
Test Suite for Structural Validation

Tests the structural validator, the anti-pattern detector and the
compatibility checks that feed the integration category.
"""

import pytest

from patterncert.models import PatternDefinition, Severity
from patterncert.quality import (
    AntiPatternDetector,
    AntiPatternSeverity,
    CompatibilityChecker,
    StructuralValidator,
)
from patterncert.source import InputNotReadableError, parse_pattern


class TestStructuralValidator:
    """Test validate() on complete and incomplete patterns."""

    @pytest.fixture
    def validator(self):
        return StructuralValidator()

    def test_good_pattern_passes_every_check(self, validator, good_pattern):
        """A complete pattern should score 100 with no issues."""
        result = validator.validate(good_pattern)

        assert result.issues == []
        assert result.validation_score == 100
        assert all(result.compliance_checklist.values())
        assert result.is_valid

    def test_good_pattern_metrics(self, validator, good_pattern):
        """Structural metrics should describe the pattern."""
        metrics = validator.validate(good_pattern).metrics

        assert metrics["step_count"] == 5
        assert metrics["output_section_count"] == 4
        assert metrics["section_count"] == 5
        assert metrics["required_sections_present"] == metrics["required_sections_total"] == 5
        assert metrics["identity_length"] >= 200
        assert metrics["word_count"] >= 300

    def test_declared_capabilities_are_checked(self, validator, good_pattern):
        """Scoring and prioritization checks run when declared."""
        checklist = validator.validate(good_pattern).compliance_checklist

        assert good_pattern.has_scoring and good_pattern.has_prioritization
        assert checklist["has_scoring_system"] is True
        assert checklist["has_prioritization"] is True

    def test_undeclared_capabilities_are_skipped(self, validator, minimal_pattern):
        """Capability checks do not count when the pattern does not declare them."""
        checklist = validator.validate(minimal_pattern).compliance_checklist

        assert "has_scoring_system" not in checklist
        assert "has_prioritization" not in checklist

    def test_minimal_pattern_reports_critical_issues(self, validator, minimal_pattern):
        """Missing steps and output block are critical."""
        result = validator.validate(minimal_pattern)

        critical = [i for i in result.issues if i.severity == Severity.CRITICAL]
        assert len(critical) == 2
        assert not result.is_valid
        assert result.compliance_checklist["has_steps"] is False
        assert result.compliance_checklist["has_output_section"] is False

    def test_one_issue_per_failed_check(self, validator, minimal_pattern):
        """Each failing check emits exactly one issue."""
        result = validator.validate(minimal_pattern)

        failed = [name for name, ok in result.compliance_checklist.items() if not ok]
        assert len(result.issues) == len(failed)

    def test_score_is_rounded_pass_ratio(self, validator, minimal_pattern):
        """validation_score = round(passed / total * 100)."""
        result = validator.validate(minimal_pattern)

        passed = sum(result.compliance_checklist.values())
        total = len(result.compliance_checklist)
        assert total == 10
        assert passed == 1  # only consistent_formatting
        assert result.validation_score == 10

    def test_suggestions_lead_with_critical_fix(self, validator, minimal_pattern):
        """Critical problems put the structural fix first."""
        result = validator.validate(minimal_pattern)

        assert result.suggestions[0].startswith("Fix critical")
        assert len(result.suggestions) == len(set(result.suggestions))

    def test_declared_scoring_without_scale_is_major(self, validator):
        """Declaring scoring without defining it is a major issue."""
        pattern = parse_pattern(
            "no_scale",
            "# IDENTITY and PURPOSE\n\nYou are an expert reviewer of short essays.\n\n"
            "# STEPS\n\n- Read the essay.\n- List its claims.\n- Check each claim.\n",
            has_scoring=True,
        )
        result = validator.validate(pattern)

        assert result.compliance_checklist["has_scoring_system"] is False
        issue = next(i for i in result.issues if "scoring" in i.message)
        assert issue.severity == Severity.MAJOR

    def test_min_step_count_is_configurable(self, good_pattern):
        """A stricter step minimum fails the good pattern's five steps."""
        result = StructuralValidator(min_step_count=6).validate(good_pattern)

        assert result.compliance_checklist["has_steps"] is False
        assert result.critical_count == 1

    def test_inconsistent_headers_fail_formatting(self, validator, good_pattern):
        """A header without the space after '#' is inconsistent."""
        body = good_pattern.body.replace("# STEPS", "#Steps")
        result = validator.validate(parse_pattern("messy", body))

        assert result.compliance_checklist["consistent_formatting"] is False

    def test_non_text_body_raises(self, validator):
        """Only unreadable input raises."""
        pattern = PatternDefinition(pattern_id="binary", body=b"\x00\x01")

        with pytest.raises(InputNotReadableError) as exc_info:
            validator.validate(pattern)
        assert exc_info.value.pattern_id == "binary"

    def test_empty_body_does_not_raise(self, validator):
        """Malformed but readable input is scored, never raised."""
        result = validator.validate(PatternDefinition(pattern_id="empty", body=""))

        # An empty body has nothing for the anti-pattern scan to flag
        assert result.compliance_checklist["free_of_anti_patterns"] is True
        assert result.validation_score == 10
        assert result.critical_count == 2

    def test_validate_has_no_side_effects(self, validator, good_pattern):
        """Repeated validation gives identical results."""
        first = validator.validate(good_pattern)
        second = validator.validate(good_pattern)

        assert first == second


class TestAntiPatternDetector:
    """Test anti-pattern scanning of pattern bodies."""

    @pytest.fixture
    def detector(self):
        return AntiPatternDetector()

    def test_clean_pattern_passes(self, detector, good_pattern):
        result = detector.scan(good_pattern.body)

        assert result.passes
        assert result.critical_count == 0

    def test_placeholder_is_critical(self, detector):
        result = detector.scan("# STEPS\n\n- Describe [insert topic here] in detail.\n")

        assert not result.passes
        assert result.critical_count >= 1
        assert result.matches[0].pattern_name == "Placeholder Text"

    def test_vague_step_is_high(self, detector):
        result = detector.scan("# STEPS\n\n- Analyze the input.\n")

        assert any(m.severity == AntiPatternSeverity.HIGH for m in result.matches)
        assert not result.passes

    def test_hedging_alone_does_not_fail(self, detector):
        """Low and medium matches are reported without failing."""
        result = detector.scan("Try to keep the summary short if possible.")

        assert result.total_matches == 2
        assert result.passes

    def test_suggestions_one_per_anti_pattern(self, detector):
        result = detector.scan("TBD\n- Analyze it.\nTODO")
        suggestions = detector.get_improvement_suggestions(result)

        assert len(suggestions) == 2
        assert suggestions[0].startswith("[CRITICAL]")

    def test_anti_patterns_fail_validator_check(self, good_pattern):
        """The validator records anti-patterns as a minor failure."""
        body = good_pattern.body.replace("# INPUT", "Lorem ipsum.\n\n# INPUT")
        result = StructuralValidator().validate(parse_pattern("lorem", body))

        assert result.compliance_checklist["free_of_anti_patterns"] is False
        issue = next(i for i in result.issues if i.category == "maintainability")
        assert issue.severity == Severity.MINOR


class TestCompatibilityChecker:
    """Test integration compatibility checks."""

    @pytest.fixture
    def checker(self):
        return CompatibilityChecker()

    def test_good_pattern_is_compatible(self, checker, good_pattern):
        checks = checker.check(good_pattern)

        assert checks == {
            "registry_safe_name": True,
            "chainable_input": True,
            "exportable_output": True,
            "standard_layout": True,
        }

    def test_unsafe_name(self, checker, good_pattern):
        pattern = parse_pattern("Extract Insights!", good_pattern.body)

        assert checker.check(pattern)["registry_safe_name"] is False

    def test_minimal_pattern_fails_layout_and_export(self, checker, minimal_pattern):
        checks = checker.check(minimal_pattern)

        assert checks["standard_layout"] is False
        assert checks["exportable_output"] is False
        assert checks["chainable_input"] is False

    def test_reported_checks_are_merged(self, checker, good_pattern):
        """Collaborator-reported checks join the derived ones."""
        checks = checker.check(good_pattern, reported={"export_roundtrip": False})

        assert checks["export_roundtrip"] is False
        assert len(checks) == 5
