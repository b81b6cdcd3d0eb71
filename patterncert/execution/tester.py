"""
Sample Execution Tester

Runs every sample of a corpus through an execution provider and scores the
produced output against the expected schema.

Per case:
    score = round_half_up(50 * coverage + 50 * passed_checks / total_checks)
    passed = score >= case_pass_score (default 60)

A suite passes when at least suite_pass_fraction (default 0.7) of its cases
pass. Provider errors and timeouts become failed cases with score 0; the
remaining samples still run.
"""

import asyncio
import logging
import time
from fractions import Fraction
from typing import Callable, Dict, List, Optional

from ..models import (
    PatternDefinition,
    SampleCase,
    SampleCorpus,
    Severity,
    TestCaseResult,
    TestSuiteResult,
    ValidationIssue,
    normalize_section_name,
)
from ..quality.checks import ContentQualityChecker
from ..quality.compatibility import CompatibilityChecker
from ..utils.helpers import mean, round_half_up
from .provider import ExecutionProvider, SampleExecutionError

logger = logging.getLogger(__name__)


def _unique(names) -> List[str]:
    seen: List[str] = []
    for name in names:
        key = normalize_section_name(name)
        if key and key not in seen:
            seen.append(key)
    return seen


class SampleExecutionTester:
    """
    Executes sample corpora and scores each case.

    Usage:
        tester = SampleExecutionTester(SimulatedExecutionProvider())
        suite = await tester.run_suite(pattern, corpus)
        print(f"{suite.pass_rate:.0%} of samples passed")
    """

    def __init__(
        self,
        provider: ExecutionProvider,
        min_output_tokens: int = 50,
        case_pass_score: int = 60,
        suite_pass_fraction: float = 0.7,
        max_execution_time_ms: float = 5000,
        sample_timeout_seconds: float = 30.0,
        compatibility: Optional[CompatibilityChecker] = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.provider = provider
        self.content_checker = ContentQualityChecker(min_output_tokens=min_output_tokens)
        self.compatibility = compatibility or CompatibilityChecker()
        self.case_pass_score = case_pass_score
        self.suite_pass_fraction = suite_pass_fraction
        self.max_execution_time_ms = max_execution_time_ms
        self.sample_timeout_seconds = sample_timeout_seconds
        self.clock = clock

    async def run_suite(
        self,
        pattern: PatternDefinition,
        corpus: SampleCorpus,
        reported_checks: Optional[Dict[str, bool]] = None,
    ) -> TestSuiteResult:
        """
        Run every sample in the corpus.

        Args:
            pattern: Pattern under test
            corpus: Samples with expected output schemas
            reported_checks: Compatibility checks reported by a collaborator

        Returns:
            TestSuiteResult with one case per sample, in corpus order
        """
        if corpus.pattern_id != pattern.pattern_id:
            logger.warning(
                f"Corpus {corpus.pattern_id} used for pattern {pattern.pattern_id}"
            )

        cases: List[TestCaseResult] = []
        for sample in corpus:
            cases.append(await self.run_case(pattern, sample))

        issues: List[ValidationIssue] = []
        for case in cases:
            issues.extend(case.issues)

        if not cases:
            issues.append(ValidationIssue(
                severity=Severity.MAJOR,
                category="output",
                message="Sample corpus is empty; output quality cannot be measured",
                suggestion="Add representative sample inputs with expected output sections",
            ))

        slow = [c.sample_id for c in cases if c.exceeded_time_budget]
        if slow:
            issues.append(ValidationIssue(
                severity=Severity.MINOR,
                category="performance",
                message=f"{len(slow)} sample(s) exceeded {self.max_execution_time_ms:.0f}ms: {', '.join(slow)}",
                suggestion="Reduce prompt size or split the pattern into chained steps",
            ))

        passed_count = sum(1 for c in cases if c.passed)
        pass_rate = passed_count / len(cases) if cases else 0.0
        evaluated = [c for c in cases if c.error is None]

        suite = TestSuiteResult(
            pattern_id=pattern.pattern_id,
            cases=cases,
            passed=bool(cases) and pass_rate >= self.suite_pass_fraction,
            pass_rate=pass_rate,
            average_score=round_half_up(mean(c.score for c in cases)),
            max_execution_time_ms=max((c.execution_time_ms for c in evaluated), default=0.0),
            compatibility_checks=self.compatibility.check(pattern, reported_checks),
            issues=issues,
        )

        logger.info(
            f"Suite {pattern.pattern_id}: {passed_count}/{len(cases)} cases passed "
            f"({len(cases) - len(evaluated)} errored), average score {suite.average_score}"
        )
        return suite

    async def run_case(self, pattern: PatternDefinition, sample: SampleCase) -> TestCaseResult:
        """Execute and score one sample."""
        expected = _unique(sample.expected_output.sections)
        start = self.clock()

        try:
            output = await asyncio.wait_for(
                self.provider.execute(pattern, sample.input_text),
                timeout=self.sample_timeout_seconds,
            )
        except asyncio.TimeoutError:
            return self._failed_case(
                sample, expected, start,
                f"Sample timed out after {self.sample_timeout_seconds:.1f}s",
            )
        except SampleExecutionError as e:
            return self._failed_case(sample, expected, start, f"Provider error: {e}")
        except Exception as e:
            logger.exception(f"Unexpected provider failure on {pattern.pattern_id}/{sample.sample_id}")
            return self._failed_case(sample, expected, start, f"Provider error: {type(e).__name__}: {e}")

        elapsed_ms = (self.clock() - start) * 1000
        execution_time_ms = output.execution_time_ms if output.execution_time_ms is not None else elapsed_ms

        produced = set(_unique(output.sections))
        missing = [name for name in expected if name not in produced]
        matched = len(expected) - len(missing)
        coverage = Fraction(matched, len(expected)) if expected else Fraction(1)

        flags = self.content_checker.run_all_checks(
            output.body,
            has_scoring=pattern.has_scoring,
            has_prioritization=pattern.has_prioritization,
            score_range=sample.expected_output.score_range,
        )
        quality = Fraction(sum(flags.values()), len(flags)) if flags else Fraction(0)
        score = round_half_up(50 * coverage + 50 * quality)

        issues: List[ValidationIssue] = []
        if missing:
            issues.append(ValidationIssue(
                severity=Severity.MINOR,
                category="output",
                message=f"Sample {sample.sample_id} is missing sections: {', '.join(missing)}",
                suggestion="Make the OUTPUT SECTIONS block match the sections the pattern is expected to produce",
            ))

        exceeded = execution_time_ms > self.max_execution_time_ms
        logger.debug(
            f"{pattern.pattern_id}/{sample.sample_id}: score {score}, "
            f"{matched}/{len(expected)} sections, {execution_time_ms:.0f}ms"
        )

        return TestCaseResult(
            sample_id=sample.sample_id,
            passed=score >= self.case_pass_score,
            score=score,
            execution_time_ms=execution_time_ms,
            sections_matched=matched,
            sections_expected=len(expected),
            content_quality_flags=flags,
            exceeded_time_budget=exceeded,
            issues=issues,
        )

    def _failed_case(self, sample: SampleCase, expected: List[str], start: float, error: str) -> TestCaseResult:
        logger.warning(f"Sample {sample.sample_id} failed: {error}")
        return TestCaseResult(
            sample_id=sample.sample_id,
            passed=False,
            score=0,
            execution_time_ms=(self.clock() - start) * 1000,
            sections_matched=0,
            sections_expected=len(expected),
            error=error,
            issues=[ValidationIssue(
                severity=Severity.MAJOR,
                category="output",
                message=f"Sample {sample.sample_id} could not be executed: {error}",
                suggestion="Check the execution provider and the sample input",
            )],
        )
