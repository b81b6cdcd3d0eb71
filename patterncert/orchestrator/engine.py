"""
Assessment Engine

Coordinates validate -> run_suite -> assess for one pattern or a batch, and
owns the current thresholds and the assessment history.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from ..execution import (
    ExecutionProvider,
    HttpExecutionProvider,
    SampleExecutionTester,
    SimulatedExecutionProvider,
)
from ..models import AssessmentRecord, PatternDefinition, SampleCorpus
from ..persistence import AssessmentHistory, FileHistoryStore
from ..quality import (
    CategoryWeightTable,
    CertificationPolicy,
    ConfigurationError,
    QualityCertificationAggregator,
    QualityThresholdConfig,
    StructuralValidator,
)
from ..reporter import QualitySummary, build_quality_summary, needs_attention
from ..source import InputNotReadableError, find_corpus_for, load_corpus, load_pattern
from ..source.loader import pattern_id_for_path
from ..utils.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class BatchItem:
    """One pattern and its corpus queued for assessment."""
    pattern: PatternDefinition
    corpus: SampleCorpus
    reported_checks: Optional[Dict[str, bool]] = None


@dataclass
class BatchItemResult:
    """Outcome of one batch item: a record, or the error that stopped it."""
    pattern_id: str
    record: Optional[AssessmentRecord] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.record is not None


@dataclass
class BatchResult:
    """Outcome of a batch, in submission order."""
    items: List[BatchItemResult] = field(default_factory=list)
    summary: Optional[QualitySummary] = None

    @property
    def records(self) -> List[AssessmentRecord]:
        return [i.record for i in self.items if i.record is not None]

    @property
    def failures(self) -> Dict[str, str]:
        return {i.pattern_id: i.error for i in self.items if i.record is None}


class AssessmentEngine:
    """
    Runs pattern assessments.

    Usage:
        engine = AssessmentEngine.from_settings()
        record = await engine.assess_pattern(pattern, corpus)
        batch = await engine.assess_files(["patterns/summarize/system.md"])
        await engine.close()
    """

    def __init__(
        self,
        provider: Optional[ExecutionProvider] = None,
        thresholds: Optional[QualityThresholdConfig] = None,
        weights: Optional[CategoryWeightTable] = None,
        policy: Optional[CertificationPolicy] = None,
        validator: Optional[StructuralValidator] = None,
        tester: Optional[SampleExecutionTester] = None,
        history: Optional[AssessmentHistory] = None,
        store: Optional[FileHistoryStore] = None,
        max_concurrency: int = 4,
    ):
        """
        Initialize the engine.

        Args:
            provider: Execution provider; ignored when a tester is given
            thresholds: Initial threshold config (defaults apply)
            weights: Category weight table
            policy: Certification policy
            validator: Structural validator
            tester: Sample execution tester
            history: Assessment history (new, empty one by default)
            store: File store that mirrors the history (optional)
            max_concurrency: Maximum patterns assessed at once
        """
        if max_concurrency < 1:
            raise ConfigurationError(f"max_concurrency must be at least 1, got {max_concurrency}", "max_concurrency")

        self.thresholds = thresholds or QualityThresholdConfig()
        self.validator = validator or StructuralValidator()
        self.tester = tester or SampleExecutionTester(provider or SimulatedExecutionProvider())
        self.aggregator = QualityCertificationAggregator(
            weights=weights,
            policy=policy,
            max_execution_time_ms=self.tester.max_execution_time_ms,
        )
        self.history = history if history is not None else AssessmentHistory()
        self.store = store
        self.max_concurrency = max_concurrency
        self._pattern_locks: Dict[str, asyncio.Lock] = {}

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **overrides) -> "AssessmentEngine":
        """Build an engine wired from environment settings."""
        settings = settings or get_settings()

        if settings.EXECUTION_PROVIDER_URL:
            provider = HttpExecutionProvider(
                base_url=settings.EXECUTION_PROVIDER_URL,
                api_key=settings.EXECUTION_PROVIDER_API_KEY,
                timeout=settings.EXECUTION_PROVIDER_TIMEOUT,
            )
        else:
            provider = SimulatedExecutionProvider()

        components = {
            "validator": StructuralValidator(
                min_word_count=settings.MIN_WORD_COUNT,
                min_step_count=settings.MIN_STEP_COUNT,
            ),
            "tester": SampleExecutionTester(
                provider,
                min_output_tokens=settings.MIN_OUTPUT_TOKENS,
                case_pass_score=settings.CASE_PASS_SCORE,
                suite_pass_fraction=settings.SUITE_PASS_FRACTION,
                max_execution_time_ms=settings.MAX_EXECUTION_TIME_MS,
                sample_timeout_seconds=settings.SAMPLE_TIMEOUT_SECONDS,
            ),
            "store": (
                FileHistoryStore(settings.HISTORY_PATH, compress=settings.HISTORY_COMPRESS)
                if settings.HISTORY_PATH else None
            ),
            "max_concurrency": settings.MAX_CONCURRENCY,
        }
        components.update(overrides)
        return cls(**components)

    # ========================================================================
    # CONFIGURATION
    # ========================================================================

    def update_thresholds(self, config: QualityThresholdConfig):
        """Replace the threshold config used by every later assessment."""
        if not isinstance(config, QualityThresholdConfig):
            raise ConfigurationError(f"Expected QualityThresholdConfig, got {type(config).__name__}", "thresholds")
        logger.info(f"Thresholds updated: version {self.thresholds.version} -> {config.version}")
        self.thresholds = config

    # ========================================================================
    # ASSESSMENT
    # ========================================================================

    def _lock_for(self, pattern_id: str) -> asyncio.Lock:
        lock = self._pattern_locks.get(pattern_id)
        if lock is None:
            lock = self._pattern_locks[pattern_id] = asyncio.Lock()
        return lock

    async def assess_pattern(
        self,
        pattern: PatternDefinition,
        corpus: SampleCorpus,
        reported_checks: Optional[Dict[str, bool]] = None,
    ) -> AssessmentRecord:
        """
        Run the full chain for one pattern and append the record.

        The record is appended only after every stage, including the history
        file write, has completed.

        Raises:
            InputNotReadableError: If the pattern body is not text
        """
        validation = self.validator.validate(pattern)
        suite = await self.tester.run_suite(pattern, corpus, reported_checks)

        async with self._lock_for(pattern.pattern_id):
            prior = self.history.get(pattern.pattern_id)
            record = self.aggregator.assess(
                pattern.pattern_id,
                validation,
                suite,
                history=prior,
                thresholds=self.thresholds,
            )
            # Persist before appending so a failed save leaves no record behind
            if self.store is not None:
                await self.store.save_pattern(pattern.pattern_id, prior + (record,))
            self.history.append(record)

        return record

    async def assess_batch(self, items: Iterable[Union[BatchItem, Sequence]]) -> BatchResult:
        """
        Assess many patterns concurrently.

        Items may be BatchItem instances or (pattern, corpus) pairs. A failed
        item is reported with its error and left out of the summary.
        """
        batch = [i if isinstance(i, BatchItem) else BatchItem(*i) for i in items]
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def assess_with_semaphore(item: BatchItem) -> BatchItemResult:
            async with semaphore:
                try:
                    record = await self.assess_pattern(item.pattern, item.corpus, item.reported_checks)
                    return BatchItemResult(pattern_id=item.pattern.pattern_id, record=record)
                except Exception as e:
                    logger.warning(f"Assessment failed for {item.pattern.pattern_id}: {e}")
                    return BatchItemResult(pattern_id=item.pattern.pattern_id, error=str(e))

        logger.info(f"Starting batch of {len(batch)} patterns (concurrency {self.max_concurrency})")
        results = await asyncio.gather(*(assess_with_semaphore(item) for item in batch))
        return self._finish_batch(list(results))

    async def assess_files(self, pattern_paths: Iterable[Union[str, Path]]) -> BatchResult:
        """
        Load and assess pattern files.

        Each pattern's corpus is looked up beside it; a pattern without one
        is assessed against an empty corpus. Unreadable files become failed
        items.
        """
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def assess_path(path: Path) -> BatchItemResult:
            pattern_id = pattern_id_for_path(path)
            async with semaphore:
                try:
                    pattern = load_pattern(path)
                    corpus_path = find_corpus_for(path)
                    corpus = load_corpus(corpus_path) if corpus_path else SampleCorpus(pattern_id=pattern.pattern_id)
                    record = await self.assess_pattern(pattern, corpus)
                    return BatchItemResult(pattern_id=pattern.pattern_id, record=record)
                except InputNotReadableError as e:
                    logger.warning(f"Cannot read {path}: {e}")
                    return BatchItemResult(pattern_id=pattern_id, error=str(e))
                except Exception as e:
                    logger.warning(f"Assessment failed for {pattern_id}: {e}")
                    return BatchItemResult(pattern_id=pattern_id, error=str(e))

        paths = [Path(p) for p in pattern_paths]
        logger.info(f"Starting file batch of {len(paths)} patterns")
        results = await asyncio.gather(*(assess_path(p) for p in paths))
        return self._finish_batch(list(results))

    def _finish_batch(self, results: List[BatchItemResult]) -> BatchResult:
        batch = BatchResult(items=results)
        batch.summary = build_quality_summary(batch.records, failed_items=batch.failures)
        logger.info(f"Batch complete: {len(batch.records)} assessed, {len(batch.failures)} failed")
        return batch

    # ========================================================================
    # QUERIES
    # ========================================================================

    def patterns_needing_attention(self) -> List[str]:
        """Patterns whose latest record fails the threshold, has critical issues or is declining."""
        return [r.pattern_id for r in self.history.latest_records() if needs_attention(r)]

    def summary(self) -> QualitySummary:
        """Summary over the latest record of every assessed pattern."""
        return build_quality_summary(self.history.latest_records())

    async def load_history(self, mode: str = "merge") -> int:
        """Import the file store into the in-memory history."""
        if self.store is None:
            return 0
        return await self.store.load_into(self.history, mode=mode)

    async def close(self):
        await self.tester.provider.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
