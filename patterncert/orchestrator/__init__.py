"""
Assessment Orchestration

Runs the validate -> run_suite -> assess chain for single patterns and
concurrent batches.
"""

from .engine import AssessmentEngine, BatchItem, BatchItemResult, BatchResult

__all__ = [
    "AssessmentEngine",
    "BatchItem",
    "BatchItemResult",
    "BatchResult",
]
