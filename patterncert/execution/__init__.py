"""
Sample Execution

Providers that run patterns against sample inputs, and the tester that
scores the produced output.
"""

from .provider import (
    ExecutionOutput,
    ExecutionProvider,
    SampleExecutionError,
    SimulatedExecutionProvider,
    extract_sections,
)
from .http_provider import HttpExecutionProvider, RetryConfig
from .tester import SampleExecutionTester

__all__ = [
    # Providers
    "ExecutionOutput",
    "ExecutionProvider",
    "SampleExecutionError",
    "SimulatedExecutionProvider",
    "HttpExecutionProvider",
    "RetryConfig",
    "extract_sections",
    # Tester
    "SampleExecutionTester",
]
