"""
Remote Execution Provider

Runs samples through a remote pattern-execution service over HTTP.

Request:  POST /execute {"pattern_id": ..., "pattern": <markdown>, "input": ...}
Response: {"output": <markdown>, "sections": [...], "execution_time_ms": ...}
"sections" and "execution_time_ms" are optional; missing sections are read
from the output headers.
"""

import asyncio
import math
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from ..models import PatternDefinition
from .provider import ExecutionOutput, ExecutionProvider, SampleExecutionError

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    exponential_base: float = 2.0
    retryable_status_codes: tuple = (429, 500, 502, 503, 504)


class HttpExecutionProvider(ExecutionProvider):
    """
    Async client for a remote execution service.

    Usage:
        provider = HttpExecutionProvider(base_url="https://exec.example.com", api_key="...")

        output = await provider.execute(pattern, "sample text")

        await provider.close()
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        retry_config: Optional[RetryConfig] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the provider.

        Args:
            base_url: Service root URL
            api_key: Bearer token (optional)
            retry_config: Retry configuration (optional)
            timeout: Request timeout in seconds
            transport: Custom httpx transport (optional)
        """
        self.retry_config = retry_config or RetryConfig()

        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )
        self._closed = False

    async def execute(self, pattern: PatternDefinition, sample_input: str) -> ExecutionOutput:
        if self._closed:
            raise SampleExecutionError("Provider has been closed", pattern_id=pattern.pattern_id)

        payload = {
            "pattern_id": pattern.pattern_id,
            "pattern": pattern.body,
            "input": sample_input,
        }
        data = await self._request_with_retry("/execute", payload, pattern.pattern_id)
        if not isinstance(data, dict):
            raise SampleExecutionError(
                f"Response is not a JSON object: {type(data).__name__}",
                pattern_id=pattern.pattern_id,
            )

        body = data.get("output")
        if not isinstance(body, str):
            raise SampleExecutionError(
                "Response has no output text",
                pattern_id=pattern.pattern_id,
            )

        reported_time = data.get("execution_time_ms")
        if reported_time is not None:
            if (
                isinstance(reported_time, bool)
                or not isinstance(reported_time, (int, float))
                or not math.isfinite(reported_time)
                or reported_time < 0
            ):
                raise SampleExecutionError(
                    f"Response execution_time_ms is not a valid duration: {reported_time!r}",
                    pattern_id=pattern.pattern_id,
                )
            reported_time = float(reported_time)

        sections = data.get("sections")
        if sections is None:
            return ExecutionOutput.from_body(body, execution_time_ms=reported_time)
        if not isinstance(sections, list):
            raise SampleExecutionError(
                "Response sections must be a list of names",
                pattern_id=pattern.pattern_id,
            )
        return ExecutionOutput(sections=tuple(str(s) for s in sections), body=body, execution_time_ms=reported_time)

    async def _request_with_retry(self, endpoint: str, payload: Dict[str, Any], pattern_id: str) -> Any:
        """Make request with retry logic."""
        config = self.retry_config
        last_exception = None

        for attempt in range(config.max_retries + 1):
            try:
                response = await self._client.post(endpoint, json=payload)

                if response.status_code >= 400:
                    if response.status_code in config.retryable_status_codes:
                        last_exception = SampleExecutionError(
                            f"Execution service error: {response.status_code}",
                            pattern_id=pattern_id,
                            status_code=response.status_code,
                        )
                        # Will retry
                    else:
                        raise SampleExecutionError(
                            f"Execution service rejected request: {response.status_code}",
                            pattern_id=pattern_id,
                            status_code=response.status_code,
                        )
                else:
                    try:
                        return response.json()
                    except ValueError as e:
                        raise SampleExecutionError(
                            f"Execution service returned invalid JSON: {e}",
                            pattern_id=pattern_id,
                            status_code=response.status_code,
                        ) from e

            except httpx.TimeoutException as e:
                last_exception = SampleExecutionError(f"Request timed out: {e}", pattern_id=pattern_id)
            except httpx.RequestError as e:
                last_exception = SampleExecutionError(f"Request failed: {e}", pattern_id=pattern_id)

            if attempt < config.max_retries:
                delay = min(
                    config.initial_delay * (config.exponential_base**attempt),
                    config.max_delay,
                )
                logger.warning(
                    f"Execution request failed, retrying in {delay:.1f}s "
                    f"(attempt {attempt + 1}/{config.max_retries + 1})"
                )
                await asyncio.sleep(delay)

        raise last_exception

    async def close(self):
        """Close the HTTP client."""
        if not self._closed:
            await self._client.aclose()
            self._closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
