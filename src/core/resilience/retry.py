#!/usr/bin/env python3
"""
Bounded exponential-backoff retry for async operations.

execute_with_retry() re-raises the last error like a plain call would;
run() wraps the same loop and returns a RetryOutcome so callers can branch
on the error kind without exception-driven control flow.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from .classifier import ErrorClassification, ErrorClassifier, ErrorKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry limits and backoff curve."""
    max_retries: int = 3
    base_delay_ms: float = 100
    max_delay_ms: float = 5000
    backoff_multiplier: float = 2.0

    def delay_ms(self, attempt: int) -> float:
        """Delay before the retry that follows a failed attempt (0-based)."""
        return min(self.base_delay_ms * (self.backoff_multiplier ** attempt), self.max_delay_ms)


@dataclass
class RetryOutcome:
    """Result of RetryExecutor.run()."""
    succeeded: bool
    attempts: int
    value: Any = None
    error: Optional[BaseException] = None
    classification: Optional[ErrorClassification] = None

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.classification.kind if self.classification else None


class RetryExecutor:
    """Re-invokes failing async operations while their errors look transient."""

    def __init__(self,
                 policy: Optional[RetryPolicy] = None,
                 classifier: Optional[ErrorClassifier] = None,
                 error_handler=None,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        """
        Initialize retry executor.

        Args:
            policy: Retry limits (3 retries, 100ms base, 5s cap, x2 if None)
            classifier: Classifier used by run() when no error handler is given
            error_handler: Optional ErrorHandler that records final failures
            sleep: Coroutine function taking seconds, awaited between attempts
        """
        self.policy = policy or RetryPolicy()
        self.error_handler = error_handler
        if classifier is None and error_handler is not None:
            classifier = error_handler.classifier
        self.classifier = classifier or ErrorClassifier()
        self._sleep = sleep
        self._stats = {
            'operations': 0,
            'succeeded': 0,
            'failed': 0,
            'retries': 0
        }

    def should_retry(self, error: BaseException, attempt: int) -> bool:
        """True while attempts remain and the error is retryable."""
        if attempt >= self.policy.max_retries:
            return False
        return self.classifier.is_retryable(error)

    async def execute_with_retry(self,
                                 fn: Callable[[], Awaitable[Any]],
                                 operation: str = "operation") -> Any:
        """
        Await fn(), retrying transient failures with exponential backoff.

        Raises:
            The last error once retries are exhausted or the error is not retryable
        """
        outcome = await self._attempt(fn, operation)
        if not outcome.succeeded:
            raise outcome.error
        return outcome.value

    async def run(self,
                  fn: Callable[[], Awaitable[Any]],
                  operation: str = "operation",
                  context: Optional[Dict[str, Any]] = None) -> RetryOutcome:
        """Like execute_with_retry() but reports the outcome instead of raising."""
        outcome = await self._attempt(fn, operation)

        if outcome.succeeded:
            if self.error_handler is not None:
                self.error_handler.record_success()
            return outcome

        context = dict(context or {})
        context.setdefault('attempt', outcome.attempts)
        if self.error_handler is not None:
            record = self.error_handler.handle_error(outcome.error, operation, context)
            outcome.classification = ErrorClassification(record.type, record.severity, record.resolution)
        else:
            outcome.classification = self.classifier.classify(outcome.error, context)
        return outcome

    async def _attempt(self, fn: Callable[[], Awaitable[Any]], operation: str) -> RetryOutcome:
        self._stats['operations'] += 1
        attempt = 0

        while True:
            if attempt > 0:
                logger.info(f"Retrying {operation} (attempt {attempt + 1}/{self.policy.max_retries + 1})")
            try:
                value = await fn()
            except Exception as e:
                if not self.should_retry(e, attempt):
                    self._stats['failed'] += 1
                    logger.warning(f"{operation} failed after {attempt + 1} attempt(s): {e}")
                    return RetryOutcome(succeeded=False, attempts=attempt + 1, error=e)

                delay_ms = self.policy.delay_ms(attempt)
                logger.info(f"Waiting {delay_ms:.0f}ms before retrying {operation}: {e}")
                self._stats['retries'] += 1
                await self._sleep(delay_ms / 1000.0)
                attempt += 1
                continue

            self._stats['succeeded'] += 1
            return RetryOutcome(succeeded=True, attempts=attempt + 1, value=value)

    def get_retry_stats(self) -> Dict[str, Any]:
        return dict(self._stats)
