#!/usr/bin/env python3
"""
Circuit breaker for severe analysis failures.

Two-state breaker: it opens once enough consecutive high/critical errors
have been seen and only closes again through close(), which operators call
directly or via forced recovery. There is no automatic half-open trial call.
"""

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class CircuitStatus(Enum):
    CLOSED = "closed"
    OPEN = "open"


@dataclass
class CircuitBreakerState:
    """Snapshot of the breaker."""
    status: CircuitStatus = CircuitStatus.CLOSED
    consecutive_severe_failures: int = 0
    last_failure_time: Optional[float] = None
    opened_at: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status.value,
            'consecutive_severe_failures': self.consecutive_severe_failures,
            'last_failure_time': self.last_failure_time,
            'opened_at': self.opened_at
        }


class CircuitBreaker:
    """Trips open after repeated severe failures."""

    def __init__(self, threshold: int = 5, clock: Callable[[], float] = time.time):
        """
        Initialize circuit breaker.

        Args:
            threshold: Consecutive severe failures that open the breaker
            clock: Source of the current time in epoch seconds
        """
        if threshold < 1:
            raise ValueError("Circuit breaker threshold must be at least 1")
        self.threshold = threshold
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitBreakerState()

    def record_failure(self, severity: str) -> bool:
        """
        Record a classified failure.

        Returns:
            True if this failure opened the breaker
        """
        if severity not in ('high', 'critical'):
            return False

        with self._lock:
            self._state.consecutive_severe_failures += 1
            self._state.last_failure_time = self._clock()

            if (self._state.status is CircuitStatus.CLOSED
                    and self._state.consecutive_severe_failures >= self.threshold):
                self._state.status = CircuitStatus.OPEN
                self._state.opened_at = self._state.last_failure_time
                logger.warning(
                    f"Circuit breaker opened after {self._state.consecutive_severe_failures} severe failures"
                )
                return True
        return False

    def record_success(self) -> None:
        """A success while closed breaks the run of consecutive failures."""
        with self._lock:
            if self._state.status is CircuitStatus.CLOSED:
                self._state.consecutive_severe_failures = 0

    def is_open(self) -> bool:
        return self._state.status is CircuitStatus.OPEN

    def close(self) -> None:
        """Manually close the breaker and reset its counters."""
        with self._lock:
            was_open = self._state.status is CircuitStatus.OPEN
            self._state = CircuitBreakerState()
        if was_open:
            logger.info("Circuit breaker manually closed")

    def get_state(self) -> CircuitBreakerState:
        with self._lock:
            return CircuitBreakerState(
                status=self._state.status,
                consecutive_severe_failures=self._state.consecutive_severe_failures,
                last_failure_time=self._state.last_failure_time,
                opened_at=self._state.opened_at
            )
