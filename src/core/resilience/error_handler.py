#!/usr/bin/env python3
"""
Central error handling for the analysis core.

Every failure the core sees is classified, appended to a bounded error log,
counted per (type, component) and fed to the circuit breaker. The handler
also answers "should we fall back?" and builds the minimal safe result used
when the fallback path is taken.
"""

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .circuit_breaker import CircuitBreaker
from .classifier import ErrorClassification, ErrorClassifier
from ..models.analysis import AnalysisResult, PerformanceMetrics

logger = logging.getLogger(__name__)

MAX_ERROR_LOG = 1000
TRIMMED_ERROR_LOG = 500
ERROR_PATTERN_THRESHOLD = 3
MAX_ERRORS_PER_MINUTE = 5
FALLBACK_DOMAINS = ('energy', 'soreness', 'focus', 'duration', 'equipment')
FALLBACK_REASONING = "Minimal fallback analysis generated due to error conditions"


@dataclass
class ErrorRecord:
    """One classified error."""
    id: str
    timestamp: float
    type: str
    severity: str
    component: str
    resolution: str
    message: str
    retry_count: int = 0
    context: Dict[str, Any] = field(default_factory=dict)
    sequence: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'timestamp': datetime.fromtimestamp(self.timestamp, tz=timezone.utc).isoformat(),
            'type': self.type,
            'severity': self.severity,
            'component': self.component,
            'resolution': self.resolution,
            'message': self.message,
            'retry_count': self.retry_count
        }


class ErrorHandler:
    """Classifies, records and reacts to errors."""

    def __init__(self,
                 classifier: Optional[ErrorClassifier] = None,
                 circuit_breaker: Optional[CircuitBreaker] = None,
                 fallback_enabled: bool = True,
                 enable_circuit_breaker: bool = True,
                 clock: Callable[[], float] = time.time):
        """
        Initialize error handler.

        Args:
            classifier: Error classifier (default rules if None)
            circuit_breaker: Breaker fed with severe errors (threshold 5 if None)
            fallback_enabled: Whether the fallback path may be used at all
            enable_circuit_breaker: Feed errors to the breaker
            clock: Source of the current time in epoch seconds
        """
        self.classifier = classifier or ErrorClassifier()
        self.circuit_breaker = circuit_breaker or CircuitBreaker(clock=clock)
        self.fallback_enabled = fallback_enabled
        self.enable_circuit_breaker = enable_circuit_breaker
        self._clock = clock
        self._lock = threading.RLock()
        self._error_log: List[ErrorRecord] = []
        self._error_counts: Dict[str, int] = {}
        self._sequence = 0
        # Errors at or below this sequence no longer count toward health
        self._acknowledged_sequence = 0

    def handle_error(self,
                     error: BaseException,
                     component: str,
                     context: Optional[Dict[str, Any]] = None,
                     classification: Optional[ErrorClassification] = None) -> ErrorRecord:
        """
        Classify and record an error.

        Args:
            error: The raised error
            component: Component or operation the error came from
            context: Extra context (a truthy 'critical' flag escalates severity)
            classification: Pre-computed classification overriding the rules

        Returns:
            The recorded ErrorRecord
        """
        context = dict(context or {})
        classification = classification or self.classifier.classify(error, context)

        with self._lock:
            self._sequence += 1
            record = ErrorRecord(
                id=f"err_{uuid.uuid4().hex[:12]}",
                timestamp=self._clock(),
                type=classification.type,
                severity=classification.severity,
                component=component,
                resolution=classification.resolution,
                message=str(error),
                retry_count=int(context.get('attempt', 0)),
                context=context,
                sequence=self._sequence
            )
            self._error_log.append(record)
            if len(self._error_log) > MAX_ERROR_LOG:
                self._error_log = self._error_log[-TRIMMED_ERROR_LOG:]

            pattern_key = f"{record.type}_{record.component}"
            self._error_counts[pattern_key] = self._error_counts.get(pattern_key, 0) + 1
            pattern_count = self._error_counts[pattern_key]

        logger.error(
            f"Error in {component}: {record.message} "
            f"(type={record.type}, severity={record.severity}, resolution={record.resolution})"
        )
        if pattern_count >= ERROR_PATTERN_THRESHOLD:
            logger.warning(f"Error pattern detected: {record.type} in {component} ({pattern_count} occurrences)")

        if self.enable_circuit_breaker:
            self.circuit_breaker.record_failure(record.severity)

        return record

    def handle_validation_error(self, error: BaseException, component: str,
                                expected: Any = None, actual: Any = None) -> ErrorRecord:
        classification = ErrorClassification('validation_error', 'high', 'skip')
        return self.handle_error(error, component, {'expected': expected, 'actual': actual}, classification)

    def handle_context_error(self, error: BaseException, context: Optional[Dict[str, Any]] = None) -> ErrorRecord:
        classification = ErrorClassification('context_error', 'medium', 'retry')
        return self.handle_error(error, 'context', context, classification)

    def handle_performance_error(self, error: BaseException, component: str,
                                 metrics: Optional[Dict[str, Any]] = None) -> ErrorRecord:
        classification = ErrorClassification('performance_error', 'medium', 'retry')
        return self.handle_error(error, component, {'metrics': metrics}, classification)

    def handle_recovery_error(self, error: BaseException, service_name: str,
                              recovery_method: Optional[str]) -> ErrorRecord:
        classification = ErrorClassification('recovery_error', 'critical', 'manual')
        context = {'service_name': service_name, 'recovery_method': recovery_method}
        return self.handle_error(error, 'recovery', context, classification)

    def record_success(self) -> None:
        """Report a successful operation to the circuit breaker."""
        self.circuit_breaker.record_success()

    def is_circuit_breaker_open(self) -> bool:
        return self.circuit_breaker.is_open()

    def close_circuit_breaker(self) -> None:
        """Close the breaker; errors recorded so far stop counting toward health."""
        with self._lock:
            self.circuit_breaker.close()
            self._error_counts.clear()
            self._acknowledged_sequence = self._sequence

    def should_fallback(self, error: BaseException) -> bool:
        """True when the breaker is open or the error names a fallback condition."""
        if not self.fallback_enabled:
            return False
        if self.circuit_breaker.is_open():
            return True
        return self.classifier.suggests_fallback(error)

    def is_healthy(self) -> bool:
        """
        Health from the breaker and unacknowledged errors.

        Unhealthy when the breaker is open, more than five errors per minute
        over the last hour, any critical error, or a repeating error pattern.
        """
        if self.circuit_breaker.is_open():
            return False

        with self._lock:
            active = [e for e in self._error_log if e.sequence > self._acknowledged_sequence]
            hour_ago = self._clock() - 3600
            recent = [e for e in active if e.timestamp > hour_ago]

            if len(recent) / 60 > MAX_ERRORS_PER_MINUTE:
                return False
            if any(e.severity == 'critical' for e in active):
                return False
            return not any(count >= ERROR_PATTERN_THRESHOLD for count in self._error_counts.values())

    def get_error_stats(self) -> Dict[str, Any]:
        with self._lock:
            hour_ago = self._clock() - 3600
            recent = [e for e in self._error_log if e.timestamp > hour_ago]
            by_type: Dict[str, int] = {}
            by_severity: Dict[str, int] = {}
            by_component: Dict[str, int] = {}

            for record in self._error_log:
                by_type[record.type] = by_type.get(record.type, 0) + 1
                by_severity[record.severity] = by_severity.get(record.severity, 0) + 1
                by_component[record.component] = by_component.get(record.component, 0) + 1

            return {
                'total_errors': len(self._error_log),
                'errors_by_type': by_type,
                'errors_by_severity': by_severity,
                'errors_by_component': by_component,
                'recent_errors': [e.to_dict() for e in recent],
                'error_rate': len(recent) / 60,  # errors per minute
                'circuit_breaker': self.circuit_breaker.get_state().to_dict()
            }

    def get_recommendations(self) -> List[str]:
        stats = self.get_error_stats()
        by_type = stats['errors_by_type']
        recommendations = []

        if stats['error_rate'] > 3:
            recommendations.append("High error rate detected - investigate failing analyzers")
        if by_type.get('validation_error', 0) > 5:
            recommendations.append("Multiple validation errors - review selection and context inputs")
        if by_type.get('performance_error', 0) > 3:
            recommendations.append("Performance errors detected - review analyzer timeouts and resources")
        if by_type.get('context_error', 0) > 2:
            recommendations.append("Context errors detected - review context initialization order")
        if by_type.get('recovery_error', 0) > 1:
            recommendations.append("Recovery errors detected - review service recovery mechanisms")
        if self.circuit_breaker.is_open():
            recommendations.append("Circuit breaker is open - analysis is running in fallback mode")

        return recommendations

    def get_last_error(self) -> Optional[ErrorRecord]:
        with self._lock:
            return self._error_log[-1] if self._error_log else None

    def get_error_log(self) -> List[ErrorRecord]:
        with self._lock:
            return list(self._error_log)

    def clear_old_errors(self, max_age_seconds: float = 86400) -> int:
        """Drop errors older than max_age_seconds; returns how many were removed."""
        with self._lock:
            cutoff = self._clock() - max_age_seconds
            before = len(self._error_log)
            self._error_log = [e for e in self._error_log if e.timestamp > cutoff]
            return before - len(self._error_log)

    def reset(self) -> None:
        with self._lock:
            self._error_log = []
            self._error_counts.clear()
            self.circuit_breaker.close()
            self._acknowledged_sequence = self._sequence
        logger.info("Error handler reset")

    def create_fallback_result(self, reason: str = "") -> AnalysisResult:
        """Minimal safe analysis used when the normal path cannot complete."""
        reasoning = FALLBACK_REASONING
        if reason:
            reasoning = f"{reasoning}: {reason}"
        logger.info("Generating minimal fallback analysis")

        return AnalysisResult(
            id=f"fallback_{uuid.uuid4().hex[:12]}",
            timestamp=datetime.now(timezone.utc),
            insights={domain: [] for domain in FALLBACK_DOMAINS},
            conflicts=[],
            synergies=[],
            recommendations=[],
            confidence=0.1,
            reasoning=reasoning,
            performance_metrics=PerformanceMetrics(),
            is_fallback=True
        )
