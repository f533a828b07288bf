#!/usr/bin/env python3
"""
Resilience layer: error classification, retry, circuit breaking,
collaborator recovery and health monitoring.
"""

from .capabilities import (
    Resettable, Initializable, Clearable, Disposable,
    HealthStatusReporter, HealthFlagReporter, HealthCheckable,
    RECOVERY_CAPABILITIES, call_capability
)
from .classifier import ErrorClassifier, ErrorClassification, ErrorKind
from .circuit_breaker import CircuitBreaker, CircuitBreakerState, CircuitStatus
from .error_handler import ErrorHandler, ErrorRecord
from .retry import RetryExecutor, RetryPolicy, RetryOutcome
from .recovery import RecoveryManager, RecoveryAttempt, RecoveryReport
from .health import HealthMonitor, ServiceHealth, aggregate_status

__all__ = [
    'Resettable', 'Initializable', 'Clearable', 'Disposable',
    'HealthStatusReporter', 'HealthFlagReporter', 'HealthCheckable',
    'RECOVERY_CAPABILITIES', 'call_capability',
    'ErrorClassifier', 'ErrorClassification', 'ErrorKind',
    'CircuitBreaker', 'CircuitBreakerState', 'CircuitStatus',
    'ErrorHandler', 'ErrorRecord',
    'RetryExecutor', 'RetryPolicy', 'RetryOutcome',
    'RecoveryManager', 'RecoveryAttempt', 'RecoveryReport',
    'HealthMonitor', 'ServiceHealth', 'aggregate_status'
]
