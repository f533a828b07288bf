#!/usr/bin/env python3
"""
Error classification.

Maps any raised error onto the taxonomy {type, severity, resolution} with an
ordered table of keyword rules, and exposes the outcome as a tagged
ErrorKind so callers branch on kind instead of exception type.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

ERROR_TYPES = (
    'validation_error', 'context_error', 'performance_error',
    'analysis_failure', 'recovery_error', 'unknown'
)
RESOLUTIONS = ('retry', 'fallback', 'skip', 'manual')

RETRYABLE_KEYWORDS = (
    'timeout', 'network', 'connection', 'service unavailable',
    'temporarily unavailable', 'temporary', 'retry'
)
NON_RETRYABLE_KEYWORDS = (
    'validation failed', 'invalid input', 'permission denied',
    'not found', 'already exists'
)
FALLBACK_KEYWORDS = (
    'timeout', 'network', 'connection', 'service unavailable',
    'analysis failed', 'validation failed'
)


class ErrorKind(Enum):
    """How a classified error should be handled."""
    RETRYABLE = "retryable"
    FALLBACK = "fallback"
    VALIDATION = "validation"
    FATAL = "fatal"


@dataclass(frozen=True)
class ClassificationRule:
    """Keyword rule mapping a message onto the taxonomy."""
    error_type: str
    keywords: Tuple[str, ...]
    severity: str
    resolution: str

    def matches(self, message: str) -> bool:
        return any(keyword in message for keyword in self.keywords)


# Evaluated in order; first match wins
CLASSIFICATION_RULES = (
    ClassificationRule('validation_error', ('validation', 'invalid'), 'high', 'skip'),
    ClassificationRule('context_error', ('context', 'profile'), 'medium', 'retry'),
    ClassificationRule('performance_error', ('performance', 'timeout'), 'medium', 'retry'),
    ClassificationRule('analysis_failure', ('analysis', 'insight'), 'high', 'fallback'),
    ClassificationRule('recovery_error', ('recovery', 'reset', 'init failed'), 'critical', 'manual'),
)
DEFAULT_CLASSIFICATION = ('unknown', 'medium', 'manual')


@dataclass(frozen=True)
class ErrorClassification:
    """Result of classifying one error."""
    type: str
    severity: str
    resolution: str

    @property
    def kind(self) -> ErrorKind:
        if self.type == 'validation_error':
            return ErrorKind.VALIDATION
        if self.resolution == 'retry':
            return ErrorKind.RETRYABLE
        if self.resolution == 'fallback':
            return ErrorKind.FALLBACK
        return ErrorKind.FATAL

    @property
    def is_severe(self) -> bool:
        return self.severity in ('high', 'critical')


def error_message(error: BaseException) -> str:
    """Lower-cased message used for keyword matching."""
    message = getattr(error, 'message', None) or str(error) or error.__class__.__name__
    return message.lower()


class ErrorClassifier:
    """Classifies errors and answers retry / fallback questions about them."""

    def __init__(self, rules: Tuple[ClassificationRule, ...] = CLASSIFICATION_RULES):
        self.rules = rules

    def classify(self, error: BaseException, context: Optional[Dict[str, Any]] = None) -> ErrorClassification:
        """
        Classify an error by its message and context.

        Severity escalates to critical when the context flags it or the
        message mentions "critical", and drops to low on "warning"/"minor".
        """
        message = error_message(error)
        error_type, severity, resolution = DEFAULT_CLASSIFICATION

        for rule in self.rules:
            if rule.matches(message):
                error_type, severity, resolution = rule.error_type, rule.severity, rule.resolution
                break

        if (context or {}).get('critical') or 'critical' in message:
            severity = 'critical'
        elif 'warning' in message or 'minor' in message:
            severity = 'low'

        classification = ErrorClassification(error_type, severity, resolution)
        logger.debug(f"Classified error as {classification}: {message[:120]}")
        return classification

    @staticmethod
    def is_retryable(error: BaseException) -> bool:
        """Allowlist match with no denylist match; the denylist wins."""
        message = error_message(error)
        if any(keyword in message for keyword in NON_RETRYABLE_KEYWORDS):
            return False
        return any(keyword in message for keyword in RETRYABLE_KEYWORDS)

    @staticmethod
    def suggests_fallback(error: BaseException) -> bool:
        message = error_message(error)
        return any(keyword in message for keyword in FALLBACK_KEYWORDS)
