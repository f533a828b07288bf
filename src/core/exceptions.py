#!/usr/bin/env python3
"""
Standardized exception hierarchy for the analysis core.

Messages are worded so the keyword classifier in core.resilience.classifier
maps each exception onto the right taxonomy entry (context errors mention
"context", validation errors mention "invalid" or "validation", and so on).
"""

from typing import Optional, Dict, Any


class AnalysisCoreError(Exception):
    """Base exception for all analysis core errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            context: Additional error context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            'error_type': self.__class__.__name__,
            'error_code': self.error_code,
            'message': self.message,
            'context': self.context
        }


# Context-related exceptions
class ContextError(AnalysisCoreError):
    """Base exception for analysis context errors."""
    pass


class ContextNotSetError(ContextError):
    """Analysis was requested before a context was set."""

    def __init__(self, operation: str = "analyze"):
        message = f"Analysis context not set; call set_context() before {operation}()"
        super().__init__(message, context={'operation': operation})


class ContextValidationError(ContextError):
    """Context is missing a required field or carries an invalid value."""

    def __init__(self, field: str, issue: str = "missing required field"):
        message = f"Invalid context: {issue} '{field}'"
        context = {
            'field': field,
            'issue': issue
        }
        super().__init__(message, context=context)
        self.field = field


# Validation-related exceptions
class ValidationError(AnalysisCoreError):
    """Data validation failed."""

    def __init__(self, field: str, value: Any, expected: str):
        message = f"Validation failed for {field}: expected {expected}, got {type(value).__name__}"
        context = {
            'field': field,
            'value': str(value),
            'expected': expected,
            'actual_type': type(value).__name__
        }
        super().__init__(message, context=context)


class InvalidFeedbackError(ValidationError):
    """Feedback value is not one of the accepted labels."""

    def __init__(self, feedback: Any, allowed: tuple):
        super().__init__('feedback', feedback, f"one of {', '.join(allowed)}")
        self.message = f"Invalid feedback value {feedback!r}; expected one of {', '.join(allowed)}"
        self.args = (self.message,)


class InvalidInteractionError(ValidationError):
    """Interaction record is missing a required field or carries an unreadable one."""

    def __init__(self, field: str, value: Any = None, issue: str = "missing or empty"):
        super().__init__(f"interaction.{field}", value, "a non-empty value")
        self.message = f"Invalid interaction: {issue} '{field}'"
        self.args = (self.message,)


# Analysis-related exceptions
class AnalysisError(AnalysisCoreError):
    """Base exception for analysis errors."""
    pass


class CollaboratorError(AnalysisError):
    """A domain analyzer raised while producing insights."""

    def __init__(self, service_name: str, operation: str, original_error: Exception):
        message = f"{service_name} {operation} failed: {original_error}"
        context = {
            'service_name': service_name,
            'operation': operation,
            'original_error': str(original_error)
        }
        super().__init__(message, context=context)
        self.original_error = original_error


# Recovery-related exceptions
class RecoveryError(AnalysisCoreError):
    """Service recovery failed and needs operator attention."""

    def __init__(self, service_name: str, method: Optional[str], original_error: Optional[Exception] = None):
        message = f"Recovery of {service_name} via {method or 'no method'} failed"
        if original_error is not None:
            message += f": {original_error}"
        context = {
            'service_name': service_name,
            'method': method,
            'original_error': str(original_error) if original_error else None
        }
        super().__init__(message, context=context)


# External strategy exceptions
class StrategyError(AnalysisCoreError):
    """Base exception for external generative-AI strategy errors."""
    pass


class StrategyNotConfiguredError(StrategyError):
    """An external strategy call was made without a configured strategy."""

    def __init__(self, operation: str):
        message = f"External AI strategy not configured (operation: {operation})"
        super().__init__(message, context={'operation': operation})


class StrategyResponseError(StrategyError):
    """External strategy returned an unusable response."""

    def __init__(self, provider: str, operation: str, original_error: Exception):
        message = f"{provider} returned an invalid response for {operation}"
        context = {
            'provider': provider,
            'operation': operation,
            'original_error': str(original_error)
        }
        super().__init__(message, context=context)
