import asyncio

import pytest

from core.exceptions import CollaboratorError, ContextNotSetError, ValidationError
from core.resilience import (
    CircuitBreaker, ErrorClassifier, ErrorHandler, ErrorKind, RetryExecutor, RetryPolicy
)
from core.resilience.error_handler import TRIMMED_ERROR_LOG


class CallCounter:
    """Async operation failing with `message` for the first `failures` calls."""

    def __init__(self, message: str, failures: int) -> None:
        self.message = message
        self.failures = failures
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError(self.message)
        return "done"


@pytest.mark.parametrize("message,expected_type,expected_kind", [
    ("Validation failed for energy", "validation_error", ErrorKind.VALIDATION),
    ("Invalid context: missing required field 'user_profile'", "validation_error", ErrorKind.VALIDATION),
    ("user profile could not be loaded", "context_error", ErrorKind.RETRYABLE),
    ("request timeout after 30s", "performance_error", ErrorKind.RETRYABLE),
    ("energy analysis failed: boom", "analysis_failure", ErrorKind.FALLBACK),
    ("service recovery failed", "recovery_error", ErrorKind.FATAL),
    ("something odd happened", "unknown", ErrorKind.FATAL),
])
def test_classifier_maps_messages_to_taxonomy(message, expected_type, expected_kind):
    classification = ErrorClassifier().classify(RuntimeError(message))

    assert classification.type == expected_type
    assert classification.kind is expected_kind


def test_classifier_severity_adjustments():
    classifier = ErrorClassifier()

    assert classifier.classify(RuntimeError("critical analysis crash")).severity == "critical"
    assert classifier.classify(RuntimeError("analysis failed"), {"critical": True}).severity == "critical"
    assert classifier.classify(RuntimeError("minor analysis hiccup")).severity == "low"


def test_classifier_uses_exception_messages():
    classifier = ErrorClassifier()

    assert classifier.classify(ContextNotSetError()).type == "context_error"
    assert classifier.classify(ValidationError("energy", "x", "a number")).type == "validation_error"
    assert classifier.classify(CollaboratorError("focus", "analysis", RuntimeError("x"))).type == "analysis_failure"


def test_retryable_denylist_wins():
    assert ErrorClassifier.is_retryable(RuntimeError("temporary network glitch"))
    assert not ErrorClassifier.is_retryable(RuntimeError("validation failed after timeout"))
    assert not ErrorClassifier.is_retryable(RuntimeError("boom"))


def test_retry_recovers_from_transient_failures(sleeper):
    executor = RetryExecutor(sleep=sleeper)
    operation = CallCounter("temporary failure", failures=2)

    result = asyncio.run(executor.execute_with_retry(operation, "fetch"))

    assert result == "done"
    assert operation.calls == 3
    assert sleeper.delays == [0.1, 0.2]
    assert executor.get_retry_stats()["retries"] == 2


def test_retry_gives_up_after_max_retries(sleeper):
    executor = RetryExecutor(policy=RetryPolicy(max_retries=2), sleep=sleeper)
    operation = CallCounter("network unreachable", failures=100)

    with pytest.raises(RuntimeError, match="network unreachable"):
        asyncio.run(executor.execute_with_retry(operation))

    assert operation.calls == 3
    assert len(sleeper.delays) == 2


def test_retry_does_not_repeat_non_retryable_errors(sleeper):
    executor = RetryExecutor(sleep=sleeper)
    operation = CallCounter("Validation failed", failures=100)

    with pytest.raises(RuntimeError):
        asyncio.run(executor.execute_with_retry(operation))

    assert operation.calls == 1
    assert sleeper.delays == []


def test_backoff_delay_is_capped():
    policy = RetryPolicy(base_delay_ms=100, max_delay_ms=250, backoff_multiplier=2.0)

    assert [policy.delay_ms(attempt) for attempt in range(4)] == [100, 200, 250, 250]


def test_run_reports_outcome_with_kind(sleeper, clock):
    handler = ErrorHandler(clock=clock)
    executor = RetryExecutor(policy=RetryPolicy(max_retries=1), error_handler=handler, sleep=sleeper)

    outcome = asyncio.run(executor.run(CallCounter("network timeout", failures=100), "analysis"))

    assert not outcome.succeeded
    assert outcome.attempts == 2
    assert outcome.kind is ErrorKind.RETRYABLE
    assert handler.get_last_error().retry_count == 2

    success = asyncio.run(executor.run(CallCounter("", failures=0), "analysis"))
    assert success.succeeded
    assert success.value == "done"
    assert success.kind is None


def test_circuit_breaker_counts_only_severe_failures(clock):
    breaker = CircuitBreaker(threshold=3, clock=clock)

    for _ in range(5):
        breaker.record_failure("medium")
    assert not breaker.is_open()

    breaker.record_failure("high")
    breaker.record_failure("critical")
    assert breaker.record_failure("high") is True
    assert breaker.is_open()
    assert breaker.get_state().opened_at == clock()


def test_circuit_breaker_success_resets_run_and_close_reopens(clock):
    breaker = CircuitBreaker(threshold=2, clock=clock)

    breaker.record_failure("high")
    breaker.record_success()
    breaker.record_failure("high")
    assert not breaker.is_open()

    breaker.record_failure("high")
    assert breaker.is_open()

    breaker.record_success()
    assert breaker.is_open()

    breaker.close()
    assert not breaker.is_open()
    assert breaker.get_state().consecutive_severe_failures == 0


def test_circuit_breaker_rejects_invalid_threshold():
    with pytest.raises(ValueError):
        CircuitBreaker(threshold=0)


def test_error_handler_records_and_classifies(clock):
    handler = ErrorHandler(clock=clock)

    record = handler.handle_error(RuntimeError("energy analysis failed: boom"), "analysis", {"attempt": 1})

    assert record.type == "analysis_failure"
    assert record.severity == "high"
    assert record.resolution == "fallback"
    stats = handler.get_error_stats()
    assert stats["total_errors"] == 1
    assert stats["errors_by_component"] == {"analysis": 1}
    assert stats["circuit_breaker"]["consecutive_severe_failures"] == 1


def test_error_handler_opens_breaker_and_forces_fallback(clock):
    handler = ErrorHandler(circuit_breaker=CircuitBreaker(threshold=2, clock=clock), clock=clock)

    handler.handle_error(RuntimeError("analysis failed"), "analysis")
    handler.handle_error(RuntimeError("analysis failed"), "analysis")

    assert handler.is_circuit_breaker_open()
    assert handler.should_fallback(RuntimeError("anything at all"))
    assert not handler.is_healthy()
    assert any("Circuit breaker is open" in r for r in handler.get_recommendations())

    handler.close_circuit_breaker()
    assert not handler.is_circuit_breaker_open()
    assert handler.is_healthy()


def test_default_breaker_opens_on_fifth_severe_failure(clock):
    handler = ErrorHandler(clock=clock)
    unrelated = RuntimeError("something odd happened")

    for index in range(4):
        handler.handle_error(RuntimeError("invalid input"), f"component_{index}")

    assert not handler.is_circuit_breaker_open()
    assert handler.is_healthy()
    assert not handler.should_fallback(unrelated)

    handler.handle_error(RuntimeError("invalid input"), "component_4")

    assert handler.is_circuit_breaker_open()
    assert not handler.is_healthy()
    assert handler.should_fallback(unrelated)


def test_clear_old_errors_drops_only_expired_records(clock):
    handler = ErrorHandler(enable_circuit_breaker=False, clock=clock)
    handler.handle_error(RuntimeError("minor old issue"), "analysis")
    clock.advance(7200)
    handler.handle_error(RuntimeError("minor new issue"), "analysis")

    assert handler.clear_old_errors(max_age_seconds=3600) == 1
    assert [e.message for e in handler.get_error_log()] == ["minor new issue"]
    assert handler.clear_old_errors() == 0


def test_error_handler_health_ignores_acknowledged_errors(clock):
    handler = ErrorHandler(clock=clock)

    handler.handle_recovery_error(RuntimeError("reset failed"), "energy", "reset")
    assert not handler.is_healthy()

    handler.close_circuit_breaker()
    assert handler.is_healthy()
    assert handler.get_error_stats()["total_errors"] == 1


def test_error_handler_fallback_can_be_disabled(clock):
    handler = ErrorHandler(fallback_enabled=False, clock=clock)

    assert not handler.should_fallback(RuntimeError("network timeout"))


def test_error_log_is_bounded(clock):
    handler = ErrorHandler(enable_circuit_breaker=False, clock=clock)

    for index in range(1001):
        handler.handle_error(RuntimeError(f"minor issue {index}"), "analysis")

    log = handler.get_error_log()
    assert len(log) == TRIMMED_ERROR_LOG
    assert log[-1].message == "minor issue 1000"


def test_fallback_result_is_minimal(clock):
    result = ErrorHandler(clock=clock).create_fallback_result("energy analysis failed")

    assert result.is_fallback
    assert result.id.startswith("fallback_")
    assert result.confidence == 0.1
    assert result.recommendations == []
    assert set(result.insights) == {"energy", "soreness", "focus", "duration", "equipment"}
    assert "energy analysis failed" in result.reasoning
