import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

# Also add the project root to handle absolute imports
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from core.analysis.analyzers import DomainAnalyzer  # noqa: E402
from core.analysis.external import ExternalStrategy  # noqa: E402
from core.analysis.orchestrator import AnalysisOrchestrator  # noqa: E402
from core.config import AnalysisConfig  # noqa: E402
from core.container import Container, create_analyzer_registry  # noqa: E402
from core.models.analysis import AnalysisResult, Insight, PerformanceMetrics  # noqa: E402
from core.models.context import AnalysisContext, AnalysisRequest, UserProfile  # noqa: E402
from core.resilience import (  # noqa: E402
    CircuitBreaker, ErrorHandler, HealthFlagReporter, HealthStatusReporter, Resettable,
    RetryExecutor, RetryPolicy
)

START_TIME = 1_700_000_000.0


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, now: float = START_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement that only records the requested delays."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeAnalyzer(DomainAnalyzer):
    def __init__(self, insights: Optional[List[Insight]] = None) -> None:
        self.insights = insights or []
        self.calls: List[Dict[str, Any]] = []

    async def analyze(self, value: Any, context: AnalysisRequest) -> List[Insight]:
        self.calls.append({"value": value, "context": context})
        return list(self.insights)


class FlakyAnalyzer(DomainAnalyzer):
    """Raises `message` for the first `failures` calls, then returns `insights`."""

    def __init__(self, message: str, failures: int = 10_000, insights: Optional[List[Insight]] = None) -> None:
        self.message = message
        self.failures = failures
        self.insights = insights or []
        self.calls = 0

    async def analyze(self, value: Any, context: AnalysisRequest) -> List[Insight]:
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError(self.message)
        return list(self.insights)


class ResettableService(Resettable, HealthStatusReporter):
    def __init__(self, status: str = "healthy", fail_reset: bool = False) -> None:
        self.status = status
        self.fail_reset = fail_reset
        self.reset_calls = 0

    def reset(self) -> None:
        self.reset_calls += 1
        if self.fail_reset:
            raise RuntimeError("reset exploded")
        self.status = "healthy"

    def get_health_status(self) -> Dict[str, Any]:
        return {"status": self.status, "details": {"reset_calls": self.reset_calls}}


class AsyncResettableService(Resettable):
    def __init__(self) -> None:
        self.reset_calls = 0

    async def reset(self) -> None:
        self.reset_calls += 1


class FlagService(HealthFlagReporter):
    def __init__(self, healthy: bool) -> None:
        self.healthy = healthy

    async def is_healthy(self) -> bool:
        return self.healthy


class PlainService:
    pass


class FakeStrategy(ExternalStrategy):
    def __init__(self, fail_with: Optional[Exception] = None) -> None:
        self.fail_with = fail_with
        self.calls: Dict[str, List[Any]] = {
            "workout": [], "recommendations": [], "insights": [], "preferences": []
        }

    async def generate_workout(self, request: Dict[str, Any]) -> Dict[str, Any]:
        self.calls["workout"].append(request)
        if self.fail_with:
            raise self.fail_with
        return {"title": "Fake workout", "duration_minutes": request["preferences"]["duration"]}

    async def generate_recommendations(self, context: AnalysisContext) -> List[Dict[str, Any]]:
        self.calls["recommendations"].append(context)
        return [{"id": "external_1", "title": "Drink water"}]

    async def enhance_insights(self, insights: List[Insight], context: AnalysisContext) -> List[Insight]:
        self.calls["insights"].append(insights)
        return list(insights)

    async def analyze_user_preferences(self, context: AnalysisContext) -> Dict[str, Any]:
        self.calls["preferences"].append(context)
        return {"preferred_focus": ["strength"]}


def make_insight(insight_id: str = "insight_test", type_: str = "info", confidence: float = 0.8,
                 actionable: bool = True, message: str = "Test insight") -> Insight:
    return Insight(
        id=insight_id,
        type=type_,
        message=message,
        recommendation="Do the thing",
        confidence=confidence,
        actionable=actionable
    )


def make_result(result_id: str = "analysis_test") -> AnalysisResult:
    return AnalysisResult(
        id=result_id,
        timestamp=datetime.fromtimestamp(START_TIME, tz=timezone.utc),
        insights={"energy": [make_insight()]},
        conflicts=[],
        synergies=[],
        recommendations=[],
        confidence=0.8,
        reasoning="Test result",
        performance_metrics=PerformanceMetrics(execution_time_ms=1.0)
    )


def make_request(selections: Dict[str, Any], fitness_level: str = "intermediate",
                 goals: Optional[List[str]] = None, injuries: Optional[List[str]] = None,
                 environment: Optional[Dict[str, Any]] = None) -> AnalysisRequest:
    context = AnalysisContext(
        user_profile=UserProfile(fitness_level=fitness_level, goals=goals or [], injuries=injuries or []),
        current_selections=selections,
        environmental_factors=environment or {"time_of_day": "morning"}
    )
    return AnalysisRequest.build(context)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def sample_context() -> Dict[str, Any]:
    return {
        "user_profile": {"fitness_level": "intermediate", "goals": ["strength"]},
        "current_selections": {"energy": 3, "duration": 30, "focus": "strength", "soreness": ["legs"]},
        "environmental_factors": {"time_of_day": "morning", "location": "home"}
    }


@pytest.fixture
def registry_factory():
    def _factory(services: Optional[Dict[str, Any]] = None) -> Container:
        registry = Container()
        for name, service in (services or {}).items():
            registry.register_instance(name, service)
        return registry

    return _factory


@pytest.fixture
def orchestrator_factory(clock, sleeper):
    """Orchestrator over fake or reference analyzers with a fake clock and sleep."""

    def _factory(analyzers: Optional[Dict[str, Any]] = None, **config_overrides) -> AnalysisOrchestrator:
        config = AnalysisConfig(**config_overrides)
        if analyzers is None:
            registry = create_analyzer_registry()
        else:
            registry = Container()
            for domain, analyzer in analyzers.items():
                registry.register_instance(domain, analyzer)

        error_handler = ErrorHandler(
            circuit_breaker=CircuitBreaker(threshold=config.circuit_breaker_threshold, clock=clock),
            fallback_enabled=config.fallback_enabled,
            clock=clock
        )
        retry_executor = RetryExecutor(
            policy=RetryPolicy(
                max_retries=config.max_retries,
                base_delay_ms=config.retry_base_delay_ms,
                max_delay_ms=config.retry_max_delay_ms,
                backoff_multiplier=config.retry_backoff_multiplier
            ),
            error_handler=error_handler,
            sleep=sleeper
        )
        return AnalysisOrchestrator(
            registry,
            config=config,
            error_handler=error_handler,
            retry_executor=retry_executor,
            clock=clock
        )

    return _factory
