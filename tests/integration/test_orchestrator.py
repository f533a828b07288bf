import asyncio

import pytest

from core.exceptions import (
    CollaboratorError, ContextNotSetError, ContextValidationError, InvalidFeedbackError,
    StrategyNotConfiguredError, ValidationError
)
from core.models import AnalysisRequest

from conftest import FakeAnalyzer, FakeStrategy, FlakyAnalyzer, PlainService, make_insight


def test_end_to_end_analysis(orchestrator_factory, sample_context):
    orchestrator = orchestrator_factory()
    orchestrator.set_context(sample_context)

    result = asyncio.run(orchestrator.analyze())

    assert not result.is_fallback
    assert set(result.insights) == {"energy", "soreness", "focus", "duration", "equipment", "optimization"}
    assert [i.type for i in result.insights["energy"]] == ["info"]
    assert not result.insights["energy"][0].actionable
    assert [i.type for i in result.insights["soreness"]] == ["warning"]
    assert result.insights["focus"] == []

    assert [c.components for c in result.conflicts] == [["equipment", "focus"]]
    assert result.synergies == []

    summary = [(r.priority, r.category, r.target_component, r.confidence) for r in result.recommendations]
    assert summary == [
        ("high", "safety", "soreness", 0.9),
        ("high", "optimization", "equipment", 0.75),
        ("medium", "optimization", "optimization", 0.75),
        ("medium", "optimization", "optimization", 0.7),
    ]
    assert 0 < result.confidence <= 1
    assert "Detected 1 cross-component issue(s)" in result.reasoning


def test_repeated_analysis_is_served_from_cache(orchestrator_factory, sample_context):
    orchestrator = orchestrator_factory()
    orchestrator.set_context(sample_context)

    first = asyncio.run(orchestrator.analyze())
    second = asyncio.run(orchestrator.analyze())

    assert second.id == first.id
    assert second.to_dict() == first.to_dict()
    assert second is not first
    stats = orchestrator.cache.get_stats()
    assert (stats["hit_count"], stats["miss_count"]) == (1, 1)


def test_partial_selections_override_context(orchestrator_factory, sample_context):
    orchestrator = orchestrator_factory()
    orchestrator.set_context(sample_context)

    base = asyncio.run(orchestrator.analyze())
    energized = asyncio.run(orchestrator.analyze({"energy": 5}))

    assert energized.id != base.id
    assert [s.components for s in energized.synergies] == [["energy", "focus"]]
    assert orchestrator.get_context().current_selections["energy"] == 3


def test_set_context_clears_cache(orchestrator_factory, sample_context):
    orchestrator = orchestrator_factory()
    orchestrator.set_context(sample_context)
    asyncio.run(orchestrator.analyze())
    assert orchestrator.cache.size == 1

    orchestrator.set_context(sample_context)

    assert orchestrator.cache.size == 0


def test_analyze_requires_context(orchestrator_factory):
    orchestrator = orchestrator_factory()

    with pytest.raises(ContextNotSetError):
        asyncio.run(orchestrator.analyze())
    with pytest.raises(ContextNotSetError):
        asyncio.run(orchestrator.generate_workout())


@pytest.mark.parametrize("change,field", [
    (lambda c: c.update(user_profile=None), "user_profile"),
    (lambda c: c["user_profile"].pop("fitness_level"), "user_profile.fitness_level"),
    (lambda c: c.pop("current_selections"), "current_selections"),
    (lambda c: c["current_selections"].update(energy=11), "energy"),
    (lambda c: c["current_selections"].update(duration=200), "duration"),
    (lambda c: c["environmental_factors"].update(time_of_day="midnight"), "environmental_factors.time_of_day"),
])
def test_invalid_context_names_the_field(orchestrator_factory, sample_context, change, field):
    orchestrator = orchestrator_factory()
    change(sample_context)

    with pytest.raises(ContextValidationError) as excinfo:
        orchestrator.set_context(sample_context)

    assert excinfo.value.field == field
    assert orchestrator.get_context() is None
    assert orchestrator.error_handler.get_error_log() == []


def test_disabled_validation_only_checks_required_fields(orchestrator_factory, sample_context):
    orchestrator = orchestrator_factory(validation_enabled=False)
    sample_context["current_selections"]["energy"] = 11

    orchestrator.set_context(sample_context)

    assert orchestrator.get_context().current_selections["energy"] == 11
    sample_context["user_profile"] = None
    with pytest.raises(ContextValidationError):
        orchestrator.set_context(sample_context)


def test_analyzers_receive_raw_value_and_request(orchestrator_factory, sample_context):
    energy = FakeAnalyzer([make_insight("e1")])
    focus = FakeAnalyzer()
    orchestrator = orchestrator_factory({"energy": energy, "focus": focus, "soreness": PlainService()})
    sample_context["current_selections"] = {"energy": {"rating": 3}, "customization_focus": "mobility"}
    orchestrator.set_context(sample_context)

    result = asyncio.run(orchestrator.analyze())

    call = energy.calls[0]
    assert call["value"] == {"rating": 3}
    assert isinstance(call["context"], AnalysisRequest)
    assert call["context"].fitness_level == "intermediate"
    assert focus.calls[0]["value"] == "mobility"
    assert result.insights["soreness"] == []
    assert result.insights["equipment"] == []
    assert [i.id for i in result.insights["energy"]] == ["e1"]


def test_transient_failures_are_retried_then_fall_back(orchestrator_factory, sample_context, sleeper):
    flaky = FlakyAnalyzer("temporary glitch")
    orchestrator = orchestrator_factory({"energy": flaky})
    orchestrator.set_context(sample_context)

    result = asyncio.run(orchestrator.analyze())

    assert result.is_fallback
    assert result.confidence == 0.1
    assert flaky.calls == 4
    assert sleeper.delays == [0.1, 0.2, 0.4]
    assert orchestrator.cache.size == 0
    assert orchestrator.error_handler.get_last_error().type == "analysis_failure"


def test_transient_failure_that_recovers_produces_a_result(orchestrator_factory, sample_context, sleeper):
    flaky = FlakyAnalyzer("network hiccup", failures=1, insights=[make_insight("e1")])
    orchestrator = orchestrator_factory({"energy": flaky})
    orchestrator.set_context(sample_context)

    result = asyncio.run(orchestrator.analyze())

    assert not result.is_fallback
    assert result.performance_metrics.attempts == 2
    assert sleeper.delays == [0.1]
    assert orchestrator.cache.size == 1


def test_permanent_failure_falls_back_without_retry(orchestrator_factory, sample_context, sleeper):
    flaky = FlakyAnalyzer("boom")
    orchestrator = orchestrator_factory({"energy": flaky})
    orchestrator.set_context(sample_context)

    result = asyncio.run(orchestrator.analyze())

    assert result.is_fallback
    assert flaky.calls == 1
    assert sleeper.delays == []


def test_failure_is_raised_when_fallback_disabled(orchestrator_factory, sample_context):
    orchestrator = orchestrator_factory({"energy": FlakyAnalyzer("boom")}, fallback_enabled=False)
    orchestrator.set_context(sample_context)

    with pytest.raises(CollaboratorError, match="energy analysis failed: boom"):
        asyncio.run(orchestrator.analyze())


def test_breaker_opens_and_force_recovery_closes_it(orchestrator_factory, sample_context):
    orchestrator = orchestrator_factory({"energy": FlakyAnalyzer("boom")}, circuit_breaker_threshold=2)
    orchestrator.set_context(sample_context)

    asyncio.run(orchestrator.analyze())
    asyncio.run(orchestrator.analyze())

    assert orchestrator.error_handler.is_circuit_breaker_open()
    assert orchestrator.get_health_status()["status"] == "unhealthy"

    report = asyncio.run(orchestrator.force_recovery())

    assert not report.success
    assert report.failed_services == ["energy"]
    assert not orchestrator.error_handler.is_circuit_breaker_open()


def test_force_recovery_resets_reference_analyzers_and_clears_cache(orchestrator_factory, sample_context):
    orchestrator = orchestrator_factory()
    orchestrator.set_context(sample_context)
    asyncio.run(orchestrator.analyze())

    report = asyncio.run(orchestrator.force_recovery())

    assert report.success
    assert sorted(report.recovered_services) == ["duration", "energy", "equipment", "focus", "soreness"]
    assert orchestrator.cache.size == 0


def test_interactions_feed_learning(orchestrator_factory, sample_context):
    orchestrator = orchestrator_factory()
    orchestrator.set_context(sample_context)

    orchestrator.record_interaction({
        "id": "i1",
        "timestamp": "2024-03-01T09:00:00Z",
        "component": "soreness",
        "action": "recommendation_applied",
        "recommendation_id": "rec_1",
        "user_feedback": "helpful"
    })
    orchestrator.learn_from_user_feedback("not_helpful", {"recommendation_id": "rec_2"})

    assert orchestrator.learning_engine.get_recommendation_weight("rec_1") == pytest.approx(1.1)
    assert orchestrator.learning_engine.get_recommendation_weight("rec_2") == pytest.approx(0.9)
    assert len(orchestrator.learning_engine.get_user_preferences()) == 1

    exported = orchestrator.export_session_data()
    assert exported["total_interactions"] == 2
    assert exported["context"]["user_profile"]["fitness_level"] == "intermediate"

    with pytest.raises(InvalidFeedbackError):
        orchestrator.learn_from_user_feedback("great", {"recommendation_id": "rec_1"})


def test_external_strategy_is_required(orchestrator_factory, sample_context):
    orchestrator = orchestrator_factory()
    orchestrator.set_context(sample_context)

    with pytest.raises(StrategyNotConfiguredError):
        asyncio.run(orchestrator.generate_workout())
    with pytest.raises(ValidationError):
        orchestrator.set_external_strategy(PlainService())


def test_external_strategy_receives_shaped_request(orchestrator_factory, sample_context):
    strategy = FakeStrategy()
    orchestrator = orchestrator_factory()
    orchestrator.set_context(sample_context)
    orchestrator.set_external_strategy(strategy)

    workout = asyncio.run(orchestrator.generate_workout({"duration": 45}))

    assert workout == {"title": "Fake workout", "duration_minutes": 45}
    request = strategy.calls["workout"][0]
    assert request["preferences"]["intensity"] == "low"
    assert request["preferences"]["location"] == "home"
    assert request["constraints"]["soreness_areas"] == ["legs"]
    assert asyncio.run(orchestrator.generate_recommendations()) == [{"id": "external_1", "title": "Drink water"}]
    assert orchestrator.get_health_status()["external_strategy"]["status"] == "healthy"


def test_external_failure_marks_gateway_degraded(orchestrator_factory, sample_context):
    orchestrator = orchestrator_factory()
    orchestrator.set_context(sample_context)
    orchestrator.set_external_strategy(FakeStrategy(fail_with=RuntimeError("provider down")))

    with pytest.raises(RuntimeError, match="provider down"):
        asyncio.run(orchestrator.generate_workout())

    assert orchestrator.get_health_status()["external_strategy"]["status"] == "degraded"


def test_health_and_performance_reports(orchestrator_factory, sample_context):
    orchestrator = orchestrator_factory()
    health = orchestrator.get_health_status()
    assert health["status"] == "healthy"
    assert not health["context_set"]
    assert health["external_strategy"]["status"] == "not_configured"

    orchestrator.set_context(sample_context)
    asyncio.run(orchestrator.analyze())

    metrics = orchestrator.get_performance_metrics()
    assert metrics["performance"]["total_analyses"] == 1
    assert metrics["cache"]["miss_count"] == 1
    assert metrics["retry"]["succeeded"] == 1

    report = asyncio.run(orchestrator.perform_comprehensive_health_check())
    assert report["overall_status"] == "healthy"
    assert report["core"]["context_set"]
    assert set(report["services"]) == {"energy", "soreness", "focus", "duration", "equipment"}


def test_interaction_with_unknown_feedback_is_not_recorded(orchestrator_factory, sample_context):
    orchestrator = orchestrator_factory()
    orchestrator.set_context(sample_context)

    with pytest.raises(InvalidFeedbackError):
        orchestrator.record_interaction({
            "id": "i1",
            "timestamp": "2024-03-01T09:00:00Z",
            "component": "soreness",
            "action": "recommendation_applied",
            "recommendation_id": "rec_1",
            "user_feedback": "great"
        })

    assert orchestrator.tracker.get_session_history() == []
    assert orchestrator.tracker.get_user_feedback_stats()["total_feedback"] == 0
    assert orchestrator.learning_engine.get_recommendation_weight("rec_1") == 1.0
