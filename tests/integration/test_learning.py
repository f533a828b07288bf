from datetime import datetime, timedelta, timezone

import pytest

from core.exceptions import InvalidFeedbackError, InvalidInteractionError
from core.learning import InteractionTracker, LearningEngine, new_interaction
from core.models import Interaction

NOW = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return NOW


def feedback(engine: LearningEngine, value: str, recommendation_id: str = "rec_1", **context):
    return engine.learn_from_user_feedback(value, {"recommendation_id": recommendation_id, **context})


def test_feedback_moves_weights():
    engine = LearningEngine(clock=fixed_clock)

    feedback(engine, "helpful", "a")
    feedback(engine, "not_helpful", "b")
    feedback(engine, "partially_helpful", "c")

    assert engine.get_recommendation_weight("a") == pytest.approx(1.1)
    assert engine.get_recommendation_weight("b") == pytest.approx(0.9)
    assert engine.get_recommendation_weight("c") == pytest.approx(1.05)
    assert engine.get_recommendation_weight("unseen") == 1.0


def test_weights_are_clamped():
    engine = LearningEngine(clock=fixed_clock)

    for _ in range(15):
        feedback(engine, "helpful", "up")
        feedback(engine, "not_helpful", "down")
    for _ in range(25):
        feedback(engine, "partially_helpful", "partial")

    assert engine.get_recommendation_weight("up") == 2.0
    assert engine.get_recommendation_weight("down") == 0.1
    assert engine.get_recommendation_weight("partial") == 2.0


def test_invalid_feedback_is_rejected():
    engine = LearningEngine(clock=fixed_clock)

    with pytest.raises(InvalidFeedbackError, match="Invalid feedback value"):
        feedback(engine, "meh")

    assert engine.get_learning_metrics()["total_learning_events"] == 0


def test_interaction_without_recommendation_id_changes_nothing():
    engine = LearningEngine(clock=fixed_clock)
    interaction = Interaction(id="i1", timestamp=NOW, component="cli", action="viewed", user_feedback="helpful")

    assert engine.update_recommendation_weights(interaction) is False
    assert engine.get_all_recommendation_weights() == {}


def test_feedback_history_is_trimmed_to_half():
    engine = LearningEngine(max_feedback_history=10, clock=fixed_clock)

    for index in range(11):
        feedback(engine, "helpful", f"rec_{index}")

    history = engine.get_feedback_history()
    assert len(history) == 5
    assert history[-1].recommendation_id == "rec_10"


def test_learning_insights_report_trend_and_satisfaction():
    engine = LearningEngine(clock=fixed_clock)
    for _ in range(5):
        feedback(engine, "helpful", "good")
    feedback(engine, "not_helpful", "bad")

    insights = engine.get_learning_insights()

    assert insights["learning_trend"] == "improving"
    assert insights["overall_satisfaction"] == pytest.approx(5 / 6)
    assert insights["top_performing"][0] == {"id": "good", "weight": pytest.approx(1.5), "feedback_count": 5}
    assert [entry["id"] for entry in insights["needs_improvement"]] == ["bad"]


def test_trend_is_stable_with_few_records_and_declining_when_negative():
    engine = LearningEngine(clock=fixed_clock)
    feedback(engine, "not_helpful")
    assert engine.get_learning_insights()["learning_trend"] == "stable"

    for _ in range(5):
        feedback(engine, "not_helpful")
    assert engine.get_learning_insights()["learning_trend"] == "declining"


def test_partial_feedback_counts_half_towards_satisfaction():
    engine = LearningEngine(clock=fixed_clock)
    feedback(engine, "helpful", "a")
    feedback(engine, "partially_helpful", "b")
    feedback(engine, "not_helpful", "c")

    assert engine.get_learning_insights()["overall_satisfaction"] == pytest.approx(0.6)


def test_user_preferences_are_counted_per_profile():
    engine = LearningEngine(clock=fixed_clock)
    profile = {"fitness_level": "beginner", "goals": ["strength"]}

    feedback(engine, "helpful", user_profile=profile)
    feedback(engine, "not_helpful", user_profile=profile)

    (counters,) = engine.get_user_preferences().values()
    assert counters == {"helpful": 1, "not_helpful": 1, "partially_helpful": 0, "total": 2}


def test_reset_and_export():
    engine = LearningEngine(clock=fixed_clock)
    feedback(engine, "helpful")

    exported = engine.export_learning_data()
    assert exported["recommendation_weights"] == {"rec_1": pytest.approx(1.1)}
    assert exported["learning_metrics"]["last_learning_update"] == NOW.isoformat()

    engine.reset()
    assert engine.get_all_recommendation_weights() == {}
    assert engine.get_feedback_history() == []


def test_tracker_accepts_dicts_and_objects():
    tracker = InteractionTracker()

    tracker.record_interaction({
        "id": "i1",
        "timestamp": "2024-03-01T09:00:00Z",
        "component": "energy",
        "action": "analysis_completed",
        "performance_metrics": {"execution_time_ms": 40, "cache_hit": True}
    })
    tracker.record_interaction(new_interaction("focus", "recommendation_shown", "rec_1", "helpful"))

    stats = tracker.get_interaction_stats()
    assert stats["total_interactions"] == 2
    assert stats["interactions_by_component"] == {"energy": 1, "focus": 1}
    assert stats["average_response_time_ms"] == 40.0
    assert stats["user_satisfaction_rate"] == 1.0
    assert tracker.get_session_history()[0].timestamp == NOW


@pytest.mark.parametrize("missing", ["id", "timestamp", "component", "action"])
def test_tracker_rejects_incomplete_interactions(missing):
    data = {"id": "i1", "timestamp": NOW, "component": "energy", "action": "viewed"}
    data.pop(missing)

    with pytest.raises(InvalidInteractionError, match=missing):
        InteractionTracker().record_interaction(data)


def test_tracker_history_is_trimmed():
    tracker = InteractionTracker(max_history_size=4)

    for index in range(5):
        tracker.record_interaction(new_interaction("energy", f"action_{index}"))

    assert [i.action for i in tracker.get_session_history()] == ["action_3", "action_4"]
    assert tracker.get_interaction_stats()["total_interactions"] == 5


def test_tracker_feedback_and_performance_stats():
    tracker = InteractionTracker()
    tracker.record_interaction(new_interaction("energy", "recommendation_shown", "r1", "helpful"))
    tracker.record_interaction(new_interaction("energy", "recommendation_shown", "r2", "partially_helpful"))
    errored = new_interaction("focus", "error_occurred")
    errored.performance_metrics = {"execution_time_ms": 10.0, "memory_usage": 2048}
    tracker.record_interaction(errored)

    feedback_stats = tracker.get_user_feedback_stats()
    assert feedback_stats["total_feedback"] == 2
    assert feedback_stats["satisfaction_rate"] == 0.75

    performance = tracker.get_performance_metrics()
    assert performance["average_execution_time_ms"] == 10.0
    assert performance["error_rate"] == pytest.approx(1 / 3)
    assert [i.component for i in tracker.get_interactions_by_type("error_occurred")] == ["focus"]


def test_tracker_time_range_and_recent():
    tracker = InteractionTracker()
    for hours in range(3):
        tracker.record_interaction(new_interaction("energy", "viewed", timestamp=NOW + timedelta(hours=hours)))

    in_range = tracker.get_interactions_in_time_range(NOW, (NOW + timedelta(hours=1)).isoformat())

    assert len(in_range) == 2
    assert len(tracker.get_recent_interactions(2)) == 2
    assert tracker.get_recent_interactions(0) == []


def test_export_requires_history():
    tracker = InteractionTracker()
    with pytest.raises(ValueError, match="No session data"):
        tracker.export_session_data()

    tracker.record_interaction(new_interaction("energy", "viewed", timestamp=NOW))
    exported = tracker.export_session_data()

    assert exported["total_interactions"] == 1
    assert exported["start_time"] == NOW.isoformat()
    assert exported["session_id"].startswith("session_")


def test_weight_stays_capped_after_thirty_helpful_records():
    engine = LearningEngine(clock=fixed_clock)

    for _ in range(30):
        feedback(engine, "helpful")

    assert engine.get_recommendation_weight("rec_1") == 2.0
    assert engine.get_learning_metrics()["total_learning_events"] == 30


def test_feedback_records_keep_the_interaction_time():
    engine = LearningEngine(clock=fixed_clock)
    given_at = NOW - timedelta(days=30)

    for index in range(6):
        engine.update_recommendation_weights(Interaction(
            id=f"i{index}", timestamp=given_at, component="energy", action="recommendation_applied",
            recommendation_id="rec_1", user_feedback="helpful"
        ))

    assert [r.timestamp for r in engine.get_feedback_history()] == [given_at] * 6
    assert engine.get_learning_insights()["learning_trend"] == "stable"
    assert engine.get_learning_metrics()["last_learning_update"] == NOW.isoformat()


def test_tracker_rejects_unknown_feedback_before_recording():
    tracker = InteractionTracker()

    with pytest.raises(InvalidFeedbackError):
        tracker.record_interaction(new_interaction("energy", "recommendation_shown", "rec_1", "great"))

    assert tracker.get_session_history() == []
    assert tracker.get_interaction_stats()["total_interactions"] == 0


def test_unparseable_timestamp_is_an_invalid_interaction():
    data = {"id": "i1", "timestamp": "not a date", "component": "energy", "action": "viewed"}

    with pytest.raises(InvalidInteractionError, match="unparseable 'timestamp'"):
        Interaction.from_dict(data)
    with pytest.raises(InvalidInteractionError, match="timestamp"):
        InteractionTracker().record_interaction(data)
