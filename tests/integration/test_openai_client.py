import asyncio
import json
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest

from core.exceptions import StrategyResponseError
from core.models import AnalysisContext
from core.prompts import WorkoutPrompts
from core.schemas import get_schema_by_type
from integrations.openai_client import OpenAIStrategy

from conftest import make_insight


class FakeCompletions:
    def __init__(self, payload: Any, finish_reason: str = "stop") -> None:
        self.content = payload if isinstance(payload, str) else json.dumps(payload)
        self.finish_reason = finish_reason
        self.calls: List[Dict[str, Any]] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        return SimpleNamespace(
            choices=[SimpleNamespace(finish_reason=self.finish_reason, message=SimpleNamespace(content=self.content))],
            usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15)
        )


def make_strategy(payload: Any, finish_reason: str = "stop"):
    completions = FakeCompletions(payload, finish_reason)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return OpenAIStrategy(client=client, model="test-model"), completions


@pytest.fixture
def context(sample_context) -> AnalysisContext:
    return AnalysisContext.from_dict(sample_context)


def test_recommendations_get_ids_and_clamped_confidence(context):
    strategy, _ = make_strategy({"recommendations": [
        {"priority": "high", "category": "safety", "target_component": "soreness", "title": "Rest legs",
         "description": "Skip squats", "reasoning": "Legs are sore", "confidence": 1.7}
    ]})

    (recommendation,) = asyncio.run(strategy.generate_recommendations(context))

    assert recommendation["id"].startswith("external_")
    assert recommendation["confidence"] == 1.0
    assert recommendation["title"] == "Rest legs"


def test_requests_use_strict_json_schema(context):
    strategy, completions = make_strategy({"recommendations": []})

    asyncio.run(strategy.generate_recommendations(context))

    call = completions.calls[0]
    assert call["model"] == "test-model"
    assert call["response_format"]["type"] == "json_schema"
    assert call["response_format"]["json_schema"]["strict"] is True
    assert call["response_format"]["json_schema"]["schema"] == get_schema_by_type("recommendations")
    assert call["messages"][0] == {"role": "system", "content": WorkoutPrompts.SYSTEM_PROMPT}
    assert strategy.get_health_status()["details"]["total_tokens"] == 15


def test_truncated_response_is_rejected(context):
    strategy, _ = make_strategy({"recommendations": []}, finish_reason="length")

    with pytest.raises(StrategyResponseError, match="openai returned an invalid response"):
        asyncio.run(strategy.generate_recommendations(context))


def test_malformed_json_is_rejected(context):
    strategy, _ = make_strategy("{not json")

    with pytest.raises(StrategyResponseError):
        asyncio.run(strategy.analyze_user_preferences(context))

    assert strategy.get_health_status()["status"] == "degraded"


def test_enhance_insights_keeps_originals_for_missing_ids(context):
    first = make_insight("i1", message="Low energy")
    second = make_insight("i2", message="Sore legs")
    strategy, _ = make_strategy({"insights": [
        {"id": "i1", "type": "warning", "message": "Take it easy today", "recommendation": "",
         "confidence": 0.9, "actionable": True}
    ]})

    enhanced = asyncio.run(strategy.enhance_insights([first, second], context))

    assert [i.message for i in enhanced] == ["Take it easy today", "Sore legs"]
    assert enhanced[0].type == "warning"
    assert enhanced[0].recommendation is None
    assert enhanced[1] is second


def test_enhance_insights_skips_the_call_when_empty(context):
    strategy, completions = make_strategy({"insights": []})

    assert asyncio.run(strategy.enhance_insights([], context)) == []
    assert completions.calls == []


def test_workout_prompt_carries_the_request():
    strategy, completions = make_strategy({"title": "Leg day"})
    request = {
        "user_profile": {"fitness_level": "beginner"},
        "preferences": {"duration": 30, "intensity": "low"},
        "constraints": {"soreness_areas": ["back"]}
    }

    workout = asyncio.run(strategy.generate_workout(request))

    assert workout == {"title": "Leg day"}
    prompt = completions.calls[0]["messages"][1]["content"]
    assert '"intensity": "low"' in prompt
    assert '"back"' in prompt


def test_missing_api_key_raises(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(ValueError, match="OpenAI API key"):
        OpenAIStrategy()


def test_preferences_prompt_formats_history(context):
    context.session_history = [
        {"component": "focus", "action": "recommendation_applied", "user_feedback": "helpful"}
    ]

    prompt = WorkoutPrompts.get_preferences_prompt(context)

    assert "1. focus: recommendation_applied (feedback: helpful)" in prompt
    assert "No recorded sessions." in WorkoutPrompts._format_history([])


def test_unknown_schema_type_raises():
    with pytest.raises(ValueError):
        get_schema_by_type("bogus")
