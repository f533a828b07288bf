#!/usr/bin/env python3
"""
OpenAI integration for workout generation and analysis enhancement.

Implements the external AI strategy with structured outputs:
- Workout generation from selections and profile
- Recommendation generation for the current context
- Insight enhancement
- User preference analysis
"""

import os
import json
import logging
import uuid
from typing import List, Dict, Optional, Any

from openai import AsyncOpenAI

from core.analysis.external import ExternalStrategy
from core.exceptions import StrategyResponseError
from core.models.analysis import Insight
from core.models.context import AnalysisContext
from core.prompts import WorkoutPrompts
from core.resilience.capabilities import HealthStatusReporter
from core.schemas import get_schema_by_type

logger = logging.getLogger(__name__)

PROVIDER = "openai"


class OpenAIStrategy(ExternalStrategy, HealthStatusReporter):
    """External AI strategy backed by the OpenAI chat completions API."""

    def __init__(self,
                 api_key: Optional[str] = None,
                 model: str = "gpt-4o",
                 timeout: float = 30.0,
                 client: Optional[AsyncOpenAI] = None):
        """
        Initialize OpenAI strategy.

        Args:
            api_key: OpenAI API key. If None, tries to get from environment.
            model: Chat model used for every request
            timeout: Request timeout in seconds
            client: Pre-built async client (a new one is created if None)
        """
        if client is None:
            api_key = api_key or os.getenv('OPENAI_API_KEY')
            if not api_key:
                raise ValueError("OpenAI API key not provided and not found in OPENAI_API_KEY environment variable")
            client = AsyncOpenAI(api_key=api_key, timeout=timeout)

        self.client = client
        self.model = model
        self.max_tokens = 2000
        self.temperature = 0.3  # Lower temperature for more consistent plans
        self._stats = {"requests": 0, "failures": 0, "total_tokens": 0}
        self._last_error: Optional[str] = None

    async def _make_structured_request(self, messages: List[Dict[str, str]], schema: Dict[str, Any],
                                       analysis_type: str = "unknown") -> Dict[str, Any]:
        """Make a structured request to OpenAI API with JSON schema enforcement and parse the reply."""
        logger.info(f"Making OpenAI structured API call for {analysis_type} ({len(messages)} messages)")
        for i, msg in enumerate(messages):
            content = msg.get('content', '')
            if len(content) > 1000:
                content = content[:500] + "\n...\n" + content[-500:]
            logger.debug(f"Message {i+1} [{msg.get('role', 'unknown').upper()}]:\n{content}")

        self._stats["requests"] += 1
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": f"{analysis_type}_response",
                        "schema": schema,
                        "strict": True
                    }
                }
            )
        except Exception as e:
            self._stats["failures"] += 1
            self._last_error = str(e)
            logger.error(f"OpenAI structured API request failed: {e}")
            raise

        # Detect truncated responses early
        finish_reason = getattr(response.choices[0], "finish_reason", None)
        if finish_reason == "length":
            self._stats["failures"] += 1
            logger.error(
                "OpenAI response for %s was truncated due to max_tokens=%s. Consider increasing the limit.",
                analysis_type,
                self.max_tokens,
            )
            raise StrategyResponseError(PROVIDER, analysis_type, ValueError("response truncated (finish_reason=length)"))

        usage = getattr(response, "usage", None)
        if usage is not None:
            self._stats["total_tokens"] += usage.total_tokens or 0
            logger.info(
                f"OpenAI API call successful - tokens: {usage.prompt_tokens} prompt + "
                f"{usage.completion_tokens} completion = {usage.total_tokens} total"
            )

        content = response.choices[0].message.content
        logger.debug(f"OpenAI response for {analysis_type}:\n{content}")
        try:
            return json.loads(content)
        except (TypeError, ValueError) as e:
            self._stats["failures"] += 1
            self._last_error = str(e)
            raise StrategyResponseError(PROVIDER, analysis_type, e) from e

    def _messages(self, prompt: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": WorkoutPrompts.SYSTEM_PROMPT},
            {"role": "user", "content": prompt}
        ]

    async def generate_workout(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """
        Generate a workout plan.

        Args:
            request: Workout request with user_profile, preferences and constraints

        Returns:
            Workout matching WORKOUT_SCHEMA
        """
        prompt = WorkoutPrompts.get_workout_prompt(request)
        return await self._make_structured_request(
            self._messages(prompt), get_schema_by_type("workout"), "workout_generation"
        )

    async def generate_recommendations(self, context: AnalysisContext) -> List[Dict[str, Any]]:
        prompt = WorkoutPrompts.get_recommendations_prompt(context)
        data = await self._make_structured_request(
            self._messages(prompt), get_schema_by_type("recommendations"), "recommendations"
        )
        recommendations = []
        for item in data.get("recommendations", []):
            item = dict(item)
            item["id"] = f"external_{uuid.uuid4().hex[:12]}"
            item["confidence"] = max(0.0, min(1.0, float(item.get("confidence", 0.5))))
            recommendations.append(item)
        return recommendations

    async def enhance_insights(self, insights: List[Insight], context: AnalysisContext) -> List[Insight]:
        """Rewrite insights for the user; the original is kept for any id the model drops."""
        if not insights:
            return []

        prompt = WorkoutPrompts.get_insights_prompt(insights, context)
        data = await self._make_structured_request(
            self._messages(prompt), get_schema_by_type("insights"), "insight_enhancement"
        )

        enhanced = {}
        for item in data.get("insights", []):
            try:
                enhanced[item["id"]] = Insight(
                    id=item["id"],
                    type=item["type"],
                    message=item["message"],
                    recommendation=item.get("recommendation") or None,
                    confidence=item["confidence"],
                    actionable=bool(item["actionable"])
                )
            except (KeyError, ValueError) as e:
                logger.warning(f"Ignoring malformed enhanced insight: {e}")
        return [enhanced.get(insight.id, insight) for insight in insights]

    async def analyze_user_preferences(self, context: AnalysisContext) -> Dict[str, Any]:
        prompt = WorkoutPrompts.get_preferences_prompt(context)
        return await self._make_structured_request(
            self._messages(prompt), get_schema_by_type("preferences"), "preference_analysis"
        )

    def get_health_status(self) -> Dict[str, Any]:
        requests = self._stats["requests"]
        failure_rate = self._stats["failures"] / requests if requests else 0.0
        return {
            "status": "healthy" if failure_rate < 0.5 else "degraded",
            "details": {**self._stats, "model": self.model, "last_error": self._last_error}
        }
