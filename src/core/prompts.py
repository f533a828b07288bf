#!/usr/bin/env python3
"""
AI prompts for workout generation and analysis enhancement.

This module centralizes all prompt templates sent to the external AI
provider. Every prompt asks for JSON matching the schema in core.schemas.
"""

import json
from typing import List, Dict, Any

from .models.analysis import Insight
from .models.context import AnalysisContext


class WorkoutPrompts:
    """Collection of prompts for the external AI strategy."""

    # ---------- SYSTEM PROMPT ----------
    SYSTEM_PROMPT = (
        "You are a certified strength and conditioning coach. "
        "Respect reported soreness, injuries and energy before anything else. "
        "Prefer conservative choices when information is missing and never invent medical facts. "
        "Return valid JSON only, matching the requested structure exactly."
    )

    # ---------- Templates ----------
    WORKOUT_TEMPLATE = """Design one workout session for this person.

Profile:
{profile}

Session preferences:
{preferences}

Constraints:
{constraints}

Keep the total duration within the requested minutes, include a warm-up and a cool-down,
and list a safety note for every sore area or injury."""

    RECOMMENDATIONS_TEMPLATE = """Review the workout selections below and suggest improvements.

Profile:
{profile}

Current selections:
{selections}

Environment:
{environment}

Return at most {limit} recommendations, most important first. Use the selection field name
(energy, soreness, focus, duration, equipment) as target_component."""

    INSIGHTS_TEMPLATE = """Rewrite each insight so it is specific to this person while keeping its id,
type and intent. Do not add or remove insights.

Profile:
{profile}

Current selections:
{selections}

Insights:
{insights}"""

    PREFERENCES_TEMPLATE = """Infer this person's workout preferences from the profile and recent sessions.

Profile:
{profile}

Stated preferences:
{preferences}

Recent session history (newest last):
{history}"""

    # ---------- Builders ----------

    @staticmethod
    def _dump(data: Any) -> str:
        return json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True, default=str)

    @classmethod
    def _profile_text(cls, context: AnalysisContext) -> str:
        return cls._dump(context.user_profile.to_dict() if context.user_profile else {})

    @classmethod
    def _format_history(cls, history: List[Dict[str, Any]], limit: int = 20) -> str:
        """Compact one-line-per-interaction history for inclusion in prompts."""
        lines = []
        for i, item in enumerate(history[-limit:], 1):
            action = item.get("action", "")
            component = item.get("component", "")
            feedback = item.get("user_feedback") or item.get("userFeedback")
            line = f"{i}. {component}: {action}"
            if feedback:
                line += f" (feedback: {feedback})"
            lines.append(line)
        return "\n".join(lines) if lines else "No recorded sessions."

    # -------- Public prompt getters --------

    @classmethod
    def get_workout_prompt(cls, request: Dict[str, Any]) -> str:
        return cls.WORKOUT_TEMPLATE.format(
            profile=cls._dump(request.get("user_profile", {})),
            preferences=cls._dump(request.get("preferences", {})),
            constraints=cls._dump(request.get("constraints", {}))
        )

    @classmethod
    def get_recommendations_prompt(cls, context: AnalysisContext, limit: int = 5) -> str:
        return cls.RECOMMENDATIONS_TEMPLATE.format(
            profile=cls._profile_text(context),
            selections=cls._dump(context.current_selections or {}),
            environment=cls._dump(context.environmental_factors),
            limit=limit
        )

    @classmethod
    def get_insights_prompt(cls, insights: List[Insight], context: AnalysisContext) -> str:
        return cls.INSIGHTS_TEMPLATE.format(
            profile=cls._profile_text(context),
            selections=cls._dump(context.current_selections or {}),
            insights=cls._dump([insight.to_dict() for insight in insights])
        )

    @classmethod
    def get_preferences_prompt(cls, context: AnalysisContext) -> str:
        return cls.PREFERENCES_TEMPLATE.format(
            profile=cls._profile_text(context),
            preferences=cls._dump(context.preferences),
            history=cls._format_history(context.session_history)
        )


# Convenience aliases
SYSTEM_PROMPT = WorkoutPrompts.SYSTEM_PROMPT
get_workout_prompt = WorkoutPrompts.get_workout_prompt
