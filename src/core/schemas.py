#!/usr/bin/env python3
"""
Centralized JSON schemas for OpenAI structured outputs.

Contains the JSON schemas used for external strategy responses so every
provider call is validated against the same structure.
"""

from typing import Dict, Any

_STRING_LIST = {"type": "array", "items": {"type": "string"}}

# Schema for a generated workout
WORKOUT_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {
            "type": "string",
            "description": "Short workout title"
        },
        "duration_minutes": {
            "type": "integer",
            "description": "Total planned duration in minutes"
        },
        "intensity": {
            "type": "string",
            "enum": ["low", "moderate", "high"],
            "description": "Overall session intensity"
        },
        "warmup": {
            **_STRING_LIST,
            "description": "Warm-up movements in order"
        },
        "exercises": {
            "type": "array",
            "description": "Main block exercises in order",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "sets": {"type": "integer"},
                    "reps": {"type": "string", "description": "Reps or time, e.g. '8-10' or '30s'"},
                    "rest_seconds": {"type": "integer"},
                    "notes": {"type": "string"}
                },
                "required": ["name", "sets", "reps", "rest_seconds", "notes"],
                "additionalProperties": False
            }
        },
        "cooldown": {
            **_STRING_LIST,
            "description": "Cool-down movements in order"
        },
        "safety_notes": {
            **_STRING_LIST,
            "description": "Cautions derived from soreness, injuries and energy"
        }
    },
    "required": ["title", "duration_minutes", "intensity", "warmup", "exercises", "cooldown", "safety_notes"],
    "additionalProperties": False
}

# Schema for externally generated recommendations
RECOMMENDATIONS_SCHEMA = {
    "type": "object",
    "properties": {
        "recommendations": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "priority": {"type": "string", "enum": ["critical", "high", "medium", "low"]},
                    "category": {"type": "string", "enum": ["safety", "optimization", "education", "efficiency"]},
                    "target_component": {
                        "type": "string",
                        "description": "Selection field the recommendation targets"
                    },
                    "title": {"type": "string"},
                    "description": {"type": "string"},
                    "reasoning": {"type": "string"},
                    "confidence": {"type": "number", "description": "Confidence between 0 and 1"}
                },
                "required": [
                    "priority", "category", "target_component", "title", "description", "reasoning", "confidence"
                ],
                "additionalProperties": False
            }
        }
    },
    "required": ["recommendations"],
    "additionalProperties": False
}

# Schema for enhanced insights
ENHANCED_INSIGHTS_SCHEMA = {
    "type": "object",
    "properties": {
        "insights": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string", "description": "Id of the insight being enhanced"},
                    "type": {"type": "string", "enum": ["info", "warning"]},
                    "message": {"type": "string"},
                    "recommendation": {"type": "string"},
                    "confidence": {"type": "number"},
                    "actionable": {"type": "boolean"}
                },
                "required": ["id", "type", "message", "recommendation", "confidence", "actionable"],
                "additionalProperties": False
            }
        }
    },
    "required": ["insights"],
    "additionalProperties": False
}

# Schema for user preference analysis
PREFERENCE_ANALYSIS_SCHEMA = {
    "type": "object",
    "properties": {
        "preferred_focus": {
            **_STRING_LIST,
            "description": "Focus types the user gravitates to"
        },
        "preferred_duration_minutes": {
            "type": "integer",
            "description": "Typical preferred session length"
        },
        "preferred_intensity": {
            "type": "string",
            "enum": ["low", "moderate", "high"]
        },
        "patterns": {
            **_STRING_LIST,
            "description": "Observed behavioral patterns"
        },
        "suggestions": {
            **_STRING_LIST,
            "description": "Suggestions tailored to the observed preferences"
        },
        "confidence": {
            "type": "number",
            "description": "Confidence between 0 and 1"
        }
    },
    "required": [
        "preferred_focus", "preferred_duration_minutes", "preferred_intensity", "patterns", "suggestions", "confidence"
    ],
    "additionalProperties": False
}


def get_schema_by_type(analysis_type: str) -> Dict[str, Any]:
    """
    Get JSON schema by analysis type.

    Args:
        analysis_type: Type of request ("workout", "recommendations", "insights", "preferences")

    Returns:
        JSON schema dictionary

    Raises:
        ValueError: If analysis_type is not recognized
    """
    schemas = {
        "workout": WORKOUT_SCHEMA,
        "recommendations": RECOMMENDATIONS_SCHEMA,
        "insights": ENHANCED_INSIGHTS_SCHEMA,
        "enhanced_insights": ENHANCED_INSIGHTS_SCHEMA,  # Alias for insights
        "preferences": PREFERENCE_ANALYSIS_SCHEMA
    }

    if analysis_type not in schemas:
        raise ValueError(f"Unknown analysis type: {analysis_type}")

    return schemas[analysis_type]
