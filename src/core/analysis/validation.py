#!/usr/bin/env python3
"""
Context validation performed before a context is accepted for analysis.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from ..exceptions import ContextValidationError
from ..models.context import AnalysisContext
from ..models.interaction import FEEDBACK_VALUES
from ..rules.base import as_number

logger = logging.getLogger(__name__)

FITNESS_LEVELS = ('beginner', 'novice', 'new to exercise', 'intermediate', 'advanced', 'expert')
AI_ASSISTANCE_LEVELS = ('minimal', 'moderate', 'comprehensive')
TIMES_OF_DAY = ('morning', 'afternoon', 'evening', 'night')
LOCATIONS = ('home', 'gym', 'outdoor', 'office', 'other')
INTERACTION_ACTIONS = (
    'recommendation_shown', 'recommendation_applied', 'recommendation_dismissed', 'error_occurred'
)

ENERGY_RANGE = (1, 10)
DURATION_RANGE = (5, 120)
AGE_RANGE = (13, 100)
AVAILABLE_TIME_RANGE = (5, 300)


def _selection(selections: Dict[str, Any], name: str) -> Any:
    value = selections.get(name)
    return selections.get(f"customization_{name}") if value is None else value


class ContextValidator:
    """
    Validates an AnalysisContext, raising ContextValidationError on the
    first problem found. The error always names the offending field.
    """

    def validate(self, context: Optional[AnalysisContext]) -> None:
        """
        Run the required-field checks plus value checks on every section.

        Raises:
            ContextValidationError: Naming the missing or invalid field
        """
        self.validate_required(context)
        self.validate_user_profile(context)
        self.validate_current_selections(context.current_selections)
        self.validate_preferences(context.preferences)
        self.validate_environmental_factors(context.environmental_factors)
        self.validate_session_history(context.session_history)
        logger.debug("Analysis context validation passed")

    def validate_required(self, context: Optional[AnalysisContext]) -> None:
        """Minimum needed for analysis: a profile with a fitness level, and a selections mapping."""
        if context is None:
            raise ContextValidationError('context')
        profile = context.user_profile
        if profile is None:
            raise ContextValidationError('user_profile')
        if not profile.fitness_level:
            raise ContextValidationError('user_profile.fitness_level')
        if context.current_selections is None:
            raise ContextValidationError('current_selections')
        if not isinstance(context.current_selections, dict):
            raise ContextValidationError('current_selections', 'expected a mapping for')

    def validate_user_profile(self, context: AnalysisContext) -> None:
        profile = context.user_profile
        self._check_enum(str(profile.fitness_level).lower(), FITNESS_LEVELS, 'user_profile.fitness_level')
        for name in ('goals', 'injuries', 'available_equipment'):
            values = getattr(profile, name)
            if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
                raise ContextValidationError(f'user_profile.{name}', 'expected a list of text for')
        if profile.age is not None:
            self._check_range(profile.age, AGE_RANGE, 'user_profile.age')

    def validate_current_selections(self, selections: Dict[str, Any]) -> None:
        energy = _selection(selections, 'energy')
        if energy is not None:
            self._check_range(as_number(energy, 'rating', 'level', 'value'), ENERGY_RANGE, 'energy')

        duration = _selection(selections, 'duration')
        if duration is not None:
            self._check_range(as_number(duration, 'duration', 'minutes', 'value'), DURATION_RANGE, 'duration')

        focus = _selection(selections, 'focus')
        if focus is not None and not isinstance(focus, (str, list, dict)):
            raise ContextValidationError('focus', 'expected text or a list for')

        for name in ('equipment', 'soreness', 'areas'):
            value = _selection(selections, name)
            if value is not None and not isinstance(value, (list, tuple, dict)):
                raise ContextValidationError(name, 'expected a list for')

    def validate_preferences(self, preferences: Dict[str, Any]) -> None:
        level = preferences.get('ai_assistance_level', preferences.get('aiAssistanceLevel'))
        if level is not None:
            self._check_enum(level, AI_ASSISTANCE_LEVELS, 'preferences.ai_assistance_level')

    def validate_environmental_factors(self, factors: Dict[str, Any]) -> None:
        time_of_day = factors.get('time_of_day', factors.get('timeOfDay'))
        if time_of_day is not None:
            self._check_enum(time_of_day, TIMES_OF_DAY, 'environmental_factors.time_of_day')

        location = factors.get('location')
        if location is not None:
            self._check_enum(location, LOCATIONS, 'environmental_factors.location')

        available_time = factors.get('available_time', factors.get('availableTime'))
        if available_time is not None:
            self._check_range(available_time, AVAILABLE_TIME_RANGE, 'environmental_factors.available_time')

    def validate_session_history(self, history: Iterable[Dict[str, Any]]) -> None:
        for index, interaction in enumerate(history):
            prefix = f"session_history[{index}]"
            if not isinstance(interaction, dict):
                raise ContextValidationError(prefix, 'expected a mapping for')
            for name in ('id', 'timestamp', 'component', 'action'):
                if not interaction.get(name):
                    raise ContextValidationError(f"{prefix}.{name}")
            self._check_enum(interaction['action'], INTERACTION_ACTIONS, f"{prefix}.action")
            feedback = interaction.get('user_feedback', interaction.get('userFeedback'))
            if feedback:
                self._check_enum(feedback, FEEDBACK_VALUES, f"{prefix}.user_feedback")

    @staticmethod
    def _check_enum(value: Any, allowed: Iterable[str], field: str) -> None:
        allowed = list(allowed)
        if value not in allowed:
            raise ContextValidationError(field, f"expected one of {', '.join(allowed)} for")

    @staticmethod
    def _check_range(value: Any, bounds: tuple, field: str) -> None:
        low, high = bounds
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not low <= value <= high:
            raise ContextValidationError(field, f"value must be between {low} and {high} for")

    def is_valid(self, context: Optional[AnalysisContext]) -> bool:
        try:
            self.validate(context)
        except ContextValidationError as e:
            logger.debug(f"Context rejected: {e.message}")
            return False
        return True
