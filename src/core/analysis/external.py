#!/usr/bin/env python3
"""
External generative-AI strategy.

ExternalStrategy is the contract an AI provider implements; the gateway
holds at most one configured strategy and refuses calls when none is set,
so callers never get a silently degraded answer.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from ..exceptions import StrategyNotConfiguredError, ValidationError
from ..models.analysis import Insight
from ..models.context import AnalysisContext
from ..resilience.capabilities import HealthStatusReporter, Resettable
from ..rules.base import as_number, as_string_list

logger = logging.getLogger(__name__)

ERROR_WINDOW_SECONDS = 300  # 5 minutes
DEFAULT_DURATION = 30
DEFAULT_ENERGY = 5


def energy_to_intensity(energy: float) -> str:
    """Map a 1-10 energy rating to low / moderate / high intensity."""
    if energy <= 3:
        return 'low'
    if energy <= 7:
        return 'moderate'
    return 'high'


class ExternalStrategy(ABC):
    """Contract for an external AI provider."""

    @abstractmethod
    async def generate_workout(self, request: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def generate_recommendations(self, context: AnalysisContext) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def enhance_insights(self, insights: List[Insight], context: AnalysisContext) -> List[Insight]:
        pass

    @abstractmethod
    async def analyze_user_preferences(self, context: AnalysisContext) -> Dict[str, Any]:
        pass


class ExternalStrategyGateway(Resettable, HealthStatusReporter):
    """
    Guards access to the configured external strategy.

    Every call raises StrategyNotConfiguredError when no strategy is set.
    Provider errors are logged, mark the gateway degraded for five minutes
    and are re-raised unchanged.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self.reset()

    def reset(self) -> None:
        self._strategy: Optional[ExternalStrategy] = None
        self._last_error: Optional[BaseException] = None
        self._last_error_time: Optional[float] = None

    def set_external_strategy(self, strategy: ExternalStrategy) -> None:
        """
        Configure the strategy used for all external calls.

        Raises:
            ValidationError: If strategy does not implement ExternalStrategy
        """
        if not isinstance(strategy, ExternalStrategy):
            raise ValidationError('strategy', strategy, 'an ExternalStrategy implementation')
        self._strategy = strategy
        self._last_error = None
        self._last_error_time = None
        logger.info(f"External strategy configured: {type(strategy).__name__}")

    def is_configured(self) -> bool:
        return self._strategy is not None

    @property
    def strategy_type(self) -> str:
        return type(self._strategy).__name__ if self._strategy else 'none'

    def _require(self, operation: str) -> ExternalStrategy:
        if self._strategy is None:
            logger.warning(f"External {operation} requested without a configured strategy")
            raise StrategyNotConfiguredError(operation)
        return self._strategy

    async def _call(self, operation: str, fn: Callable[[ExternalStrategy], Any]) -> Any:
        strategy = self._require(operation)
        start = time.perf_counter()
        try:
            result = await fn(strategy)
        except Exception as e:
            self._last_error = e
            self._last_error_time = self._clock()
            logger.error(f"External {operation} failed via {self.strategy_type}: {e}")
            raise
        logger.info(
            f"External {operation} completed in {(time.perf_counter() - start) * 1000:.0f}ms "
            f"via {self.strategy_type}"
        )
        return result

    async def generate_workout(self, selections: Dict[str, Any], context: AnalysisContext) -> Dict[str, Any]:
        request = self.build_workout_request(selections, context)
        return await self._call('generate_workout', lambda s: s.generate_workout(request))

    async def generate_recommendations(self, context: AnalysisContext) -> List[Dict[str, Any]]:
        return await self._call('generate_recommendations', lambda s: s.generate_recommendations(context))

    async def enhance_insights(self, insights: List[Insight], context: AnalysisContext) -> List[Insight]:
        return await self._call('enhance_insights', lambda s: s.enhance_insights(insights, context))

    async def analyze_user_preferences(self, context: AnalysisContext) -> Dict[str, Any]:
        return await self._call('analyze_user_preferences', lambda s: s.analyze_user_preferences(context))

    @staticmethod
    def build_workout_request(selections: Dict[str, Any], context: AnalysisContext) -> Dict[str, Any]:
        """Shape selections and profile into the request an external provider receives."""
        def pick(name: str) -> Any:
            value = selections.get(name)
            return selections.get(f"customization_{name}") if value is None else value

        energy = as_number(pick('energy'), 'rating', 'level', 'value') or DEFAULT_ENERGY
        environment = context.environmental_factors or {}
        return {
            'user_profile': context.user_profile.to_dict() if context.user_profile else {},
            'workout_options': dict(selections),
            'preferences': {
                'duration': as_number(pick('duration'), 'duration', 'minutes', 'value') or DEFAULT_DURATION,
                'focus': pick('focus') or 'General Fitness',
                'intensity': energy_to_intensity(energy),
                'equipment': as_string_list(pick('equipment'), 'equipment', 'items', 'selected'),
                'location': environment.get('location') or 'home'
            },
            'constraints': {
                'time_of_day': environment.get('time_of_day') or environment.get('timeOfDay') or 'morning',
                'energy_level': energy,
                'soreness_areas': as_string_list(pick('soreness'), 'areas', 'selected')
            }
        }

    def get_last_error(self) -> Optional[BaseException]:
        return self._last_error

    def _recent_error(self) -> bool:
        return (
            self._last_error_time is not None
            and self._clock() - self._last_error_time < ERROR_WINDOW_SECONDS
        )

    def get_health_status(self) -> Dict[str, Any]:
        if not self.is_configured():
            status = 'not_configured'
        elif self._recent_error():
            status = 'degraded'
        else:
            status = 'healthy'
        return {
            'status': status,
            'details': {
                'strategy_type': self.strategy_type,
                'last_error': str(self._last_error) if self._last_error else None
            }
        }
