#!/usr/bin/env python3
"""
Domain analyzers.

A domain analyzer looks at one selection field (energy, soreness, focus,
duration, equipment) and returns insights about it. The orchestrator treats
analyzers as external collaborators; the reference implementations here are
what the CLI and tests register.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from ..models.analysis import Insight
from ..models.context import AnalysisRequest
from ..resilience.capabilities import HealthStatusReporter, Resettable
from ..rules.base import (
    next_id, as_number, as_string_list,
    LOW_ENERGY_THRESHOLD, HIGH_ENERGY_THRESHOLD, HIGH_SORENESS_COUNT,
    SHORT_DURATION_THRESHOLD, VERY_LONG_DURATION_THRESHOLD,
    BEGINNER_LEVELS, ADVANCED_FOCUS,
    HIGH_CONFIDENCE, MEDIUM_HIGH_CONFIDENCE, MEDIUM_CONFIDENCE, MEDIUM_LOW_CONFIDENCE,
    LOW_CONFIDENCE, VERY_LOW_CONFIDENCE
)

logger = logging.getLogger(__name__)

ANALYZER_DOMAINS = ('energy', 'soreness', 'focus', 'duration', 'equipment')

# (condition, builder) pairs evaluated in order; every matching pair contributes
InsightRule = Tuple[Callable[[Any, AnalysisRequest], bool], Callable[[Any, AnalysisRequest], Insight]]


class DomainAnalyzer(ABC):
    """Abstract base class for per-field analyzers."""

    domain: str = ''

    @abstractmethod
    async def analyze(self, value: Any, context: AnalysisRequest) -> List[Insight]:
        """
        Analyze one selection value.

        Args:
            value: Raw selection value for this analyzer's domain (may be None)
            context: Immutable request the value was taken from

        Returns:
            Insights about the value, possibly empty
        """
        pass


class RuleBasedAnalyzer(DomainAnalyzer, Resettable, HealthStatusReporter):
    """Reference analyzer driven by an ordered table of insight rules."""

    rules: Tuple[InsightRule, ...] = ()

    def __init__(self):
        self._analysis_count = 0
        self._failures = 0

    def normalize(self, value: Any) -> Any:
        return value

    async def analyze(self, value: Any, context: AnalysisRequest) -> List[Insight]:
        normalized = self.normalize(value)
        if normalized is None or normalized == []:
            return []

        insights = []
        for condition, build in self.rules:
            try:
                if condition(normalized, context):
                    insights.append(build(normalized, context))
            except Exception as e:
                self._failures += 1
                logger.warning(f"{self.domain} insight rule failed: {e}")
        self._analysis_count += 1
        return insights

    def reset(self) -> None:
        self._analysis_count = 0
        self._failures = 0

    def get_health_status(self) -> Dict[str, Any]:
        return {
            'status': 'healthy' if self._failures == 0 else 'degraded',
            'details': {'analyses': self._analysis_count, 'rule_failures': self._failures}
        }


def _insight(prefix: str, type_: str, message: str, recommendation: Optional[str],
             confidence: float, actionable: bool = True) -> Insight:
    return Insight(
        id=next_id(prefix),
        type=type_,
        message=message,
        recommendation=recommendation,
        confidence=confidence,
        actionable=actionable
    )


class EnergyAnalyzer(RuleBasedAnalyzer):
    domain = 'energy'
    rules = (
        (
            lambda level, _: level < LOW_ENERGY_THRESHOLD,
            lambda level, _: _insight(
                'insight_energy_critical', 'warning', "Very low energy level detected",
                "Consider resting or limiting today's session to light mobility work", HIGH_CONFIDENCE
            )
        ),
        (
            lambda level, _: level == LOW_ENERGY_THRESHOLD,
            lambda level, _: _insight(
                'insight_energy_low', 'warning', "Low energy level, consider a lighter workout",
                "Consider gentle movements or a recovery focus", MEDIUM_CONFIDENCE
            )
        ),
        (
            lambda level, _: LOW_ENERGY_THRESHOLD < level < HIGH_ENERGY_THRESHOLD,
            lambda level, _: _insight(
                'insight_energy_moderate', 'info', "Moderate energy level",
                "A balanced, moderate-intensity workout fits well", LOW_CONFIDENCE, actionable=False
            )
        ),
        (
            lambda level, _: level >= HIGH_ENERGY_THRESHOLD,
            lambda level, _: _insight(
                'insight_energy_high', 'info', "Good energy level",
                "Ready for a moderate to high-intensity workout", MEDIUM_CONFIDENCE, actionable=False
            )
        ),
    )

    def normalize(self, value: Any) -> Optional[float]:
        return as_number(value, 'rating', 'level', 'value')


class SorenessAnalyzer(RuleBasedAnalyzer):
    domain = 'soreness'
    rules = (
        (
            lambda areas, _: len(areas) > 0,
            lambda areas, _: _insight(
                'insight_soreness', 'warning', f"Soreness reported in {', '.join(areas)}",
                "Avoid loading sore areas heavily and include extra mobility work", MEDIUM_HIGH_CONFIDENCE
            )
        ),
        (
            lambda areas, _: len(areas) >= HIGH_SORENESS_COUNT,
            lambda areas, _: _insight(
                'insight_soreness_widespread', 'warning', "Widespread soreness detected",
                "A recovery-focused session is likely the better choice today", MEDIUM_CONFIDENCE
            )
        ),
    )

    def normalize(self, value: Any) -> List[str]:
        return [area.lower() for area in as_string_list(value, 'areas', 'selected')]


class FocusAnalyzer(RuleBasedAnalyzer):
    domain = 'focus'
    rules = (
        (
            lambda focus, request: focus in ADVANCED_FOCUS and request.fitness_level in BEGINNER_LEVELS,
            lambda focus, _: _insight(
                'insight_focus_level', 'warning', f"{focus.title()} focus is demanding for a beginner",
                "Build a foundation with strength or flexibility work first", MEDIUM_CONFIDENCE
            )
        ),
        (
            lambda focus, _: focus == 'recovery',
            lambda focus, _: _insight(
                'insight_focus_recovery', 'info', "Recovery focus selected",
                None, VERY_LOW_CONFIDENCE, actionable=False
            )
        ),
    )

    def normalize(self, value: Any) -> Optional[str]:
        if isinstance(value, dict):
            value = value.get('focus') or value.get('value') or value.get('label')
        return value.strip().lower() if isinstance(value, str) and value.strip() else None


class DurationAnalyzer(RuleBasedAnalyzer):
    domain = 'duration'
    rules = (
        (
            lambda minutes, _: minutes < SHORT_DURATION_THRESHOLD,
            lambda minutes, _: _insight(
                'insight_duration_short', 'info', f"Short {minutes:.0f}-minute session",
                "Prioritize compound movements to make the most of the time", LOW_CONFIDENCE
            )
        ),
        (
            lambda minutes, _: minutes > VERY_LONG_DURATION_THRESHOLD,
            lambda minutes, _: _insight(
                'insight_duration_long', 'warning', f"Very long {minutes:.0f}-minute session",
                "Plan rest periods and hydration breaks", MEDIUM_LOW_CONFIDENCE
            )
        ),
    )

    def normalize(self, value: Any) -> Optional[float]:
        return as_number(value, 'duration', 'minutes', 'value')


class EquipmentAnalyzer(RuleBasedAnalyzer):
    domain = 'equipment'
    rules = (
        (
            lambda items, _: [i.lower() for i in items] == ['bodyweight'],
            lambda items, _: _insight(
                'insight_equipment_bodyweight', 'info', "Bodyweight-only session",
                "Use tempo and unilateral variations to increase difficulty", VERY_LOW_CONFIDENCE
            )
        ),
    )

    def normalize(self, value: Any) -> List[str]:
        return as_string_list(value, 'equipment', 'items', 'selected')


REFERENCE_ANALYZERS: Dict[str, Type[RuleBasedAnalyzer]] = {
    analyzer.domain: analyzer
    for analyzer in (EnergyAnalyzer, SorenessAnalyzer, FocusAnalyzer, DurationAnalyzer, EquipmentAnalyzer)
}
