#!/usr/bin/env python3
"""
Analysis context and request models.

AnalysisContext is the long-lived state set through the orchestrator;
AnalysisRequest is the immutable per-call view the analyzers and rules read.
"""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

import pytz


def current_time_of_day(tz=pytz.utc, now: Optional[datetime] = None) -> str:
    """Bucket the local hour into morning / afternoon / evening."""
    local = (now or datetime.now(pytz.utc)).astimezone(tz)
    if local.hour < 12:
        return 'morning'
    if local.hour < 17:
        return 'afternoon'
    return 'evening'


def _as_list(value: Any) -> Any:
    """A single string becomes a one-item list; other non-sequences are left for validation to reject."""
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return value


@dataclass
class UserProfile:
    """Profile attributes used for analysis."""
    fitness_level: str
    goals: List[str]
    age: Optional[int] = None
    injuries: List[str] = field(default_factory=list)
    available_equipment: List[str] = field(default_factory=list)
    preferences: Dict[str, Any] = field(default_factory=dict)
    experience: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserProfile':
        """Create from a plain dictionary (snake_case or camelCase keys)."""
        limitations = data.get('limitations') or data.get('basicLimitations') or {}
        return cls(
            fitness_level=data.get('fitness_level', data.get('fitnessLevel')),
            goals=_as_list(data.get('goals')),
            age=data.get('age'),
            injuries=_as_list(limitations.get('injuries') or data.get('injuries')),
            available_equipment=_as_list(
                limitations.get('available_equipment')
                or limitations.get('availableEquipment')
                or data.get('available_equipment')
            ),
            preferences=dict(data.get('preferences') or {}),
            experience=data.get('experience')
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fitness_level': self.fitness_level,
            'goals': list(self.goals),
            'age': self.age,
            'limitations': {
                'injuries': list(self.injuries),
                'available_equipment': list(self.available_equipment)
            },
            'preferences': dict(self.preferences),
            'experience': self.experience
        }


@dataclass
class AnalysisContext:
    """Global context the orchestrator analyzes against."""
    user_profile: UserProfile
    current_selections: Dict[str, Any]
    preferences: Dict[str, Any] = field(default_factory=dict)
    environmental_factors: Dict[str, Any] = field(default_factory=dict)
    session_history: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AnalysisContext':
        profile = data.get('user_profile', data.get('userProfile'))
        if isinstance(profile, dict):
            profile = UserProfile.from_dict(profile)
        return cls(
            user_profile=profile,
            current_selections=data.get('current_selections', data.get('currentSelections')),
            preferences=dict(data.get('preferences') or {}),
            environmental_factors=dict(
                data.get('environmental_factors') or data.get('environmentalFactors') or {}
            ),
            session_history=list(data.get('session_history') or data.get('sessionHistory') or [])
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'user_profile': self.user_profile.to_dict() if self.user_profile else None,
            'current_selections': dict(self.current_selections or {}),
            'preferences': dict(self.preferences),
            'environmental_factors': dict(self.environmental_factors),
            'session_history': list(self.session_history)
        }


@dataclass(frozen=True)
class AnalysisRequest:
    """Immutable per-call view of selections, profile and environment."""
    selections: Mapping[str, Any]
    profile: UserProfile
    environment: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def build(cls, context: AnalysisContext, partial: Optional[Dict[str, Any]] = None,
              tz=None) -> 'AnalysisRequest':
        """
        Merge partial selections over the context's current selections.

        When tz is given and the context has no time of day, it is derived
        from the current local time in that timezone.
        """
        merged = dict(context.current_selections or {})
        merged.update(partial or {})
        environment = dict(context.environmental_factors)
        if tz is not None and not (environment.get('time_of_day') or environment.get('timeOfDay')):
            environment['time_of_day'] = current_time_of_day(tz)
        return cls(
            selections=MappingProxyType(merged),
            profile=context.user_profile,
            environment=MappingProxyType(environment)
        )

    def get(self, field_name: str, default: Any = None) -> Any:
        value = self.selections.get(field_name, default)
        return default if value is None else value

    @property
    def fitness_level(self) -> str:
        return (self.profile.fitness_level or 'unknown').lower() if self.profile else 'unknown'

    @property
    def goals(self) -> List[str]:
        return list(self.profile.goals) if self.profile else []

    @property
    def time_of_day(self) -> Optional[str]:
        value = self.environment.get('time_of_day', self.environment.get('timeOfDay'))
        return value.lower() if isinstance(value, str) else None
