#!/usr/bin/env python3
"""
Rule records and selection accessors.

A rule is plain data: an id, a predicate over (request) and a generator that
builds the finding when the predicate holds. The accessors below read the
request's selections tolerantly, since field values may be scalars, lists or
nested objects (e.g. {'rating': 3} or {'duration': 45}).
"""

import itertools
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from ..models.context import AnalysisRequest

# Thresholds shared by the rule tables
LOW_ENERGY_THRESHOLD = 2
HIGH_ENERGY_THRESHOLD = 4
SHORT_DURATION_THRESHOLD = 30
MEDIUM_DURATION_THRESHOLD = 45
LONG_DURATION_THRESHOLD = 60
VERY_LONG_DURATION_THRESHOLD = 90
HIGH_SORENESS_COUNT = 3
MANY_EQUIPMENT_COUNT = 4
MIN_EQUIPMENT_FOR_STRENGTH = 2
HIGH_WEEKLY_VOLUME = 300
WARMUP_MINUTES = (5, 10)

HIGH_INTENSITY_FOCUS = {'strength', 'power'}
INTENSE_FOCUS = {'strength', 'power', 'endurance', 'hiit'}
ADVANCED_FOCUS = {'power', 'endurance'}
BEGINNER_LEVELS = {'beginner', 'novice', 'new to exercise'}

HIGH_CONFIDENCE = 0.95
MEDIUM_HIGH_CONFIDENCE = 0.9
MEDIUM_CONFIDENCE = 0.85
MEDIUM_LOW_CONFIDENCE = 0.8
LOW_CONFIDENCE = 0.75
VERY_LOW_CONFIDENCE = 0.7

_ids = itertools.count(1)


def next_id(prefix: str) -> str:
    """Process-unique id for a generated finding."""
    return f"{prefix}_{next(_ids)}"


@dataclass(frozen=True)
class Rule:
    """Declarative rule: predicate plus generator."""
    id: str
    predicate: Callable[[AnalysisRequest], bool]
    generator: Callable[[AnalysisRequest], Any]

    def applies(self, request: AnalysisRequest) -> bool:
        return bool(self.predicate(request))

    def generate(self, request: AnalysisRequest) -> Any:
        return self.generator(request)


def _field(request: AnalysisRequest, name: str) -> Any:
    value = request.get(name)
    if value is None:
        value = request.get(f"customization_{name}")
    return value


def as_number(value: Any, *keys: str) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, dict):
        for key in keys:
            if isinstance(value.get(key), (int, float)) and not isinstance(value.get(key), bool):
                return float(value[key])
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def as_string_list(value: Any, *keys: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, dict):
        for key in keys:
            if key in value:
                return as_string_list(value[key])
        return [name for name, selected in value.items() if selected is True]
    if isinstance(value, (list, tuple, set, frozenset)):
        items = []
        for item in value:
            if isinstance(item, dict):
                label = item.get('label') or item.get('name') or item.get('value')
                if label:
                    items.append(str(label))
            elif item is not None:
                items.append(str(item))
        return items
    return [str(value)]


def energy(request: AnalysisRequest) -> Optional[float]:
    return as_number(_field(request, 'energy'), 'rating', 'level', 'value')


def duration(request: AnalysisRequest) -> Optional[float]:
    return as_number(_field(request, 'duration'), 'duration', 'minutes', 'value')


def focus(request: AnalysisRequest) -> Optional[str]:
    value = _field(request, 'focus')
    if isinstance(value, dict):
        value = value.get('focus') or value.get('value') or value.get('label')
    return value.strip().lower() if isinstance(value, str) and value.strip() else None


def soreness_areas(request: AnalysisRequest) -> List[str]:
    return [area.lower() for area in as_string_list(_field(request, 'soreness'), 'areas', 'selected')]


def target_areas(request: AnalysisRequest) -> List[str]:
    return [area.lower() for area in as_string_list(_field(request, 'areas'), 'areas', 'selected')]


def equipment(request: AnalysisRequest) -> List[str]:
    return as_string_list(_field(request, 'equipment'), 'equipment', 'items', 'selected')


def has_equipment(request: AnalysisRequest, name: str) -> bool:
    return name.lower() in (item.lower() for item in equipment(request))


def injuries(request: AnalysisRequest) -> List[str]:
    from_selection = as_string_list(_field(request, 'injuries'))
    from_profile = list(request.profile.injuries) if request.profile else []
    return [injury for injury in from_selection + from_profile if injury and injury.lower() != 'none']


def training_load(request: AnalysisRequest) -> Optional[dict]:
    value = request.get('trainingLoad', request.get('training_load', request.get('customization_trainingLoad')))
    return value if isinstance(value, dict) else None


def training_intensity(request: AnalysisRequest) -> Optional[str]:
    load = training_load(request)
    if not load:
        return None
    intensity = load.get('average_intensity', load.get('averageIntensity'))
    return intensity.lower() if isinstance(intensity, str) else None
