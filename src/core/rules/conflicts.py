#!/usr/bin/env python3
"""
Conflict rule table.

Each entry detects one negative interaction between selection fields.
Rules are independent; any number may fire for a request.
"""

from ..models.analysis import Conflict
from ..models.context import AnalysisRequest
from .base import (
    Rule, next_id,
    energy, duration, focus, soreness_areas, target_areas, equipment, injuries, training_intensity,
    training_load,
    LOW_ENERGY_THRESHOLD, SHORT_DURATION_THRESHOLD, MEDIUM_DURATION_THRESHOLD, LONG_DURATION_THRESHOLD,
    HIGH_SORENESS_COUNT, MANY_EQUIPMENT_COUNT, HIGH_WEEKLY_VOLUME,
    HIGH_INTENSITY_FOCUS, INTENSE_FOCUS, ADVANCED_FOCUS, BEGINNER_LEVELS,
    HIGH_CONFIDENCE, MEDIUM_HIGH_CONFIDENCE, MEDIUM_CONFIDENCE, MEDIUM_LOW_CONFIDENCE,
    LOW_CONFIDENCE, VERY_LOW_CONFIDENCE
)


def _low_energy(request: AnalysisRequest) -> bool:
    level = energy(request)
    return level is not None and level <= LOW_ENERGY_THRESHOLD


def _longer_than(request: AnalysisRequest, minutes: float) -> bool:
    length = duration(request)
    return length is not None and length > minutes


def _shorter_than(request: AnalysisRequest, minutes: float) -> bool:
    length = duration(request)
    return length is not None and length < minutes


def _focus_in(request: AnalysisRequest, choices) -> bool:
    return focus(request) in choices


def _intense_load(request: AnalysisRequest) -> bool:
    return training_intensity(request) == 'intense'


def _weekly_volume(request: AnalysisRequest) -> float:
    load = training_load(request) or {}
    volume = load.get('weekly_volume', load.get('weeklyVolume', 0))
    return float(volume) if isinstance(volume, (int, float)) else 0.0


def _injury_with_intensity(request: AnalysisRequest) -> bool:
    return bool(injuries(request)) and (
        _focus_in(request, INTENSE_FOCUS) or _longer_than(request, LONG_DURATION_THRESHOLD)
    )


def _injury_conflict(request: AnalysisRequest) -> Conflict:
    intense = _focus_in(request, INTENSE_FOCUS)
    long_session = _longer_than(request, LONG_DURATION_THRESHOLD)
    components = ['injuries']
    if intense:
        components.append('focus')
    if long_session:
        components.append('duration')
    return Conflict(
        id=next_id('conflict_injury'),
        components=components,
        type='safety',
        severity='critical' if intense and long_session else 'high',
        description=f"Reported injuries ({', '.join(injuries(request))}) combined with a demanding session",
        suggested_resolution="Lower the intensity, shorten the session or choose a rehabilitation focus",
        confidence=MEDIUM_HIGH_CONFIDENCE,
        impact='safety'
    )


def _overlap_conflict(request: AnalysisRequest) -> Conflict:
    overlap = sorted(set(soreness_areas(request)) & set(target_areas(request)))
    return Conflict(
        id=next_id('conflict_soreness_areas'),
        components=['soreness', 'areas'],
        type='safety',
        severity='medium',
        description=f"Selected target areas overlap with sore muscle groups: {', '.join(overlap)}",
        suggested_resolution="Choose different areas or reduce intensity for sore regions",
        confidence=MEDIUM_CONFIDENCE,
        impact='safety'
    )


CONFLICT_RULES = (
    Rule(
        id='low_energy_long_duration',
        predicate=lambda r: _low_energy(r) and _longer_than(r, LONG_DURATION_THRESHOLD),
        generator=lambda r: Conflict(
            id=next_id('conflict_energy_duration'),
            components=['energy', 'duration'],
            type='efficiency',
            severity='high',
            description="Low energy level paired with a long workout may lead to poor performance",
            suggested_resolution="Reduce duration to 30-45 minutes or focus on recovery activities",
            confidence=MEDIUM_HIGH_CONFIDENCE,
            impact='performance'
        )
    ),
    Rule(
        id='low_energy_high_intensity_focus',
        predicate=lambda r: _low_energy(r) and _focus_in(r, HIGH_INTENSITY_FOCUS),
        generator=lambda r: Conflict(
            id=next_id('conflict_energy_focus'),
            components=['energy', 'focus'],
            type='safety',
            severity='high',
            description="Low energy with a high-intensity focus may increase injury risk",
            suggested_resolution="Switch to mobility, flexibility or recovery focus",
            confidence=HIGH_CONFIDENCE,
            impact='safety'
        )
    ),
    Rule(
        id='soreness_target_overlap',
        predicate=lambda r: bool(set(soreness_areas(r)) & set(target_areas(r))),
        generator=_overlap_conflict
    ),
    Rule(
        id='high_soreness_intense_focus',
        predicate=lambda r: len(soreness_areas(r)) >= HIGH_SORENESS_COUNT and _focus_in(r, INTENSE_FOCUS),
        generator=lambda r: Conflict(
            id=next_id('conflict_soreness_focus'),
            components=['soreness', 'focus'],
            type='safety',
            severity='high',
            description="Widespread soreness with an intense focus may worsen muscle recovery",
            suggested_resolution="Switch to recovery or flexibility focus",
            confidence=MEDIUM_HIGH_CONFIDENCE,
            impact='safety'
        )
    ),
    Rule(
        id='injury_intensity',
        predicate=_injury_with_intensity,
        generator=_injury_conflict
    ),
    Rule(
        id='short_strength_session',
        predicate=lambda r: focus(r) == 'strength' and _shorter_than(r, SHORT_DURATION_THRESHOLD),
        generator=lambda r: Conflict(
            id=next_id('conflict_focus_duration'),
            components=['focus', 'duration'],
            type='efficiency',
            severity='medium',
            description="Strength focus with a very short duration may limit training effectiveness",
            suggested_resolution="Increase duration to 45+ minutes or switch to mobility focus",
            confidence=MEDIUM_LOW_CONFIDENCE,
            impact='effectiveness'
        )
    ),
    Rule(
        id='strength_without_equipment',
        predicate=lambda r: focus(r) == 'strength' and not equipment(r),
        generator=lambda r: Conflict(
            id=next_id('conflict_equipment_focus'),
            components=['equipment', 'focus'],
            type='efficiency',
            severity='medium',
            description="Strength focus without equipment may limit training options",
            suggested_resolution="Add resistance equipment or switch to a bodyweight-friendly focus",
            confidence=LOW_CONFIDENCE,
            impact='effectiveness'
        )
    ),
    Rule(
        id='too_much_equipment_short_session',
        predicate=lambda r: len(equipment(r)) > MANY_EQUIPMENT_COUNT and _shorter_than(r, MEDIUM_DURATION_THRESHOLD),
        generator=lambda r: Conflict(
            id=next_id('conflict_equipment_duration'),
            components=['equipment', 'duration'],
            type='efficiency',
            severity='medium',
            description="Many equipment pieces in a short session may rush transitions",
            suggested_resolution="Reduce the equipment selection or extend the duration",
            confidence=MEDIUM_LOW_CONFIDENCE,
            impact='performance'
        )
    ),
    Rule(
        id='beginner_advanced_focus',
        predicate=lambda r: r.fitness_level in BEGINNER_LEVELS and _focus_in(r, ADVANCED_FOCUS),
        generator=lambda r: Conflict(
            id=next_id('conflict_experience_focus'),
            components=['focus', 'user_profile'],
            type='safety',
            severity='medium',
            description="Advanced focus may be inappropriate for someone new to exercise",
            suggested_resolution="Start with strength or flexibility focus to build a foundation",
            confidence=MEDIUM_CONFIDENCE,
            impact='safety'
        )
    ),
    Rule(
        id='evening_high_intensity',
        predicate=lambda r: (
            r.time_of_day == 'evening'
            and _focus_in(r, HIGH_INTENSITY_FOCUS)
            and r.fitness_level != 'advanced'
        ),
        generator=lambda r: Conflict(
            id=next_id('conflict_time_focus'),
            components=['focus', 'environmental_factors'],
            type='user_experience',
            severity='medium',
            description="High-intensity focus in the evening may affect sleep quality",
            suggested_resolution="Consider a morning session or switch to recovery focus",
            confidence=MEDIUM_LOW_CONFIDENCE,
            impact='effectiveness'
        )
    ),
    Rule(
        id='weight_loss_long_strength',
        predicate=lambda r: (
            'weight_loss' in [goal.lower().replace(' ', '_') for goal in r.goals]
            and focus(r) == 'strength'
            and _longer_than(r, LONG_DURATION_THRESHOLD)
        ),
        generator=lambda r: Conflict(
            id=next_id('conflict_goal_focus'),
            components=['focus', 'duration', 'user_goals'],
            type='goal_alignment',
            severity='low',
            description="Long strength sessions may not align with weight loss goals",
            suggested_resolution="Consider cardio focus or circuit training for weight loss",
            confidence=VERY_LOW_CONFIDENCE,
            impact='effectiveness'
        )
    ),
    Rule(
        id='intense_load_intense_focus',
        predicate=lambda r: (
            _intense_load(r) and _focus_in(r, HIGH_INTENSITY_FOCUS) and _weekly_volume(r) > HIGH_WEEKLY_VOLUME
        ),
        generator=lambda r: Conflict(
            id=next_id('conflict_training_load_focus'),
            components=['training_load', 'focus'],
            type='safety',
            severity='high',
            description="High training load with an intense focus may lead to overtraining",
            suggested_resolution="Consider recovery focus or reduce training intensity",
            confidence=MEDIUM_HIGH_CONFIDENCE,
            impact='safety'
        )
    ),
    Rule(
        id='intense_load_long_duration',
        predicate=lambda r: _intense_load(r) and _longer_than(r, LONG_DURATION_THRESHOLD),
        generator=lambda r: Conflict(
            id=next_id('conflict_training_load_duration'),
            components=['training_load', 'duration'],
            type='efficiency',
            severity='medium',
            description="High training load with a long duration may be unsustainable",
            suggested_resolution="Reduce duration or consider a recovery-focused session",
            confidence=MEDIUM_CONFIDENCE,
            impact='performance'
        )
    ),
    Rule(
        id='intense_load_low_energy',
        predicate=lambda r: _intense_load(r) and _low_energy(r),
        generator=lambda r: Conflict(
            id=next_id('conflict_training_load_energy'),
            components=['training_load', 'energy'],
            type='safety',
            severity='high',
            description="Low energy with a high training load may lead to poor performance",
            suggested_resolution="Consider a recovery session or reduce workout intensity",
            confidence=HIGH_CONFIDENCE,
            impact='performance'
        )
    ),
)
