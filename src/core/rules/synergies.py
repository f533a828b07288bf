#!/usr/bin/env python3
"""
Synergy and optimization rule tables.

Synergies are informational and never block anything. Optimization rules
emit actionable info insights for combinations that could be improved.
"""

from ..models.analysis import Insight, Synergy
from .base import (
    Rule, next_id,
    energy, duration, focus, soreness_areas, target_areas, equipment, has_equipment,
    HIGH_ENERGY_THRESHOLD, VERY_LONG_DURATION_THRESHOLD, MIN_EQUIPMENT_FOR_STRENGTH, WARMUP_MINUTES,
    HIGH_CONFIDENCE, MEDIUM_HIGH_CONFIDENCE, MEDIUM_LOW_CONFIDENCE, LOW_CONFIDENCE, VERY_LOW_CONFIDENCE
)


SYNERGY_RULES = (
    Rule(
        id='high_energy_strength',
        predicate=lambda r: (energy(r) or 0) >= HIGH_ENERGY_THRESHOLD and focus(r) == 'strength',
        generator=lambda r: Synergy(
            id=next_id('synergy_energy_focus'),
            components=['energy', 'focus'],
            type='performance_boost',
            description="High energy supports a demanding strength session",
            confidence=MEDIUM_HIGH_CONFIDENCE
        )
    ),
    Rule(
        id='strength_dumbbells',
        predicate=lambda r: focus(r) == 'strength' and has_equipment(r, 'dumbbells'),
        generator=lambda r: Synergy(
            id=next_id('synergy_focus_equipment'),
            components=['focus', 'equipment'],
            type='optimization',
            description="Strength focus with dumbbells allows unilateral work and full range of motion",
            confidence=MEDIUM_HIGH_CONFIDENCE
        )
    ),
    Rule(
        id='recovery_foam_roller',
        predicate=lambda r: (
            focus(r) == 'recovery' and bool(soreness_areas(r)) and has_equipment(r, 'foam roller')
        ),
        generator=lambda r: Synergy(
            id=next_id('synergy_recovery'),
            components=['focus', 'soreness', 'equipment'],
            type='optimization',
            description="Recovery focus with a foam roller addresses soreness effectively",
            confidence=HIGH_CONFIDENCE
        )
    ),
)


OPTIMIZATION_RULES = (
    Rule(
        id='warmup_for_long_session',
        predicate=lambda r: (duration(r) or 0) > VERY_LONG_DURATION_THRESHOLD,
        generator=lambda r: Insight(
            id=next_id('insight_warmup'),
            type='info',
            message="Long workout duration detected; consider adding a warm-up",
            recommendation=f"Include {WARMUP_MINUTES[0]}-{WARMUP_MINUTES[1]} minutes of dynamic warm-up",
            confidence=MEDIUM_LOW_CONFIDENCE,
            actionable=True
        )
    ),
    Rule(
        id='equipment_for_strength',
        predicate=lambda r: focus(r) == 'strength' and len(equipment(r)) < MIN_EQUIPMENT_FOR_STRENGTH,
        generator=lambda r: Insight(
            id=next_id('insight_equipment'),
            type='info',
            message="Strength focus with minimal equipment may limit progression",
            recommendation="Consider adding resistance bands or dumbbells for variety",
            confidence=LOW_CONFIDENCE,
            actionable=True
        )
    ),
    Rule(
        id='target_areas_for_focus',
        predicate=lambda r: focus(r) is not None and not target_areas(r),
        generator=lambda r: Insight(
            id=next_id('insight_areas'),
            type='info',
            message="Focus specified but no target areas selected",
            recommendation="Select specific muscle groups to target for better results",
            confidence=VERY_LOW_CONFIDENCE,
            actionable=True
        )
    ),
)
