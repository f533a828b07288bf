#!/usr/bin/env python3
"""
Declarative rules for cross-field conflict, synergy and optimization detection.
"""

from .base import Rule
from .conflicts import CONFLICT_RULES
from .synergies import SYNERGY_RULES, OPTIMIZATION_RULES
from .engine import RuleEngine, RuleEvaluation

__all__ = [
    'Rule', 'CONFLICT_RULES', 'SYNERGY_RULES', 'OPTIMIZATION_RULES',
    'RuleEngine', 'RuleEvaluation'
]
