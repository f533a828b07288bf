#!/usr/bin/env python3
"""
Learning from user interactions and feedback.
"""

from .interaction_tracker import InteractionTracker, new_interaction
from .learning_engine import LearningEngine, DEFAULT_WEIGHT, MIN_WEIGHT, MAX_WEIGHT

__all__ = ['InteractionTracker', 'new_interaction', 'LearningEngine', 'DEFAULT_WEIGHT', 'MIN_WEIGHT', 'MAX_WEIGHT']
