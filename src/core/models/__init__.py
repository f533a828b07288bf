#!/usr/bin/env python3
"""
Core data models for the analysis core.

Contains all data structures shared between analyzers, rules and the orchestrator.
"""

from .analysis import (
    Insight, Conflict, Synergy, Recommendation, RecommendationAction,
    PerformanceMetrics, AnalysisResult
)
from .context import UserProfile, AnalysisContext, AnalysisRequest, current_time_of_day
from .interaction import Interaction, FeedbackRecord, FEEDBACK_VALUES

__all__ = [
    'Insight', 'Conflict', 'Synergy', 'Recommendation', 'RecommendationAction',
    'PerformanceMetrics', 'AnalysisResult',
    'UserProfile', 'AnalysisContext', 'AnalysisRequest', 'current_time_of_day',
    'Interaction', 'FeedbackRecord', 'FEEDBACK_VALUES'
]
