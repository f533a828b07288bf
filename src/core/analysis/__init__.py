#!/usr/bin/env python3
"""
Analysis orchestration for workout customization.

Provides the orchestrator, the domain analyzer contract with reference
analyzers, recommendation merging, context validation and the external
AI strategy gateway.
"""

from .analyzers import (
    DomainAnalyzer, RuleBasedAnalyzer, EnergyAnalyzer, SorenessAnalyzer, FocusAnalyzer,
    DurationAnalyzer, EquipmentAnalyzer, REFERENCE_ANALYZERS, ANALYZER_DOMAINS
)
from .external import ExternalStrategy, ExternalStrategyGateway
from .orchestrator import AnalysisOrchestrator
from .recommendation_engine import RecommendationEngine
from .validation import ContextValidator

__all__ = [
    'DomainAnalyzer', 'RuleBasedAnalyzer', 'EnergyAnalyzer', 'SorenessAnalyzer', 'FocusAnalyzer',
    'DurationAnalyzer', 'EquipmentAnalyzer', 'REFERENCE_ANALYZERS', 'ANALYZER_DOMAINS',
    'ExternalStrategy', 'ExternalStrategyGateway',
    'AnalysisOrchestrator', 'RecommendationEngine', 'ContextValidator'
]
