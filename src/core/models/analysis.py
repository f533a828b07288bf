#!/usr/bin/env python3
"""
Analysis result data models.

Contains the insight, conflict, synergy and recommendation structures that
flow from the domain analyzers and rule engine into a cached AnalysisResult.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

INSIGHT_TYPES = ('info', 'warning')
CONFLICT_TYPES = ('safety', 'efficiency', 'goal_alignment', 'user_experience')
SEVERITIES = ('low', 'medium', 'high', 'critical')
IMPACTS = ('performance', 'safety', 'effectiveness')
PRIORITIES = ('critical', 'high', 'medium', 'low')
CATEGORIES = ('safety', 'optimization', 'education', 'efficiency')
RISK_LEVELS = ('low', 'medium', 'high')

# Shared ordering for severities and priorities (higher sorts first)
RANK = {'critical': 4, 'high': 3, 'medium': 2, 'low': 1}

DEFAULT_INSIGHT_CONFIDENCE = 0.5


def _clamp_confidence(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


@dataclass
class Insight:
    """A single observation produced by a domain analyzer."""
    id: str
    type: str  # info, warning
    message: str
    confidence: Optional[float]  # None means 0.5
    actionable: bool = False
    recommendation: Optional[str] = None

    def __post_init__(self):
        if self.type not in INSIGHT_TYPES:
            raise ValueError(f"Invalid insight type '{self.type}', expected one of {INSIGHT_TYPES}")
        if self.confidence is None:
            self.confidence = DEFAULT_INSIGHT_CONFIDENCE
        self.confidence = _clamp_confidence(self.confidence)

    @property
    def is_warning(self) -> bool:
        return self.type == 'warning'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.type,
            'message': self.message,
            'recommendation': self.recommendation,
            'confidence': self.confidence,
            'actionable': self.actionable
        }


@dataclass
class Conflict:
    """Negative interaction between two or more selection fields."""
    id: str
    components: List[str]
    type: str  # safety, efficiency, goal_alignment, user_experience
    severity: str  # low, medium, high, critical
    description: str
    suggested_resolution: str
    confidence: float
    impact: str  # performance, safety, effectiveness

    def __post_init__(self):
        if len(self.components) < 2:
            raise ValueError(f"Conflict {self.id} must involve at least two components")
        if self.type not in CONFLICT_TYPES:
            raise ValueError(f"Invalid conflict type '{self.type}'")
        if self.severity not in SEVERITIES:
            raise ValueError(f"Invalid conflict severity '{self.severity}'")
        if self.impact not in IMPACTS:
            raise ValueError(f"Invalid conflict impact '{self.impact}'")
        self.confidence = _clamp_confidence(self.confidence)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'components': list(self.components),
            'type': self.type,
            'severity': self.severity,
            'description': self.description,
            'suggested_resolution': self.suggested_resolution,
            'confidence': self.confidence,
            'impact': self.impact
        }


@dataclass
class Synergy:
    """Positive, purely informational interaction between selection fields."""
    id: str
    components: List[str]
    type: str
    description: str
    confidence: float

    def __post_init__(self):
        self.confidence = _clamp_confidence(self.confidence)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'components': list(self.components),
            'type': self.type,
            'description': self.description,
            'confidence': self.confidence
        }


@dataclass
class RecommendationAction:
    """Concrete change a recommendation proposes."""
    type: str  # suggest_alternative, adjust_value, ...
    alternatives: List[str] = field(default_factory=list)
    target_value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'alternatives': list(self.alternatives),
            'target_value': self.target_value
        }


@dataclass
class Recommendation:
    """Actionable, prioritized suggestion derived from insights and conflicts."""
    id: str
    priority: str  # critical, high, medium, low
    category: str  # safety, optimization, education, efficiency
    target_component: str
    confidence: float
    risk: str  # low, medium, high
    title: str = ""
    description: str = ""
    reasoning: str = ""
    action: Optional[RecommendationAction] = None

    def __post_init__(self):
        self.confidence = _clamp_confidence(self.confidence)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'priority': self.priority,
            'category': self.category,
            'target_component': self.target_component,
            'confidence': self.confidence,
            'risk': self.risk,
            'title': self.title,
            'description': self.description,
            'reasoning': self.reasoning,
            'action': self.action.to_dict() if self.action else None
        }


@dataclass
class PerformanceMetrics:
    """Timing and resource figures captured while producing a result."""
    execution_time_ms: float = 0.0
    memory_usage_bytes: int = 0
    cache_hit_rate: float = 0.0
    attempts: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'execution_time_ms': self.execution_time_ms,
            'memory_usage_bytes': self.memory_usage_bytes,
            'cache_hit_rate': self.cache_hit_rate,
            'attempts': self.attempts
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Unified analysis for one request. Created once per cache miss and never reassigned."""
    id: str
    timestamp: datetime
    insights: Dict[str, List[Insight]]
    conflicts: List[Conflict]
    synergies: List[Synergy]
    recommendations: List[Recommendation]
    confidence: float
    reasoning: str
    performance_metrics: PerformanceMetrics = field(default_factory=PerformanceMetrics)
    is_fallback: bool = False

    def __post_init__(self):
        """Validate and clean data."""
        object.__setattr__(self, 'confidence', _clamp_confidence(self.confidence))
        object.__setattr__(self, 'reasoning', self.reasoning.strip())

    def insight_count(self) -> int:
        return sum(len(items) for items in self.insights.values())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'timestamp': self.timestamp.isoformat(),
            'insights': {domain: [i.to_dict() for i in items] for domain, items in self.insights.items()},
            'conflicts': [c.to_dict() for c in self.conflicts],
            'synergies': [s.to_dict() for s in self.synergies],
            'recommendations': [r.to_dict() for r in self.recommendations],
            'confidence': self.confidence,
            'reasoning': self.reasoning,
            'performance_metrics': self.performance_metrics.to_dict(),
            'is_fallback': self.is_fallback
        }
