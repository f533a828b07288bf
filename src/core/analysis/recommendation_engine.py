#!/usr/bin/env python3
"""
Recommendation generation and prioritization.

Turns rule-engine conflicts and actionable analyzer insights into one ranked
list of recommendations, and derives the overall confidence and reasoning
text for an analysis.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from ..models.analysis import (
    RANK, Conflict, Insight, Recommendation, RecommendationAction, Synergy
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.5
REQUIRED_FIELDS = (
    'id', 'priority', 'category', 'target_component', 'title', 'description', 'reasoning', 'confidence', 'risk'
)

InsightMap = Dict[str, List[Insight]]


class RecommendationEngine:
    """Merges insights and conflicts into prioritized recommendations."""

    def merge(self,
              insights: InsightMap,
              conflicts: Sequence[Conflict],
              synergies: Optional[Sequence[Synergy]] = None) -> List[Recommendation]:
        """
        Build the sorted recommendation list.

        Every conflict yields exactly one recommendation and so does every
        actionable insight. Synergies are informational and yield none.
        Ordered by priority then confidence, highest first; no deduplication.
        """
        recommendations = [self._from_conflict(conflict) for conflict in conflicts]

        for domain, domain_insights in insights.items():
            for insight in domain_insights:
                if insight.actionable:
                    recommendations.append(self._from_insight(domain, insight))

        ordered = self.sort(recommendations)
        logger.info(
            f"Generated {len(ordered)} recommendations from {len(conflicts)} conflicts "
            f"({len(synergies or [])} synergies noted)"
        )
        return ordered

    @staticmethod
    def sort(recommendations: Sequence[Recommendation]) -> List[Recommendation]:
        return sorted(recommendations, key=lambda r: (-RANK.get(r.priority, 0), -r.confidence))

    @staticmethod
    def _from_conflict(conflict: Conflict) -> Recommendation:
        return Recommendation(
            id=conflict.id,
            priority='critical' if conflict.severity == 'critical' else 'high',
            category='safety' if conflict.type == 'safety' else 'optimization',
            target_component=conflict.components[0],
            confidence=conflict.confidence,
            risk='high' if conflict.severity == 'critical' else 'medium',
            title=f"{conflict.type.replace('_', ' ').title()} issue detected",
            description=conflict.description,
            reasoning=conflict.suggested_resolution,
            action=RecommendationAction(
                type='suggest_alternative',
                alternatives=[conflict.suggested_resolution]
            )
        )

    @staticmethod
    def _from_insight(domain: str, insight: Insight) -> Recommendation:
        text = insight.message or insight.recommendation or f"Insight from {domain} analysis"
        return Recommendation(
            id=insight.id,
            priority='high' if insight.is_warning else 'medium',
            category='safety' if insight.is_warning else 'optimization',
            target_component=domain,
            confidence=insight.confidence,
            risk='medium' if insight.is_warning else 'low',
            title=text,
            description=insight.recommendation or text,
            reasoning=f"Based on {domain} analysis"
        )

    def calculate_overall_confidence(self, insights: InsightMap,
                                     recommendations: Sequence[Recommendation]) -> float:
        """Mean over insight and recommendation confidences; 0.5 when there are none."""
        values = [i.confidence for items in insights.values() for i in items]
        values.extend(r.confidence for r in recommendations)
        if not values:
            return DEFAULT_CONFIDENCE
        return sum(values) / len(values)

    def generate_reasoning(self, insights: InsightMap, conflicts: Sequence[Conflict],
                           recommendations: Sequence[Recommendation]) -> str:
        parts = []

        if conflicts:
            parts.append(f"Detected {len(conflicts)} cross-component issue(s) requiring attention.")

        critical = sum(1 for r in recommendations if r.priority == 'critical')
        if critical:
            parts.append(f"{critical} critical recommendation(s) for immediate action.")

        domains = [domain for domain, items in insights.items() if items]
        if domains:
            parts.append(f"Analysis based on {', '.join(domains)} parameters.")

        return ' '.join(parts) or "Analysis completed successfully."

    @staticmethod
    def filter_by_priority(recommendations: Sequence[Recommendation], priority: str) -> List[Recommendation]:
        return [r for r in recommendations if r.priority == priority]

    @staticmethod
    def filter_by_category(recommendations: Sequence[Recommendation], category: str) -> List[Recommendation]:
        return [r for r in recommendations if r.category == category]

    @staticmethod
    def get_recommendations_for_component(recommendations: Sequence[Recommendation],
                                          target_component: str) -> List[Recommendation]:
        return [r for r in recommendations if r.target_component == target_component]

    def validate_recommendation(self, recommendation: Recommendation) -> bool:
        for name in REQUIRED_FIELDS:
            value = getattr(recommendation, name, None)
            if value is None or value == '':
                logger.warning(f"Invalid recommendation {getattr(recommendation, 'id', '?')}: missing '{name}'")
                return False

        if not 0 <= recommendation.confidence <= 1:
            logger.warning(f"Invalid recommendation {recommendation.id}: confidence must be between 0 and 1")
            return False

        return True

    def validate_recommendations(self, recommendations: Sequence[Recommendation]
                                 ) -> Tuple[List[Recommendation], List[Recommendation]]:
        """Split into (valid, invalid)."""
        valid, invalid = [], []
        for recommendation in recommendations:
            (valid if self.validate_recommendation(recommendation) else invalid).append(recommendation)

        if invalid:
            logger.warning(f"Found {len(invalid)} invalid recommendations out of {len(recommendations)}")
        return valid, invalid
