#!/usr/bin/env python3
"""
Rule engine for cross-field conflict and synergy detection.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from ..models.analysis import RANK, Conflict, Insight, Synergy
from ..models.context import AnalysisRequest
from .base import Rule
from .conflicts import CONFLICT_RULES
from .synergies import OPTIMIZATION_RULES, SYNERGY_RULES

logger = logging.getLogger(__name__)


@dataclass
class RuleEvaluation:
    """Findings from one pass over the rule tables."""
    conflicts: List[Conflict] = field(default_factory=list)
    synergies: List[Synergy] = field(default_factory=list)
    optimizations: List[Insight] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'conflicts': [c.to_dict() for c in self.conflicts],
            'synergies': [s.to_dict() for s in self.synergies],
            'optimizations': [i.to_dict() for i in self.optimizations]
        }


class RuleEngine:
    """
    Evaluates ordered, declarative rule tables against a request.

    Predicates are independent and non-exclusive. Conflicts are ordered by
    severity then confidence; ties keep declaration order.
    """

    def __init__(self,
                 conflict_rules: Sequence[Rule] = CONFLICT_RULES,
                 synergy_rules: Sequence[Rule] = SYNERGY_RULES,
                 optimization_rules: Sequence[Rule] = OPTIMIZATION_RULES):
        self.conflict_rules = tuple(conflict_rules)
        self.synergy_rules = tuple(synergy_rules)
        self.optimization_rules = tuple(optimization_rules)

    def evaluate(self, request: AnalysisRequest) -> RuleEvaluation:
        conflicts = self._apply(self.conflict_rules, request)
        synergies = self._apply(self.synergy_rules, request)
        optimizations = self._apply(self.optimization_rules, request)

        # sorted() is stable, so equal keys keep rule-declaration order
        conflicts = sorted(conflicts, key=lambda c: (-RANK[c.severity], -c.confidence))
        synergies = sorted(synergies, key=lambda s: -s.confidence)

        logger.debug(
            f"Rule evaluation: {len(conflicts)} conflicts, {len(synergies)} synergies, "
            f"{len(optimizations)} optimizations"
        )
        return RuleEvaluation(conflicts=conflicts, synergies=synergies, optimizations=optimizations)

    def detect_conflicts(self, request: AnalysisRequest) -> List[Conflict]:
        return self.evaluate(request).conflicts

    def find_synergies(self, request: AnalysisRequest) -> List[Synergy]:
        return self.evaluate(request).synergies

    @staticmethod
    def _apply(rules: Sequence[Rule], request: AnalysisRequest) -> List[Any]:
        findings = []
        for rule in rules:
            try:
                if rule.applies(request):
                    findings.append(rule.generate(request))
            except Exception as e:
                logger.warning(f"Rule '{rule.id}' failed and was skipped: {e}")
        return findings
