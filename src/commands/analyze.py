#!/usr/bin/env python3
"""
Analyze command for running workout-selection analyses.

Runs the analysis orchestrator against selections given on the command line,
and optionally asks the configured OpenAI strategy for a full workout.
"""

import asyncio
import json
import logging
from argparse import Namespace
from typing import Any, Dict

from .base import BaseCommand
from core.models.analysis import AnalysisResult

logger = logging.getLogger(__name__)

PRIORITY_ICONS = {
    'critical': '🚨',
    'high': '⚠️ ',
    'medium': '💡',
    'low': 'ℹ️ '
}


class AnalyzeCommand(BaseCommand):
    """Analyze workout selections and generate recommendations."""

    SUBCOMMANDS = ('run', 'workout')

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute analyze subcommand."""
        try:
            if subcommand == "run":
                return self.run(args)
            elif subcommand == "workout":
                return self.workout(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1

        except Exception as e:
            return self.handle_error(e, f"analyze {subcommand}")

    def run(self, args: Namespace) -> int:
        """Analyze the given selections."""
        orchestrator = self.orchestrator
        orchestrator.set_context(self.build_context(args.selections, args.profile))

        result = asyncio.run(orchestrator.analyze())

        if getattr(args, 'json', False):
            print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        else:
            self._print_result(result)
        return 0

    def workout(self, args: Namespace) -> int:
        """Generate a workout through the OpenAI strategy."""
        orchestrator = self.orchestrator
        orchestrator.set_context(self.build_context(args.selections, args.profile))
        orchestrator.set_external_strategy(self.create_openai_strategy())

        plan = asyncio.run(orchestrator.generate_workout())

        if getattr(args, 'json', False):
            print(json.dumps(plan, indent=2, ensure_ascii=False))
        else:
            self._print_workout(plan)
        return 0

    @staticmethod
    def _print_result(result: AnalysisResult) -> None:
        print("🏋️  Workout Analysis")
        print("=" * 50)
        if result.is_fallback:
            print("⚠️  Fallback analysis (analyzers unavailable)")
        print(f"Confidence: {result.confidence:.2f}")
        print(f"Reasoning: {result.reasoning}")

        if result.conflicts:
            print(f"\n⚔️  Conflicts ({len(result.conflicts)}):")
            for conflict in result.conflicts:
                print(f"  [{conflict.severity}] {conflict.description}")
                print(f"     → {conflict.suggested_resolution}")

        if result.synergies:
            print(f"\n🤝 Synergies ({len(result.synergies)}):")
            for synergy in result.synergies:
                print(f"  • {synergy.description}")

        print(f"\n📋 Recommendations ({len(result.recommendations)}):")
        if not result.recommendations:
            print("  No recommendations")
        for recommendation in result.recommendations:
            icon = PRIORITY_ICONS.get(recommendation.priority, '•')
            print(f"  {icon} [{recommendation.priority}/{recommendation.category}] {recommendation.title}")
            if recommendation.description and recommendation.description != recommendation.title:
                print(f"     {recommendation.description}")

        metrics = result.performance_metrics
        print(f"\n⏱️  {metrics.execution_time_ms:.1f}ms, {metrics.attempts} attempt(s)")

    @staticmethod
    def _print_workout(plan: Dict[str, Any]) -> None:
        print(f"🏋️  {plan.get('title', 'Workout')}")
        print("=" * 50)
        print(f"Duration: {plan.get('duration_minutes')} min, intensity: {plan.get('intensity')}")

        print("\nWarm-up:")
        for item in plan.get('warmup', []):
            print(f"  • {item}")

        print("\nExercises:")
        for exercise in plan.get('exercises', []):
            print(f"  • {exercise.get('name')}: {exercise.get('sets')} x {exercise.get('reps')} "
                  f"(rest {exercise.get('rest_seconds')}s)")
            if exercise.get('notes'):
                print(f"     {exercise['notes']}")

        print("\nCool-down:")
        for item in plan.get('cooldown', []):
            print(f"  • {item}")

        if plan.get('safety_notes'):
            print("\n⚠️  Safety notes:")
            for note in plan['safety_notes']:
                print(f"  • {note}")
