#!/usr/bin/env python3
"""
Learning command for recording recommendation feedback and viewing insights.
"""

import json
import logging
from argparse import Namespace

from .base import BaseCommand
from core.models.interaction import FEEDBACK_VALUES

logger = logging.getLogger(__name__)


class LearningCommand(BaseCommand):
    """Record feedback on recommendations and inspect learned weights."""

    SUBCOMMANDS = ('feedback', 'insights')

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute learning subcommand."""
        try:
            if subcommand == "feedback":
                return self.feedback(args)
            elif subcommand == "insights":
                return self.insights(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1

        except Exception as e:
            return self.handle_error(e, f"learning {subcommand}")

    def feedback(self, args: Namespace) -> int:
        """Apply one feedback value to a recommendation's weight."""
        if not self.validate_args(args, ['recommendation_id', 'feedback']):
            return 1

        interaction = self.orchestrator.learn_from_user_feedback(
            args.feedback, {'recommendation_id': args.recommendation_id, 'component': 'cli'}
        )
        weight = self.learning_engine.get_recommendation_weight(args.recommendation_id)

        print(f"📝 Recorded '{interaction.user_feedback}' for {args.recommendation_id}")
        print(f"   Weight is now {weight:.2f}")
        return 0

    def insights(self, args: Namespace) -> int:
        """Show what has been learned so far."""
        insights = self.learning_engine.get_learning_insights()
        metrics = self.learning_engine.get_learning_metrics()

        if getattr(args, 'json', False):
            print(json.dumps({'insights': insights, 'metrics': metrics}, indent=2))
            return 0

        print("🧠 Learning Insights")
        print("=" * 40)
        print(f"Learning events: {metrics['total_learning_events']}")
        print(f"Overall satisfaction: {insights['overall_satisfaction'] * 100:.1f}%")
        print(f"Trend: {insights['learning_trend']}")

        print("\n🏆 Top performing:")
        if not insights['top_performing']:
            print("  No feedback recorded yet")
        for item in insights['top_performing']:
            print(f"  • {item['id']}: weight {item['weight']:.2f} ({item['feedback_count']} feedback)")

        if insights['needs_improvement']:
            print("\n🔧 Needs improvement:")
            for item in insights['needs_improvement']:
                print(f"  • {item['id']}: weight {item['weight']:.2f} ({item['feedback_count']} feedback)")

        print(f"\nAccepted feedback values: {', '.join(FEEDBACK_VALUES)}")
        return 0
