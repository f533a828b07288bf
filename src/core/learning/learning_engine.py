#!/usr/bin/env python3
"""
Feedback-driven learning for recommendation weights.

Each recommendation id carries a weight in [0.1, 2.0] that moves with user
feedback. The engine also keeps per-profile preference counters and a
bounded feedback history used for satisfaction and trend reporting.
"""

import json
import logging
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List

from ..exceptions import InvalidFeedbackError
from ..models.interaction import FEEDBACK_VALUES, FeedbackRecord, Interaction, coerce_timestamp
from ..resilience.capabilities import HealthStatusReporter, Resettable

logger = logging.getLogger(__name__)

DEFAULT_WEIGHT = 1.0
MIN_WEIGHT = 0.1
MAX_WEIGHT = 2.0
LEARNING_RATE = 0.1
PARTIAL_RATE = 0.05

IMPROVEMENT_WINDOW = timedelta(hours=24)
TREND_WINDOW = timedelta(days=7)
MIN_TREND_RECORDS = 5
IMPROVING_THRESHOLD = 0.7
DECLINING_THRESHOLD = 0.3
TOP_INSIGHTS = 5

POSITIVE_FEEDBACK = ('helpful', 'partially_helpful')


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clamp_weight(weight: float) -> float:
    return max(MIN_WEIGHT, min(MAX_WEIGHT, weight))


class LearningEngine(Resettable, HealthStatusReporter):
    """
    Adapts recommendation weights from user feedback.

    Weights start at 1.0: helpful feedback adds 0.1, partially helpful adds
    0.05 and not helpful subtracts 0.1, always clamped to [0.1, 2.0].
    """

    def __init__(self, max_feedback_history: int = 1000, clock: Callable[[], datetime] = _utcnow):
        if max_feedback_history < 2:
            raise ValueError("max_feedback_history must be at least 2")
        self.max_feedback_history = max_feedback_history
        self._clock = clock
        self._lock = threading.RLock()
        self._reset_state()
        logger.debug(f"Learning engine initialized (max_feedback_history={max_feedback_history})")

    def _reset_state(self) -> None:
        self._weights: Dict[str, float] = {}
        self._feedback_history: List[FeedbackRecord] = []
        self._user_preferences: Dict[str, Dict[str, int]] = {}
        self._metrics = {
            'total_learning_events': 0,
            'positive_feedback': 0.0,
            'negative_feedback': 0,
            'improvement_rate': 0.0,
            'last_learning_update': None
        }

    def update_recommendation_weights(self, interaction: Interaction) -> bool:
        """
        Apply one interaction's feedback to its recommendation weight.

        Returns:
            True if a weight was updated, False if the interaction carried no
            recommendation id or no feedback
        """
        if not interaction.recommendation_id or not interaction.user_feedback:
            return False

        feedback = interaction.user_feedback
        if feedback not in FEEDBACK_VALUES:
            raise InvalidFeedbackError(feedback, FEEDBACK_VALUES)

        recommendation_id = interaction.recommendation_id
        now = self._clock()
        # Feedback is dated when it was given, not when it was learned
        given_at = coerce_timestamp(interaction.timestamp) or now

        with self._lock:
            current = self._weights.get(recommendation_id, DEFAULT_WEIGHT)
            if feedback == 'helpful':
                updated = current + LEARNING_RATE
                self._metrics['positive_feedback'] += 1
            elif feedback == 'not_helpful':
                updated = current - LEARNING_RATE
                self._metrics['negative_feedback'] += 1
            else:
                updated = current + PARTIAL_RATE
                self._metrics['positive_feedback'] += 0.5

            self._weights[recommendation_id] = _clamp_weight(updated)
            self._feedback_history.append(FeedbackRecord(
                timestamp=given_at,
                recommendation_id=recommendation_id,
                feedback=feedback,
                context={'component': interaction.component, 'action': interaction.action}
            ))
            self._limit_history()

            self._metrics['total_learning_events'] += 1
            self._metrics['last_learning_update'] = now
            self._metrics['improvement_rate'] = self._positive_share(now - IMPROVEMENT_WINDOW)

        logger.debug(
            f"Weight for {recommendation_id}: {current:.2f} -> {self._weights[recommendation_id]:.2f} ({feedback})"
        )
        return True

    def learn_from_user_feedback(self, feedback: str, context: Dict[str, Any]) -> Interaction:
        """
        Record explicit feedback for a recommendation.

        Args:
            feedback: helpful, not_helpful or partially_helpful
            context: Must carry recommendation_id; user_profile (dict or object
                with to_dict) feeds the per-profile preference counters

        Raises:
            InvalidFeedbackError: If feedback is not an accepted value
        """
        if feedback not in FEEDBACK_VALUES:
            logger.warning(f"Rejected feedback value {feedback!r}")
            raise InvalidFeedbackError(feedback, FEEDBACK_VALUES)

        context = dict(context or {})
        interaction = Interaction(
            id=f"feedback_{uuid.uuid4().hex[:12]}",
            timestamp=self._clock(),
            component=context.get('component') or 'recommendation',
            action='recommendation_shown',
            recommendation_id=context.get('recommendation_id') or context.get('recommendationId'),
            user_feedback=feedback,
            context=context
        )

        profile = context.get('user_profile') or context.get('userProfile')
        if profile is not None:
            self._update_user_preferences(profile, feedback)

        self.update_recommendation_weights(interaction)
        logger.info(f"Learned from '{feedback}' feedback on {interaction.recommendation_id}")
        return interaction

    def _update_user_preferences(self, profile: Any, feedback: str) -> None:
        data = profile.to_dict() if hasattr(profile, 'to_dict') else dict(profile)
        key = json.dumps({
            'fitness_level': data.get('fitness_level', data.get('fitnessLevel')),
            'goals': data.get('goals'),
            'experience': data.get('experience'),
            'preferences': data.get('preferences')
        }, sort_keys=True, default=str)

        with self._lock:
            counters = self._user_preferences.setdefault(
                key, {'helpful': 0, 'not_helpful': 0, 'partially_helpful': 0, 'total': 0}
            )
            counters[feedback] += 1
            counters['total'] += 1

    def _limit_history(self) -> None:
        if len(self._feedback_history) > self.max_feedback_history:
            keep = self.max_feedback_history // 2
            self._feedback_history = self._feedback_history[-keep:]
            logger.info(f"Feedback history trimmed to {keep} entries")

    def _records_since(self, since: datetime) -> List[FeedbackRecord]:
        return [r for r in self._feedback_history if r.timestamp >= since]

    def _positive_share(self, since: datetime) -> float:
        records = self._records_since(since)
        if not records:
            return 0.0
        return sum(1 for r in records if r.feedback in POSITIVE_FEEDBACK) / len(records)

    def _feedback_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for record in self._feedback_history:
            counts[record.recommendation_id] = counts.get(record.recommendation_id, 0) + 1
        return counts

    def get_recommendation_weight(self, recommendation_id: str) -> float:
        with self._lock:
            return self._weights.get(recommendation_id, DEFAULT_WEIGHT)

    def get_all_recommendation_weights(self) -> Dict[str, float]:
        with self._lock:
            return dict(self._weights)

    def get_user_preferences(self) -> Dict[str, Dict[str, int]]:
        with self._lock:
            return {key: dict(counters) for key, counters in self._user_preferences.items()}

    def get_feedback_history(self) -> List[FeedbackRecord]:
        with self._lock:
            return list(self._feedback_history)

    def get_learning_metrics(self) -> Dict[str, Any]:
        with self._lock:
            metrics = dict(self._metrics)
        last = metrics['last_learning_update']
        metrics['last_learning_update'] = last.isoformat() if last else None
        return metrics

    def get_learning_insights(self) -> Dict[str, Any]:
        """
        Summarize what the engine has learned.

        Returns:
            Dictionary with top_performing, needs_improvement,
            overall_satisfaction and learning_trend
        """
        with self._lock:
            counts = self._feedback_counts()
            ranked = sorted(self._weights.items(), key=lambda item: item[1], reverse=True)

            top_performing = [
                {'id': rec_id, 'weight': weight, 'feedback_count': counts.get(rec_id, 0)}
                for rec_id, weight in ranked[:TOP_INSIGHTS]
            ]
            needs_improvement = [
                {'id': rec_id, 'weight': weight, 'feedback_count': counts.get(rec_id, 0)}
                for rec_id, weight in ranked
                if weight < DEFAULT_WEIGHT and counts.get(rec_id, 0) > 0
            ][:TOP_INSIGHTS]

            positive = self._metrics['positive_feedback']
            total = positive + self._metrics['negative_feedback']
            overall_satisfaction = positive / max(total, 1)
            trend = self._learning_trend()

        return {
            'top_performing': top_performing,
            'needs_improvement': needs_improvement,
            'overall_satisfaction': overall_satisfaction,
            'learning_trend': trend
        }

    def _learning_trend(self) -> str:
        recent = self._records_since(self._clock() - TREND_WINDOW)
        if len(recent) < MIN_TREND_RECORDS:
            return 'stable'

        share = sum(1 for r in recent if r.feedback in POSITIVE_FEEDBACK) / len(recent)
        if share > IMPROVING_THRESHOLD:
            return 'improving'
        if share < DECLINING_THRESHOLD:
            return 'declining'
        return 'stable'

    def reset_learning_data(self) -> None:
        with self._lock:
            self._reset_state()
        logger.info("Learning data reset")

    def export_learning_data(self) -> Dict[str, Any]:
        return {
            'recommendation_weights': self.get_all_recommendation_weights(),
            'user_preferences': self.get_user_preferences(),
            'feedback_history': [r.to_dict() for r in self.get_feedback_history()],
            'learning_metrics': self.get_learning_metrics(),
            'exported_at': self._clock().isoformat()
        }

    def get_health_status(self) -> Dict[str, Any]:
        metrics = self.get_learning_metrics()
        return {
            'status': 'healthy',
            'tracked_recommendations': len(self._weights),
            'total_learning_events': metrics['total_learning_events']
        }

    def reset(self) -> None:
        self.reset_learning_data()
