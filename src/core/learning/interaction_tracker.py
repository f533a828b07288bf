#!/usr/bin/env python3
"""
Session interaction tracking.

Keeps a bounded in-memory history of user interactions with analysis
components and derives feedback and performance statistics from it.
"""

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from ..exceptions import InvalidFeedbackError, InvalidInteractionError
from ..models.interaction import FEEDBACK_VALUES, Interaction, coerce_timestamp

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('id', 'timestamp', 'component', 'action')
ERROR_ACTION = 'error_occurred'


class InteractionTracker:
    """Records interactions and answers questions about the current session."""

    def __init__(self, max_history_size: int = 1000):
        if max_history_size < 2:
            raise ValueError("max_history_size must be at least 2")
        self.max_history_size = max_history_size
        self._lock = threading.RLock()
        self._history: List[Interaction] = []
        self._reset_stats()
        logger.debug(f"Interaction tracker initialized (max_history_size={max_history_size})")

    def _reset_stats(self) -> None:
        self._stats = {
            'total_interactions': 0,
            'interactions_by_type': {},
            'interactions_by_component': {},
            'average_response_time_ms': 0.0,
            'user_satisfaction_rate': 0.0
        }
        self._timed_interactions = 0

    def record_interaction(self, interaction: Union[Interaction, Dict[str, Any]]) -> Interaction:
        """
        Validate and append an interaction.

        Raises:
            InvalidInteractionError: If id, timestamp, component or action is missing
            InvalidFeedbackError: If user_feedback is set to an unknown value
        """
        if interaction is None:
            raise InvalidInteractionError('interaction')
        if isinstance(interaction, dict):
            interaction = Interaction.from_dict(interaction)

        for name in REQUIRED_FIELDS:
            value = getattr(interaction, name, None)
            if value is None or value == '':
                logger.warning(f"Rejected interaction without '{name}'")
                raise InvalidInteractionError(name, value)

        if interaction.user_feedback and interaction.user_feedback not in FEEDBACK_VALUES:
            logger.warning(f"Rejected interaction with feedback {interaction.user_feedback!r}")
            raise InvalidFeedbackError(interaction.user_feedback, FEEDBACK_VALUES)

        with self._lock:
            self._history.append(interaction)
            self._update_stats(interaction)
            self._limit_history()

        logger.debug(
            f"Interaction recorded: {interaction.component}/{interaction.action} "
            f"(history size {len(self._history)})"
        )
        return interaction

    def _limit_history(self) -> None:
        if len(self._history) > self.max_history_size:
            keep = self.max_history_size // 2
            removed = len(self._history) - keep
            self._history = self._history[-keep:]
            logger.info(f"Session history trimmed to {keep} entries ({removed} removed)")

    def _update_stats(self, interaction: Interaction) -> None:
        stats = self._stats
        stats['total_interactions'] += 1

        by_type = stats['interactions_by_type']
        by_type[interaction.action] = by_type.get(interaction.action, 0) + 1
        by_component = stats['interactions_by_component']
        by_component[interaction.component] = by_component.get(interaction.component, 0) + 1

        execution_time = _metric(interaction, 'execution_time_ms', 'executionTime')
        if execution_time:
            total = stats['average_response_time_ms'] * self._timed_interactions
            self._timed_interactions += 1
            stats['average_response_time_ms'] = (total + execution_time) / self._timed_interactions

        if interaction.user_feedback:
            stats['user_satisfaction_rate'] = self.get_user_feedback_stats()['satisfaction_rate']

    def get_session_history(self) -> List[Interaction]:
        with self._lock:
            return list(self._history)

    def clear_session_history(self) -> None:
        with self._lock:
            self._history = []
            self._reset_stats()
        logger.info("Session history cleared")

    def get_interaction_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                **self._stats,
                'interactions_by_type': dict(self._stats['interactions_by_type']),
                'interactions_by_component': dict(self._stats['interactions_by_component'])
            }

    def get_interactions_by_type(self, action: str) -> List[Interaction]:
        with self._lock:
            return [i for i in self._history if i.action == action]

    def get_interactions_by_component(self, component: str) -> List[Interaction]:
        with self._lock:
            return [i for i in self._history if i.component == component]

    def get_recent_interactions(self, count: int = 10) -> List[Interaction]:
        if count <= 0:
            return []
        with self._lock:
            return self._history[-count:]

    def get_interactions_in_time_range(self, start: Any, end: Any) -> List[Interaction]:
        """Interactions with start <= timestamp <= end; accepts datetimes, ISO strings or epochs."""
        start_at, end_at = coerce_timestamp(start), coerce_timestamp(end)
        with self._lock:
            return [i for i in self._history if start_at <= i.timestamp <= end_at]

    def get_user_feedback_stats(self) -> Dict[str, Any]:
        with self._lock:
            feedback = [i.user_feedback for i in self._history if i.user_feedback]

        helpful = feedback.count('helpful')
        not_helpful = feedback.count('not_helpful')
        partially_helpful = feedback.count('partially_helpful')
        total = len(feedback)

        return {
            'total_feedback': total,
            'helpful': helpful,
            'not_helpful': not_helpful,
            'partially_helpful': partially_helpful,
            'satisfaction_rate': (helpful + partially_helpful * 0.5) / total if total else 0.0
        }

    def get_performance_metrics(self) -> Dict[str, float]:
        with self._lock:
            history = list(self._history)

        measured = [i for i in history if i.performance_metrics]
        if not measured:
            return {
                'average_execution_time_ms': 0.0,
                'average_memory_usage': 0.0,
                'cache_hit_rate': 0.0,
                'error_rate': 0.0
            }

        execution = sum(_metric(i, 'execution_time_ms', 'executionTime') for i in measured)
        memory = sum(_metric(i, 'memory_usage', 'memoryUsage') for i in measured)
        cache_hits = sum(1 for i in measured if i.performance_metrics.get('cache_hit'))
        errors = sum(1 for i in history if i.action == ERROR_ACTION)

        return {
            'average_execution_time_ms': execution / len(measured),
            'average_memory_usage': memory / len(measured),
            'cache_hit_rate': cache_hits / len(measured),
            'error_rate': errors / len(history)
        }

    def export_session_data(self) -> Dict[str, Any]:
        """
        Snapshot of the whole session for analytics.

        Raises:
            ValueError: If no interactions were recorded
        """
        history = self.get_session_history()
        if not history:
            raise ValueError("No session data to export")

        return {
            'session_id': f"session_{uuid.uuid4().hex[:12]}",
            'start_time': history[0].timestamp.isoformat(),
            'end_time': history[-1].timestamp.isoformat(),
            'total_interactions': len(history),
            'stats': self.get_interaction_stats(),
            'performance_metrics': self.get_performance_metrics(),
            'user_feedback': self.get_user_feedback_stats(),
            'interactions': [i.to_dict() for i in history]
        }

    def __len__(self) -> int:
        return len(self._history)


def _metric(interaction: Interaction, name: str, alias: Optional[str] = None) -> float:
    metrics = interaction.performance_metrics or {}
    value = metrics.get(name, metrics.get(alias) if alias else None)
    return float(value) if isinstance(value, (int, float)) else 0.0


def new_interaction(component: str, action: str, recommendation_id: Optional[str] = None,
                    user_feedback: Optional[str] = None, timestamp: Optional[datetime] = None,
                    **context: Any) -> Interaction:
    """Build an interaction with a generated id and the current UTC timestamp."""
    return Interaction(
        id=f"interaction_{uuid.uuid4().hex[:12]}",
        timestamp=coerce_timestamp(timestamp) if timestamp else datetime.now(timezone.utc),
        component=component,
        action=action,
        recommendation_id=recommendation_id,
        user_feedback=user_feedback,
        context=dict(context)
    )
