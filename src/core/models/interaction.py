#!/usr/bin/env python3
"""
Interaction and feedback data models.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from dateutil import parser as date_parser

from ..exceptions import InvalidInteractionError

FEEDBACK_VALUES = ('helpful', 'not_helpful', 'partially_helpful')


def coerce_timestamp(value: Union[datetime, str, int, float, None]) -> Optional[datetime]:
    """Normalize datetimes, ISO strings and epoch numbers to aware UTC datetimes."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        # Epoch milliseconds when the magnitude says so
        seconds = value / 1000.0 if value > 1e11 else float(value)
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    else:
        parsed = date_parser.parse(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class Interaction:
    """A user interaction with an analysis component."""
    id: str
    timestamp: datetime
    component: str
    action: str
    recommendation_id: Optional[str] = None
    user_feedback: Optional[str] = None
    performance_metrics: Dict[str, Any] = field(default_factory=dict)
    context: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Interaction':
        """
        Build an interaction from a plain mapping.

        Raises:
            InvalidInteractionError: If the timestamp cannot be parsed
        """
        raw_timestamp = data.get('timestamp')
        try:
            timestamp = coerce_timestamp(raw_timestamp)
        except (ValueError, OverflowError) as e:
            raise InvalidInteractionError('timestamp', raw_timestamp, "unparseable") from e

        return cls(
            id=data.get('id') or '',
            timestamp=timestamp,
            component=data.get('component') or '',
            action=data.get('action') or '',
            recommendation_id=data.get('recommendation_id', data.get('recommendationId')),
            user_feedback=data.get('user_feedback', data.get('userFeedback')),
            performance_metrics=dict(data.get('performance_metrics') or data.get('performanceMetrics') or {}),
            context=dict(data.get('context') or {})
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
            'component': self.component,
            'action': self.action,
            'recommendation_id': self.recommendation_id,
            'user_feedback': self.user_feedback,
            'performance_metrics': dict(self.performance_metrics),
            'context': dict(self.context)
        }


@dataclass
class FeedbackRecord:
    """One accepted feedback signal for a recommendation."""
    timestamp: datetime
    recommendation_id: str
    feedback: str  # helpful, not_helpful, partially_helpful
    context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp.isoformat(),
            'recommendation_id': self.recommendation_id,
            'feedback': self.feedback,
            'context': dict(self.context)
        }
