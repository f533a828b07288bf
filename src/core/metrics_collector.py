#!/usr/bin/env python3
"""
Performance monitoring for the analysis core.

Tracks analysis execution times, process memory, cache hit/miss counts and
error counts, derives a 0-100 performance score and raises bounded alerts
when thresholds are crossed.
"""

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional
import logging

import psutil

logger = logging.getLogger(__name__)


@dataclass
class PerformanceAlert:
    """Threshold breach noticed while recording an analysis."""
    type: str  # execution_time, memory_usage, cache_performance, error_rate
    severity: str  # warning, critical
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "severity": self.severity,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "data": dict(self.data)
        }


@dataclass
class PerformanceThresholds:
    """Limits used for scoring and alerting."""
    max_execution_time_ms: float = 5000.0
    max_memory_usage_percent: float = 80.0
    max_cache_miss_rate: float = 50.0  # percent
    max_error_rate: float = 10.0  # percent


def current_memory_usage() -> Dict[str, float]:
    """Resident memory of this process in bytes and as a share of system memory."""
    process = psutil.Process()
    return {
        "rss_bytes": float(process.memory_info().rss),
        "percent": float(process.memory_percent())
    }


class PerformanceMonitor:
    """
    Collects analysis performance metrics.

    Execution times and memory samples are kept in bounded windows so a
    long-running process does not grow without limit.
    """

    def __init__(self,
                 thresholds: Optional[PerformanceThresholds] = None,
                 max_samples: int = 1000,
                 max_alerts: int = 100):
        """
        Initialize performance monitor.

        Args:
            thresholds: Scoring/alerting limits (defaults used if None)
            max_samples: Maximum timing/memory samples kept
            max_alerts: Maximum alerts kept
        """
        self.thresholds = thresholds or PerformanceThresholds()
        self.max_samples = max_samples
        self.max_alerts = max_alerts
        self._lock = threading.RLock()
        self.reset()
        logger.debug(f"PerformanceMonitor initialized (max_samples={max_samples}, max_alerts={max_alerts})")

    def reset(self) -> None:
        """Reset all metrics and alerts."""
        with self._lock:
            self._execution_times: Deque[float] = deque(maxlen=self.max_samples)
            self._memory_usages: Deque[float] = deque(maxlen=self.max_samples)
            self._alerts: List[PerformanceAlert] = []
            self._stats = {
                "total_analyses": 0,
                "total_cache_hits": 0,
                "total_cache_misses": 0,
                "total_errors": 0,
                "peak_memory_bytes": 0.0,
                "peak_memory_percent": 0.0
            }
            self._last_reset = datetime.now(timezone.utc)

    def record_analysis(self, execution_time_ms: float, memory_usage_percent: Optional[float] = None) -> None:
        """Record one completed analysis."""
        memory = current_memory_usage()
        if memory_usage_percent is None:
            memory_usage_percent = memory["percent"]

        with self._lock:
            self._stats["total_analyses"] += 1
            self._execution_times.append(float(execution_time_ms))
            self._memory_usages.append(float(memory_usage_percent))
            self._stats["peak_memory_bytes"] = max(self._stats["peak_memory_bytes"], memory["rss_bytes"])
            self._stats["peak_memory_percent"] = max(self._stats["peak_memory_percent"], memory_usage_percent)
            self._check_alerts(execution_time_ms, memory_usage_percent)

        logger.debug(f"Recorded analysis: {execution_time_ms:.1f}ms, memory {memory_usage_percent:.1f}%")

    def record_cache_hit(self) -> None:
        with self._lock:
            self._stats["total_cache_hits"] += 1

    def record_cache_miss(self) -> None:
        with self._lock:
            self._stats["total_cache_misses"] += 1

    def record_error(self) -> None:
        with self._lock:
            self._stats["total_errors"] += 1

    @property
    def cache_hit_rate(self) -> float:
        """Cache hit rate as a percentage."""
        total = self._stats["total_cache_hits"] + self._stats["total_cache_misses"]
        return (self._stats["total_cache_hits"] / total * 100) if total > 0 else 0.0

    @property
    def error_rate(self) -> float:
        """Errors per analysis as a percentage."""
        total = self._stats["total_analyses"]
        return (self._stats["total_errors"] / total * 100) if total > 0 else 0.0

    def get_metrics(self) -> Dict[str, Any]:
        """Get a snapshot of the current metrics."""
        with self._lock:
            return {
                "total_analyses": self._stats["total_analyses"],
                "total_cache_hits": self._stats["total_cache_hits"],
                "total_cache_misses": self._stats["total_cache_misses"],
                "total_errors": self._stats["total_errors"],
                "average_execution_time_ms": self._average(self._execution_times),
                "average_memory_usage_percent": self._average(self._memory_usages),
                "peak_memory_bytes": self._stats["peak_memory_bytes"],
                "peak_memory_percent": self._stats["peak_memory_percent"],
                "cache_hit_rate": self.cache_hit_rate,
                "error_rate": self.error_rate,
                "performance_score": self._performance_score(),
                "last_reset": self._last_reset.isoformat()
            }

    def get_performance_summary(self) -> Dict[str, Any]:
        """Score, status band and recommendations."""
        with self._lock:
            score = self._performance_score()
            if score >= 90:
                status = "excellent"
            elif score >= 75:
                status = "good"
            elif score >= 60:
                status = "fair"
            elif score >= 40:
                status = "poor"
            else:
                status = "critical"

            recommendations = []
            if self._average(self._execution_times) > self.thresholds.max_execution_time_ms:
                recommendations.append("High execution times detected. Consider optimizing analyzers or increasing resources.")
            if self._average(self._memory_usages) > self.thresholds.max_memory_usage_percent:
                recommendations.append("High memory usage detected. Consider reducing cache size.")
            if self._has_cache_traffic() and self.cache_hit_rate < (100 - self.thresholds.max_cache_miss_rate):
                recommendations.append("Low cache hit rate detected. Consider expanding cache size or timeout.")
            if self.error_rate > self.thresholds.max_error_rate:
                recommendations.append("High error rate detected. Investigate failing analyzers.")

            return {
                "status": status,
                "score": score,
                "recommendations": recommendations,
                "alerts": [alert.to_dict() for alert in self._alerts]
            }

    def _has_cache_traffic(self) -> bool:
        return (self._stats["total_cache_hits"] + self._stats["total_cache_misses"]) > 0

    def _performance_score(self) -> int:
        score = 100.0
        t = self.thresholds

        avg_time = self._average(self._execution_times)
        if avg_time > t.max_execution_time_ms:
            score -= min(30.0, (avg_time / t.max_execution_time_ms - 1) * 20)

        avg_memory = self._average(self._memory_usages)
        if avg_memory > t.max_memory_usage_percent:
            score -= min(25.0, (avg_memory / t.max_memory_usage_percent - 1) * 15)

        min_hit_rate = 100 - t.max_cache_miss_rate
        if self._has_cache_traffic() and self.cache_hit_rate < min_hit_rate:
            score -= min(20.0, (min_hit_rate - self.cache_hit_rate) * 2)

        if self.error_rate > t.max_error_rate:
            score -= min(25.0, (self.error_rate / t.max_error_rate - 1) * 10)

        return max(0, round(score))

    def _check_alerts(self, execution_time_ms: float, memory_usage_percent: float) -> None:
        t = self.thresholds
        alerts = []

        if execution_time_ms > t.max_execution_time_ms:
            alerts.append(PerformanceAlert(
                type="execution_time",
                severity="critical" if execution_time_ms > t.max_execution_time_ms * 2 else "warning",
                message=f"High execution time detected: {execution_time_ms:.0f}ms",
                data={"execution_time_ms": execution_time_ms, "threshold": t.max_execution_time_ms}
            ))

        if memory_usage_percent > t.max_memory_usage_percent:
            alerts.append(PerformanceAlert(
                type="memory_usage",
                severity="critical" if memory_usage_percent > t.max_memory_usage_percent * 1.5 else "warning",
                message=f"High memory usage detected: {memory_usage_percent:.1f}%",
                data={"memory_usage_percent": memory_usage_percent, "threshold": t.max_memory_usage_percent}
            ))

        if self._has_cache_traffic() and self.cache_hit_rate < (100 - t.max_cache_miss_rate):
            alerts.append(PerformanceAlert(
                type="cache_performance",
                severity="critical" if self.cache_hit_rate < 30 else "warning",
                message=f"Low cache hit rate: {self.cache_hit_rate:.1f}%",
                data={"cache_hit_rate": self.cache_hit_rate}
            ))

        if self.error_rate > t.max_error_rate:
            alerts.append(PerformanceAlert(
                type="error_rate",
                severity="critical" if self.error_rate > t.max_error_rate * 2 else "warning",
                message=f"High error rate: {self.error_rate:.1f}%",
                data={"error_rate": self.error_rate}
            ))

        self._alerts.extend(alerts)
        if len(self._alerts) > self.max_alerts:
            self._alerts = self._alerts[-self.max_alerts:]

        for alert in alerts:
            if alert.severity == "critical":
                logger.error(f"Critical performance alert: {alert.message}")

    @staticmethod
    def _average(values) -> float:
        return sum(values) / len(values) if values else 0.0
