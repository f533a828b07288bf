#!/usr/bin/env python3
"""
Collaborator health monitoring.

Each collaborator is checked through the first health capability it
implements; results aggregate to the worst status present.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import psutil

from .capabilities import HealthCheckable, HealthFlagReporter, HealthStatusReporter, call_capability

logger = logging.getLogger(__name__)

HEALTH_STATUSES = ('healthy', 'degraded', 'unhealthy')
SLOW_RESPONSE_MS = 1000
HIGH_MEMORY_PERCENT = 80


@dataclass
class ServiceHealth:
    """Health of one collaborator."""
    service_name: str
    status: str  # healthy, degraded, unhealthy
    response_time_ms: float
    check_method: str  # get_health_status, is_healthy, check_health, presence, missing, error
    last_check: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'service_name': self.service_name,
            'status': self.status,
            'response_time_ms': self.response_time_ms,
            'check_method': self.check_method,
            'last_check': self.last_check.isoformat(),
            'error': self.error,
            'details': dict(self.details)
        }


def aggregate_status(statuses: List[str]) -> str:
    """Worst-of aggregation; 'unknown' when there is nothing to aggregate."""
    if not statuses:
        return 'unknown'
    if 'unhealthy' in statuses:
        return 'unhealthy'
    if any(status != 'healthy' for status in statuses):
        return 'degraded'
    return 'healthy'


def _normalize_status(report: Any, details: Dict[str, Any]) -> str:
    status = report.get('status') if isinstance(report, dict) else None
    if status in HEALTH_STATUSES:
        return status
    # Statuses outside the known set count as degraded
    details['reported_status'] = status
    return 'degraded'


def system_resources() -> Dict[str, float]:
    """Memory, CPU and disk usage percentages; -1 where unavailable."""
    try:
        return {
            'memory_usage': psutil.virtual_memory().percent,
            'cpu_usage': psutil.cpu_percent(interval=None),
            'disk_usage': psutil.disk_usage('/').percent,
            'process_memory_bytes': float(psutil.Process().memory_info().rss)
        }
    except (psutil.Error, OSError) as e:
        logger.error(f"Error checking system resources: {e}")
        return {'memory_usage': -1, 'cpu_usage': -1, 'disk_usage': -1, 'process_memory_bytes': -1}


class HealthMonitor:
    """Polls collaborators in an injected registry."""

    def __init__(self, registry):
        self.registry = registry
        self.last_health_check: Optional[datetime] = None

    async def check_service_health(self, service_name: str) -> ServiceHealth:
        started = time.perf_counter()

        def elapsed() -> float:
            return (time.perf_counter() - started) * 1000

        if not self.registry.has(service_name):
            return ServiceHealth(service_name, 'unhealthy', elapsed(), 'missing', error="Service not registered")

        try:
            service = self.registry.get(service_name)
            if service is None:
                return ServiceHealth(service_name, 'unhealthy', elapsed(), 'missing', error="Service is None")

            details: Dict[str, Any] = {}
            if isinstance(service, HealthStatusReporter):
                report = await call_capability(service.get_health_status)
                details.update((report or {}).get('details') or {})
                status = _normalize_status(report, details)
                method = 'get_health_status'
            elif isinstance(service, HealthFlagReporter):
                status = 'healthy' if await call_capability(service.is_healthy) else 'unhealthy'
                method = 'is_healthy'
            elif isinstance(service, HealthCheckable):
                report = await call_capability(service.check_health)
                details.update((report or {}).get('details') or {})
                status = _normalize_status(report, details)
                method = 'check_health'
            else:
                status = 'healthy'
                method = 'presence'
                details['type'] = type(service).__name__

            return ServiceHealth(service_name, status, elapsed(), method, details=details)

        except Exception as e:
            logger.error(f"Error checking health for {service_name}: {e}")
            return ServiceHealth(service_name, 'unhealthy', elapsed(), 'error', error=str(e))

    async def check_overall_health(self) -> Dict[str, Any]:
        """Check every registered collaborator and aggregate worst-of."""
        services = {}
        for service_name in self.registry.get_service_names():
            services[service_name] = await self.check_service_health(service_name)

        statuses = [health.status for health in services.values()]
        status = aggregate_status(statuses)
        self.last_health_check = datetime.now(timezone.utc)

        logger.info(f"Overall health check completed: {status} ({len(services)} services)")
        return {
            'status': status,
            'timestamp': self.last_health_check.isoformat(),
            'services': {name: health.to_dict() for name, health in services.items()},
            'details': {
                'total_services': len(services),
                'healthy_services': statuses.count('healthy'),
                'degraded_services': statuses.count('degraded'),
                'unhealthy_services': statuses.count('unhealthy')
            }
        }

    async def perform_comprehensive_health_check(self) -> Dict[str, Any]:
        """Overall health plus system resources and recommendations."""
        logger.info("Starting comprehensive health check")
        started = time.perf_counter()

        overall = await self.check_overall_health()
        resources = system_resources()
        recommendations = self._health_recommendations(overall['services'], resources)

        return {
            'overall_status': overall['status'],
            'timestamp': overall['timestamp'],
            'execution_time_ms': (time.perf_counter() - started) * 1000,
            'services': overall['services'],
            'details': overall['details'],
            'system_resources': resources,
            'recommendations': recommendations
        }

    @staticmethod
    def _health_recommendations(services: Dict[str, Dict[str, Any]], resources: Dict[str, float]) -> List[str]:
        recommendations = []

        unhealthy = [name for name, health in services.items() if health['status'] == 'unhealthy']
        if unhealthy:
            recommendations.append(f"Restart unhealthy services: {', '.join(unhealthy)}")

        degraded = [name for name, health in services.items() if health['status'] == 'degraded']
        if degraded:
            recommendations.append(f"Monitor degraded services: {', '.join(degraded)}")

        if resources.get('memory_usage', 0) > HIGH_MEMORY_PERCENT:
            recommendations.append("High memory usage detected. Consider reducing cache size or adding memory.")

        slow = [
            f"{name} ({health['response_time_ms']:.0f}ms)"
            for name, health in services.items()
            if health['response_time_ms'] > SLOW_RESPONSE_MS
        ]
        if slow:
            recommendations.append(f"Slow response times detected: {', '.join(slow)}")

        with_errors = [name for name, health in services.items() if health['error']]
        if with_errors:
            recommendations.append(f"Services with errors detected: {', '.join(with_errors)}")

        return recommendations
