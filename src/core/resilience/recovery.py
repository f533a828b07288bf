#!/usr/bin/env python3
"""
Best-effort self-healing of registered collaborators.

Recovery picks the first capability a collaborator implements, in the order
reset, initialize, clear, dispose, and otherwise rebuilds it from the
registry's factory. Every attempt is logged; repeated failures for one
service stop after max_attempts until the counter is reset.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .capabilities import RECOVERY_CAPABILITIES, call_capability
from ..exceptions import RecoveryError

logger = logging.getLogger(__name__)

MAX_RECOVERY_LOG = 100
TRIMMED_RECOVERY_LOG = 50


@dataclass
class RecoveryAttempt:
    """One recovery attempt for a named service."""
    service_name: str
    method: Optional[str]  # reset, initialize, clear, dispose, recreate
    success: bool
    duration_ms: float
    timestamp: datetime
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'service_name': self.service_name,
            'method': self.method,
            'success': self.success,
            'duration_ms': self.duration_ms,
            'timestamp': self.timestamp.isoformat(),
            'error': self.error
        }


@dataclass
class RecoveryReport:
    """Aggregate outcome of force_recovery()."""
    success: bool
    timestamp: datetime
    execution_time_ms: float
    recovered_services: List[str] = field(default_factory=list)
    failed_services: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'timestamp': self.timestamp.isoformat(),
            'execution_time_ms': self.execution_time_ms,
            'recovered_services': list(self.recovered_services),
            'failed_services': list(self.failed_services),
            'errors': list(self.errors),
            'recommendations': list(self.recommendations)
        }


class RecoveryManager:
    """Recovers collaborators held in an injected registry."""

    def __init__(self, registry, error_handler=None, max_attempts: int = 3):
        """
        Initialize recovery manager.

        Args:
            registry: Container holding the collaborators by name
            error_handler: Optional ErrorHandler; failed recoveries are reported
                to it and force_recovery() closes its circuit breaker
            max_attempts: Consecutive failed attempts allowed per service
        """
        self.registry = registry
        self.error_handler = error_handler
        self.max_attempts = max_attempts
        self._attempt_counts: Dict[str, int] = {}
        self._attempt_log: List[RecoveryAttempt] = []

    async def attempt_service_recovery(self, service_name: str) -> RecoveryAttempt:
        """
        Try to recover one service.

        Never raises; failures are returned as an unsuccessful RecoveryAttempt.
        """
        started = time.perf_counter()

        if not self.registry.has(service_name):
            logger.warning(f"Service not found: {service_name}")
            return self._record(service_name, None, False, started, f"Service not found: {service_name}")

        attempts = self._attempt_counts.get(service_name, 0)
        if attempts >= self.max_attempts:
            logger.warning(f"Max recovery attempts exceeded for {service_name} ({attempts}/{self.max_attempts})")
            return self._record(service_name, None, False, started, "Max recovery attempts exceeded")

        method_name = None
        try:
            service = self.registry.get(service_name)
            for name, capability in RECOVERY_CAPABILITIES:
                if isinstance(service, capability):
                    method_name = name
                    await call_capability(getattr(service, name))
                    break
            else:
                if not self.registry.can_recreate(service_name):
                    self._attempt_counts[service_name] = attempts + 1
                    logger.warning(f"No recovery method available for service: {service_name}")
                    return self._record(service_name, None, False, started, "No recovery method available")
                method_name = 'recreate'
                self.registry.recreate(service_name)
        except Exception as e:
            self._attempt_counts[service_name] = attempts + 1
            if self.error_handler is not None:
                self.error_handler.handle_recovery_error(
                    RecoveryError(service_name, method_name, e), service_name, method_name
                )
            else:
                logger.error(f"Recovery of {service_name} via {method_name} failed: {e}")
            return self._record(service_name, method_name, False, started, str(e))

        self._attempt_counts[service_name] = 0
        logger.info(f"Service recovery successful: {service_name} (method: {method_name})")
        return self._record(service_name, method_name, True, started)

    async def force_recovery(self) -> RecoveryReport:
        """Attempt recovery of every registered service and close the breaker."""
        logger.info("Starting forced recovery of all services")
        started = time.perf_counter()
        report = RecoveryReport(success=False, timestamp=datetime.now(timezone.utc), execution_time_ms=0.0)

        for service_name in self.registry.get_service_names():
            attempt = await self.attempt_service_recovery(service_name)
            if attempt.success:
                report.recovered_services.append(service_name)
            else:
                report.failed_services.append(service_name)
                if attempt.error:
                    report.errors.append(f"{service_name}: {attempt.error}")

        if self.error_handler is not None:
            self.error_handler.close_circuit_breaker()

        report.success = not report.failed_services
        report.execution_time_ms = (time.perf_counter() - started) * 1000
        report.recommendations = self._recovery_recommendations(report)

        logger.info(
            f"Forced recovery completed: {len(report.recovered_services)} recovered, "
            f"{len(report.failed_services)} failed in {report.execution_time_ms:.1f}ms"
        )
        return report

    def get_services_needing_recovery(self) -> List[str]:
        return [name for name, count in self._attempt_counts.items() if 0 < count < self.max_attempts]

    def get_services_exceeded_max_attempts(self) -> List[str]:
        return [name for name, count in self._attempt_counts.items() if count >= self.max_attempts]

    def reset_recovery_attempts(self, service_name: Optional[str] = None) -> None:
        """Reset the failure counter for one service, or for all when None."""
        if service_name is None:
            self._attempt_counts.clear()
        else:
            self._attempt_counts[service_name] = 0
        logger.info(f"Recovery attempts reset for {service_name or 'all services'}")

    def get_attempt_count(self, service_name: str) -> int:
        return self._attempt_counts.get(service_name, 0)

    def get_attempt_log(self) -> List[RecoveryAttempt]:
        return list(self._attempt_log)

    def get_recovery_stats(self) -> Dict[str, Any]:
        total = len(self._attempt_log)
        successful = [a for a in self._attempt_log if a.success]
        hour_ago = datetime.now(timezone.utc).timestamp() - 3600

        return {
            'total_attempts': total,
            'successful_recoveries': len(successful),
            'failed_recoveries': total - len(successful),
            'success_rate': len(successful) / total if total else 0.0,
            'average_recovery_time_ms': (
                sum(a.duration_ms for a in successful) / len(successful) if successful else 0.0
            ),
            'recent_attempts': [
                a.to_dict() for a in self._attempt_log if a.timestamp.timestamp() > hour_ago
            ],
            'services_needing_recovery': self.get_services_needing_recovery(),
            'services_exceeded_max_attempts': self.get_services_exceeded_max_attempts()
        }

    def _record(self, service_name: str, method: Optional[str], success: bool,
                started: float, error: Optional[str] = None) -> RecoveryAttempt:
        attempt = RecoveryAttempt(
            service_name=service_name,
            method=method,
            success=success,
            duration_ms=(time.perf_counter() - started) * 1000,
            timestamp=datetime.now(timezone.utc),
            error=error
        )
        self._attempt_log.append(attempt)
        if len(self._attempt_log) > MAX_RECOVERY_LOG:
            self._attempt_log = self._attempt_log[-TRIMMED_RECOVERY_LOG:]
        return attempt

    @staticmethod
    def _recovery_recommendations(report: RecoveryReport) -> List[str]:
        recommendations = []

        if report.failed_services:
            recommendations.append(
                f"Manual intervention required for failed services: {', '.join(report.failed_services)}"
            )
        if report.errors:
            names = ', '.join(error.split(':', 1)[0] for error in report.errors)
            recommendations.append(f"Services with errors need investigation: {names}")

        total = len(report.recovered_services) + len(report.failed_services)
        if total and len(report.recovered_services) / total < 0.5:
            recommendations.append("Low recovery success rate. Consider a restart or manual intervention.")

        return recommendations
