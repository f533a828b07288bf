#!/usr/bin/env python3
"""
Capability interfaces for collaborators.

Collaborators opt into recovery and health reporting by subclassing these
interfaces; the recovery manager and health monitor dispatch on isinstance()
rather than probing for attribute names. Implementations may be plain or
async methods.
"""

import inspect
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict


# Recoverable family, in recovery priority order
class Resettable(ABC):
    """Collaborator that can reset its internal state."""

    @abstractmethod
    def reset(self) -> Any:
        pass


class Initializable(ABC):
    """Collaborator that can (re)initialize itself."""

    @abstractmethod
    def initialize(self) -> Any:
        pass


class Clearable(ABC):
    """Collaborator holding clearable state such as caches."""

    @abstractmethod
    def clear(self) -> Any:
        pass


class Disposable(ABC):
    """Collaborator that can release its resources."""

    @abstractmethod
    def dispose(self) -> Any:
        pass


RECOVERY_CAPABILITIES = (
    ('reset', Resettable),
    ('initialize', Initializable),
    ('clear', Clearable),
    ('dispose', Disposable),
)


# HealthReporting family, in check priority order
class HealthStatusReporter(ABC):
    """Collaborator that reports a structured health status."""

    @abstractmethod
    def get_health_status(self) -> Dict[str, Any]:
        """Return {'status': healthy|degraded|unhealthy, 'details': {...}}."""
        pass


class HealthFlagReporter(ABC):
    """Collaborator that reports a boolean health flag."""

    @abstractmethod
    def is_healthy(self) -> bool:
        pass


class HealthCheckable(ABC):
    """Collaborator that runs an explicit health check."""

    @abstractmethod
    def check_health(self) -> Dict[str, Any]:
        """Return {'status': ..., 'details': {...}}."""
        pass


async def call_capability(method: Callable[[], Any]) -> Any:
    """Invoke a capability method, awaiting it when it is a coroutine."""
    result = method()
    if inspect.isawaitable(result):
        result = await result
    return result
