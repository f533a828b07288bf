#!/usr/bin/env python3
"""
Dependency Injection Container

Provides a centralized way to manage dependencies and avoid scattered
instantiation throughout the codebase. Supports singleton and factory patterns.

The same class serves as the collaborator registry handed to the analysis
orchestrator, recovery manager and health monitor: each of those receives
its own Container instance rather than reaching for the global one.
"""

import logging
from typing import Any, Dict, Callable, List, TypeVar, Optional
from functools import wraps
import threading

logger = logging.getLogger(__name__)

T = TypeVar('T')


class Container:
    """Simple dependency injection container with lifecycle management."""

    def __init__(self):
        """Initialize empty container."""
        self._factories: Dict[str, Callable] = {}
        self._singletons: Dict[str, Any] = {}
        self._lock = threading.RLock()

    def register_singleton(self, service_name: str, factory: Callable[[], T]) -> None:
        """
        Register a service as singleton (created once, reused).

        Args:
            service_name: Unique name for the service
            factory: Function that creates the service instance
        """
        with self._lock:
            self._factories[service_name] = singleton(factory)
            # Remove any existing instance to force recreation
            self._singletons.pop(service_name, None)

    def register_factory(self, service_name: str, factory: Callable[[], T]) -> None:
        """
        Register a service as factory (new instance each time).

        Args:
            service_name: Unique name for the service
            factory: Function that creates service instances
        """
        with self._lock:
            self._factories[service_name] = factory

    def register_instance(self, service_name: str, instance: T) -> None:
        """
        Register an existing instance as singleton.

        Args:
            service_name: Unique name for the service
            instance: Pre-created service instance
        """
        with self._lock:
            self._singletons[service_name] = instance

    def get(self, service_name: str) -> Any:
        """
        Get service instance by name.

        Args:
            service_name: Name of the service to retrieve

        Returns:
            Service instance

        Raises:
            KeyError: If service is not registered
        """
        if service_name in self._singletons:
            return self._singletons[service_name]

        if service_name not in self._factories:
            raise KeyError(f"Service '{service_name}' not registered")

        with self._lock:
            factory = self._factories[service_name]

            if getattr(factory, '_is_singleton', False):
                # Double-check pattern for thread safety
                if service_name not in self._singletons:
                    self._singletons[service_name] = factory()
                    logger.debug(f"Created singleton instance for '{service_name}'")
                return self._singletons[service_name]

            instance = factory()
            logger.debug(f"Created new instance for '{service_name}'")
            return instance

    def has(self, service_name: str) -> bool:
        """Check if service is registered."""
        return service_name in self._factories or service_name in self._singletons

    def get_service_names(self) -> List[str]:
        """Registered service names in registration order."""
        with self._lock:
            names = list(self._factories)
            names.extend(name for name in self._singletons if name not in self._factories)
            return names

    def can_recreate(self, service_name: str) -> bool:
        """Whether a factory is registered that can build a fresh instance."""
        return service_name in self._factories

    def recreate(self, service_name: str) -> Any:
        """
        Replace a service with a fresh instance from its factory.

        Raises:
            KeyError: If no factory is registered for the service
        """
        with self._lock:
            if service_name not in self._factories:
                raise KeyError(f"Service '{service_name}' has no factory to recreate from")
            instance = self._factories[service_name]()
            self._singletons[service_name] = instance
        logger.debug(f"Recreated instance for '{service_name}'")
        return instance

    def clear(self) -> None:
        """Clear all registered services and instances."""
        with self._lock:
            self._factories.clear()
            self._singletons.clear()


def singleton(factory_func: Callable[[], T]) -> Callable[[], T]:
    """
    Decorator to mark a factory function as singleton.

    Usage:
        @singleton
        def create_cache():
            return ResultCache()
    """
    if getattr(factory_func, '_is_singleton', False):
        return factory_func

    @wraps(factory_func)
    def wrapper():
        return factory_func()

    wrapper._is_singleton = True
    return wrapper


# Global container instance
_container: Optional[Container] = None
_container_lock = threading.Lock()


def get_container() -> Container:
    """Get global container instance (thread-safe singleton)."""
    global _container
    if _container is None:
        with _container_lock:
            if _container is None:
                _container = Container()
                _setup_default_services(_container)
    return _container


def reset_container() -> None:
    """Reset global container (useful for testing)."""
    global _container
    with _container_lock:
        if _container:
            _container.clear()
        _container = None


def create_analyzer_registry() -> Container:
    """Collaborator registry holding the reference domain analyzers."""
    from core.analysis.analyzers import REFERENCE_ANALYZERS

    registry = Container()
    for domain, analyzer_class in REFERENCE_ANALYZERS.items():
        registry.register_singleton(domain, analyzer_class)
    return registry


def _setup_default_services(container: Container) -> None:
    """Set up default service registrations with configuration injection."""

    @singleton
    def create_config():
        from core.config import get_config
        return get_config()

    @singleton
    def create_performance_monitor():
        from core.metrics_collector import PerformanceMonitor
        return PerformanceMonitor()

    @singleton
    def create_result_cache():
        from core.caching import ResultCache
        config = create_config()
        return ResultCache(
            max_entries=config.analysis.cache_size,
            ttl_seconds=config.analysis.cache_timeout_seconds,
            performance_monitor=container.get('performance_monitor')
        )

    @singleton
    def create_error_handler():
        from core.resilience import CircuitBreaker, ErrorHandler
        config = create_config()
        return ErrorHandler(
            circuit_breaker=CircuitBreaker(threshold=config.analysis.circuit_breaker_threshold),
            fallback_enabled=config.analysis.fallback_enabled
        )

    @singleton
    def create_learning_engine():
        from core.learning import LearningEngine
        return LearningEngine()

    def create_openai_strategy():
        from integrations.openai_client import OpenAIStrategy
        config = create_config()
        if not config.has_openai():
            raise ValueError("OpenAI API key not configured")
        return OpenAIStrategy(
            api_key=config.integrations.openai_api_key,
            model=config.integrations.openai_model,
            timeout=config.integrations.openai_timeout_seconds
        )

    @singleton
    def create_orchestrator():
        from core.analysis import AnalysisOrchestrator
        return AnalysisOrchestrator(
            registry=create_analyzer_registry(),
            config=create_config().analysis,
            cache=container.get('result_cache'),
            error_handler=container.get('error_handler'),
            learning_engine=container.get('learning_engine'),
            performance_monitor=container.get('performance_monitor')
        )

    container.register_singleton('config', create_config)
    container.register_singleton('performance_monitor', create_performance_monitor)
    container.register_singleton('result_cache', create_result_cache)
    container.register_singleton('error_handler', create_error_handler)
    container.register_singleton('learning_engine', create_learning_engine)
    container.register_singleton('orchestrator', create_orchestrator)

    # Non-singletons
    container.register_factory('openai_strategy', create_openai_strategy)

    logger.debug("Default services registered in container")


# Convenience functions for common usage patterns

def get_config():
    """Get configuration instance from container."""
    return get_container().get('config')


def get_orchestrator():
    """Get analysis orchestrator instance from container."""
    return get_container().get('orchestrator')


def create_openai_strategy():
    """Create new OpenAI strategy instance."""
    return get_container().get('openai_strategy')
