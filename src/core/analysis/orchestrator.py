#!/usr/bin/env python3
"""
Analysis orchestrator.

Coordinates one analysis: fingerprint the request, serve it from the cache
when possible, otherwise fan out to every domain analyzer concurrently,
run the rule engine, merge everything into ranked recommendations and cache
the result. Collaborator failures are retried and, when the error handler
says so, replaced by a minimal fallback result.
"""

import asyncio
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import pytz

from ..caching import KeyGenerator, ResultCache
from ..config import AnalysisConfig
from ..exceptions import CollaboratorError, ContextNotSetError, ContextValidationError
from ..learning import InteractionTracker, LearningEngine
from ..metrics_collector import PerformanceMonitor, current_memory_usage
from ..models.analysis import AnalysisResult, Insight, PerformanceMetrics
from ..models.context import AnalysisContext, AnalysisRequest
from ..models.interaction import Interaction
from ..resilience import (
    CircuitBreaker, ErrorHandler, ErrorKind, HealthMonitor, RecoveryManager, RecoveryReport,
    RetryExecutor, RetryOutcome, RetryPolicy, aggregate_status
)
from ..rules import RuleEngine
from .analyzers import ANALYZER_DOMAINS, DomainAnalyzer
from .external import ExternalStrategy, ExternalStrategyGateway
from .recommendation_engine import RecommendationEngine
from .validation import ContextValidator

logger = logging.getLogger(__name__)

OPTIMIZATION_DOMAIN = 'optimization'


class AnalysisOrchestrator:
    """
    Runs analyses against a context using an injected registry of
    collaborators (domain analyzers keyed by domain name).

    Every component is optional; missing ones are built from the config.
    """

    def __init__(self,
                 registry,
                 config: Optional[AnalysisConfig] = None,
                 key_generator: Optional[KeyGenerator] = None,
                 cache: Optional[ResultCache] = None,
                 error_handler: Optional[ErrorHandler] = None,
                 retry_executor: Optional[RetryExecutor] = None,
                 rule_engine: Optional[RuleEngine] = None,
                 recommendation_engine: Optional[RecommendationEngine] = None,
                 learning_engine: Optional[LearningEngine] = None,
                 tracker: Optional[InteractionTracker] = None,
                 performance_monitor: Optional[PerformanceMonitor] = None,
                 recovery_manager: Optional[RecoveryManager] = None,
                 health_monitor: Optional[HealthMonitor] = None,
                 external_gateway: Optional[ExternalStrategyGateway] = None,
                 validator: Optional[ContextValidator] = None,
                 domains: Sequence[str] = ANALYZER_DOMAINS,
                 clock: Callable[[], float] = time.time):
        """
        Initialize orchestrator.

        Args:
            registry: Container holding the domain analyzers
            config: Analysis configuration (defaults if None)
            domains: Selection fields dispatched to analyzers of the same name
            clock: Source of the current time in epoch seconds
        """
        self.registry = registry
        self.config = config or AnalysisConfig()
        self.domains = tuple(domains)
        self._clock = clock
        self._tz = pytz.timezone(self.config.timezone)

        self.performance_monitor = performance_monitor or PerformanceMonitor()
        self.key_generator = key_generator or KeyGenerator(clock=clock)
        self.cache = cache or ResultCache(
            max_entries=self.config.cache_size,
            ttl_seconds=self.config.cache_timeout_seconds,
            performance_monitor=self.performance_monitor,
            clock=clock
        )
        self.error_handler = error_handler or ErrorHandler(
            circuit_breaker=CircuitBreaker(threshold=self.config.circuit_breaker_threshold, clock=clock),
            fallback_enabled=self.config.fallback_enabled,
            clock=clock
        )
        self.retry_executor = retry_executor or RetryExecutor(
            policy=RetryPolicy(
                max_retries=self.config.max_retries,
                base_delay_ms=self.config.retry_base_delay_ms,
                max_delay_ms=self.config.retry_max_delay_ms,
                backoff_multiplier=self.config.retry_backoff_multiplier
            ),
            error_handler=self.error_handler
        )
        self.rule_engine = rule_engine or RuleEngine()
        self.recommendation_engine = recommendation_engine or RecommendationEngine()
        self.learning_engine = learning_engine or LearningEngine()
        self.tracker = tracker or InteractionTracker(max_history_size=self.config.max_session_history)
        self.recovery_manager = recovery_manager or RecoveryManager(
            registry, error_handler=self.error_handler, max_attempts=self.config.max_recovery_attempts
        )
        self.health_monitor = health_monitor or HealthMonitor(registry)
        self.external_gateway = external_gateway or ExternalStrategyGateway(clock=clock)
        self.validator = validator or ContextValidator()

        self._context: Optional[AnalysisContext] = None
        logger.info(f"Analysis orchestrator initialized with domains: {', '.join(self.domains)}")

    # Context

    def set_context(self, context: Union[AnalysisContext, Dict[str, Any]]) -> None:
        """
        Validate and install the analysis context. Clears the result cache.

        Raises:
            ContextValidationError: Naming the missing or invalid field
        """
        if isinstance(context, dict):
            context = AnalysisContext.from_dict(context)

        try:
            if self.config.validation_enabled:
                self.validator.validate(context)
            else:
                self.validator.validate_required(context)
        except ContextValidationError as e:
            logger.warning(f"Rejected analysis context: {e.message}")
            raise

        self._context = context
        self.cache.clear()
        logger.info(f"Analysis context set (fitness level: {context.user_profile.fitness_level})")

    def get_context(self) -> Optional[AnalysisContext]:
        return self._context

    def _require_context(self, operation: str) -> AnalysisContext:
        if self._context is None:
            raise ContextNotSetError(operation)
        return self._context

    # Analysis

    async def analyze(self, partial: Optional[Dict[str, Any]] = None) -> AnalysisResult:
        """
        Analyze the current selections with partial overriding them.

        Returns:
            Cached result on a hit, a fresh result on a miss, or a fallback
            result when analyzers fail and the failure allows falling back

        Raises:
            ContextNotSetError: If set_context() was never called
            Exception: The collaborator failure when no fallback applies
        """
        context = self._require_context('analyze')
        request = AnalysisRequest.build(context, partial, tz=self._tz)
        key = self.key_generator.fingerprint(dict(request.selections), request.fitness_level)

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for analysis {key}")
            return cached

        start = time.perf_counter()
        outcome = await self.retry_executor.run(
            lambda: self._dispatch(request), operation='analysis', context={'cache_key': key}
        )
        if not outcome.succeeded:
            return self._handle_failure(outcome)

        insights: Dict[str, List[Insight]] = outcome.value
        evaluation = self.rule_engine.evaluate(request)
        insights[OPTIMIZATION_DOMAIN] = evaluation.optimizations

        recommendations = self.recommendation_engine.merge(insights, evaluation.conflicts, evaluation.synergies)
        if self.config.validation_enabled:
            recommendations, _ = self.recommendation_engine.validate_recommendations(recommendations)

        execution_time_ms = (time.perf_counter() - start) * 1000
        result = AnalysisResult(
            id=f"analysis_{uuid.uuid4().hex[:12]}",
            timestamp=datetime.fromtimestamp(self._clock(), tz=timezone.utc),
            insights=insights,
            conflicts=evaluation.conflicts,
            synergies=evaluation.synergies,
            recommendations=recommendations,
            confidence=self.recommendation_engine.calculate_overall_confidence(insights, recommendations),
            reasoning=self.recommendation_engine.generate_reasoning(
                insights, evaluation.conflicts, recommendations
            ),
            performance_metrics=PerformanceMetrics(
                execution_time_ms=execution_time_ms,
                memory_usage_bytes=int(current_memory_usage()['rss_bytes']),
                cache_hit_rate=self.cache.hit_rate(),
                attempts=outcome.attempts
            )
        )

        self.cache.set(key, result)
        if self.config.performance_monitoring:
            self.performance_monitor.record_analysis(execution_time_ms)

        logger.info(
            f"Analysis {result.id} completed in {execution_time_ms:.0f}ms: "
            f"{result.insight_count()} insights, {len(result.conflicts)} conflicts, "
            f"{len(result.recommendations)} recommendations"
        )
        return result

    async def _dispatch(self, request: AnalysisRequest) -> Dict[str, List[Insight]]:
        """Start every analyzer before awaiting any of them."""
        results = await asyncio.gather(*(self._run_analyzer(domain, request) for domain in self.domains))
        return dict(zip(self.domains, results))

    async def _run_analyzer(self, domain: str, request: AnalysisRequest) -> List[Insight]:
        if not self.registry.has(domain):
            return []
        analyzer = self.registry.get(domain)
        if not isinstance(analyzer, DomainAnalyzer):
            logger.debug(f"Service '{domain}' is not a domain analyzer, skipping")
            return []

        value = request.get(domain)
        if value is None:
            value = request.get(f"customization_{domain}")

        try:
            return list(await analyzer.analyze(value, request))
        except Exception as e:
            raise CollaboratorError(domain, 'analysis', e) from e

    def _handle_failure(self, outcome: RetryOutcome) -> AnalysisResult:
        error = outcome.error
        if self.config.performance_monitoring:
            self.performance_monitor.record_error()

        fallback_allowed = self.config.fallback_enabled and (
            self.error_handler.is_circuit_breaker_open()
            or self.error_handler.should_fallback(error)
            or outcome.kind in (ErrorKind.FALLBACK, ErrorKind.RETRYABLE)
        )
        if fallback_allowed:
            logger.warning(f"Analysis failed after {outcome.attempts} attempt(s), using fallback: {error}")
            return self.error_handler.create_fallback_result(str(error))

        logger.error(f"Analysis failed after {outcome.attempts} attempt(s) ({outcome.kind}): {error}")
        raise error

    def clear_cache(self) -> None:
        self.cache.clear()

    # Interactions and learning

    def record_interaction(self, interaction: Union[Interaction, Dict[str, Any]]) -> Interaction:
        """Track an interaction and feed any feedback it carries to the learning engine."""
        interaction = self.tracker.record_interaction(interaction)
        self.learning_engine.update_recommendation_weights(interaction)
        return interaction

    def learn_from_user_feedback(self, feedback: str, context: Optional[Dict[str, Any]] = None) -> Interaction:
        """
        Learn from explicit feedback on a recommendation.

        The current context's user profile is used when context carries none.

        Raises:
            InvalidFeedbackError: If feedback is not an accepted value
        """
        context = dict(context or {})
        if 'user_profile' not in context and self._context is not None:
            context['user_profile'] = self._context.user_profile
        interaction = self.learning_engine.learn_from_user_feedback(feedback, context)
        self.tracker.record_interaction(interaction)
        return interaction

    def export_session_data(self) -> Dict[str, Any]:
        data = self.tracker.export_session_data()
        data['context'] = self._context.to_dict() if self._context else None
        return data

    def export_learning_data(self) -> Dict[str, Any]:
        return self.learning_engine.export_learning_data()

    # Recovery and health

    async def force_recovery(self) -> RecoveryReport:
        """Recover every collaborator, close the breaker and drop cached results."""
        report = await self.recovery_manager.force_recovery()
        self.cache.clear()
        return report

    async def perform_comprehensive_health_check(self) -> Dict[str, Any]:
        report = await self.health_monitor.perform_comprehensive_health_check()
        report['core'] = self.get_health_status()
        return report

    def get_health_status(self) -> Dict[str, Any]:
        """Health of the orchestrator's own components."""
        cache_health = self.cache.get_health_status()
        if self.error_handler.is_circuit_breaker_open():
            error_status = 'unhealthy'
        elif self.error_handler.is_healthy():
            error_status = 'healthy'
        else:
            error_status = 'degraded'

        return {
            'status': aggregate_status([cache_health['status'], error_status]),
            'context_set': self._context is not None,
            'cache': cache_health,
            'error_handler': {
                'status': error_status,
                'circuit_breaker_open': self.error_handler.is_circuit_breaker_open(),
                'recommendations': self.error_handler.get_recommendations()
            },
            'learning': self.learning_engine.get_health_status(),
            'external_strategy': self.external_gateway.get_health_status()
        }

    def get_performance_metrics(self) -> Dict[str, Any]:
        return {
            'performance': self.performance_monitor.get_metrics(),
            'summary': self.performance_monitor.get_performance_summary(),
            'cache': self.cache.get_stats(),
            'retry': self.retry_executor.get_retry_stats(),
            'errors': self.error_handler.get_error_stats(),
            'recovery': self.recovery_manager.get_recovery_stats()
        }

    # External strategy

    def set_external_strategy(self, strategy: ExternalStrategy) -> None:
        self.external_gateway.set_external_strategy(strategy)

    async def generate_workout(self, partial: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        context = self._require_context('generate_workout')
        selections = dict(context.current_selections)
        selections.update(partial or {})
        return await self.external_gateway.generate_workout(selections, context)

    async def generate_recommendations(self) -> List[Dict[str, Any]]:
        return await self.external_gateway.generate_recommendations(
            self._require_context('generate_recommendations')
        )

    async def enhance_insights(self, insights: List[Insight]) -> List[Insight]:
        return await self.external_gateway.enhance_insights(insights, self._require_context('enhance_insights'))

    async def analyze_user_preferences(self) -> Dict[str, Any]:
        return await self.external_gateway.analyze_user_preferences(
            self._require_context('analyze_user_preferences')
        )
