import asyncio

from core.resilience import ErrorHandler, HealthMonitor, RecoveryManager, aggregate_status

from conftest import AsyncResettableService, FlagService, PlainService, ResettableService


def test_recovery_prefers_reset(registry_factory):
    service = ResettableService(status="unhealthy")
    manager = RecoveryManager(registry_factory({"energy": service}))

    attempt = asyncio.run(manager.attempt_service_recovery("energy"))

    assert attempt.success
    assert attempt.method == "reset"
    assert service.reset_calls == 1
    assert service.status == "healthy"


def test_recovery_awaits_async_reset(registry_factory):
    service = AsyncResettableService()
    manager = RecoveryManager(registry_factory({"focus": service}))

    attempt = asyncio.run(manager.attempt_service_recovery("focus"))

    assert attempt.success
    assert service.reset_calls == 1


def test_recovery_recreates_from_factory(registry_factory):
    registry = registry_factory()
    registry.register_singleton("plain", PlainService)
    original = registry.get("plain")
    manager = RecoveryManager(registry)

    attempt = asyncio.run(manager.attempt_service_recovery("plain"))

    assert attempt.success
    assert attempt.method == "recreate"
    assert registry.get("plain") is not original


def test_recovery_without_method_fails(registry_factory):
    manager = RecoveryManager(registry_factory({"plain": PlainService()}))

    attempt = asyncio.run(manager.attempt_service_recovery("plain"))

    assert not attempt.success
    assert attempt.error == "No recovery method available"
    assert manager.get_attempt_count("plain") == 1


def test_recovery_of_unknown_service_fails(registry_factory):
    manager = RecoveryManager(registry_factory())

    attempt = asyncio.run(manager.attempt_service_recovery("ghost"))

    assert not attempt.success
    assert "Service not found" in attempt.error


def test_recovery_stops_after_max_attempts(registry_factory, clock):
    service = ResettableService(fail_reset=True)
    handler = ErrorHandler(clock=clock)
    manager = RecoveryManager(registry_factory({"energy": service}), error_handler=handler, max_attempts=2)

    for _ in range(2):
        assert not asyncio.run(manager.attempt_service_recovery("energy")).success

    attempt = asyncio.run(manager.attempt_service_recovery("energy"))

    assert attempt.error == "Max recovery attempts exceeded"
    assert service.reset_calls == 2
    assert manager.get_services_exceeded_max_attempts() == ["energy"]

    manager.reset_recovery_attempts("energy")
    assert manager.get_attempt_count("energy") == 0


def test_failed_reset_is_reported_to_error_handler(registry_factory, clock):
    handler = ErrorHandler(clock=clock)
    manager = RecoveryManager(registry_factory({"energy": ResettableService(fail_reset=True)}), error_handler=handler)

    attempt = asyncio.run(manager.attempt_service_recovery("energy"))

    assert attempt.error == "reset exploded"
    record = handler.get_last_error()
    assert record.type == "recovery_error"
    assert record.severity == "critical"
    assert record.context["recovery_method"] == "reset"
    assert "reset exploded" in record.message


def test_force_recovery_reports_failures_and_closes_breaker(registry_factory, clock):
    handler = ErrorHandler(clock=clock)
    for _ in range(5):
        handler.handle_error(RuntimeError("analysis failed"), "analysis")
    assert handler.is_circuit_breaker_open()

    registry = registry_factory({
        "energy": ResettableService(),
        "focus": AsyncResettableService(),
        "plain": PlainService()
    })
    manager = RecoveryManager(registry, error_handler=handler)

    report = asyncio.run(manager.force_recovery())

    assert not report.success
    assert report.recovered_services == ["energy", "focus"]
    assert report.failed_services == ["plain"]
    assert report.errors == ["plain: No recovery method available"]
    assert any("Manual intervention" in r for r in report.recommendations)
    assert not handler.is_circuit_breaker_open()


def test_force_recovery_succeeds_when_everything_recovers(registry_factory):
    manager = RecoveryManager(registry_factory({"energy": ResettableService()}))

    report = asyncio.run(manager.force_recovery())

    assert report.success
    assert report.recommendations == []
    stats = manager.get_recovery_stats()
    assert stats["total_attempts"] == 1
    assert stats["success_rate"] == 1.0


def test_health_uses_structured_status(registry_factory):
    monitor = HealthMonitor(registry_factory({"energy": ResettableService(status="degraded")}))

    health = asyncio.run(monitor.check_service_health("energy"))

    assert health.status == "degraded"
    assert health.check_method == "get_health_status"
    assert health.details["reset_calls"] == 0


def test_unknown_reported_status_counts_as_degraded(registry_factory):
    monitor = HealthMonitor(registry_factory({"energy": ResettableService(status="wobbly")}))

    health = asyncio.run(monitor.check_service_health("energy"))

    assert health.status == "degraded"
    assert health.details["reported_status"] == "wobbly"


def test_health_flag_and_presence(registry_factory):
    monitor = HealthMonitor(registry_factory({
        "down": FlagService(False),
        "up": FlagService(True),
        "plain": PlainService()
    }))

    assert asyncio.run(monitor.check_service_health("down")).status == "unhealthy"
    assert asyncio.run(monitor.check_service_health("up")).status == "healthy"
    plain = asyncio.run(monitor.check_service_health("plain"))
    assert plain.status == "healthy"
    assert plain.check_method == "presence"


def test_missing_service_is_unhealthy(registry_factory):
    health = asyncio.run(HealthMonitor(registry_factory()).check_service_health("ghost"))

    assert health.status == "unhealthy"
    assert health.check_method == "missing"


def test_overall_health_is_worst_of(registry_factory):
    monitor = HealthMonitor(registry_factory({
        "energy": ResettableService(),
        "focus": ResettableService(status="degraded")
    }))

    overall = asyncio.run(monitor.check_overall_health())

    assert overall["status"] == "degraded"
    assert overall["details"]["degraded_services"] == 1
    assert set(overall["services"]) == {"energy", "focus"}


def test_empty_registry_health_is_unknown(registry_factory):
    report = asyncio.run(HealthMonitor(registry_factory()).perform_comprehensive_health_check())

    assert report["overall_status"] == "unknown"
    assert "memory_usage" in report["system_resources"]


def test_comprehensive_check_recommends_restarts(registry_factory):
    monitor = HealthMonitor(registry_factory({"down": FlagService(False)}))

    report = asyncio.run(monitor.perform_comprehensive_health_check())

    assert report["overall_status"] == "unhealthy"
    assert "Restart unhealthy services: down" in report["recommendations"]


def test_aggregate_status():
    assert aggregate_status([]) == "unknown"
    assert aggregate_status(["healthy", "healthy"]) == "healthy"
    assert aggregate_status(["healthy", "degraded"]) == "degraded"
    assert aggregate_status(["degraded", "unhealthy"]) == "unhealthy"
