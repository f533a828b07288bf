#!/usr/bin/env python3
"""
Health check command for monitoring system status.

Provides comprehensive health checks for the analysis core, its analyzers,
configuration and integrations, plus forced recovery.
"""

import asyncio
import json
import logging
from argparse import Namespace
from typing import Any, Dict

from .base import BaseCommand

logger = logging.getLogger(__name__)

STATUS_ICONS = {
    'healthy': '✅',
    'degraded': '⚠️ ',
    'unhealthy': '❌',
    'not_configured': 'ℹ️ ',
    'unknown': '❔'
}


def _icon(status: str) -> str:
    return STATUS_ICONS.get(status, '❔')


class HealthCommand(BaseCommand):
    """Handle system health monitoring and recovery."""

    SUBCOMMANDS = ('check', 'recover')

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute health subcommand."""
        try:
            if subcommand == "check":
                return self.check(args)
            elif subcommand == "recover":
                return self.recover(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1

        except Exception as e:
            return self.handle_error(e, f"health {subcommand}")

    def check(self, args: Namespace) -> int:
        """Run comprehensive health check."""
        report = asyncio.run(self.orchestrator.perform_comprehensive_health_check())

        if getattr(args, 'json', False):
            print(json.dumps(report, indent=2, default=str))
            return 0 if report['overall_status'] != 'unhealthy' else 1

        print("🏥 System Health Check")
        print("=" * 50)

        print("\n🔬 Analyzers:")
        services = report.get('services', {})
        if not services:
            print("  ℹ️  No analyzers registered")
        for name, health in services.items():
            line = f"  {_icon(health['status'])} {name}: {health['status']} ({health['response_time_ms']:.1f}ms)"
            if health.get('error'):
                line += f" - {health['error']}"
            print(line)

        core = report['core']
        print("\n⚙️  Core:")
        print(f"  {_icon(core['status'])} Overall: {core['status']}")
        print(f"  📊 Cache: {core['cache']['details']['size']} entries, "
              f"{core['cache']['details']['hit_rate'] * 100:.1f}% hit rate")
        breaker = "OPEN" if core['error_handler']['circuit_breaker_open'] else "closed"
        print(f"  🔌 Circuit breaker: {breaker}")

        print("\n🔌 Integration Status:")
        if self.config.has_openai():
            print("  ✅ OpenAI configuration: OK")
        else:
            print("  ℹ️  OpenAI configuration: not set (OPENAI_API_KEY)")

        self._print_resources(report.get('system_resources', {}))

        recommendations = report.get('recommendations', []) + core['error_handler']['recommendations']
        if recommendations:
            print("\n💡 Recommendations:")
            for recommendation in recommendations:
                print(f"  • {recommendation}")

        # Summary
        print("\n" + "=" * 50)
        overall = report['overall_status']
        if overall == 'unhealthy':
            print("❌ Overall Status: UNHEALTHY")
            return 1
        print(f"{_icon(overall)} Overall Status: {overall.upper()}")
        return 0

    def recover(self, args: Namespace) -> int:
        """Force recovery of every analyzer and close the circuit breaker."""
        report = asyncio.run(self.orchestrator.force_recovery())

        if getattr(args, 'json', False):
            print(json.dumps(report.to_dict(), indent=2))
            return 0 if report.success else 1

        print("🔧 Forced Recovery")
        print("=" * 30)
        for name in report.recovered_services:
            print(f"  ✅ {name}")
        for name in report.failed_services:
            print(f"  ❌ {name}")
        for error in report.errors:
            print(f"     {error}")
        for recommendation in report.recommendations:
            print(f"  💡 {recommendation}")

        print(f"\nCompleted in {report.execution_time_ms:.1f}ms")
        return 0 if report.success else 1

    @staticmethod
    def _print_resources(resources: Dict[str, Any]) -> None:
        if not resources:
            return
        print("\n💻 System Resources:")
        for name in ('memory_usage', 'cpu_usage', 'disk_usage'):
            value = resources.get(name, -1)
            label = name.replace('_', ' ').title()
            print(f"  {label}: {'n/a' if value < 0 else f'{value:.1f}%'}")
