"""
Health Checks - Monitoring Layer

Aggregated health checks for:
- Session relay (store size, open connections, sweeper tasks)
- System resources

@.architecture
Incoming: app.py, api/v1/endpoints/health.py, Component instances --- {WebSocketHub, LifecycleSweeper, str component_name}
Processing: check_all(), check_component(), _check_system(), register_checker(), _aggregate_status() --- {5 jobs: aggregation, health_checking, monitoring, registration, resource_monitoring}
Outgoing: api/v1/endpoints/health.py --- {Dict[str, Any] health status, HealthCheckResult, HealthStatus enum}
"""

import time
import platform
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

import psutil


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


class HealthStatus(str, Enum):
    """Health check status levels."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


@dataclass
class HealthCheckResult:
    """
    Result of a health check.

    Attributes:
        component: Component name
        status: Health status
        message: Status message
        details: Additional details
        checked_at: Timestamp of check
        response_time_ms: Check execution time
    """
    component: str
    status: HealthStatus
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    checked_at: str = field(default_factory=_utc_now_iso)
    response_time_ms: Optional[float] = None


class HealthChecker:
    """
    Health check aggregator.

    Components register an object exposing ``async check_health() -> dict``
    with at least a ``healthy`` key.
    """

    def __init__(self):
        self._start_time = time.time()
        self._checkers: Dict[str, Any] = {}

    def register_checker(self, name: str, checker: Any) -> None:
        self._checkers[name] = checker

    def unregister_checker(self, name: str) -> None:
        self._checkers.pop(name, None)

    async def check_all(self) -> Dict[str, Any]:
        """
        Run all health checks.

        Returns:
            Aggregated health check results
        """
        start = time.time()
        results = [await self._check_system()]

        for name in list(self._checkers):
            results.append(await self._run_checker(name))

        overall_status = self._aggregate_status(results)

        return {
            'status': overall_status.value,
            'timestamp': _utc_now_iso(),
            'uptime_seconds': time.time() - self._start_time,
            'check_duration_ms': (time.time() - start) * 1000,
            'components': [
                {
                    'component': r.component,
                    'status': r.status.value,
                    'message': r.message,
                    'details': r.details,
                    'response_time_ms': r.response_time_ms
                }
                for r in results
            ]
        }

    async def check_component(self, component: str) -> Optional[HealthCheckResult]:
        """
        Check health of specific component.

        Returns:
            HealthCheckResult or None if not registered
        """
        if component == "system":
            return await self._check_system()

        if component not in self._checkers:
            return None

        return await self._run_checker(component)

    async def _run_checker(self, name: str) -> HealthCheckResult:
        try:
            check_start = time.time()
            result = await self._checkers[name].check_health()
            check_time = (time.time() - check_start) * 1000

            return HealthCheckResult(
                component=name,
                status=HealthStatus.HEALTHY if result.get('healthy', False) else HealthStatus.UNHEALTHY,
                message=result.get('message', 'Component check completed'),
                details=result,
                response_time_ms=check_time
            )
        except Exception as e:
            return HealthCheckResult(
                component=name,
                status=HealthStatus.UNHEALTHY,
                message=f"Health check failed: {str(e)}",
                details={'error': str(e)}
            )

    async def _check_system(self) -> HealthCheckResult:
        """Check host resources."""
        try:
            memory = psutil.virtual_memory()
            cpu_percent = psutil.cpu_percent(interval=None)

            status = HealthStatus.HEALTHY
            issues = []

            if memory.percent > 90:
                status = HealthStatus.DEGRADED
                issues.append(f"High memory usage: {memory.percent}%")

            if cpu_percent > 90:
                status = HealthStatus.DEGRADED
                issues.append(f"High CPU usage: {cpu_percent}%")

            return HealthCheckResult(
                component="system",
                status=status,
                message="System resources healthy" if not issues else "; ".join(issues),
                details={
                    'platform': platform.system(),
                    'python_version': platform.python_version(),
                    'cpu': {
                        'percent': cpu_percent,
                        'count': psutil.cpu_count()
                    },
                    'memory': {
                        'total_gb': round(memory.total / (1024**3), 2),
                        'available_gb': round(memory.available / (1024**3), 2),
                        'percent_used': memory.percent
                    },
                    'process_rss_mb': round(psutil.Process().memory_info().rss / (1024**2), 2),
                    'uptime_seconds': time.time() - self._start_time
                }
            )
        except Exception as e:
            return HealthCheckResult(
                component="system",
                status=HealthStatus.UNKNOWN,
                message=f"Failed to check system: {str(e)}",
                details={'error': str(e)}
            )

    def _aggregate_status(self, results: List[HealthCheckResult]) -> HealthStatus:
        if not results:
            return HealthStatus.UNKNOWN

        statuses = [r.status for r in results]

        if HealthStatus.UNHEALTHY in statuses:
            return HealthStatus.UNHEALTHY

        if HealthStatus.DEGRADED in statuses:
            return HealthStatus.DEGRADED

        return HealthStatus.HEALTHY

    def get_uptime(self) -> float:
        return time.time() - self._start_time


class RelayHealthChecker:
    """Health checker for the session relay."""

    def __init__(self, hub: Any, sweeper: Optional[Any] = None):
        """
        Initialize relay health checker.

        Args:
            hub: WebSocketHub instance
            sweeper: LifecycleSweeper instance
        """
        self.hub = hub
        self.sweeper = sweeper

    async def check_health(self) -> Dict[str, Any]:
        try:
            sweeper_running = self.sweeper.is_running() if self.sweeper else False
            stats = self.hub.get_stats()

            return {
                'healthy': sweeper_running,
                'message': 'Relay healthy' if sweeper_running else 'Lifecycle sweeper not running',
                'sweeper_running': sweeper_running,
                **stats
            }
        except Exception as e:
            return {
                'healthy': False,
                'message': f'Relay check failed: {str(e)}'
            }


# Global health checker instance
_global_health_checker: Optional[HealthChecker] = None


def get_health_checker() -> HealthChecker:
    global _global_health_checker
    if _global_health_checker is None:
        _global_health_checker = HealthChecker()
    return _global_health_checker


def initialize_health_checks(
    hub: Optional[Any] = None,
    sweeper: Optional[Any] = None
) -> HealthChecker:
    """
    Register relay components with the global health checker.

    Args:
        hub: WebSocketHub instance
        sweeper: LifecycleSweeper instance

    Returns:
        Configured HealthChecker
    """
    checker = get_health_checker()

    if hub:
        checker.register_checker('relay', RelayHealthChecker(hub, sweeper))

    return checker
