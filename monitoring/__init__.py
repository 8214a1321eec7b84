"""
Monitoring & Observability Layer

Provides monitoring for the negotiation relay:
- Structured logging (JSON formatting, connection context injection)
- Metrics collection (Prometheus-compatible counters and gauges)
- Health checks (relay component, system resources)
"""

# Logging
from .logging import (
    JSONFormatter,
    ContextFilter,
    StructuredLogger,
    configure_logging,
    configure_from_preset,
    get_logger,
    set_connection_context,
    clear_connection_context,
    get_connection_id,
    get_session_id,
    get_user_name,
    LOGGING_PRESETS,
)

# Metrics
from .metrics import (
    MetricType,
    Counter,
    Gauge,
    MetricsRegistry,
    RelayMetrics,
    get_registry,
    get_relay_metrics,
    counter,
    gauge,
)

# Health checks
from .health import (
    HealthStatus,
    HealthCheckResult,
    HealthChecker,
    RelayHealthChecker,
    get_health_checker,
    initialize_health_checks,
)

__all__ = [
    # Logging
    'JSONFormatter',
    'ContextFilter',
    'StructuredLogger',
    'configure_logging',
    'configure_from_preset',
    'get_logger',
    'set_connection_context',
    'clear_connection_context',
    'get_connection_id',
    'get_session_id',
    'get_user_name',
    'LOGGING_PRESETS',

    # Metrics
    'MetricType',
    'Counter',
    'Gauge',
    'MetricsRegistry',
    'RelayMetrics',
    'get_registry',
    'get_relay_metrics',
    'counter',
    'gauge',

    # Health
    'HealthStatus',
    'HealthCheckResult',
    'HealthChecker',
    'RelayHealthChecker',
    'get_health_checker',
    'initialize_health_checks',
]
