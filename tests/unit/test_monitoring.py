"""
Unit Tests: Monitoring

Tests for monitoring module including logging, metrics and health checks.
"""

import json
import logging

import pytest

from monitoring.logging import (
    ContextFilter,
    JSONFormatter,
    clear_connection_context,
    configure_from_preset,
    configure_logging,
    get_connection_id,
    get_logger,
    set_connection_context,
)
from monitoring.metrics import Counter, Gauge, MetricsRegistry, get_relay_metrics
from monitoring.health import HealthChecker, HealthStatus, RelayHealthChecker


def make_record(message="hello", **extra):
    record = logging.LogRecord("relay.test", logging.INFO, __file__, 10, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


# =============================================================================
# Logging Tests
# =============================================================================

@pytest.mark.unit
class TestLogging:
    """Test logging configuration and context injection."""

    def test_configure_logging_sets_level(self):
        configure_logging(level="WARNING", format_type="text")

        assert logging.getLogger().level == logging.WARNING

    def test_module_levels(self):
        configure_logging(level="INFO", module_levels={"relay.noisy": "ERROR"})

        assert logging.getLogger("relay.noisy").level == logging.ERROR

    def test_unknown_preset(self):
        with pytest.raises(ValueError):
            configure_from_preset("staging")

    def test_get_logger(self):
        logger = get_logger("test_module")

        assert logger.name == "test_module"

    def test_structured_fields(self, caplog):
        logger = get_logger("relay.structured")

        with caplog.at_level(logging.INFO, logger="relay.structured"):
            logger.info("Session created", session_count=3)

        assert caplog.records[-1].extra_fields == {"session_count": 3}

    def test_connection_context(self):
        set_connection_context("abcdef123456", "s1", "Alice")
        assert get_connection_id() == "abcdef123456"

        record = make_record()
        ContextFilter().filter(record)

        assert record.connection_id == "abcdef12"
        assert record.session_id == "s1"
        assert record.user_name == "Alice"

        clear_connection_context()
        record = make_record()
        ContextFilter().filter(record)
        assert record.connection_id == "-"

    def test_json_formatter(self):
        set_connection_context("conn-1", "s1", None)
        try:
            output = json.loads(JSONFormatter().format(make_record("Relay up", extra_fields={"port": 8080})))
        finally:
            clear_connection_context()

        assert output["message"] == "Relay up"
        assert output["level"] == "INFO"
        assert output["connection_id"] == "conn-1"
        assert output["session_id"] == "s1"
        assert "user_name" not in output
        assert output["extra"] == {"port": 8080}


# =============================================================================
# Metrics Tests
# =============================================================================

@pytest.mark.unit
class TestMetrics:
    """Test counters, gauges and export."""

    @pytest.fixture
    def metrics_registry(self):
        return MetricsRegistry()

    def test_counter(self, metrics_registry):
        counter = metrics_registry.counter("frames_total", "Frames", labels=["type"])

        counter.inc(type="ping")
        counter.inc(2, type="ping")

        assert counter.get(type="ping") == 3
        assert counter.get(type="pong") == 0

    def test_counter_rejects_negative(self, metrics_registry):
        counter = metrics_registry.counter("c_total", "C")

        with pytest.raises(ValueError):
            counter.inc(-1)

    def test_counter_requires_labels(self, metrics_registry):
        counter = metrics_registry.counter("labeled_total", "L", labels=["code"])

        with pytest.raises(ValueError):
            counter.inc()

    def test_gauge(self, metrics_registry):
        gauge = metrics_registry.gauge("open", "Open")

        gauge.set(5)
        gauge.inc()
        gauge.dec(3)

        assert gauge.get() == 3

    def test_get_or_create_returns_same_metric(self, metrics_registry):
        first = metrics_registry.counter("same_total", "S")

        assert metrics_registry.counter("same_total", "S") is first
        assert isinstance(first, Counter)

    def test_type_conflict(self, metrics_registry):
        metrics_registry.counter("dup", "D")

        with pytest.raises(ValueError):
            metrics_registry.gauge("dup", "D")

    def test_export_prometheus(self, metrics_registry):
        metrics_registry.counter("relay_errors_total", "Errors", labels=["code"]).inc(code="session_full")
        metrics_registry.gauge("relay_sessions_active", "Sessions").set(2)

        text = metrics_registry.export_prometheus()

        assert "# TYPE relay_errors_total counter" in text
        assert 'relay_errors_total{code="session_full"} 1.0' in text
        assert "# HELP relay_sessions_active Sessions" in text
        assert "relay_sessions_active 2" in text

    def test_relay_metrics_singleton(self):
        metrics = get_relay_metrics()

        assert get_relay_metrics() is metrics
        assert isinstance(metrics.sessions_active, Gauge)

    def test_relay_metrics_refresh(self, store, registry, make_ws):
        store.create_session("s1", "T", "Alice", registry.add(make_ws()))
        registry.add(make_ws())

        metrics = get_relay_metrics()
        metrics.refresh(store, registry)

        assert metrics.sessions_active.get() == 1
        assert metrics.connections_open.get() == 2


# =============================================================================
# Health Check Tests
# =============================================================================

class StubSweeper:
    def __init__(self, running):
        self.running = running

    def is_running(self):
        return self.running


class BrokenChecker:
    async def check_health(self):
        raise RuntimeError("probe failed")


@pytest.mark.unit
class TestHealth:
    """Test health aggregation."""

    @pytest.mark.asyncio
    async def test_system_check(self):
        result = await HealthChecker().check_component("system")

        assert result.component == "system"
        assert result.status in (HealthStatus.HEALTHY, HealthStatus.DEGRADED)
        assert "memory" in result.details

    @pytest.mark.asyncio
    async def test_unknown_component(self):
        assert await HealthChecker().check_component("database") is None

    @pytest.mark.asyncio
    async def test_relay_healthy_when_sweeper_running(self, hub):
        checker = HealthChecker()
        checker.register_checker("relay", RelayHealthChecker(hub, StubSweeper(True)))

        result = await checker.check_component("relay")

        assert result.status == HealthStatus.HEALTHY
        assert result.details["sessions"] == 0
        assert result.details["connections"] == 0

    @pytest.mark.asyncio
    async def test_relay_unhealthy_without_sweeper(self, hub):
        checker = HealthChecker()
        checker.register_checker("relay", RelayHealthChecker(hub, StubSweeper(False)))

        report = await checker.check_all()

        assert report["status"] == "unhealthy"
        relay = next(c for c in report["components"] if c["component"] == "relay")
        assert relay["message"] == "Lifecycle sweeper not running"

    @pytest.mark.asyncio
    async def test_failing_checker_is_reported(self):
        checker = HealthChecker()
        checker.register_checker("broken", BrokenChecker())

        result = await checker.check_component("broken")

        assert result.status == HealthStatus.UNHEALTHY
        assert "probe failed" in result.message

    def test_unregister(self):
        checker = HealthChecker()
        checker.register_checker("x", BrokenChecker())

        checker.unregister_checker("x")
        checker.unregister_checker("x")

        assert checker.get_uptime() >= 0
