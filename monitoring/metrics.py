"""
Metrics Collection - Monitoring Layer

In-process counters and gauges for the session relay, exportable in Prometheus
text format via /v1/metrics.

@.architecture
Incoming: ws/handlers.py, ws/hub.py, ws/sweeper.py, api/v1/endpoints/health.py --- {str metric_name, float value, label values}
Processing: inc(), set(), collect_all(), export_prometheus(), RelayMetrics.refresh() --- {3 jobs: recording, aggregation, export}
Outgoing: api/v1/endpoints/health.py --- {Dict[str, Any] collected metrics, str Prometheus format}
"""

import threading
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class MetricType(str, Enum):
    """Metric types following Prometheus conventions."""
    COUNTER = "counter"
    GAUGE = "gauge"


class _LabeledMetric:
    """Value store keyed by ordered label values."""

    metric_type: MetricType

    def __init__(self, name: str, help_text: str, labels: Optional[List[str]] = None):
        """
        Initialize metric.

        Args:
            name: Metric name
            help_text: Description
            labels: Label names for metric dimensions
        """
        self.name = name
        self.help_text = help_text
        self.label_names = labels or []
        self._lock = threading.Lock()
        self._values: Dict[Tuple[str, ...], float] = defaultdict(float)

    def get(self, **labels: str) -> float:
        label_values = self._validate_labels(labels)
        return self._values.get(label_values, 0.0)

    def _validate_labels(self, labels: Dict[str, str]) -> Tuple[str, ...]:
        """Validate and order labels."""
        if set(labels.keys()) != set(self.label_names):
            raise ValueError(f"Expected labels {self.label_names}, got {list(labels.keys())}")
        return tuple(str(labels[name]) for name in self.label_names)

    def collect(self) -> List[Tuple[Dict[str, str], float]]:
        """
        Collect all metric values for export.

        Returns:
            List of (label_dict, value) tuples
        """
        with self._lock:
            return [
                (dict(zip(self.label_names, label_values)), value)
                for label_values, value in self._values.items()
            ]

    def reset(self) -> None:
        with self._lock:
            self._values.clear()


class Counter(_LabeledMetric):
    """
    Counter metric - monotonically increasing value.

    Use for: frames received, errors, relayed messages, expired sessions.
    """

    metric_type = MetricType.COUNTER

    def inc(self, value: float = 1.0, **labels: str) -> None:
        if value < 0:
            raise ValueError("Counter can only be incremented by non-negative values")

        label_values = self._validate_labels(labels)

        with self._lock:
            self._values[label_values] += value


class Gauge(_LabeledMetric):
    """
    Gauge metric - can go up or down.

    Use for: active sessions, open connections.
    """

    metric_type = MetricType.GAUGE

    def set(self, value: float, **labels: str) -> None:
        label_values = self._validate_labels(labels)

        with self._lock:
            self._values[label_values] = value

    def inc(self, value: float = 1.0, **labels: str) -> None:
        label_values = self._validate_labels(labels)

        with self._lock:
            self._values[label_values] += value

    def dec(self, value: float = 1.0, **labels: str) -> None:
        self.inc(-value, **labels)


class MetricsRegistry:
    """
    Central registry for all metrics.

    Manages metric creation and collection for export.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._metrics: Dict[str, _LabeledMetric] = {}

    def _get_or_create(self, cls, name: str, help_text: str, labels: Optional[List[str]]):
        with self._lock:
            metric = self._metrics.get(name)
            if metric is None:
                metric = cls(name, help_text, labels)
                self._metrics[name] = metric
            elif not isinstance(metric, cls):
                raise ValueError(f"Metric {name} already registered as {metric.metric_type.value}")
            return metric

    def counter(self, name: str, help_text: str, labels: Optional[List[str]] = None) -> Counter:
        """Get or create counter metric."""
        return self._get_or_create(Counter, name, help_text, labels)

    def gauge(self, name: str, help_text: str, labels: Optional[List[str]] = None) -> Gauge:
        """Get or create gauge metric."""
        return self._get_or_create(Gauge, name, help_text, labels)

    def collect_all(self) -> Dict[str, Any]:
        """
        Collect all metrics for export.

        Returns:
            Dict mapping metric names to their type, help and values
        """
        return {
            name: {
                'type': metric.metric_type.value,
                'help': metric.help_text,
                'values': metric.collect(),
            }
            for name, metric in self._metrics.items()
        }

    def export_prometheus(self) -> str:
        """
        Export metrics in Prometheus text format.

        Returns:
            Prometheus-formatted metrics string
        """
        lines = []

        for name, metric in self._metrics.items():
            lines.append(f"# HELP {name} {metric.help_text}")
            lines.append(f"# TYPE {name} {metric.metric_type.value}")
            for label_dict, value in metric.collect():
                lines.append(f"{name}{self._format_labels(label_dict)} {value}")

        return '\n'.join(lines) + '\n'

    def reset(self) -> None:
        """Zero every metric (tests)."""
        for metric in self._metrics.values():
            metric.reset()

    def _format_labels(self, labels: Dict[str, str]) -> str:
        """Format labels for Prometheus output."""
        if not labels:
            return ""
        label_pairs = [f'{k}="{v}"' for k, v in labels.items()]
        return "{" + ",".join(label_pairs) + "}"


# Global registry instance
_global_registry: Optional[MetricsRegistry] = None


def get_registry() -> MetricsRegistry:
    global _global_registry
    if _global_registry is None:
        _global_registry = MetricsRegistry()
    return _global_registry


def counter(name: str, help_text: str, labels: Optional[List[str]] = None) -> Counter:
    """Get or create counter from global registry."""
    return get_registry().counter(name, help_text, labels)


def gauge(name: str, help_text: str, labels: Optional[List[str]] = None) -> Gauge:
    """Get or create gauge from global registry."""
    return get_registry().gauge(name, help_text, labels)


@dataclass
class RelayMetrics:
    """Standard relay metrics, bound to one registry."""
    sessions_active: Gauge
    connections_open: Gauge
    frames_received: Counter
    errors: Counter
    messages_relayed: Counter
    sessions_expired: Counter
    keepalive_pings: Counter

    def refresh(self, store: Any, registry: Any) -> None:
        """Sample the gauges from the live SessionStore and ConnectionRegistry."""
        self.sessions_active.set(len(store))
        self.connections_open.set(registry.count())


_relay_metrics: Optional[RelayMetrics] = None


def get_relay_metrics() -> RelayMetrics:
    """
    Create (once) and return the standard relay metrics.

    Returns:
        RelayMetrics bound to the global registry
    """
    global _relay_metrics
    if _relay_metrics is None:
        registry = get_registry()
        _relay_metrics = RelayMetrics(
            sessions_active=registry.gauge(
                'relay_sessions_active',
                'Number of sessions in the store'
            ),
            connections_open=registry.gauge(
                'relay_connections_open',
                'Number of open WebSocket connections'
            ),
            frames_received=registry.counter(
                'relay_frames_received_total',
                'Inbound frames decoded, by type',
                labels=['type']
            ),
            errors=registry.counter(
                'relay_errors_total',
                'Error frames sent to clients, by code',
                labels=['code']
            ),
            messages_relayed=registry.counter(
                'relay_messages_relayed_total',
                'relay_message frames accepted'
            ),
            sessions_expired=registry.counter(
                'relay_sessions_expired_total',
                'Sessions deleted by the TTL sweep'
            ),
            keepalive_pings=registry.counter(
                'relay_keepalive_pings_total',
                'Keep-alive pings written to connections'
            ),
        )
    return _relay_metrics
