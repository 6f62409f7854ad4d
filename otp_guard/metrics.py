"""
Delivery Metrics
================
In-memory counters and histograms for OTP delivery, exportable in
Prometheus text format.
"""

from time import perf_counter
from typing import Dict, List, Optional


class MetricNames:
    SEND_ATTEMPTS = "otp_send_attempts"
    SEND_SUCCESS = "otp_send_success"
    SEND_CACHED = "otp_send_cached"
    SEND_FAILED = "otp_send_failed"
    SEND_DURATION = "otp_send_duration_seconds"
    RETRIES = "otp_retries"
    QUEUE_ENQUEUED = "otp_queue_enqueued"
    QUEUE_SENT = "otp_queue_sent"
    QUEUE_DROPPED = "otp_queue_dropped"
    QUEUE_DEFERRED = "otp_queue_deferred"


class DeliveryMetrics:
    """
    Simple in-memory metrics collector.

    For production, scrape ``export_prometheus()`` or forward the values to
    a real metrics backend.
    """

    def __init__(self, service: str = "otp-guard"):
        self.service = service
        self._counters: Dict[str, int] = {}
        self._histograms: Dict[str, List[float]] = {}

    def increment(self, name: str, value: int = 1, labels: Optional[Dict[str, str]] = None) -> None:
        key = self._make_key(name, labels)
        self._counters[key] = self._counters.get(key, 0) + value

    def observe(self, name: str, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        key = self._make_key(name, labels)
        self._histograms.setdefault(key, []).append(value)

    def get_counter(self, name: str, labels: Optional[Dict[str, str]] = None) -> int:
        return self._counters.get(self._make_key(name, labels), 0)

    def get_histogram_stats(self, name: str, labels: Optional[Dict[str, str]] = None) -> Dict[str, float]:
        values = self._histograms.get(self._make_key(name, labels), [])
        if not values:
            return {"count": 0, "sum": 0, "avg": 0, "p50": 0, "p95": 0}

        ordered = sorted(values)
        count = len(ordered)
        return {
            "count": count,
            "sum": sum(ordered),
            "avg": sum(ordered) / count,
            "p50": ordered[min(count // 2, count - 1)],
            "p95": ordered[min(int(count * 0.95), count - 1)],
        }

    def timer(self, name: str, labels: Optional[Dict[str, str]] = None) -> "Timer":
        return Timer(self, name, labels)

    def export_prometheus(self) -> str:
        """Export metrics in Prometheus text format."""
        lines = []
        for key, value in sorted(self._counters.items()):
            name, labels = self._split_key(key)
            lines.append(f"{name}_total{{{self._labels(labels)}}} {value}")
        for key, values in sorted(self._histograms.items()):
            name, labels = self._split_key(key)
            lines.append(f"{name}_count{{{self._labels(labels)}}} {len(values)}")
            lines.append(f"{name}_sum{{{self._labels(labels)}}} {sum(values)}")
        return "\n".join(lines)

    def _labels(self, extra: str) -> str:
        base = f'service="{self.service}"'
        return f"{base},{extra}" if extra else base

    @staticmethod
    def _make_key(name: str, labels: Optional[Dict[str, str]] = None) -> str:
        if labels:
            label_str = ",".join(f'{k}="{v}"' for k, v in sorted(labels.items()))
            return f"{name}{{{label_str}}}"
        return name

    @staticmethod
    def _split_key(key: str):
        if "{" not in key:
            return key, ""
        name, rest = key.split("{", 1)
        return name, rest[:-1]


class Timer:
    """Context manager for timing operations."""

    def __init__(self, metrics: DeliveryMetrics, name: str, labels: Optional[Dict[str, str]] = None):
        self.metrics = metrics
        self.name = name
        self.labels = labels
        self._start: Optional[float] = None

    def __enter__(self):
        self._start = perf_counter()
        return self

    def __exit__(self, *args):
        if self._start is not None:
            self.metrics.observe(self.name, perf_counter() - self._start, self.labels)
