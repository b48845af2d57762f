"""
Prometheus-style metrics for monitoring enrichment.

Provides counters, gauges, and histograms for:
- LLM calls (attempts, rate limits, token usage)
- Enrichment outcomes (success/failure per error class)
- Batch runs (sizes, durations)
"""

import time
import logging
import threading
from typing import Dict, Optional
from datetime import datetime
from collections import defaultdict

logger = logging.getLogger(__name__)


class MetricsCollector:
    """Thread-safe metrics collector with Prometheus-style output."""

    def __init__(self):
        self.counters: Dict[str, int] = defaultdict(int)
        self.gauges: Dict[str, float] = {}
        self.histograms: Dict[str, list] = defaultdict(list)
        self.start_times: Dict[str, float] = {}
        self._lock = threading.Lock()

    def increment(self, metric_name: str, value: int = 1, labels: Optional[Dict[str, str]] = None):
        """Increment a counter metric."""
        key = self._make_key(metric_name, labels)
        with self._lock:
            self.counters[key] += value
            total = self.counters[key]
        logger.debug(f"[METRIC] {key} += {value} (total: {total})")

    def set_gauge(self, metric_name: str, value: float, labels: Optional[Dict[str, str]] = None):
        """Set a gauge metric."""
        key = self._make_key(metric_name, labels)
        with self._lock:
            self.gauges[key] = value
        logger.debug(f"[METRIC] {key} = {value}")

    def observe(self, metric_name: str, value: float, labels: Optional[Dict[str, str]] = None):
        """Record a histogram observation."""
        key = self._make_key(metric_name, labels)
        with self._lock:
            self.histograms[key].append(value)
        logger.debug(f"[METRIC] {key} observed: {value}")

    def start_timer(self, metric_name: str, labels: Optional[Dict[str, str]] = None):
        """Start a timer for duration measurement."""
        key = self._make_key(metric_name, labels)
        with self._lock:
            self.start_times[key] = time.monotonic()

    def stop_timer(self, metric_name: str, labels: Optional[Dict[str, str]] = None) -> Optional[float]:
        """Stop a timer and record duration."""
        key = self._make_key(metric_name, labels)
        with self._lock:
            started = self.start_times.pop(key, None)
        if started is None:
            return None
        duration = time.monotonic() - started
        self.observe(f"{metric_name}_duration_seconds", duration, labels)
        return duration

    def get_counter(self, metric_name: str, labels: Optional[Dict[str, str]] = None) -> int:
        with self._lock:
            return self.counters.get(self._make_key(metric_name, labels), 0)

    def _make_key(self, metric_name: str, labels: Optional[Dict[str, str]]) -> str:
        """Create a key from metric name and labels."""
        if labels:
            label_str = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
            return f"{metric_name}{{{label_str}}}"
        return metric_name

    def format_prometheus(self) -> str:
        """Format metrics in Prometheus text format."""
        lines = []
        lines.append("# osint-enrich metrics")
        lines.append(f"# Generated at {datetime.now().isoformat()}")
        lines.append("")

        with self._lock:
            counters = sorted(self.counters.items())
            gauges = sorted(self.gauges.items())
            histograms = sorted((k, list(v)) for k, v in self.histograms.items())

        for key, value in counters:
            lines.append(f"# TYPE {key.split('{')[0]} counter")
            lines.append(f"{key} {value}")

        for key, value in gauges:
            lines.append(f"# TYPE {key.split('{')[0]} gauge")
            lines.append(f"{key} {value}")

        # histograms as summaries
        for key, values in histograms:
            if values:
                lines.append(f"# TYPE {key.split('{')[0]} summary")
                lines.append(f"{key}_count {len(values)}")
                lines.append(f"{key}_sum {sum(values)}")
                lines.append(f"{key}_min {min(values)}")
                lines.append(f"{key}_max {max(values)}")

        return "\n".join(lines)

    def reset(self):
        """Reset all metrics."""
        with self._lock:
            self.counters.clear()
            self.gauges.clear()
            self.histograms.clear()
            self.start_times.clear()


# Global metrics instance
_metrics = MetricsCollector()


def get_metrics() -> MetricsCollector:
    """Get the global metrics collector."""
    return _metrics
