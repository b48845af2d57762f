"""
Inference usage recording.

Every LLM call reports its token usage, latency and outcome here. The default
recorder writes a log line and feeds the metrics collector; persistence of
inference logs belongs to an external collaborator that can supply its own
recorder.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from osint_enrich.core.metrics import MetricsCollector, get_metrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UsageStats:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class InferenceRecorder:
    """Logs each LLM call and updates call/token metrics."""

    def __init__(self, metrics: Optional[MetricsCollector] = None):
        self.metrics = metrics or get_metrics()

    def record(
        self,
        model: str,
        operation: str,
        usage: UsageStats,
        latency_seconds: float,
        error: Optional[BaseException] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        status = "error" if error else "success"
        labels = {"operation": operation, "status": status}

        self.metrics.increment("llm_calls_total", labels=labels)
        self.metrics.observe("llm_call_latency_seconds", latency_seconds, labels={"operation": operation})
        if usage.total_tokens:
            self.metrics.increment("llm_tokens_total", usage.total_tokens, labels={"operation": operation})

        extra = f" metadata={metadata}" if metadata else ""
        if error:
            logger.warning(
                f"[INFERENCE] {operation} model={model} failed after {latency_seconds * 1000:.0f}ms: {error}{extra}"
            )
        else:
            logger.debug(
                f"[INFERENCE] {operation} model={model} tokens={usage.prompt_tokens}+{usage.completion_tokens}"
                f" latency_ms={latency_seconds * 1000:.0f}{extra}"
            )
