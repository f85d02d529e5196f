"""
Monitoring Infrastructure: Structured Logging with Structlog

Provides JSON-based structured logging for production observability and a
Prometheus collector for pipeline outcomes, outline tiers, provider calls,
and retries.
"""

import logging
import sys
from typing import Optional

import structlog
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)


def configure_structlog(log_level: str = "INFO") -> None:
    """
    Configure structlog for JSON-based production logging.

    Sets up processors for:
    - Timestamping (ISO 8601)
    - Log level formatting
    - Exception formatting with stack traces
    - JSON rendering
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a structlog logger instance bound with a name context.

    Args:
        name: Logger name (typically module __name__)

    Returns:
        Configured structlog BoundLogger
    """
    return structlog.get_logger(name)


class MetricsCollector:
    """
    Prometheus metrics collector for pipeline observability.

    Tracks:
    - Pipeline outcomes (completed, fallback, denied, failed) and duration
    - Outline degradation tiers
    - Provider call status, tokens and latency
    - Retries by operation and error class
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """Initialize metrics collector with Prometheus metrics."""
        self.registry = registry or REGISTRY

        # Pipeline metrics
        self.generation_total = Counter(
            "longform_generation_total",
            "Long-form generation requests by outcome",
            labelnames=["outcome"],
            registry=self.registry,
        )

        self.generation_duration_seconds = Histogram(
            "longform_generation_duration_seconds",
            "End-to-end pipeline execution time",
            buckets=[1, 5, 10, 30, 60, 120, 300, 600],
            labelnames=["outcome"],
            registry=self.registry,
        )

        self.outline_tier_total = Counter(
            "longform_outline_tier_total",
            "Outlines produced per degradation tier",
            labelnames=["tier"],
            registry=self.registry,
        )

        # Provider metrics
        self.provider_requests_total = Counter(
            "provider_requests_total",
            "Total generative provider requests",
            labelnames=["model", "provider", "status"],
            registry=self.registry,
        )

        self.provider_tokens_total = Counter(
            "provider_tokens_total",
            "Total tokens consumed",
            labelnames=["model", "provider"],
            registry=self.registry,
        )

        self.provider_latency_seconds = Histogram(
            "provider_latency_seconds",
            "Generative provider request latency",
            buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
            labelnames=["model", "provider"],
            registry=self.registry,
        )

        self.retries_total = Counter(
            "retry_attempts_total",
            "Retries scheduled by the backoff policy",
            labelnames=["operation", "error_class"],
            registry=self.registry,
        )

        log = get_logger(__name__)
        log.info("metrics_collector_initialized", metrics_type="prometheus")

    def record_generation(self, outcome: str, duration_seconds: float) -> None:
        """
        Record pipeline completion.

        Args:
            outcome: "completed", "fallback", "denied" or "failed"
            duration_seconds: Pipeline execution time
        """
        self.generation_total.labels(outcome=outcome).inc()
        self.generation_duration_seconds.labels(outcome=outcome).observe(duration_seconds)

    def record_outline_tier(self, tier: str) -> None:
        self.outline_tier_total.labels(tier=tier).inc()

    def record_provider_call(
        self,
        model: str,
        provider: str,
        status: str,
        tokens_used: int = 0,
        latency_seconds: float = 0.0,
    ) -> None:
        """
        Record a generative provider call.

        Args:
            model: Model identifier
            provider: Provider name ("gemini", "openai", "anthropic")
            status: "success" or the error class of the failure
            tokens_used: Number of tokens consumed
            latency_seconds: Request latency
        """
        self.provider_requests_total.labels(model=model, provider=provider, status=status).inc()
        if tokens_used:
            self.provider_tokens_total.labels(model=model, provider=provider).inc(tokens_used)
        if latency_seconds:
            self.provider_latency_seconds.labels(model=model, provider=provider).observe(
                latency_seconds
            )

    def record_retry(self, operation: str, error_class: str) -> None:
        self.retries_total.labels(operation=operation, error_class=error_class).inc()

    def export_metrics(self) -> bytes:
        """
        Export metrics in Prometheus format.

        Returns:
            Prometheus-formatted metrics payload
        """
        return generate_latest(self.registry)

    def get_content_type(self) -> str:
        """Get content type for metrics endpoint."""
        return CONTENT_TYPE_LATEST



__all__ = ["configure_structlog", "get_logger", "MetricsCollector"]
