"""Prometheus metrics for the renewal engine.

Metrics live on an injectable ``CollectorRegistry`` so tests (and multiple
controllers in one process) never collide on the global registry.
"""

from __future__ import annotations

import structlog
from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram
from prometheus_client import start_http_server as _start_http_server

logger = structlog.get_logger()

_PREFIX = "ingress_renewal"

# Annotation cycles run from a few seconds up to twice the removal delay
_CYCLE_BUCKETS = (1.0, 2.5, 5.0, 10.0, 20.0, 30.0, 60.0, 120.0, 300.0, 600.0, float("inf"))


class RenewalMetrics:
    """Collectors recorded by the state machine, rotator and audit."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else REGISTRY

        self.certificate_renewals = Counter(
            f"{_PREFIX}_certificate_renewals",
            "Renewal attempts whose challenge cleared before the deadline",
            registry=self.registry,
        )
        self.annotation_cycle_duration = Histogram(
            f"{_PREFIX}_annotation_cycle_duration_seconds",
            "Time between removing and restoring the force-HTTPS annotation",
            buckets=_CYCLE_BUCKETS,
            registry=self.registry,
        )
        self.lock_contention_skips = Counter(
            f"{_PREFIX}_lock_contention_skips",
            "Renewal attempts skipped because the ingress was already locked",
            registry=self.registry,
        )
        self.secret_rotations = Counter(
            f"{_PREFIX}_secret_rotations",
            "TLS secret references rewritten to a new versioned name",
            registry=self.registry,
        )
        self.failures = Counter(
            f"{_PREFIX}_failures",
            "Ingresses that still failed after the rotation fallback or errored",
            registry=self.registry,
        )
        self.audit_passes = Counter(
            f"{_PREFIX}_audit_passes",
            "Completed audit passes by result",
            ["result"],
            registry=self.registry,
        )
        self.last_pass_scanned = Gauge(
            f"{_PREFIX}_last_pass_scanned",
            "Ingresses listed in the most recent audit pass",
            registry=self.registry,
        )
        self.last_pass_needed_renewal = Gauge(
            f"{_PREFIX}_last_pass_needed_renewal",
            "Ingresses needing renewal in the most recent audit pass",
            registry=self.registry,
        )
        self.last_pass_renewed = Gauge(
            f"{_PREFIX}_last_pass_renewed",
            "Ingresses renewed in the most recent audit pass",
            registry=self.registry,
        )


def start_metrics_server(port: int, registry: CollectorRegistry | None = None) -> bool:
    """Serve ``/metrics`` on ``port``.

    Args:
        port: TCP port; 0 disables exposition.
        registry: Registry to expose; the global one by default.

    Returns:
        True if a server was started.
    """
    if port <= 0:
        logger.info("metrics_server_disabled")
        return False
    _start_http_server(port, registry=registry if registry is not None else REGISTRY)
    logger.info("metrics_server_started", port=port)
    return True
