"""
Metrics for push dispatch and scoreboard updates.
Wraps prometheus_client.
"""
from __future__ import annotations

from prometheus_client import Counter, Histogram, start_http_server

from shared.config import get_settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)

# ── Counters ────────────────────────────────────────────────────────────
PUSH_DELIVERIES = Counter(
    "ls_push_deliveries_total",
    "Push delivery attempts by final outcome",
    ["outcome"],
)
PUSH_DISPATCHES = Counter(
    "ls_push_dispatches_total",
    "Dispatch invocations (one fan-out per admin mutation)",
    ["result"],
)
PUSH_REGISTRATIONS_PRUNED = Counter(
    "ls_push_registrations_pruned_total",
    "Registrations removed after a permanent delivery failure",
)
BADGES_RAISED = Counter(
    "ls_badges_raised_total",
    "Badge signals raised by the delta detector",
    ["kind"],
)
SNAPSHOTS_PUBLISHED = Counter(
    "ls_snapshots_published_total",
    "Match snapshots published to the snapshot channel",
)

# ── Histograms ──────────────────────────────────────────────────────────
PUSH_DELIVERY_LATENCY = Histogram(
    "ls_push_delivery_latency_seconds",
    "Latency of a single push delivery attempt",
    ["outcome"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)


def start_metrics_server(port: int | None = None) -> None:
    """Start the Prometheus metrics HTTP server."""
    settings = get_settings()
    if not settings.metrics_enabled:
        return
    metrics_port = port or settings.metrics_port
    try:
        start_http_server(metrics_port)
        logger.info("metrics_server_started", port=metrics_port)
    except OSError as exc:
        logger.warning("metrics_server_failed", error=str(exc), port=metrics_port)
