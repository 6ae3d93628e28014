"""Prometheus metrics for the webhook dispatcher."""

from __future__ import annotations

from typing import Final

from prometheus_client import Counter, Gauge, Histogram

# Per-request attempts ---------------------------------------------------------------------
WEBHOOK_ATTEMPTS_TOTAL: Final = Counter(
    "webhook_attempts_total",
    "HTTP attempts made against the webhook sink, by classified result.",
    labelnames=("result",),
)

WEBHOOK_SEND_LATENCY_SECONDS: Final = Histogram(
    "webhook_send_latency_seconds",
    "Time spent waiting on the webhook sink for a single attempt.",
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10),
)

# Delivery lifecycle -----------------------------------------------------------------------
WEBHOOK_DELIVERIES_TOTAL: Final = Counter(
    "webhook_deliveries_total",
    "Queued notifications resolved by the dispatcher, by final status.",
    labelnames=("status",),
)

WEBHOOK_RATE_LIMITED_TOTAL: Final = Counter(
    "webhook_rate_limited_total",
    "Number of 429 responses received from the webhook sink.",
)

WEBHOOK_COOLDOWN_WAIT_SECONDS: Final = Histogram(
    "webhook_cooldown_wait_seconds",
    "Time a queued notification spent waiting out a rate-limit cooldown.",
    buckets=(0.1, 0.25, 0.5, 1, 2, 5, 10, 30, 60),
)

WEBHOOK_PENDING: Final = Gauge(
    "webhook_pending_notifications",
    "Notifications enqueued but not yet resolved.",
)
