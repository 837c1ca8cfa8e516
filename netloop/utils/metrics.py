from __future__ import annotations

import logging

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

logger = logging.getLogger(__name__)


DETECTION_EVENTS_TOTAL = Counter(
    "netloop_detection_events_total",
    "Loop detection events",
    ["event", "result"],
)

DETECTION_DURATION_SECONDS = Histogram(
    "netloop_detection_duration_seconds",
    "Loop detection run duration (seconds)",
)

POSITIONS_SKIPPED_TOTAL = Counter(
    "netloop_positions_skipped_total",
    "Positions left out of graph construction",
    ["reason"],
)

SETTLEMENT_EVENTS_TOTAL = Counter(
    "netloop_settlement_events_total",
    "Settlement execution events",
    ["event", "result"],
)


def _metrics_enabled() -> bool:
    from netloop.config import settings

    return bool(settings.METRICS_ENABLED)


def inc(counter: Counter, amount: float = 1, **labels: str) -> None:
    """Increment a labelled counter; metrics must not break business logic."""
    if not _metrics_enabled() or amount <= 0:
        return
    try:
        counter.labels(**labels).inc(amount)
    except Exception:
        logger.debug("event=metrics.inc_failed labels=%s", labels, exc_info=True)


def observe(histogram: Histogram, value: float) -> None:
    if not _metrics_enabled():
        return
    try:
        histogram.observe(value)
    except Exception:
        logger.debug("event=metrics.observe_failed", exc_info=True)


def render_metrics() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
