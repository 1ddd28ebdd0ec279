"""
Prometheus metrics for relay fetches and the zap handshake.

Module-level metric objects are process-wide singletons registered in the
default ``prometheus_client`` registry; an embedding application exposes
them with its own scrape endpoint.

Architecture:
    FETCH_TOTAL:              Bounded fetches by operation and outcome.
    FETCH_DURATION_SECONDS:   Wall time of bounded fetches (p50/p95/p99).
    FETCH_RECORDS_TOTAL:      Records returned by bounded fetches.
    ZAP_STAGE_TOTAL:          Zap handshake transitions by stage and outcome.
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram


# ---------------------------------------------------------------------------
# Bounded aggregator
#
# outcome labels: complete, timeout, error, skipped
# ---------------------------------------------------------------------------

FETCH_TOTAL = Counter(
    "zapstore_fetch_total",
    "Bounded relay fetches",
    ["operation", "outcome"],
)

FETCH_DURATION_SECONDS = Histogram(
    "zapstore_fetch_duration_seconds",
    "Duration of bounded relay fetches in seconds",
    ["operation"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 4, 8, 15, 30),
)

FETCH_RECORDS_TOTAL = Counter(
    "zapstore_fetch_records_total",
    "Records returned by bounded relay fetches",
    ["operation"],
)


# ---------------------------------------------------------------------------
# Zap handshake
#
# stage labels: resolve, invoice, correlate
# outcome labels: ok, failed, matched, cancelled, timeout
# ---------------------------------------------------------------------------

ZAP_STAGE_TOTAL = Counter(
    "zapstore_zap_stage_total",
    "Zap handshake stage outcomes",
    ["stage", "outcome"],
)
