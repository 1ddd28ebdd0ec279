"""
Unit tests for core.metrics module.

Tests:
- Metric names registered in the default registry
- Label sets of fetch and zap stage metrics
"""

from prometheus_client import REGISTRY

from zapstore.core.metrics import (
    FETCH_DURATION_SECONDS,
    FETCH_RECORDS_TOTAL,
    FETCH_TOTAL,
    ZAP_STAGE_TOTAL,
)


class TestMetricDefinitions:
    """Names and labels."""

    def test_registered(self) -> None:
        names = {metric.name for metric in REGISTRY.collect()}
        assert "zapstore_fetch" in names
        assert "zapstore_fetch_duration_seconds" in names
        assert "zapstore_fetch_records" in names
        assert "zapstore_zap_stage" in names

    def test_labels(self) -> None:
        assert FETCH_TOTAL._labelnames == ("operation", "outcome")
        assert FETCH_DURATION_SECONDS._labelnames == ("operation",)
        assert FETCH_RECORDS_TOTAL._labelnames == ("operation",)
        assert ZAP_STAGE_TOTAL._labelnames == ("stage", "outcome")

    def test_stage_counter_increments(self) -> None:
        child = ZAP_STAGE_TOTAL.labels(stage="invoice", outcome="ok")
        before = child._value.get()
        child.inc()
        assert child._value.get() == before + 1
