"""Metrics — Prometheus metrics collection and exposure."""

from __future__ import annotations

from bridge_relayer.metrics.collector import MetricsCollector, RelayerMetrics

__all__ = ["MetricsCollector", "RelayerMetrics"]
