"""Metrics collector — Prometheus counters, gauges, histograms.

Exposed series:
- ``bridge_relayer_transactions`` gauge-vec (by status)
- ``bridge_relayer_transitions_total`` counter-vec (by type, status)
- ``bridge_relayer_submissions_total`` counter-vec (by type, outcome)
- ``bridge_relayer_tick_histogram``
- ``bridge_relayer_tick_last_execution_gauge``
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

from bridge_relayer.models.transaction import TransactionStatus

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from bridge_relayer.models.transaction import BridgeTransaction

_PREFIX = "bridge_relayer"


class MetricsCollector:
    """Owns the Prometheus registry and creates metrics on it.

    Use :class:`RelayerMetrics` for the high-level tracking interface.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._registry

    def gauge(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Gauge:
        return Gauge(f"{_PREFIX}_{name}", doc, labels, registry=self._registry)

    def histogram(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Histogram:
        return Histogram(f"{_PREFIX}_{name}", doc, labels, registry=self._registry)

    def counter(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Counter:
        # prometheus_client appends the ``_total`` suffix itself
        return Counter(f"{_PREFIX}_{name}", doc, labels, registry=self._registry)


class RelayerMetrics:
    """High-level relayer metrics.

    Histograms track durations in seconds.
    """

    def __init__(self, collector: MetricsCollector | None = None) -> None:
        self._collector = collector or MetricsCollector()

        self._transactions = self._collector.gauge(
            "transactions",
            "Transactions in the queue by status",
            ("status",),
        )
        self._transitions = self._collector.counter(
            "transitions",
            "Status transitions applied by the state machine",
            ("type", "status"),
        )
        self._submissions = self._collector.counter(
            "submissions",
            "Mint/release submissions by outcome",
            ("type", "outcome"),
        )
        self._tick_histogram = self._collector.histogram(
            "tick_histogram",
            "Duration of scheduler ticks",
            ("job_name",),
        )
        self._tick_last = self._collector.gauge(
            "tick_last_execution_gauge",
            "Timestamp of the last scheduler tick",
            ("job_name",),
        )

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._collector.registry

    # -- Recorders --

    def record_transition(self, tx_type: str, status: str) -> None:
        """Count one status transition."""
        self._transitions.labels(type=tx_type, status=status).inc()

    def record_submission(self, tx_type: str, outcome: str) -> None:
        """Count one mint/release submission (``outcome``: success or error)."""
        self._submissions.labels(type=tx_type, outcome=outcome).inc()

    def set_transaction_counts(self, transactions: Iterable[BridgeTransaction]) -> None:
        """Set the per-status gauge from a full view of the queue."""
        counts = dict.fromkeys(TransactionStatus, 0)
        for tx in transactions:
            counts[tx.status] += 1
        for status, count in counts.items():
            self._transactions.labels(status=status.value).set(count)

    # -- Trackers (context managers) --

    @contextmanager
    def track_tick(self, job_name: str) -> Iterator[None]:
        """Track the duration of a scheduler tick and record its time."""
        start = time.monotonic()
        try:
            yield
        finally:
            self._tick_histogram.labels(job_name=job_name).observe(time.monotonic() - start)
            self._tick_last.labels(job_name=job_name).set(time.time())
