"""
Metrics Store for Dispatch Tracking

Aggregates per-dispatch outcomes for analysis and reporting.
Uses in-memory storage; counters are not persisted across restarts.

The store is thread-safe using threading.Lock to handle
concurrent requests in FastAPI's async environment.
"""

import threading
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum


class DispatchOutcome(str, Enum):
    """Result of a single dispatch attempt."""

    SUCCESS = "success"
    AUTH_FAILURE = "auth_failure"
    TRANSIENT_FAILURE = "transient_failure"


@dataclass
class DispatchMetric:
    """
    Individual dispatch metric record.

    Attributes:
        timestamp: Unix timestamp when the dispatch finished
        provider_name: Provider that handled the attempt
        outcome: Success or failure classification
        latency_ms: Backend call time in milliseconds
    """

    timestamp: float
    provider_name: str
    outcome: DispatchOutcome
    latency_ms: float

    @property
    def success(self) -> bool:
        return self.outcome == DispatchOutcome.SUCCESS


@dataclass
class _ProviderAggregate:
    """Internal aggregate for per-provider metrics."""

    count: int = 0
    successes: int = 0
    auth_failures: int = 0
    transient_failures: int = 0
    latencies: list[float] = field(default_factory=list)


@dataclass
class AggregatedMetrics:
    """
    Aggregated metrics snapshot for reporting.

    Attributes:
        total_requests: Dispatch attempts that reached a provider
        total_rejected: Calls rejected because no provider was available
        requests_by_provider: Counts and latencies per provider
        outcomes: Count of each outcome type
    """

    total_requests: int = 0
    total_rejected: int = 0
    requests_by_provider: dict[str, _ProviderAggregate] = field(
        default_factory=lambda: defaultdict(_ProviderAggregate)
    )
    outcomes: dict[str, int] = field(default_factory=lambda: defaultdict(int))


class MetricsStore:
    """
    Thread-safe in-memory metrics storage.

    Stores individual dispatch metrics and provides aggregation
    for reporting.

    Example:
        store = MetricsStore()
        store.record(DispatchMetric(
            timestamp=time.time(),
            provider_name="openai",
            outcome=DispatchOutcome.SUCCESS,
            latency_ms=420.0,
        ))
        aggregated = store.get_aggregated()
    """

    def __init__(self, max_history: int = 10000):
        """
        Initialize the metrics store.

        Args:
            max_history: Maximum individual metrics to retain.
                         Older metrics are discarded when limit is reached.
                         Aggregates are preserved regardless of this limit.
        """
        self._lock = threading.Lock()
        self._metrics: list[DispatchMetric] = []
        self._max_history = max_history

        self._total_requests: int = 0
        self._total_rejected: int = 0
        self._by_provider: dict[str, _ProviderAggregate] = defaultdict(
            _ProviderAggregate
        )
        self._outcomes: dict[str, int] = defaultdict(int)

    def record(self, metric: DispatchMetric) -> None:
        """
        Record a dispatch attempt.

        Thread-safe. Updates both raw history and pre-computed aggregates.

        Args:
            metric: The dispatch metric to record
        """
        with self._lock:
            self._metrics.append(metric)
            if len(self._metrics) > self._max_history:
                self._metrics = self._metrics[-self._max_history :]

            self._total_requests += 1

            agg = self._by_provider[metric.provider_name]
            agg.count += 1
            if metric.outcome == DispatchOutcome.SUCCESS:
                agg.successes += 1
            elif metric.outcome == DispatchOutcome.AUTH_FAILURE:
                agg.auth_failures += 1
            else:
                agg.transient_failures += 1

            agg.latencies.append(metric.latency_ms)
            if len(agg.latencies) > self._max_history:
                agg.latencies = agg.latencies[-self._max_history :]

            self._outcomes[metric.outcome.value] += 1

    def record_rejected(self) -> None:
        """Count a call rejected with NoProviderAvailable."""
        with self._lock:
            self._total_rejected += 1

    def get_aggregated(self) -> AggregatedMetrics:
        """
        Get current aggregated metrics.

        Thread-safe. The returned object is a copy and safe to use
        outside the lock.

        Returns:
            AggregatedMetrics snapshot
        """
        with self._lock:
            by_provider_copy = {
                name: _ProviderAggregate(
                    count=agg.count,
                    successes=agg.successes,
                    auth_failures=agg.auth_failures,
                    transient_failures=agg.transient_failures,
                    latencies=list(agg.latencies),
                )
                for name, agg in self._by_provider.items()
            }

            return AggregatedMetrics(
                total_requests=self._total_requests,
                total_rejected=self._total_rejected,
                requests_by_provider=by_provider_copy,
                outcomes=dict(self._outcomes),
            )

    def get_recent(self, count: int = 100) -> list[DispatchMetric]:
        """
        Get most recent dispatch metrics.

        Args:
            count: Number of recent metrics to return

        Returns:
            List of recent DispatchMetric objects
        """
        with self._lock:
            return list(self._metrics[-count:])

    def reset(self) -> None:
        """
        Reset all metrics.

        Thread-safe. Clears all stored data and aggregates.
        """
        with self._lock:
            self._metrics.clear()
            self._total_requests = 0
            self._total_rejected = 0
            self._by_provider.clear()
            self._outcomes.clear()
