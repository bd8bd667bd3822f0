"""
Metrics Module: Dispatch Outcome Tracking and Reporting

Tracks how each completion attempt ended, per provider, so operators can see
which backends are carrying load and which are failing.

Components:
    MetricsStore: Thread-safe in-memory metrics aggregation
    DispatchMetric: Individual dispatch record
    DispatchOutcome: success / auth_failure / transient_failure
    AggregatedMetrics: Pre-computed aggregates for reporting
    MetricsReporter: Generate MetricsResponse for API endpoints

Usage:
    from app.metrics import MetricsStore, MetricsReporter

    store = MetricsStore()
    dispatcher = Dispatcher(registry, adapters, metrics=store)
    ...
    response = MetricsReporter(store).generate_report()
"""

from app.metrics.store import (
    AggregatedMetrics,
    DispatchMetric,
    DispatchOutcome,
    MetricsStore,
)
from app.metrics.reporter import MetricsReporter


__all__ = [
    "MetricsStore",
    "DispatchMetric",
    "DispatchOutcome",
    "AggregatedMetrics",
    "MetricsReporter",
]
