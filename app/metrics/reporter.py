"""
Metrics Reporter for API Responses

Transforms raw aggregated dispatch metrics into structured API responses
with computed fields like success rate and average latency.

The reporter bridges the internal metrics representation to the
Pydantic schemas used by the REST API.
"""

from app.metrics.store import MetricsStore
from app.schemas.completion import MetricsResponse, ProviderMetrics


class MetricsReporter:
    """
    Generate metrics reports from aggregated data.

    Example:
        reporter = MetricsReporter(dispatcher.metrics)
        response = reporter.generate_report()
        return response  # Ready for JSON serialization
    """

    def __init__(self, store: MetricsStore):
        """
        Initialize the reporter.

        Args:
            store: MetricsStore instance to report from.
        """
        self._store = store

    def generate_report(self) -> MetricsResponse:
        """
        Generate a complete metrics report.

        Returns:
            MetricsResponse ready for API serialization
        """
        agg = self._store.get_aggregated()

        providers: dict[str, ProviderMetrics] = {}
        total_successes = 0
        for provider_name, data in agg.requests_by_provider.items():
            latencies = data.latencies
            total_successes += data.successes

            providers[provider_name] = ProviderMetrics(
                provider_name=provider_name,
                request_count=data.count,
                success_count=data.successes,
                auth_failure_count=data.auth_failures,
                transient_failure_count=data.transient_failures,
                avg_latency_ms=round(
                    sum(latencies) / len(latencies) if latencies else 0.0, 2
                ),
            )

        if agg.total_requests > 0:
            success_rate = total_successes / agg.total_requests * 100
        else:
            success_rate = 0.0

        return MetricsResponse(
            total_requests=agg.total_requests,
            total_rejected=agg.total_rejected,
            success_rate_percent=round(success_rate, 2),
            requests_by_provider=providers,
        )

    def get_outcome_distribution(self) -> dict[str, int]:
        """
        Get distribution of dispatch outcomes.

        Returns:
            Dictionary mapping outcome names to counts
        """
        agg = self._store.get_aggregated()
        return dict(agg.outcomes)
