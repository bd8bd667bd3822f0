"""
Dispatcher - Single entry point for text completions.

The dispatcher orchestrates one completion attempt:
1. Acquire the least-used eligible provider from the registry
   (usage is recorded before the backend call, so concurrent callers
   see the load while the call is in flight)
2. Invoke that provider's backend adapter
3. On failure, classify it: AUTH puts the provider into cooldown,
   TRANSIENT leaves it selectable
4. Re-raise the original error after any registry update

Exactly one provider is attempted per call. There is no fallback to a second
provider and no retry; resilience comes from successive calls landing on
whatever the registry considers best at that moment.

Known limitation: usage is counted optimistically, so a call that never
returns (e.g. the process dies mid-call) still counts against the window.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable

from app.config import Settings
from app.dispatcher.adapters import BackendAdapter, build_adapters
from app.errors import NoProviderAvailable, ProviderError, ProviderErrorKind
from app.metrics.store import DispatchMetric, DispatchOutcome, MetricsStore
from app.registry.providers import ProviderLease, ProviderRegistry

logger = logging.getLogger(__name__)

DEFAULT_AUTH_COOLDOWN_MS = 60_000


@dataclass
class CompletionResult:
    """
    Result of a successful completion.

    Attributes:
        content: Completion text returned by the backend
        provider_name: Provider that produced it
    """

    content: str
    provider_name: str


class Dispatcher:
    """
    Routes completion requests across providers.

    The dispatcher holds no provider state of its own; every read and write
    goes through the shared ProviderRegistry.

    Example:
        dispatcher = Dispatcher(registry, adapters)
        result = await dispatcher.complete("Explain this code", system_prompt)
        print(result.provider_name, result.content)
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        adapters: dict[str, BackendAdapter],
        metrics: MetricsStore | None = None,
        cooldown_ms: int = DEFAULT_AUTH_COOLDOWN_MS,
    ):
        """
        Initialize the dispatcher.

        Args:
            registry: Shared provider registry.
            adapters: Mapping from provider name to backend adapter.
            metrics: Optional store for dispatch outcomes.
            cooldown_ms: How long an auth failure disables a provider.

        Raises:
            ValueError: If a registered provider has no adapter.
        """
        missing = [name for name in registry.names() if name not in adapters]
        if missing:
            raise ValueError(f"No backend adapter for providers: {missing}")

        self._registry = registry
        self._adapters = dict(adapters)
        self._metrics = metrics
        self._cooldown_ms = cooldown_ms

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def metrics(self) -> MetricsStore | None:
        return self._metrics

    @property
    def cooldown_ms(self) -> int:
        return self._cooldown_ms

    async def complete(
        self, prompt: str, system_prompt: str | None = None
    ) -> CompletionResult:
        """
        Run one completion on the best available provider.

        Args:
            prompt: User prompt text.
            system_prompt: Optional system prompt.

        Returns:
            CompletionResult with content and the provider name.

        Raises:
            NoProviderAvailable: If no provider is eligible. The registry
                is left unchanged.
            ProviderError: The backend failure, after the registry has been
                updated according to its kind.
        """
        try:
            lease = self._registry.acquire()
        except NoProviderAvailable:
            logger.error("No available AI providers")
            if self._metrics is not None:
                self._metrics.record_rejected()
            raise

        logger.info(
            f"Using AI provider: {lease.name} "
            f"({lease.request_count}/{lease.requests_per_minute})"
        )

        adapter = self._adapters[lease.name]
        start_time = time.perf_counter()

        try:
            content = await adapter.invoke(
                prompt, system_prompt, lease.model, lease.max_output_tokens
            )
        except ProviderError as e:
            e.provider = lease.name
            self._handle_failure(lease, e.kind, e, start_time)
            raise
        except Exception as e:
            self._handle_failure(lease, ProviderErrorKind.TRANSIENT, e, start_time)
            raise

        latency_ms = (time.perf_counter() - start_time) * 1000
        self._record(lease, DispatchOutcome.SUCCESS, latency_ms)

        logger.info(
            f"Completion succeeded: provider={lease.name}, latency={latency_ms:.0f}ms"
        )
        return CompletionResult(content=content, provider_name=lease.name)

    def _handle_failure(
        self,
        lease: ProviderLease,
        kind: ProviderErrorKind,
        error: BaseException,
        start_time: float,
    ) -> None:
        latency_ms = (time.perf_counter() - start_time) * 1000

        if kind == ProviderErrorKind.AUTH:
            logger.warning(
                f"{lease.name} disabled due to authentication/API issue: {error}"
            )
            self._registry.disable(lease.name, self._cooldown_ms)
            self._record(lease, DispatchOutcome.AUTH_FAILURE, latency_ms)
        else:
            logger.warning(
                f"{lease.name} had a temporary error, keeping enabled: {error}"
            )
            self._record(lease, DispatchOutcome.TRANSIENT_FAILURE, latency_ms)

    def _record(
        self, lease: ProviderLease, outcome: DispatchOutcome, latency_ms: float
    ) -> None:
        if self._metrics is None:
            return
        self._metrics.record(
            DispatchMetric(
                timestamp=time.time(),
                provider_name=lease.name,
                outcome=outcome,
                latency_ms=latency_ms,
            )
        )


def build_dispatcher(
    settings: Settings,
    adapters: dict[str, BackendAdapter] | None = None,
    clock: Callable[[], float] | None = None,
) -> Dispatcher:
    """
    Build the registry, adapters, metrics store and dispatcher from settings.

    Called once at process start; the result is the single shared handle
    for provider state.

    Args:
        settings: Application settings.
        adapters: Override adapters (defaults to SDK adapters per provider).
        clock: Override the registry clock (epoch milliseconds).

    Returns:
        A ready Dispatcher.
    """
    configs = settings.provider_configs()
    registry = ProviderRegistry(
        configs, window_ms=settings.usage_window_ms, clock=clock
    )
    if adapters is None:
        adapters = build_adapters(configs, timeout_s=settings.request_timeout_s)

    return Dispatcher(
        registry,
        adapters,
        metrics=MetricsStore(),
        cooldown_ms=settings.auth_cooldown_ms,
    )
