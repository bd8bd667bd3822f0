"""
Provider Registry

This module owns the set of configured inference providers and their live
usage counters. Each provider has:
- A credential flag fixed at startup
- A per-minute request cap with a lazily reset counter
- An enabled flag, cleared for a cooldown period after auth failures

There is no background timer. Window resets and cooldown expiry are both
computed at access time from the current clock reading, so the registry is
always consistent with "now" without scheduled callbacks.

All public operations are serialized by a single threading.Lock. acquire()
performs select-then-record as one critical section so concurrent callers
cannot both claim the last slot of the same provider.
"""

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from pydantic import BaseModel, Field, SecretStr

from app.registry.selector import select_provider

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_MS = 60_000


class ProviderKind(str, Enum):
    """Supported backend kinds (one adapter implementation each)."""

    OPENAI = "openai"
    GROQ = "groq"


class ProviderState(str, Enum):
    """Derived lifecycle state of a provider."""

    NO_CREDENTIAL = "no_credential"  # Permanent for the process lifetime
    AVAILABLE = "available"  # Enabled and under its cap
    EXHAUSTED = "exhausted"  # Enabled but at its cap for the current window
    COOLDOWN = "cooldown"  # Disabled after an auth failure


class ProviderConfig(BaseModel):
    """
    Startup configuration for a single provider.

    Read-only for the lifetime of the process.
    """

    name: str = Field(
        ...,
        min_length=1,
        description="Unique provider name",
    )

    kind: ProviderKind = Field(
        ...,
        description="Backend kind used to pick the adapter",
    )

    api_key: SecretStr | None = Field(
        default=None,
        description="Provider credential; None disables the provider permanently",
    )

    model: str = Field(
        ...,
        description="Model identifier passed to the backend",
    )

    max_output_tokens: int = Field(
        ...,
        gt=0,
        description="Max output tokens passed to the backend",
    )

    requests_per_minute: int = Field(
        ...,
        gt=0,
        description="Request cap per rolling window",
    )

    @property
    def has_credential(self) -> bool:
        """True if a non-empty API key is configured."""
        return self.api_key is not None and bool(self.api_key.get_secret_value())


@dataclass
class ProviderEntry:
    """
    Live state of one configured provider.

    Only ProviderRegistry mutates entries, always under its lock.

    Attributes:
        name: Unique provider name
        kind: Backend kind
        has_credential: Whether a credential was configured at startup
        model: Model identifier for backend calls
        max_output_tokens: Output token limit for backend calls
        requests_per_minute: Capacity of the rolling window
        enabled: Currently selectable
        request_count: Requests recorded in the current window
        last_used_ms: Epoch milliseconds of the most recent selection (0 = never)
        disabled_until_ms: Cooldown deadline, None when not cooling down
    """

    name: str
    kind: ProviderKind
    has_credential: bool
    model: str
    max_output_tokens: int
    requests_per_minute: int
    enabled: bool
    request_count: int = 0
    last_used_ms: float = 0.0
    disabled_until_ms: float | None = None

    @classmethod
    def from_config(cls, config: ProviderConfig) -> "ProviderEntry":
        """Create an entry; it starts enabled only if it has a credential."""
        has_credential = config.has_credential
        return cls(
            name=config.name,
            kind=config.kind,
            has_credential=has_credential,
            model=config.model,
            max_output_tokens=config.max_output_tokens,
            requests_per_minute=config.requests_per_minute,
            enabled=has_credential,
        )

    @property
    def is_eligible(self) -> bool:
        """Enabled, credentialed, and under its cap."""
        return (
            self.enabled
            and self.has_credential
            and self.request_count < self.requests_per_minute
        )


@dataclass(frozen=True)
class ProviderSnapshot:
    """Read-only status row for one provider."""

    name: str
    kind: ProviderKind
    enabled: bool
    has_credential: bool
    request_count: int
    requests_per_minute: int
    last_used_ms: float
    disabled_until_ms: float | None
    state: ProviderState


@dataclass(frozen=True)
class ProviderLease:
    """
    The provider chosen for a single dispatch.

    Carries everything the dispatcher needs for the backend call so it never
    has to read entry state outside the registry lock.
    """

    name: str
    kind: ProviderKind
    model: str
    max_output_tokens: int
    request_count: int
    requests_per_minute: int


def _now_ms() -> float:
    return time.time() * 1000


class ProviderRegistry:
    """
    Registry of provider entries and their usage counters.

    Entries are created once from configuration and never added or removed.
    Registry order is preserved for status reporting and as the final
    tie-break in selection.

    Example:
        registry = ProviderRegistry(settings.provider_configs())
        lease = registry.acquire()
        ...
        registry.disable(lease.name, cooldown_ms=60_000)
    """

    def __init__(
        self,
        configs: list[ProviderConfig],
        window_ms: int = DEFAULT_WINDOW_MS,
        clock: Callable[[], float] | None = None,
    ):
        """
        Initialize the registry.

        Args:
            configs: Ordered provider configurations.
            window_ms: Idle time after which a request counter is reset.
            clock: Returns the current time in epoch milliseconds.
                   Defaults to the wall clock.

        Raises:
            ValueError: If two configurations share a name.
        """
        self._lock = threading.Lock()
        self._window_ms = window_ms
        self._clock = clock or _now_ms
        self._entries: dict[str, ProviderEntry] = {}

        for config in configs:
            if config.name in self._entries:
                raise ValueError(f"Duplicate provider name: {config.name}")
            self._entries[config.name] = ProviderEntry.from_config(config)
            logger.info(
                f"Registered provider: {config.name} "
                f"(model={config.model}, rpm={config.requests_per_minute}, "
                f"credential={'yes' if config.has_credential else 'no'})"
            )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    @property
    def window_ms(self) -> int:
        return self._window_ms

    def now(self) -> float:
        """Current time in epoch milliseconds, from the registry clock."""
        return self._clock()

    def names(self) -> list[str]:
        """Return provider names in registry order."""
        return list(self._entries.keys())

    def _get_entry(self, name: str) -> ProviderEntry:
        try:
            return self._entries[name]
        except KeyError:
            raise KeyError(f"Unknown provider: {name}") from None

    def _expire_cooldown(self, entry: ProviderEntry, now: float) -> None:
        if entry.disabled_until_ms is None or now < entry.disabled_until_ms:
            return
        entry.disabled_until_ms = None
        if entry.has_credential:
            entry.enabled = True
            logger.info(f"Provider {entry.name} re-enabled after cooldown")

    def _apply_window_reset(self, entry: ProviderEntry, now: float) -> None:
        if now - entry.last_used_ms > self._window_ms:
            entry.request_count = 0

    def _list_eligible_locked(self, now: float) -> list[ProviderEntry]:
        eligible = []
        for entry in self._entries.values():
            self._expire_cooldown(entry, now)
            self._apply_window_reset(entry, now)
            if entry.is_eligible:
                eligible.append(entry)
        return eligible

    def _record_use_locked(self, entry: ProviderEntry, now: float) -> None:
        entry.request_count += 1
        entry.last_used_ms = now

    def list_eligible(self, now: float | None = None) -> list[ProviderEntry]:
        """
        Return the providers that can take a request right now.

        Applies lazy cooldown expiry and window resets to every entry before
        evaluating eligibility.

        Args:
            now: Epoch milliseconds; defaults to the registry clock.

        Returns:
            Eligible entries in registry order. The entries are live objects;
            callers must not mutate them.
        """
        if now is None:
            now = self._clock()
        with self._lock:
            return self._list_eligible_locked(now)

    def record_use(self, name: str, now: float | None = None) -> None:
        """
        Count one request against a provider.

        Args:
            name: Provider name.
            now: Epoch milliseconds; defaults to the registry clock.

        Raises:
            KeyError: If the provider is unknown.
        """
        if now is None:
            now = self._clock()
        with self._lock:
            self._record_use_locked(self._get_entry(name), now)

    def acquire(self, now: float | None = None) -> ProviderLease:
        """
        Select the least-used eligible provider and record its use.

        Both steps happen under one lock acquisition. If nothing is eligible
        no counter is touched.

        Args:
            now: Epoch milliseconds; defaults to the registry clock.

        Returns:
            ProviderLease for the chosen provider.

        Raises:
            NoProviderAvailable: If no provider is eligible.
        """
        if now is None:
            now = self._clock()
        with self._lock:
            entry = select_provider(self._list_eligible_locked(now))
            self._record_use_locked(entry, now)
            return ProviderLease(
                name=entry.name,
                kind=entry.kind,
                model=entry.model,
                max_output_tokens=entry.max_output_tokens,
                request_count=entry.request_count,
                requests_per_minute=entry.requests_per_minute,
            )

    def disable(
        self, name: str, cooldown_ms: int, now: float | None = None
    ) -> None:
        """
        Disable a provider until the cooldown elapses.

        The provider becomes selectable again on the first eligibility check
        at or after now + cooldown_ms, and only if it has a credential.
        A later disable replaces the deadline.

        Args:
            name: Provider name.
            cooldown_ms: Cooldown duration in milliseconds.
            now: Epoch milliseconds; defaults to the registry clock.

        Raises:
            KeyError: If the provider is unknown.
        """
        if now is None:
            now = self._clock()
        with self._lock:
            entry = self._get_entry(name)
            entry.enabled = False
            entry.disabled_until_ms = now + cooldown_ms
        logger.warning(f"Provider {name} disabled for {cooldown_ms}ms")

    def reset_all(self) -> None:
        """
        Re-enable every credentialed provider and clear its counters.

        Providers without a credential are left untouched.
        """
        with self._lock:
            for entry in self._entries.values():
                if not entry.has_credential:
                    continue
                entry.enabled = True
                entry.request_count = 0
                entry.last_used_ms = 0.0
                entry.disabled_until_ms = None
        logger.info("All providers with API keys have been re-enabled")

    def _state_of(self, entry: ProviderEntry, now: float) -> ProviderState:
        if not entry.has_credential:
            return ProviderState.NO_CREDENTIAL
        if not entry.enabled:
            return ProviderState.COOLDOWN
        window_open = now - entry.last_used_ms <= self._window_ms
        if window_open and entry.request_count >= entry.requests_per_minute:
            return ProviderState.EXHAUSTED
        return ProviderState.AVAILABLE

    def snapshot(self, now: float | None = None) -> list[ProviderSnapshot]:
        """
        Return an ordered, read-only status row per provider.

        Elapsed cooldowns are expired first so the enabled flag is current.
        Request counters are reported as recorded; the window reset is only
        applied by eligibility checks.

        Args:
            now: Epoch milliseconds; defaults to the registry clock.

        Returns:
            List of ProviderSnapshot in registry order.
        """
        if now is None:
            now = self._clock()
        with self._lock:
            rows = []
            for entry in self._entries.values():
                self._expire_cooldown(entry, now)
                rows.append(
                    ProviderSnapshot(
                        name=entry.name,
                        kind=entry.kind,
                        enabled=entry.enabled,
                        has_credential=entry.has_credential,
                        request_count=entry.request_count,
                        requests_per_minute=entry.requests_per_minute,
                        last_used_ms=entry.last_used_ms,
                        disabled_until_ms=entry.disabled_until_ms,
                        state=self._state_of(entry, now),
                    )
                )
            return rows

    def get(self, name: str, now: float | None = None) -> ProviderSnapshot:
        """
        Return the status row for a single provider.

        Raises:
            KeyError: If the provider is unknown.
        """
        rows = {row.name: row for row in self.snapshot(now)}
        if name not in rows:
            raise KeyError(f"Unknown provider: {name}")
        return rows[name]
