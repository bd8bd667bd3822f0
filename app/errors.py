"""
Dispatch error taxonomy.

Every failure surfaced by the dispatcher is a DispatchError:
- NoProviderAvailable: nothing is eligible; the registry was not touched.
- ProviderError: the selected backend failed. Its kind decides whether the
  provider is put into cooldown (AUTH) or left selectable (TRANSIENT).

Adapters raise ProviderError with a structured kind instead of relying on
the caller to sniff error messages.
"""

from enum import Enum


class ProviderErrorKind(str, Enum):
    """Classification of a backend failure."""

    AUTH = "auth"  # Credential invalid/missing, or backend cannot serve at all
    TRANSIENT = "transient"  # Timeout, network, malformed response, rate limit


class DispatchError(Exception):
    """Base class for all dispatcher failures."""


class NoProviderAvailable(DispatchError):
    """Raised when every provider is disabled, exhausted, or uncredentialed."""

    def __init__(self, message: str = "No available AI providers") -> None:
        super().__init__(message)
        self.message = message


class ProviderError(DispatchError):
    """
    A failure reported by a backend adapter.

    Attributes:
        kind: AUTH or TRANSIENT
        message: Human-readable description from the backend
        provider: Name of the provider that failed, if known
    """

    def __init__(
        self,
        kind: ProviderErrorKind,
        message: str,
        provider: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.provider = provider

    @property
    def is_auth(self) -> bool:
        """True if this failure should put the provider into cooldown."""
        return self.kind == ProviderErrorKind.AUTH

    def __repr__(self) -> str:
        return (
            f"ProviderError(kind={self.kind.value}, "
            f"provider={self.provider}, message={self.message!r})"
        )
