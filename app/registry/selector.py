"""
Provider selection policy.

Picks the least-used eligible provider: smallest request count first, then
the oldest last-used timestamp. Remaining ties keep registry order.
"""

from typing import TYPE_CHECKING

from app.errors import NoProviderAvailable

if TYPE_CHECKING:
    from app.registry.providers import ProviderEntry


def selection_key(entry: "ProviderEntry") -> tuple[int, float]:
    """Sort key for least-used ordering."""
    return (entry.request_count, entry.last_used_ms)


def select_provider(eligible: list["ProviderEntry"]) -> "ProviderEntry":
    """
    Choose the provider for the next request.

    Args:
        eligible: Entries returned by ProviderRegistry.list_eligible().

    Returns:
        The entry with minimal (request_count, last_used_ms).

    Raises:
        NoProviderAvailable: If the eligible list is empty.
    """
    if not eligible:
        raise NoProviderAvailable(
            "No available AI providers. Please check your API keys."
        )
    # min() returns the first minimal element, preserving registry order on ties
    return min(eligible, key=selection_key)
