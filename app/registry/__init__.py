"""
Registry module: Provider entries, usage counters, and selection policy.

This module contains:
- providers.py: Thread-safe provider registry with lazy window resets and cooldowns
- selector.py: Least-used provider selection

Public API:
- ProviderKind: Enum for supported backend kinds
- ProviderState: Derived provider lifecycle state
- ProviderConfig: Pydantic model for provider startup configuration
- ProviderEntry: Live provider state (owned by the registry)
- ProviderSnapshot: Read-only status row
- ProviderLease: Provider chosen for a single dispatch
- ProviderRegistry: Central registry class
- select_provider: Least-used selection function
"""

from app.registry.providers import (
    ProviderConfig,
    ProviderEntry,
    ProviderKind,
    ProviderLease,
    ProviderRegistry,
    ProviderSnapshot,
    ProviderState,
)
from app.registry.selector import select_provider

__all__ = [
    "ProviderKind",
    "ProviderState",
    "ProviderConfig",
    "ProviderEntry",
    "ProviderSnapshot",
    "ProviderLease",
    "ProviderRegistry",
    "select_provider",
]
