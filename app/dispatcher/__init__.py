"""
Dispatcher module: Provider selection, backend invocation and failure handling.

This module provides a unified interface for sending completion requests to
whichever configured provider is least used, across OpenAI and Groq.

Key exports:
- Dispatcher: Main entry point (complete())
- CompletionResult: Content plus the provider that produced it
- build_dispatcher(): Wire registry, adapters and metrics from settings
- BackendAdapter: Per-provider capability interface
- OpenAIAdapter, GroqAdapter: SDK-backed adapters
- NoProviderAvailable, ProviderError, ProviderErrorKind: Error taxonomy
"""

from app.dispatcher.adapters import (
    BackendAdapter,
    GroqAdapter,
    OpenAIAdapter,
    build_adapters,
)
from app.dispatcher.service import (
    CompletionResult,
    Dispatcher,
    build_dispatcher,
)
from app.errors import (
    DispatchError,
    NoProviderAvailable,
    ProviderError,
    ProviderErrorKind,
)

__all__ = [
    # Core dispatch
    "Dispatcher",
    "CompletionResult",
    "build_dispatcher",
    # Adapters
    "BackendAdapter",
    "OpenAIAdapter",
    "GroqAdapter",
    "build_adapters",
    # Errors
    "DispatchError",
    "NoProviderAvailable",
    "ProviderError",
    "ProviderErrorKind",
]
