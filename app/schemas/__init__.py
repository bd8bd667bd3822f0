"""
Schemas module: Pydantic request/response models.

This module provides validated data models for the Provider Relay API:
- Request/response models for /complete
- Provider status and reset models for /providers
- Error response models for consistent error handling
- Metrics and health check response models

Example usage:
    from app.schemas import CompletionRequest, CompletionResponse

    request = CompletionRequest(prompt="Hello")
"""

from app.schemas.completion import (
    # Request models
    CompletionRequest,
    ProviderActionRequest,
    # Response models
    CompletionResponse,
    ProviderSetup,
    ProviderStatus,
    ProvidersResponse,
    ResetResponse,
    # Error models
    ErrorCodes,
    ErrorDetail,
    ErrorResponse,
    # Metrics models
    MetricsResponse,
    ProviderMetrics,
    # Health models
    ComponentHealth,
    HealthResponse,
    # Conversion utilities
    build_completion_response,
    provider_status_from_snapshot,
)

# Re-export ProviderState from registry for convenience
from app.registry.providers import ProviderState

__all__ = [
    "ProviderState",
    # Request models
    "CompletionRequest",
    "ProviderActionRequest",
    # Response models
    "CompletionResponse",
    "ProviderSetup",
    "ProviderStatus",
    "ProvidersResponse",
    "ResetResponse",
    # Error models
    "ErrorCodes",
    "ErrorDetail",
    "ErrorResponse",
    # Metrics models
    "ProviderMetrics",
    "MetricsResponse",
    # Health models
    "ComponentHealth",
    "HealthResponse",
    # Conversion utilities
    "provider_status_from_snapshot",
    "build_completion_response",
]
