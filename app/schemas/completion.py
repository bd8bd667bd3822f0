"""
Pydantic Schemas for the Completion API

This module defines the request and response models for the Provider Relay API:
- CompletionRequest / CompletionResponse: Text completion via the dispatcher
- ProviderStatus / ProvidersResponse: Registry status projection
- Error responses, metrics, and health check schemas

All schemas follow Pydantic v2 patterns with validation, field descriptions,
and OpenAPI documentation support.
"""

from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.registry.providers import ProviderKind, ProviderState

if TYPE_CHECKING:
    from app.dispatcher.service import CompletionResult
    from app.registry.providers import ProviderSnapshot


# =============================================================================
# REQUEST MODELS
# =============================================================================


class CompletionRequest(BaseModel):
    """
    Request body for the /complete endpoint.

    Example:
        {
            "prompt": "Review this function for bugs: ...",
            "system_prompt": "You are a senior software engineer."
        }
    """

    prompt: str = Field(
        ...,
        min_length=1,
        max_length=100_000,
        description="The user prompt to complete",
    )

    system_prompt: str | None = Field(
        default=None,
        max_length=20_000,
        description="Optional system prompt",
    )

    @field_validator("prompt")
    @classmethod
    def validate_prompt_not_whitespace(cls, v: str) -> str:
        """Ensure prompt is not empty or whitespace only."""
        if not v.strip():
            raise ValueError("Prompt cannot be empty or whitespace only")
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "prompt": "Explain what this regex matches: ^[a-z]{2}$",
                    "system_prompt": "Answer in one sentence.",
                },
            ]
        }
    )


class ProviderActionRequest(BaseModel):
    """Request body for POST /providers."""

    action: str | None = Field(
        default=None,
        description="Administrative action; only 'reset' is supported",
    )


# =============================================================================
# RESPONSE MODELS
# =============================================================================


class CompletionResponse(BaseModel):
    """
    Response from the /complete endpoint.

    Example:
        {
            "content": "It matches exactly two lowercase letters.",
            "provider_name": "openai"
        }
    """

    content: str = Field(
        ...,
        description="Completion text",
    )

    provider_name: str = Field(
        ...,
        description="Provider that produced the completion",
    )


class ProviderStatus(BaseModel):
    """
    Status of a single provider.

    Mirrors the registry entry without exposing credentials.
    """

    name: str = Field(..., description="Provider name")

    enabled: bool = Field(..., description="Currently selectable")

    has_credential: bool = Field(
        ..., description="Whether an API key was configured at startup"
    )

    request_count: int = Field(
        ..., ge=0, description="Requests recorded in the current window"
    )

    requests_per_minute: int = Field(
        ..., gt=0, description="Request cap per rolling window"
    )

    last_used_ms: float = Field(
        ..., ge=0.0, description="Epoch milliseconds of the last selection (0 = never)"
    )

    state: ProviderState = Field(..., description="Derived lifecycle state")

    disabled_until_ms: float | None = Field(
        default=None, description="Cooldown deadline in epoch milliseconds"
    )


class ProviderSetup(BaseModel):
    """
    Operator guidance for configuring one provider backend.

    Registered providers report whether their API key is present; supported
    backends that are not registered carry only the setup steps.
    """

    name: str = Field(..., description="Provider name")

    kind: ProviderKind = Field(..., description="Backend kind")

    description: str = Field(..., description="Short description of the backend")

    env_var: str = Field(..., description="Environment variable holding the API key")

    signup_url: str = Field(..., description="Where to obtain an API key")

    priority: int = Field(..., ge=1, description="Suggested setup order")

    setup_instructions: str = Field(..., description="Steps to configure the backend")

    status: Literal["active", "missing"] | None = Field(
        default=None,
        description="Credential status for registered providers",
    )


class ProvidersResponse(BaseModel):
    """
    Response from GET /providers.

    Example:
        {
            "providers": [
                {
                    "name": "openai",
                    "enabled": true,
                    "has_credential": true,
                    "request_count": 3,
                    "requests_per_minute": 60,
                    "last_used_ms": 1760000000000.0,
                    "state": "available",
                    "disabled_until_ms": null
                }
            ],
            "total_enabled": 1,
            "available_providers": [
                {"name": "openai", "env_var": "OPENAI_API_KEY", "status": "active", ...}
            ],
            "additional_providers": []
        }
    """

    providers: list[ProviderStatus] = Field(
        default_factory=list,
        description="Status per provider in registry order",
    )

    total_enabled: int = Field(
        default=0,
        ge=0,
        description="Providers that are enabled and have a credential",
    )

    available_providers: list[ProviderSetup] = Field(
        default_factory=list,
        description="Credential status and setup steps per registered provider",
    )

    additional_providers: list[ProviderSetup] = Field(
        default_factory=list,
        description="Supported backends that are not registered, by priority",
    )


class ResetResponse(BaseModel):
    """Response from a provider reset."""

    success: bool = Field(default=True)

    message: str = Field(default="Providers reset successfully")


# =============================================================================
# ERROR MODELS
# =============================================================================


class ErrorCodes:
    """
    Standard error codes for API responses.

    These codes enable programmatic error handling by clients
    without parsing human-readable messages.
    """

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NO_PROVIDER_AVAILABLE = "NO_PROVIDER_AVAILABLE"
    PROVIDER_AUTH_ERROR = "PROVIDER_AUTH_ERROR"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    UNKNOWN_ACTION = "UNKNOWN_ACTION"
    HTTP_ERROR = "HTTP_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorDetail(BaseModel):
    """
    Detailed error information for API error responses.

    Provides machine-readable error codes, human-readable messages,
    and optional field information for validation errors.
    """

    code: str = Field(
        ...,
        description="Machine-readable error code for programmatic handling",
    )

    message: str = Field(
        ...,
        description="Human-readable error message",
    )

    field: str | None = Field(
        default=None,
        description="Field that caused the error (for validation errors)",
    )

    provider: str | None = Field(
        default=None,
        description="Provider that failed (for provider errors)",
    )


class ErrorResponse(BaseModel):
    """
    Standard error response format for all API errors.

    Example:
        {
            "error": {
                "code": "NO_PROVIDER_AVAILABLE",
                "message": "No available AI providers. Please check your API keys."
            }
        }
    """

    error: ErrorDetail = Field(
        ...,
        description="Error details",
    )


# =============================================================================
# METRICS MODELS
# =============================================================================


class ProviderMetrics(BaseModel):
    """Aggregated dispatch metrics for one provider."""

    provider_name: str = Field(..., description="Provider name")

    request_count: int = Field(default=0, ge=0, description="Dispatch attempts")

    success_count: int = Field(default=0, ge=0, description="Successful attempts")

    auth_failure_count: int = Field(
        default=0, ge=0, description="Attempts that failed with an auth error"
    )

    transient_failure_count: int = Field(
        default=0, ge=0, description="Attempts that failed with a transient error"
    )

    avg_latency_ms: float = Field(
        default=0.0, ge=0.0, description="Average backend latency in milliseconds"
    )


class MetricsResponse(BaseModel):
    """
    Response from the /metrics endpoint.

    Example:
        {
            "total_requests": 120,
            "total_rejected": 2,
            "success_rate_percent": 97.5,
            "requests_by_provider": {...}
        }
    """

    total_requests: int = Field(
        default=0, ge=0, description="Dispatch attempts that reached a provider"
    )

    total_rejected: int = Field(
        default=0, ge=0, description="Calls rejected because no provider was available"
    )

    success_rate_percent: float = Field(
        default=0.0, ge=0.0, le=100.0, description="Share of attempts that succeeded"
    )

    requests_by_provider: dict[str, ProviderMetrics] = Field(
        default_factory=dict,
        description="Metrics breakdown by provider",
    )


# =============================================================================
# HEALTH MODELS
# =============================================================================


class ComponentHealth(BaseModel):
    """
    Health status of an individual system component.
    """

    name: str = Field(
        ...,
        description="Component name (e.g., 'providers')",
    )

    status: Literal["healthy", "degraded", "unhealthy"] = Field(
        ...,
        description="Component health status",
    )

    message: str | None = Field(
        default=None,
        description="Additional status information or error details",
    )


class HealthResponse(BaseModel):
    """
    Response from the /health endpoint.

    Example:
        {
            "status": "healthy",
            "service": "provider-relay",
            "version": "0.1.0",
            "components": [
                {"name": "providers", "status": "healthy", "message": "2/2 providers enabled"}
            ],
            "uptime_seconds": 3600.5
        }
    """

    status: Literal["healthy", "degraded", "unhealthy"] = Field(
        ...,
        description="Overall service health status",
    )

    service: str = Field(
        default="provider-relay",
        description="Service identifier",
    )

    version: str = Field(
        ...,
        description="Application version",
    )

    components: list[ComponentHealth] = Field(
        default_factory=list,
        description="Health status of individual components",
    )

    uptime_seconds: float | None = Field(
        default=None,
        ge=0.0,
        description="Time since service start in seconds",
    )


# =============================================================================
# CONVERSION UTILITIES
# =============================================================================


def provider_status_from_snapshot(row: "ProviderSnapshot") -> ProviderStatus:
    """
    Convert a registry ProviderSnapshot to a ProviderStatus model.

    Args:
        row: ProviderSnapshot from ProviderRegistry.snapshot()

    Returns:
        ProviderStatus for API response
    """
    return ProviderStatus(
        name=row.name,
        enabled=row.enabled,
        has_credential=row.has_credential,
        request_count=row.request_count,
        requests_per_minute=row.requests_per_minute,
        last_used_ms=row.last_used_ms,
        state=row.state,
        disabled_until_ms=row.disabled_until_ms,
    )


def build_completion_response(result: "CompletionResult") -> CompletionResponse:
    """Convert a dispatcher CompletionResult to the API response model."""
    return CompletionResponse(
        content=result.content,
        provider_name=result.provider_name,
    )
