"""
Provider Relay: FastAPI Application Entry Point

This module initializes the FastAPI application and defines the endpoints:
- /health: Health check endpoint
- /config: Non-sensitive configuration values
- /complete: Text completion via the least-used available provider
- /providers: Provider status and administrative reset
- /metrics: Dispatch statistics endpoint

Run with `python -m app.main` or the `provider-relay` console script.

The application uses a lifespan context manager to:
1. Load and validate configuration at startup
2. Configure logging based on settings
3. Build the provider registry, adapters and dispatcher once
4. Share them with endpoints through app.state
"""

from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, Depends, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app import __version__
from app.config import Settings, get_settings, configure_logging
from app.dispatcher.service import Dispatcher, build_dispatcher
from app.errors import NoProviderAvailable, ProviderError
from app.metrics.reporter import MetricsReporter
from app.schemas.completion import (
    CompletionRequest,
    CompletionResponse,
    ComponentHealth,
    ErrorCodes,
    ErrorDetail,
    ErrorResponse,
    HealthResponse,
    MetricsResponse,
    ProviderActionRequest,
    ProvidersResponse,
    ResetResponse,
    build_completion_response,
)
from app.status.reporter import StatusReporter, count_enabled

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler for startup/shutdown events.

    On startup:
    - Loads configuration from environment
    - Configures logging
    - Builds the dispatcher and its provider registry

    On shutdown:
    - Logs shutdown message
    """
    settings = get_settings()
    configure_logging(settings)

    logger.info("=" * 60)
    logger.info("Provider Relay starting up...")
    logger.info("=" * 60)
    logger.info(f"Provider order: {', '.join(settings.provider_order)}")
    logger.info(f"Auth cooldown: {settings.auth_cooldown_ms}ms")
    logger.info(f"Usage window: {settings.usage_window_ms}ms")
    logger.info(f"Debug mode: {'enabled' if settings.debug else 'disabled'}")

    dispatcher = build_dispatcher(settings)

    for config in settings.provider_configs():
        if config.has_credential:
            logger.info(f"{config.name} API key: configured")
        else:
            logger.warning(f"{config.name} API key: not configured (provider disabled)")

    app.state.dispatcher = dispatcher
    app.state.status_reporter = StatusReporter(dispatcher.registry)
    app.state.metrics_reporter = MetricsReporter(dispatcher.metrics)
    app.state.start_time = time.time()

    logger.info("=" * 60)
    logger.info("Provider Relay ready to accept requests")

    yield  # Application runs here

    logger.info("Provider Relay shutting down...")


app = FastAPI(
    title="Provider Relay",
    description="Least-used routing of text completions across AI providers",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_dispatcher(request: Request) -> Dispatcher:
    """Dependency: the dispatcher built at startup."""
    return request.app.state.dispatcher


def get_status_reporter(request: Request) -> StatusReporter:
    """Dependency: the provider status reporter built at startup."""
    return request.app.state.status_reporter


def get_metrics_reporter(request: Request) -> MetricsReporter:
    """Dependency: the metrics reporter built at startup."""
    return request.app.state.metrics_reporter


@app.get("/")
async def root():
    """
    Root endpoint with API information.
    """
    return {
        "name": "Provider Relay",
        "description": "Least-used routing of text completions across AI providers",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "providers": "/providers",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check system health and provider availability.",
)
async def health_check(
    request: Request,
    reporter: StatusReporter = Depends(get_status_reporter),
):
    """
    Health check endpoint for monitoring and orchestration.

    The service is healthy when at least one provider is enabled, and
    degraded when every provider is disabled or missing a credential.
    """
    components = []
    overall_status = "healthy"

    try:
        providers = reporter.snapshot()
        enabled = count_enabled(providers)
        status = "healthy" if enabled > 0 else "degraded"
        components.append(
            ComponentHealth(
                name="providers",
                status=status,
                message=f"{enabled}/{len(providers)} providers enabled",
            )
        )
        if status != "healthy":
            overall_status = "degraded"
    except Exception as e:
        logger.exception("Provider status check failed")
        components.append(
            ComponentHealth(
                name="providers",
                status="unhealthy",
                message=str(e),
            )
        )
        overall_status = "unhealthy"

    start_time = getattr(request.app.state, "start_time", 0.0)
    uptime = time.time() - start_time if start_time > 0 else 0.0

    return HealthResponse(
        status=overall_status,
        version=__version__,
        components=components,
        uptime_seconds=uptime,
    )


@app.get("/config")
async def show_config(settings: Settings = Depends(get_settings)):
    """
    Returns non-sensitive configuration values.

    API keys are SecretStr and are NOT exposed in this endpoint.
    """
    return {
        "providers": [
            {
                "name": config.name,
                "kind": config.kind.value,
                "model": config.model,
                "max_output_tokens": config.max_output_tokens,
                "requests_per_minute": config.requests_per_minute,
            }
            for config in settings.provider_configs()
        ],
        "dispatch": {
            "auth_cooldown_ms": settings.auth_cooldown_ms,
            "usage_window_ms": settings.usage_window_ms,
            "request_timeout_s": settings.request_timeout_s,
        },
        "server": {
            "host": settings.host,
            "port": settings.port,
            "debug": settings.debug,
        },
        "logging": {
            "level": settings.log_level,
        },
        "api_keys_configured": {
            config.name: config.has_credential
            for config in settings.provider_configs()
        },
    }


@app.post(
    "/complete",
    response_model=CompletionResponse,
    responses={
        422: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
    summary="Complete a prompt",
    description="Send a prompt to the least-used available provider.",
)
async def complete(
    request: CompletionRequest,
    dispatcher: Dispatcher = Depends(get_dispatcher),
):
    """
    Main completion endpoint.

    Exactly one provider is attempted. Failures are returned to the caller,
    who may retry and possibly land on a different provider.
    """
    result = await dispatcher.complete(request.prompt, request.system_prompt)
    return build_completion_response(result)


@app.get(
    "/providers",
    response_model=ProvidersResponse,
    summary="Provider status",
    description="Current status of every configured provider.",
)
async def get_providers(reporter: StatusReporter = Depends(get_status_reporter)):
    """Return status per provider in registry order."""
    return reporter.generate_report()


@app.post(
    "/providers/reset",
    response_model=ResetResponse,
    summary="Reset providers",
    description="Re-enable all providers that have an API key and clear their counters.",
)
async def reset_providers(reporter: StatusReporter = Depends(get_status_reporter)):
    """Idempotent manual recovery."""
    reporter.reset_all()
    return ResetResponse()


@app.post(
    "/providers",
    response_model=ResetResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Provider action",
    description="Run an administrative action. Only 'reset' is supported.",
)
async def provider_action(
    body: ProviderActionRequest,
    reporter: StatusReporter = Depends(get_status_reporter),
):
    """Action-style surface kept for existing clients."""
    if body.action != "reset":
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(
                error=ErrorDetail(
                    code=ErrorCodes.UNKNOWN_ACTION,
                    message=(
                        f"Unknown action: {body.action}"
                        if body.action
                        else "Unknown action"
                    ),
                    field="action",
                )
            ).model_dump(exclude_none=True),
        )
    reporter.reset_all()
    return ResetResponse()


@app.get(
    "/metrics",
    response_model=MetricsResponse,
    summary="Get metrics",
    description="Retrieve aggregated dispatch metrics per provider.",
)
async def get_metrics(reporter: MetricsReporter = Depends(get_metrics_reporter)):
    """
    Return aggregated dispatch metrics.

    Includes:
    - Attempts, successes and failures by provider
    - Calls rejected because no provider was available
    - Average backend latency
    """
    return reporter.generate_report()


@app.exception_handler(NoProviderAvailable)
async def no_provider_exception_handler(
    request: Request, exc: NoProviderAvailable
) -> JSONResponse:
    """Every provider is disabled, exhausted, or missing a credential."""
    return JSONResponse(
        status_code=503,
        content=ErrorResponse(
            error=ErrorDetail(
                code=ErrorCodes.NO_PROVIDER_AVAILABLE,
                message=exc.message,
            )
        ).model_dump(exclude_none=True),
    )


@app.exception_handler(ProviderError)
async def provider_exception_handler(
    request: Request, exc: ProviderError
) -> JSONResponse:
    """
    The selected provider failed.

    Auth failures and transient failures get distinct codes so callers can
    tell a cooled-down provider from a one-off error.
    """
    code = ErrorCodes.PROVIDER_AUTH_ERROR if exc.is_auth else ErrorCodes.PROVIDER_ERROR
    return JSONResponse(
        status_code=502,
        content=ErrorResponse(
            error=ErrorDetail(
                code=code,
                message=exc.message,
                provider=exc.provider,
            )
        ).model_dump(exclude_none=True),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors.

    Returns a consistent error response format with the first validation
    error's details for client-side error handling.
    """
    errors = exc.errors()
    first_error = errors[0] if errors else {}

    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "code": ErrorCodes.VALIDATION_ERROR,
                "message": first_error.get("msg", "Validation failed"),
                "field": ".".join(str(loc) for loc in first_error.get("loc", [])),
            }
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """
    Handle HTTP exceptions with consistent format.

    Registered for the Starlette base class so routing errors (404, 405)
    get the same envelope as explicitly raised HTTPExceptions.
    """
    detail = exc.detail
    headers = getattr(exc, "headers", None)
    if isinstance(detail, dict):
        return JSONResponse(
            status_code=exc.status_code, content={"error": detail}, headers=headers
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": ErrorCodes.HTTP_ERROR, "message": str(detail)}},
        headers=headers,
    )


@app.exception_handler(Exception)
async def general_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Logs the full exception for debugging and returns a generic error
    response to avoid leaking implementation details.
    """
    logger.exception("Unhandled exception")
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": ErrorCodes.INTERNAL_ERROR,
                "message": "An unexpected error occurred",
            }
        },
    )


def run() -> None:
    """Serve the application with uvicorn using the configured host and port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
