"""
Pytest configuration and shared fixtures.

Provides a controllable clock, provider configurations, stub adapters,
and a FastAPI TestClient wired to a dispatcher that never makes network calls.

IMPORTANT: Environment variables must be set BEFORE importing app modules
that use pydantic-settings, as Settings is cached on first use.
"""

import os
import sys

# Set test environment variables before importing app modules
os.environ["OPENAI_API_KEY"] = "test-key-not-real"
os.environ["GROQ_API_KEY"] = "test-key-not-real"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DEBUG"] = "false"

# Now safe to import everything else
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from fastapi.testclient import TestClient
from pydantic import SecretStr

from app.dispatcher.adapters import BackendAdapter
from app.dispatcher.service import Dispatcher
from app.metrics.store import MetricsStore
from app.registry.providers import ProviderConfig, ProviderKind, ProviderRegistry


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "asyncio: mark test as async")
    config.addinivalue_line(
        "markers", "integration: mark test as requiring real API calls"
    )


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """
    Clear the cached Settings between tests.

    Ensures environment changes made by a test do not leak into others.
    """
    yield

    from app.config import get_settings

    get_settings.cache_clear()


class FakeClock:
    """Manually advanced clock returning epoch milliseconds."""

    def __init__(self, start_ms: float = 0.0):
        self.now_ms = start_ms

    def __call__(self) -> float:
        return self.now_ms

    def advance(self, ms: float) -> None:
        self.now_ms += ms


class StubAdapter(BackendAdapter):
    """
    Adapter returning canned text or raising a configured error.

    Records every call so tests can assert what was passed through.
    """

    def __init__(self, name: str, content: str | None = None, error: Exception | None = None):
        self.name = name
        self.content = content if content is not None else f"response from {name}"
        self.error = error
        self.calls: list[tuple] = []

    async def invoke(self, prompt, system_prompt, model, max_output_tokens):
        self.calls.append((prompt, system_prompt, model, max_output_tokens))
        if self.error is not None:
            raise self.error
        return self.content


@pytest.fixture
def clock():
    """A fake clock starting at t=1,000,000ms."""
    return FakeClock(start_ms=1_000_000.0)


@pytest.fixture
def make_config():
    """
    Factory fixture for ProviderConfig objects.

    Usage:
        config = make_config("openai", rpm=2)
        config = make_config("groq", api_key=None)
    """

    def _create(
        name: str,
        kind: ProviderKind | None = None,
        api_key: str | None = "test-key",
        model: str | None = None,
        max_output_tokens: int = 1000,
        rpm: int = 60,
    ) -> ProviderConfig:
        return ProviderConfig(
            name=name,
            kind=kind or ProviderKind.OPENAI,
            api_key=SecretStr(api_key) if api_key is not None else None,
            model=model or f"{name}-model",
            max_output_tokens=max_output_tokens,
            requests_per_minute=rpm,
        )

    return _create


@pytest.fixture
def provider_configs(make_config):
    """Two credentialed providers (a: rpm 2, b: rpm 3) and one without a key."""
    return [
        make_config("a", rpm=2),
        make_config("b", kind=ProviderKind.GROQ, rpm=3),
        make_config("c", api_key=None, rpm=5),
    ]


@pytest.fixture
def registry(provider_configs, clock):
    """A ProviderRegistry driven by the fake clock."""
    return ProviderRegistry(provider_configs, window_ms=60_000, clock=clock)


@pytest.fixture
def adapters():
    """One StubAdapter per provider in provider_configs."""
    return {name: StubAdapter(name) for name in ("a", "b", "c")}


@pytest.fixture
def metrics_store():
    """A fresh MetricsStore."""
    return MetricsStore()


@pytest.fixture
def dispatcher(registry, adapters, metrics_store):
    """Dispatcher over the fake-clock registry and stub adapters."""
    return Dispatcher(registry, adapters, metrics=metrics_store, cooldown_ms=60_000)


@pytest.fixture
def mock_chat_response():
    """Create a mock chat completion response object (OpenAI/Groq shape)."""
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content="Hello there"))]
    return response


@pytest.fixture
def mock_chat_client(mock_chat_response):
    """Create a fully mocked async chat completions client."""
    mock = AsyncMock()
    mock.chat = MagicMock()
    mock.chat.completions = MagicMock()
    mock.chat.completions.create = AsyncMock(return_value=mock_chat_response)
    return mock


@pytest.fixture
def test_client(dispatcher):
    """
    Create a FastAPI TestClient whose dispatcher uses stub adapters.

    build_dispatcher is patched where it is CALLED from (app.main) so the
    lifespan wires in the fixture dispatcher instead of real SDK clients.
    """
    # Clear cached app module to ensure fresh import with patches
    if "app.main" in sys.modules:
        del sys.modules["app.main"]

    with patch("app.main.build_dispatcher", return_value=dispatcher):
        from app.main import app

        with TestClient(app) as client:
            yield client

    # Clean up
    if "app.main" in sys.modules:
        del sys.modules["app.main"]
