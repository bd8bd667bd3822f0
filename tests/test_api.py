"""
API Endpoint Tests

Exercises the FastAPI application through TestClient with a dispatcher
backed by stub adapters, so no request leaves the process.

Test Categories:
1. TestRootAndHealth - Informational endpoints
2. TestConfigEndpoint - Non-sensitive configuration
3. TestCompleteEndpoint - POST /complete success and error mapping
4. TestProvidersEndpoint - Status and administrative reset
5. TestMetricsEndpoint - Dispatch statistics
6. TestProviderSetupGuidance - Credential status and setup steps
7. TestErrorEnvelope - Routing errors and missing actions
"""

from app.errors import ProviderError, ProviderErrorKind


class TestRootAndHealth:
    """Tests for / and /health."""

    def test_root(self, test_client):
        """Root lists the service endpoints."""
        response = test_client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Provider Relay"
        assert data["providers"] == "/providers"

    def test_health_healthy(self, test_client):
        """Healthy while at least one provider is enabled."""
        response = test_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "provider-relay"
        assert data["components"][0]["message"] == "2/3 providers enabled"

    def test_health_degraded(self, test_client, registry, clock):
        """Degraded when every provider is disabled."""
        registry.disable("a", cooldown_ms=60_000, now=clock())
        registry.disable("b", cooldown_ms=60_000, now=clock())

        data = test_client.get("/health").json()

        assert data["status"] == "degraded"


class TestConfigEndpoint:
    """Tests for /config."""

    def test_config_hides_api_keys(self, test_client):
        """API keys are reported as configured, never echoed."""
        response = test_client.get("/config")

        assert response.status_code == 200
        assert "test-key-not-real" not in response.text
        data = response.json()
        assert data["api_keys_configured"] == {"openai": True, "groq": True}

    def test_config_lists_providers(self, test_client):
        """Providers are listed in registry order with their limits."""
        data = test_client.get("/config").json()

        assert [p["name"] for p in data["providers"]] == ["openai", "groq"]
        assert data["dispatch"]["auth_cooldown_ms"] == 60_000


class TestCompleteEndpoint:
    """Tests for POST /complete."""

    def test_success(self, test_client, adapters):
        """The least-used provider answers."""
        response = test_client.post(
            "/complete", json={"prompt": "hello", "system_prompt": "be brief"}
        )

        assert response.status_code == 200
        assert response.json() == {"content": "response from a", "provider_name": "a"}
        assert adapters["a"].calls == [("hello", "be brief", "a-model", 1000)]

    def test_successive_calls_rotate(self, test_client):
        """Usage moves the next call to the less-used provider."""
        first = test_client.post("/complete", json={"prompt": "one"}).json()
        second = test_client.post("/complete", json={"prompt": "two"}).json()

        assert first["provider_name"] == "a"
        assert second["provider_name"] == "b"

    def test_whitespace_prompt_rejected(self, test_client):
        """Whitespace-only prompts fail validation."""
        response = test_client.post("/complete", json={"prompt": "   "})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_missing_prompt_rejected(self, test_client):
        """The prompt field is required."""
        response = test_client.post("/complete", json={})

        assert response.status_code == 422
        assert response.json()["error"]["field"] == "body.prompt"

    def test_no_provider_available(self, test_client, registry, clock):
        """503 when every provider is disabled or exhausted."""
        registry.disable("a", cooldown_ms=60_000, now=clock())
        registry.disable("b", cooldown_ms=60_000, now=clock())

        response = test_client.post("/complete", json={"prompt": "hello"})

        assert response.status_code == 503
        error = response.json()["error"]
        assert error["code"] == "NO_PROVIDER_AVAILABLE"
        assert "No available AI providers" in error["message"]

    def test_auth_failure(self, test_client, adapters):
        """Auth failures return 502 and put the provider into cooldown."""
        adapters["a"].error = ProviderError(ProviderErrorKind.AUTH, "invalid api key")

        response = test_client.post("/complete", json={"prompt": "hello"})

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["code"] == "PROVIDER_AUTH_ERROR"
        assert error["provider"] == "a"

        providers = test_client.get("/providers").json()["providers"]
        assert providers[0]["enabled"] is False
        assert providers[0]["state"] == "cooldown"

    def test_transient_failure(self, test_client, adapters):
        """Transient failures return 502 and leave the provider enabled."""
        adapters["a"].error = ProviderError(ProviderErrorKind.TRANSIENT, "timeout")

        response = test_client.post("/complete", json={"prompt": "hello"})

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "PROVIDER_ERROR"

        providers = test_client.get("/providers").json()["providers"]
        assert providers[0]["enabled"] is True


class TestProvidersEndpoint:
    """Tests for /providers."""

    def test_get_providers(self, test_client):
        """One row per provider with the enabled total."""
        response = test_client.get("/providers")

        assert response.status_code == 200
        data = response.json()
        assert [p["name"] for p in data["providers"]] == ["a", "b", "c"]
        assert data["total_enabled"] == 2
        assert data["providers"][2]["state"] == "no_credential"

    def test_reset(self, test_client, registry, clock):
        """POST /providers/reset restores disabled providers."""
        registry.record_use("a", clock())
        registry.disable("a", cooldown_ms=60_000, now=clock())

        response = test_client.post("/providers/reset")

        assert response.status_code == 200
        assert response.json()["success"] is True
        row = test_client.get("/providers").json()["providers"][0]
        assert row["enabled"] is True
        assert row["request_count"] == 0

    def test_reset_action(self, test_client, registry, clock):
        """POST /providers with action=reset behaves like /providers/reset."""
        registry.disable("b", cooldown_ms=60_000, now=clock())

        response = test_client.post("/providers", json={"action": "reset"})

        assert response.status_code == 200
        assert test_client.get("/providers").json()["total_enabled"] == 2

    def test_unknown_action(self, test_client, registry, clock):
        """Any other action is rejected without touching the registry."""
        registry.disable("b", cooldown_ms=60_000, now=clock())

        response = test_client.post("/providers", json={"action": "delete"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "UNKNOWN_ACTION"
        assert test_client.get("/providers").json()["total_enabled"] == 1


class TestMetricsEndpoint:
    """Tests for /metrics."""

    def test_metrics_after_calls(self, test_client, registry, clock):
        """Attempts and rejections are reported."""
        test_client.post("/complete", json={"prompt": "hello"})
        registry.disable("a", cooldown_ms=60_000, now=clock())
        registry.disable("b", cooldown_ms=60_000, now=clock())
        test_client.post("/complete", json={"prompt": "hello"})

        data = test_client.get("/metrics").json()

        assert data["total_requests"] == 1
        assert data["total_rejected"] == 1
        assert data["success_rate_percent"] == 100.0
        assert data["requests_by_provider"]["a"]["success_count"] == 1


class TestProviderSetupGuidance:
    """Tests for setup guidance in GET /providers."""

    def test_available_providers_report_credential_status(self, test_client):
        """Each registered provider is active or missing with its env var."""
        data = test_client.get("/providers").json()

        available = {p["name"]: p for p in data["available_providers"]}
        assert list(available) == ["a", "b", "c"]
        assert available["a"]["status"] == "active"
        assert available["a"]["env_var"] == "OPENAI_API_KEY"
        assert available["b"]["status"] == "active"
        assert available["b"]["env_var"] == "GROQ_API_KEY"
        assert available["c"]["status"] == "missing"
        assert available["c"]["setup_instructions"]

    def test_no_additional_providers_when_all_kinds_registered(self, test_client):
        """Every supported backend kind is already registered."""
        data = test_client.get("/providers").json()

        assert data["additional_providers"] == []


class TestErrorEnvelope:
    """Tests for the uniform error envelope on routing errors."""

    def test_unknown_route(self, test_client):
        """404s use the error envelope."""
        response = test_client.get("/nonexistent")

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "HTTP_ERROR"
        assert error["message"] == "Not Found"

    def test_method_not_allowed(self, test_client):
        """405s use the error envelope and keep the Allow header."""
        response = test_client.delete("/providers")

        assert response.status_code == 405
        assert response.json()["error"]["code"] == "HTTP_ERROR"
        assert "allow" in response.headers

    def test_missing_action(self, test_client, registry, clock):
        """A body without an action is an unknown action, not a validation error."""
        registry.disable("b", cooldown_ms=60_000, now=clock())

        response = test_client.post("/providers", json={})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "UNKNOWN_ACTION"
        assert error["message"] == "Unknown action"
        assert test_client.get("/providers").json()["total_enabled"] == 1
