"""
Provider Status Reporter

Read-only projection of the provider registry for the administrative API,
plus the manual reset operation and setup guidance for backends whose API
key is missing or that are not registered at all.
"""

from dataclasses import dataclass

from app.registry.providers import ProviderKind, ProviderRegistry
from app.schemas.completion import (
    ProviderSetup,
    ProvidersResponse,
    ProviderStatus,
    provider_status_from_snapshot,
)


@dataclass(frozen=True)
class SetupGuide:
    """Static configuration guidance for one backend kind."""

    description: str
    env_var: str
    signup_url: str
    priority: int
    setup_instructions: str


# Env var names match the Settings fields read by pydantic-settings
SETUP_GUIDES: dict[ProviderKind, SetupGuide] = {
    ProviderKind.GROQ: SetupGuide(
        description="Fast inference with a free tier",
        env_var="GROQ_API_KEY",
        signup_url="https://console.groq.com/",
        priority=1,
        setup_instructions=(
            "1. Sign up at console.groq.com\n"
            "2. Create API key\n"
            "3. Add GROQ_API_KEY to .env"
        ),
    ),
    ProviderKind.OPENAI: SetupGuide(
        description="OpenAI GPT models",
        env_var="OPENAI_API_KEY",
        signup_url="https://platform.openai.com/api-keys",
        priority=2,
        setup_instructions=(
            "1. Sign in at platform.openai.com\n"
            "2. Create API key\n"
            "3. Add OPENAI_API_KEY to .env"
        ),
    ),
}


def count_enabled(providers: list[ProviderStatus]) -> int:
    """Number of providers that are enabled and have a credential."""
    return sum(1 for p in providers if p.enabled and p.has_credential)


def _setup_entry(
    name: str, kind: ProviderKind, status: str | None = None
) -> ProviderSetup:
    guide = SETUP_GUIDES[kind]
    return ProviderSetup(
        name=name,
        kind=kind,
        description=guide.description,
        env_var=guide.env_var,
        signup_url=guide.signup_url,
        priority=guide.priority,
        setup_instructions=guide.setup_instructions,
        status=status,
    )


class StatusReporter:
    """
    Report provider status and reset providers.

    Example:
        reporter = StatusReporter(dispatcher.registry)
        for status in reporter.snapshot():
            print(status.name, status.state)
        reporter.reset_all()
    """

    def __init__(self, registry: ProviderRegistry):
        self._registry = registry

    def snapshot(self) -> list[ProviderStatus]:
        """Status per provider, in registry order."""
        return [provider_status_from_snapshot(row) for row in self._registry.snapshot()]

    def total_enabled(self) -> int:
        """Number of providers that are enabled and have a credential."""
        return count_enabled(self.snapshot())

    def setup_guidance(self) -> tuple[list[ProviderSetup], list[ProviderSetup]]:
        """
        Build setup guidance for operators.

        Returns:
            (available, additional): one entry per registered provider with
            status "active" or "missing" depending on its credential, and one
            entry per supported backend kind with no registered provider,
            ordered by priority.
        """
        rows = self._registry.snapshot()
        available = [
            _setup_entry(
                row.name, row.kind, "active" if row.has_credential else "missing"
            )
            for row in rows
        ]
        registered_kinds = {row.kind for row in rows}
        additional = [
            _setup_entry(kind.value, kind)
            for kind in sorted(SETUP_GUIDES, key=lambda k: SETUP_GUIDES[k].priority)
            if kind not in registered_kinds
        ]
        return available, additional

    def generate_report(self) -> ProvidersResponse:
        """Build the GET /providers response."""
        providers = self.snapshot()
        available, additional = self.setup_guidance()
        return ProvidersResponse(
            providers=providers,
            total_enabled=count_enabled(providers),
            available_providers=available,
            additional_providers=additional,
        )

    def reset_all(self) -> None:
        """Re-enable every credentialed provider. Idempotent."""
        self._registry.reset_all()
