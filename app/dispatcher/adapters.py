"""
Backend Adapters - Provider-specific completion calls.

Each provider kind has one adapter implementing the same capability:

    invoke(prompt, system_prompt, model, max_output_tokens) -> completion text

Adapters own their SDK client and translate SDK exceptions into a
structured ProviderError so the dispatcher never has to inspect messages:
- AUTH: invalid/missing credential, permission denied, model not served
- TRANSIENT: timeout, connection error, remote rate limit, server error,
  malformed response

Key components:
- BackendAdapter: Abstract adapter interface
- OpenAIAdapter: OpenAI chat completions via AsyncOpenAI
- GroqAdapter: Groq chat completions via AsyncGroq
- build_adapters(): One adapter per configured provider
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import groq
import openai
from groq import AsyncGroq
from openai import AsyncOpenAI
from pydantic import SecretStr

from app.errors import ProviderError, ProviderErrorKind
from app.registry.providers import ProviderConfig, ProviderKind

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.1


class BackendAdapter(ABC):
    """Capability interface implemented once per provider kind."""

    @abstractmethod
    async def invoke(
        self,
        prompt: str,
        system_prompt: str | None,
        model: str,
        max_output_tokens: int,
    ) -> str:
        """
        Run one completion.

        Returns:
            The completion text.

        Raises:
            ProviderError: With kind AUTH or TRANSIENT.
        """


def build_messages(prompt: str, system_prompt: str | None) -> list[dict[str, str]]:
    """Build the chat message list, omitting an empty system prompt."""
    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": prompt})
    return messages


def extract_content(response: Any) -> str:
    """
    Pull the completion text out of a chat completion response.

    Raises:
        ProviderError: TRANSIENT if the response has no choices.
    """
    try:
        message = response.choices[0].message
    except (AttributeError, IndexError, TypeError) as e:
        raise ProviderError(
            ProviderErrorKind.TRANSIENT, f"Malformed completion response: {e}"
        ) from e
    return message.content or ""


class ChatCompletionsAdapter(BackendAdapter):
    """
    Shared logic for OpenAI-compatible chat completion SDKs.

    Subclasses provide the client factory and the SDK's exception classes.
    The client is created on first use, so constructing an adapter never
    fails for a provider that is never selected.
    """

    provider_name: str = ""
    auth_errors: tuple[type[BaseException], ...] = ()
    transient_errors: tuple[type[BaseException], ...] = ()

    def __init__(self, api_key: SecretStr | None, timeout_s: float = 60.0) -> None:
        self._api_key = api_key
        self._timeout_s = timeout_s
        self._client: Any = None

    @abstractmethod
    def _create_client(self, api_key: str) -> Any:
        """Create the SDK client."""

    @property
    def client(self) -> Any:
        """
        Get the SDK client (lazy initialization).

        Raises:
            ProviderError: AUTH if no API key is configured.
        """
        if self._client is None:
            if self._api_key is None or not self._api_key.get_secret_value():
                raise ProviderError(
                    ProviderErrorKind.AUTH,
                    f"{self.provider_name} API key is not configured",
                    provider=self.provider_name,
                )
            self._client = self._create_client(self._api_key.get_secret_value())
            logger.debug(f"Initialized {self.provider_name} client")
        return self._client

    def classify(self, error: BaseException) -> ProviderErrorKind:
        """Map an SDK exception to an error kind."""
        if isinstance(error, self.auth_errors):
            return ProviderErrorKind.AUTH
        return ProviderErrorKind.TRANSIENT

    async def invoke(
        self,
        prompt: str,
        system_prompt: str | None,
        model: str,
        max_output_tokens: int,
    ) -> str:
        client = self.client

        try:
            response = await client.chat.completions.create(
                model=model,
                messages=build_messages(prompt, system_prompt),
                max_tokens=max_output_tokens,
                temperature=DEFAULT_TEMPERATURE,
            )
        except self.auth_errors + self.transient_errors as e:
            raise ProviderError(
                self.classify(e), str(e), provider=self.provider_name
            ) from e

        try:
            return extract_content(response)
        except ProviderError as e:
            e.provider = self.provider_name
            raise


class OpenAIAdapter(ChatCompletionsAdapter):
    """Completions via the OpenAI API."""

    provider_name = "openai"
    auth_errors = (
        openai.AuthenticationError,
        openai.PermissionDeniedError,
        openai.NotFoundError,
    )
    # APIError is the SDK base class; anything not auth-related is transient
    transient_errors = (openai.APIError,)

    def _create_client(self, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(api_key=api_key, timeout=self._timeout_s)


class GroqAdapter(ChatCompletionsAdapter):
    """Completions via the Groq API."""

    provider_name = "groq"
    auth_errors = (
        groq.AuthenticationError,
        groq.PermissionDeniedError,
        groq.NotFoundError,
    )
    transient_errors = (groq.APIError,)

    def _create_client(self, api_key: str) -> AsyncGroq:
        return AsyncGroq(api_key=api_key, timeout=self._timeout_s)


ADAPTER_TYPES: dict[ProviderKind, type[ChatCompletionsAdapter]] = {
    ProviderKind.OPENAI: OpenAIAdapter,
    ProviderKind.GROQ: GroqAdapter,
}


def build_adapters(
    configs: list[ProviderConfig], timeout_s: float = 60.0
) -> dict[str, BackendAdapter]:
    """
    Create one adapter per configured provider.

    Args:
        configs: Provider configurations.
        timeout_s: Request timeout for SDK clients.

    Returns:
        Mapping from provider name to adapter.
    """
    return {
        config.name: ADAPTER_TYPES[config.kind](config.api_key, timeout_s=timeout_s)
        for config in configs
    }
