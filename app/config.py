"""
Provider Relay Configuration Module

This module manages application settings and environment variables using
pydantic-settings for type-safe configuration management.

Environment variables are loaded from .env file or system environment.
All sensitive values use SecretStr to prevent accidental logging.

Provider credentials are optional: a provider without an API key is still
registered, but starts disabled and can never be enabled at runtime.
"""

from functools import lru_cache
from typing import Literal
import logging
import sys

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.registry.providers import ProviderConfig, ProviderKind


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Pydantic Settings automatically reads from:
    1. Environment variables
    2. .env file in working directory
    3. Default values defined here

    API keys use SecretStr to prevent accidental exposure in logs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore unknown env vars
    )

    openai_api_key: SecretStr | None = Field(
        default=None, description="OpenAI API key (provider disabled if unset)"
    )

    groq_api_key: SecretStr | None = Field(
        default=None, description="Groq API key (provider disabled if unset)"
    )

    openai_model: str = Field(
        default="gpt-4o-mini", description="Model used for OpenAI completions"
    )

    openai_max_tokens: int = Field(
        default=4000, gt=0, description="Max output tokens for OpenAI completions"
    )

    openai_requests_per_minute: int = Field(
        default=60, gt=0, description="OpenAI request cap per rolling minute"
    )

    groq_model: str = Field(
        default="llama-3.1-8b-instant", description="Model used for Groq completions"
    )

    groq_max_tokens: int = Field(
        default=1000, gt=0, description="Max output tokens for Groq completions"
    )

    groq_requests_per_minute: int = Field(
        default=30, gt=0, description="Groq request cap per rolling minute"
    )

    provider_order: list[str] = Field(
        default_factory=lambda: ["openai", "groq"],
        description="Registry order of providers (also the final tie-break)",
    )

    auth_cooldown_ms: int = Field(
        default=60_000,
        gt=0,
        description="How long a provider stays disabled after an auth failure",
    )

    usage_window_ms: int = Field(
        default=60_000,
        gt=0,
        description="Idle time after which a provider's request counter resets",
    )

    request_timeout_s: float = Field(
        default=60.0, gt=0, description="Per-request timeout for provider SDK clients"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Application log level"
    )

    host: str = Field(default="0.0.0.0", description="Server bind host")

    port: int = Field(default=8000, description="Server bind port")

    debug: bool = Field(default=False, description="Enable debug mode")

    @field_validator("provider_order")
    @classmethod
    def validate_provider_order(cls, v: list[str]) -> list[str]:
        """Ensure provider_order names known providers, each at most once."""
        valid_providers = {kind.value for kind in ProviderKind}
        unknown = [name for name in v if name not in valid_providers]
        if unknown:
            raise ValueError(
                f"provider_order contains unknown providers {unknown}; "
                f"valid providers are {sorted(valid_providers)}"
            )
        if len(set(v)) != len(v):
            raise ValueError("provider_order must not repeat a provider")
        if not v:
            raise ValueError("provider_order must name at least one provider")
        return v

    def provider_configs(self) -> list[ProviderConfig]:
        """
        Build the ordered provider configuration list.

        Returns:
            One ProviderConfig per entry in provider_order.
        """
        available = {
            ProviderKind.OPENAI.value: ProviderConfig(
                name="openai",
                kind=ProviderKind.OPENAI,
                api_key=self.openai_api_key,
                model=self.openai_model,
                max_output_tokens=self.openai_max_tokens,
                requests_per_minute=self.openai_requests_per_minute,
            ),
            ProviderKind.GROQ.value: ProviderConfig(
                name="groq",
                kind=ProviderKind.GROQ,
                api_key=self.groq_api_key,
                model=self.groq_model,
                max_output_tokens=self.groq_max_tokens,
                requests_per_minute=self.groq_requests_per_minute,
            ),
        }
        return [available[name] for name in self.provider_order]


@lru_cache
def get_settings() -> Settings:
    """
    Returns cached settings instance.

    Using lru_cache ensures settings are loaded once and reused,
    avoiding repeated file reads and environment parsing.

    Returns:
        Settings: The application settings singleton.
    """
    return Settings()


def configure_logging(settings: Settings) -> None:
    """
    Configure application logging based on settings.

    Sets up structured logging with timestamps and reduces noise
    from third-party HTTP libraries.

    Args:
        settings: The application settings instance.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("groq").setLevel(logging.WARNING)
