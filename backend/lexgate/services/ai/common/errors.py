"""Error taxonomy for the AI provider router."""

from __future__ import annotations

from dataclasses import dataclass


class AIProviderError(Exception):
    """Base class for every error raised by the provider layer."""


class ConfigurationError(AIProviderError):
    """No provider has a usable credential. Terminal, never retried."""


class RateLimitError(AIProviderError):
    """Local admission denied before any network call was made."""

    def __init__(self, provider: str, message: str | None = None) -> None:
        self.provider = provider
        super().__init__(message or f"Rate limit exceeded for {provider}")


class VendorRequestError(AIProviderError):
    """Transport failure, non-2xx status or unreadable payload from a vendor."""

    def __init__(self, provider: str, message: str, *, status_code: int | None = None) -> None:
        self.provider = provider
        self.status_code = status_code
        super().__init__(message)


@dataclass(frozen=True)
class ProviderAttempt:
    provider: str
    error: str


ALL_PROVIDERS_FAILED_MESSAGE = (
    "All configured AI providers failed. This could be due to:\n\n"
    "• Invalid API keys\n"
    "• Rate limits exceeded\n"
    "• Network connectivity issues\n"
    "• Provider service outages\n\n"
    "Please check your API keys and try again."
)


class AllProvidersFailedError(AIProviderError):
    """Every candidate provider was tried once and failed."""

    def __init__(self, attempts: list[ProviderAttempt]) -> None:
        self.attempts = list(attempts)
        super().__init__(ALL_PROVIDERS_FAILED_MESSAGE)

    @property
    def tried_providers(self) -> list[str]:
        return [a.provider for a in self.attempts]
