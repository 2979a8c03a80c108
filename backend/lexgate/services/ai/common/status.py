"""Readiness summary shared by the analysis services."""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import ConfigurationError
from .registry import ProviderRecommendation
from .router import ProviderRouter, ProviderStatus


@dataclass(frozen=True)
class ConfigurationStatus:
    configured: bool
    message: str
    providers: dict[str, ProviderStatus] = field(default_factory=dict)
    recommendations: list[ProviderRecommendation] = field(default_factory=list)


def get_configuration_status(
    router: ProviderRouter,
    *,
    include_recommendations: bool = True,
) -> ConfigurationStatus:
    status = router.get_provider_status()
    recommendations = router.get_recommended_providers() if include_recommendations else []
    configured = [key for key, s in status.items() if s.configured]
    available = [key for key in configured if status[key].available]

    if not configured:
        message = "No AI providers configured. Please add API keys to your environment variables."
        ready = False
    elif not available:
        message = (
            "AI providers configured but rate limits exceeded. "
            "Please wait or configure additional providers."
        )
        ready = False
    else:
        message = f"Ready with {len(configured)} AI provider(s). {len(available)} currently available."
        ready = True

    return ConfigurationStatus(
        configured=ready,
        message=message,
        providers=status,
        recommendations=recommendations,
    )


def ensure_ready(router: ProviderRouter) -> ConfigurationStatus:
    """Raise ``ConfigurationError`` unless at least one provider can take a request."""
    status = get_configuration_status(router, include_recommendations=False)
    if not status.configured:
        raise ConfigurationError(status.message)
    return status
