"""Provider factory: builds the client that speaks a vendor's wire shape."""

from __future__ import annotations

import httpx

from ..registry import ProviderConfig, ProviderShape
from .base import AIResponse, BaseProvider, ChatMessage, StreamChunk, TokenUsage
from .openai_compatible import OpenAICompatibleProvider
from .tgi import TextGenerationInferenceProvider

__all__ = [
    "get_provider",
    "AIResponse",
    "BaseProvider",
    "ChatMessage",
    "StreamChunk",
    "TokenUsage",
    "OpenAICompatibleProvider",
    "TextGenerationInferenceProvider",
]


def get_provider(
    config: ProviderConfig,
    api_key: str,
    *,
    timeout_seconds: float | None = 60.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> BaseProvider:
    """Return a provider instance for *config*, dispatched on its wire shape."""
    match config.shape:
        case ProviderShape.OPENAI_COMPATIBLE:
            cls: type[BaseProvider] = OpenAICompatibleProvider
        case ProviderShape.TEXT_GENERATION_INFERENCE:
            cls = TextGenerationInferenceProvider
        case _:
            raise ValueError(f"Unsupported provider shape {config.shape!r}")
    return cls(config, api_key, timeout_seconds=timeout_seconds, transport=transport)
