"""Static provider registry: one immutable ``ProviderConfig`` per vendor."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Literal, Mapping

TaskKind = Literal["chat", "analysis", "reasoning"]
TASK_KINDS: tuple[str, ...] = ("chat", "analysis", "reasoning")


class ProviderShape(enum.Enum):
    """Wire format spoken by a vendor."""

    OPENAI_COMPATIBLE = "openai_compatible"
    TEXT_GENERATION_INFERENCE = "text_generation_inference"


@dataclass(frozen=True)
class RateLimit:
    requests_per_minute: int
    tokens_per_minute: int


@dataclass(frozen=True)
class ProviderConfig:
    id: str
    name: str
    base_url: str
    models: Mapping[str, str]
    max_tokens: int
    supports_streaming: bool
    rate_limit: RateLimit
    key_url: str
    shape: ProviderShape = ProviderShape.OPENAI_COMPATIBLE
    default_max_new_tokens: int = 512
    placeholder_keys: frozenset[str] = field(default_factory=frozenset)

    def model_for(self, task: str) -> str:
        return self.models.get(task) or self.models["chat"]


def _models(chat: str, analysis: str, reasoning: str) -> Mapping[str, str]:
    return MappingProxyType({"chat": chat, "analysis": analysis, "reasoning": reasoning})


# Registry order is significant: it is the fallback iteration order.
PROVIDERS: Mapping[str, ProviderConfig] = MappingProxyType(
    {
        "groq": ProviderConfig(
            id="groq",
            name="Groq",
            base_url="https://api.groq.com/openai/v1",
            models=_models("llama-3.1-70b-versatile", "llama-3.1-70b-versatile", "llama-3.1-8b-instant"),
            max_tokens=8192,
            supports_streaming=True,
            rate_limit=RateLimit(requests_per_minute=30, tokens_per_minute=6000),
            key_url="https://console.groq.com/keys",
            placeholder_keys=frozenset({"your_groq_api_key"}),
        ),
        "together": ProviderConfig(
            id="together",
            name="Together AI",
            base_url="https://api.together.xyz/v1",
            models=_models(
                "meta-llama/Meta-Llama-3.1-70B-Instruct-Turbo",
                "meta-llama/Meta-Llama-3.1-70B-Instruct-Turbo",
                "meta-llama/Meta-Llama-3.1-8B-Instruct-Turbo",
            ),
            max_tokens=8192,
            supports_streaming=True,
            rate_limit=RateLimit(requests_per_minute=60, tokens_per_minute=10000),
            key_url="https://api.together.xyz/settings/api-keys",
            placeholder_keys=frozenset({"your_together_ai_api_key"}),
        ),
        "huggingface": ProviderConfig(
            id="huggingface",
            name="Hugging Face",
            base_url="https://api-inference.huggingface.co/models",
            models=_models("microsoft/DialoGPT-large", "microsoft/DialoGPT-large", "microsoft/DialoGPT-medium"),
            max_tokens=4096,
            supports_streaming=False,
            rate_limit=RateLimit(requests_per_minute=100, tokens_per_minute=15000),
            key_url="https://huggingface.co/settings/tokens",
            shape=ProviderShape.TEXT_GENERATION_INFERENCE,
            placeholder_keys=frozenset({"your_huggingface_api_key"}),
        ),
        "deepseek": ProviderConfig(
            id="deepseek",
            name="DeepSeek",
            base_url="https://api.deepseek.com/v1",
            models=_models("deepseek-chat", "deepseek-coder", "deepseek-chat"),
            max_tokens=8192,
            supports_streaming=True,
            rate_limit=RateLimit(requests_per_minute=60, tokens_per_minute=10000),
            key_url="https://platform.deepseek.com/api_keys",
            placeholder_keys=frozenset({"your_deepseek_api_key"}),
        ),
        "cerebras": ProviderConfig(
            id="cerebras",
            name="Cerebras",
            base_url="https://api.cerebras.ai/v1",
            models=_models("llama3.1-70b", "llama3.1-70b", "llama3.1-8b"),
            max_tokens=8192,
            supports_streaming=True,
            rate_limit=RateLimit(requests_per_minute=30, tokens_per_minute=6000),
            key_url="https://cloud.cerebras.ai/platform",
            placeholder_keys=frozenset({"your_cerebras_api_key"}),
        ),
        "fireworks": ProviderConfig(
            id="fireworks",
            name="Fireworks AI",
            base_url="https://api.fireworks.ai/inference/v1",
            models=_models(
                "accounts/fireworks/models/llama-v3p1-70b-instruct",
                "accounts/fireworks/models/llama-v3p1-70b-instruct",
                "accounts/fireworks/models/llama-v3p1-8b-instruct",
            ),
            max_tokens=8192,
            supports_streaming=True,
            rate_limit=RateLimit(requests_per_minute=60, tokens_per_minute=10000),
            key_url="https://fireworks.ai/account/api-keys",
            placeholder_keys=frozenset({"your_fireworks_api_key"}),
        ),
    }
)


@dataclass(frozen=True)
class ProviderRecommendation:
    provider: str
    task: str
    reason: str


RECOMMENDED_PROVIDERS: tuple[ProviderRecommendation, ...] = (
    ProviderRecommendation("groq", "chat", "Fastest response times for interactive conversations"),
    ProviderRecommendation("deepseek", "analysis", "Optimized for code and document analysis tasks"),
    ProviderRecommendation("together", "reasoning", "High-quality reasoning and complex problem solving"),
    ProviderRecommendation("cerebras", "chat", "Ultra-fast inference with excellent quality"),
)


def no_providers_message(registry: Mapping[str, ProviderConfig] = PROVIDERS) -> str:
    """User-facing remediation text listing where to get a key for every vendor."""
    lines = "\n".join(f"• {cfg.name}: {cfg.key_url}" for cfg in registry.values())
    return (
        "No AI providers configured. Please add valid API keys to your environment variables. "
        "You can get free API keys from:\n\n"
        f"{lines}\n\n"
        "Add them to your .env file and restart the server."
    )
