"""AI Router: picks a provider per task and falls back horizontally across vendors.

Resolution chain for the preferred provider (first match wins):
  1. explicit ``provider`` argument, when that provider is configured;
  2. task default: ``analysis`` -> groq, together, ``DOCUMENT_ANALYSIS_PROVIDER``;
     ``chat`` -> ``CHAT_PROVIDER``; ``reasoning`` -> ``PRIMARY_AI_PROVIDER``;
  3. first configured provider in registry order.

A request is then attempted against an ordered candidate list built up front:
preferred -> ``FALLBACK_AI_PROVIDER`` -> remaining configured providers. Each
provider is tried at most once per call.
"""

from __future__ import annotations

import contextlib
import inspect
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, AsyncIterator, Awaitable, Callable, Iterable, Mapping, Union

import httpx

from lexgate.core.config import Settings, get_settings
from lexgate.utils.alerting import ProviderAlertTracker
from lexgate.utils.rate_limit import ProviderRateLimiter

from .credentials import CredentialTable
from .errors import (
    AllProvidersFailedError,
    ConfigurationError,
    ProviderAttempt,
    RateLimitError,
    VendorRequestError,
)
from .providers import AIResponse, BaseProvider, ChatMessage, StreamChunk, get_provider
from .registry import (
    PROVIDERS,
    RECOMMENDED_PROVIDERS,
    TASK_KINDS,
    ProviderConfig,
    ProviderRecommendation,
    ProviderShape,
    no_providers_message,
)

logger = logging.getLogger(__name__)

MessageLike = Union[ChatMessage, Mapping[str, Any]]
ChunkCallback = Callable[[StreamChunk], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class ProviderStatus:
    name: str
    configured: bool
    available: bool


def _coerce_messages(messages: Iterable[MessageLike]) -> list[ChatMessage]:
    coerced = [m if isinstance(m, ChatMessage) else ChatMessage.model_validate(m) for m in messages]
    if not coerced:
        raise ValueError("messages must contain at least one chat turn")
    return coerced


class ProviderRouter:
    """Owns the credential table and rate windows; no module-level routing state."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        registry: Mapping[str, ProviderConfig] = PROVIDERS,
        rate_limiter: ProviderRateLimiter | None = None,
        alert_tracker: ProviderAlertTracker | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._registry = registry
        self.credentials = CredentialTable.from_settings(self._settings, registry)
        self.rate_limiter = rate_limiter or ProviderRateLimiter(
            enforce_token_budget=self._settings.ai_enforce_token_budget,
        )
        self._alerts = alert_tracker or ProviderAlertTracker()
        self._transport = transport

    # --- selection ---

    def configured_providers(self) -> list[str]:
        return self.credentials.configured_ids()

    def _require_configured(self) -> list[str]:
        available = self.configured_providers()
        if not available:
            raise ConfigurationError(no_providers_message(self._registry))
        return available

    def select_provider(self, task: str = "chat", provider: str | None = None) -> str:
        return self._select(self._require_configured(), task, provider)

    def _select(self, available: list[str], task: str, provider: str | None) -> str:
        if task not in TASK_KINDS:
            raise ValueError(f"Unknown task {task!r}; expected one of {TASK_KINDS}")

        if provider:
            name = provider.strip().lower()
            if name in available:
                return name
            logger.info("Requested provider %r is not configured; using task default", name)

        settings = self._settings
        if task == "analysis":
            if "groq" in available:
                preferred = "groq"
            elif "together" in available:
                preferred = "together"
            else:
                preferred = settings.document_analysis_provider
        elif task == "chat":
            preferred = settings.chat_provider
        else:
            preferred = settings.primary_ai_provider

        if preferred not in available:
            preferred = available[0]
        return preferred

    def candidate_order(self, preferred: str, available: list[str] | None = None) -> list[str]:
        """Ordered, de-duplicated list of providers to attempt for one request."""
        if available is None:
            available = self.configured_providers()
        candidates = [preferred]
        fallback = self._settings.fallback_ai_provider
        if fallback and fallback != preferred and fallback in available:
            candidates.append(fallback)
        candidates.extend(name for name in available if name not in candidates)
        return candidates

    # --- invocation ---

    def _provider(self, name: str) -> BaseProvider:
        return get_provider(
            self._registry[name],
            self.credentials.get(name),
            timeout_seconds=self._settings.ai_timeout_seconds,
            transport=self._transport,
        )

    async def _attempt(
        self,
        name: str,
        messages: list[ChatMessage],
        *,
        task: str,
        temperature: float,
        max_tokens: int | None,
    ) -> AIResponse:
        config = self._registry[name]
        if not self.rate_limiter.admit(name, config.rate_limit):
            raise RateLimitError(name)

        committed = False
        try:
            response = await self._provider(name).generate(
                messages,
                model=config.model_for(task),
                temperature=temperature,
                max_tokens=max_tokens,
            )
            if config.shape is ProviderShape.OPENAI_COMPATIBLE:
                self.rate_limiter.commit(name, response.usage.total_tokens)
                committed = True
            return response
        finally:
            if not committed:
                self.rate_limiter.release(name)

    async def generate_response(
        self,
        messages: Iterable[MessageLike],
        *,
        provider: str | None = None,
        task: str = "chat",
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AIResponse:
        """Return one normalized response, trying each configured provider at most once."""
        chat = _coerce_messages(messages)
        task = task or "chat"
        available = self._require_configured()
        preferred = self._select(available, task, provider)
        candidates = self.candidate_order(preferred, available)
        if temperature is None:
            temperature = self._settings.ai_default_temperature

        attempts: list[ProviderAttempt] = []
        for index, name in enumerate(candidates):
            if index:
                logger.info("Trying fallback provider: %s", name)
            try:
                return await self._attempt(
                    name,
                    chat,
                    task=task,
                    temperature=temperature,
                    max_tokens=max_tokens,
                )
            except RateLimitError as exc:
                logger.warning("Provider %s skipped: %s", name, exc)
                attempts.append(ProviderAttempt(name, str(exc)))
            except VendorRequestError as exc:
                logger.warning("Provider %s failed: %s", name, exc)
                self._alerts.record_failure(name, {"task": task, "status_code": exc.status_code})
                attempts.append(ProviderAttempt(name, str(exc)))

        logger.error("All AI providers failed task=%s tried=%s", task, [a.provider for a in attempts])
        raise AllProvidersFailedError(attempts)

    async def stream_response(
        self,
        messages: Iterable[MessageLike],
        *,
        provider: str | None = None,
        task: str = "chat",
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """Yield incremental chunks; the last chunk (and only that one) has ``done=True``."""
        chat = _coerce_messages(messages)
        task = task or "chat"
        available = self._require_configured()
        name = self._select(available, task, provider)
        config = self._registry[name]
        options = {"provider": provider, "task": task, "temperature": temperature, "max_tokens": max_tokens}

        if not config.supports_streaming:
            response = await self.generate_response(chat, **options)
            yield StreamChunk(content=response.content, done=True, model=response.model, provider=response.provider)
            return

        model = config.model_for(task)
        try:
            if not self.rate_limiter.admit(name, config.rate_limit):
                raise RateLimitError(name)
            committed = False
            try:
                stream = self._provider(name).stream(
                    chat,
                    model=model,
                    temperature=self._settings.ai_default_temperature if temperature is None else temperature,
                    max_tokens=max_tokens,
                )
                async with contextlib.aclosing(stream):
                    async for fragment in stream:
                        yield StreamChunk(content=fragment, done=False, model=model, provider=name)
                # Streams do not report usage.
                self.rate_limiter.commit(name, 0)
                committed = True
            finally:
                if not committed:
                    self.rate_limiter.release(name)
        except (RateLimitError, VendorRequestError) as exc:
            logger.warning("Streaming error with %s, falling back to non-streaming: %s", name, exc)
            response = await self.generate_response(chat, **options)
            yield StreamChunk(content=response.content, done=True, model=response.model, provider=response.provider)
            return

        yield StreamChunk(content="", done=True, model=model, provider=name)

    async def generate_stream_response(
        self,
        messages: Iterable[MessageLike],
        on_chunk: ChunkCallback,
        *,
        provider: str | None = None,
        task: str = "chat",
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> None:
        """Drive :meth:`stream_response`, handing every chunk to *on_chunk*."""
        async for chunk in self.stream_response(
            messages,
            provider=provider,
            task=task,
            temperature=temperature,
            max_tokens=max_tokens,
        ):
            result = on_chunk(chunk)
            if inspect.isawaitable(result):
                await result

    # --- introspection ---

    def get_provider_status(self) -> dict[str, ProviderStatus]:
        status: dict[str, ProviderStatus] = {}
        for key, config in self._registry.items():
            configured = self.credentials.is_configured(key)
            status[key] = ProviderStatus(
                name=config.name,
                configured=configured,
                available=configured and self.rate_limiter.check(key, config.rate_limit),
            )
        return status

    def get_recommended_providers(self) -> list[ProviderRecommendation]:
        return list(RECOMMENDED_PROVIDERS)


@lru_cache
def get_router() -> ProviderRouter:
    """Process-wide router built from the cached settings."""
    return ProviderRouter(get_settings())
