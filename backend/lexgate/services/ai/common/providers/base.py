"""Abstract base and normalized result types for all AI providers."""

from __future__ import annotations

import abc
import contextlib
from dataclasses import dataclass, field
from typing import AsyncIterator, Literal, Sequence

import httpx
from pydantic import BaseModel

from ..errors import VendorRequestError
from ..registry import ProviderConfig


class ChatMessage(BaseModel):
    """One conversation turn, passed to the vendor unmodified."""

    role: Literal["system", "user", "assistant"]
    content: str


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass(frozen=True)
class AIResponse:
    """Immutable result returned to callers regardless of vendor."""

    content: str
    provider: str
    model: str
    usage: TokenUsage = field(default_factory=TokenUsage)


@dataclass(frozen=True)
class StreamChunk:
    content: str
    done: bool
    model: str
    provider: str


class BaseProvider(abc.ABC):
    """Contract that every AI provider must implement."""

    def __init__(
        self,
        config: ProviderConfig,
        api_key: str,
        *,
        timeout_seconds: float | None = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._api_key = api_key
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def name(self) -> str:
        return self.config.id

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    @contextlib.asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        async with httpx.AsyncClient(timeout=self._timeout_seconds, transport=self._transport) as client:
            yield client

    def _error_from_status(self, resp: httpx.Response) -> VendorRequestError:
        return VendorRequestError(
            self.name,
            f"{self.name} API error: {resp.status_code} - {resp.text[:500]}",
            status_code=resp.status_code,
        )

    @abc.abstractmethod
    async def generate(
        self,
        messages: Sequence[ChatMessage],
        *,
        model: str,
        temperature: float,
        max_tokens: int | None = None,
    ) -> AIResponse:
        """Send *messages* and return an ``AIResponse``."""

    def stream(
        self,
        messages: Sequence[ChatMessage],
        *,
        model: str,
        temperature: float,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        """Yield incremental content fragments. Only for streaming-capable vendors."""
        raise NotImplementedError(f"{self.name} does not support streaming")
