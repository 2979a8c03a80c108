"""OpenAI-compatible chat-completions provider (Groq, Together, DeepSeek, Cerebras, Fireworks)."""

from __future__ import annotations

import logging
from typing import AsyncIterator, Sequence

import httpx

from ..errors import VendorRequestError
from ..sse import delta_content, iter_sse_data
from .base import AIResponse, BaseProvider, ChatMessage, TokenUsage

logger = logging.getLogger(__name__)


def _token_count(value) -> int:
    return value if isinstance(value, int) and not isinstance(value, bool) and value > 0 else 0


class OpenAICompatibleProvider(BaseProvider):
    def _url(self) -> str:
        return f"{self.config.base_url.rstrip('/')}/chat/completions"

    def _body(
        self,
        messages: Sequence[ChatMessage],
        *,
        model: str,
        temperature: float,
        max_tokens: int | None,
        stream: bool,
    ) -> dict:
        return {
            "model": model,
            "messages": [m.model_dump() for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens or self.config.max_tokens,
            "stream": stream,
        }

    async def generate(
        self,
        messages: Sequence[ChatMessage],
        *,
        model: str,
        temperature: float,
        max_tokens: int | None = None,
    ) -> AIResponse:
        body = self._body(messages, model=model, temperature=temperature, max_tokens=max_tokens, stream=False)
        try:
            async with self._client() as client:
                resp = await client.post(self._url(), headers=self._headers(), json=body)
                if resp.status_code >= 400:
                    raise self._error_from_status(resp)
                data = resp.json()
        except (httpx.HTTPError, httpx.StreamError) as exc:
            raise VendorRequestError(self.name, f"{self.name} request failed: {exc}") from exc
        except ValueError as exc:
            raise VendorRequestError(self.name, f"{self.name} returned invalid JSON") from exc

        content, usage = self._parse_completion(data)
        return AIResponse(content=content, provider=self.name, model=model, usage=usage)

    def _parse_completion(self, data) -> tuple[str, TokenUsage]:
        """Pull ``choices[0].message.content`` and ``usage`` out of a completion body."""
        unexpected = VendorRequestError(self.name, f"{self.name} returned an unexpected payload")
        if not isinstance(data, dict):
            raise unexpected

        choices = data.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            raise unexpected
        message = choices[0].get("message")
        if not isinstance(message, dict):
            raise unexpected
        content = message.get("content")
        if content is not None and not isinstance(content, str):
            raise unexpected

        usage = data.get("usage")
        if usage is None:
            usage = {}
        elif not isinstance(usage, dict):
            raise unexpected

        return content or "", TokenUsage(
            prompt_tokens=_token_count(usage.get("prompt_tokens")),
            completion_tokens=_token_count(usage.get("completion_tokens")),
            total_tokens=_token_count(usage.get("total_tokens")),
        )

    async def stream(
        self,
        messages: Sequence[ChatMessage],
        *,
        model: str,
        temperature: float,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        body = self._body(messages, model=model, temperature=temperature, max_tokens=max_tokens, stream=True)
        try:
            async with self._client() as client:
                async with client.stream("POST", self._url(), headers=self._headers(), json=body) as resp:
                    if resp.status_code >= 400:
                        await resp.aread()
                        raise self._error_from_status(resp)
                    async for data in iter_sse_data(resp.aiter_lines()):
                        content = delta_content(data)
                        if content:
                            yield content
        except (httpx.HTTPError, httpx.StreamError) as exc:
            raise VendorRequestError(self.name, f"{self.name} stream failed: {exc}") from exc
