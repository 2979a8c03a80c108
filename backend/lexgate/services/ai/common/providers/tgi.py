"""Text-generation-inference style provider (Hugging Face Inference API)."""

from __future__ import annotations

import logging
from typing import Sequence

import httpx

from ..errors import VendorRequestError
from .base import AIResponse, BaseProvider, ChatMessage, TokenUsage

logger = logging.getLogger(__name__)


class TextGenerationInferenceProvider(BaseProvider):
    async def generate(
        self,
        messages: Sequence[ChatMessage],
        *,
        model: str,
        temperature: float,
        max_tokens: int | None = None,
    ) -> AIResponse:
        # Only the latest turn is sent; this API has no notion of roles.
        body = {
            "inputs": messages[-1].content,
            "parameters": {
                "temperature": temperature,
                "max_new_tokens": max_tokens or self.config.default_max_new_tokens,
            },
        }
        url = f"{self.config.base_url.rstrip('/')}/{model}"
        try:
            async with self._client() as client:
                resp = await client.post(url, headers=self._headers(), json=body)
                if resp.status_code >= 400:
                    raise self._error_from_status(resp)
                data = resp.json()
        except (httpx.HTTPError, httpx.StreamError) as exc:
            raise VendorRequestError(self.name, f"{self.name} request failed: {exc}") from exc
        except ValueError as exc:
            raise VendorRequestError(self.name, f"{self.name} returned invalid JSON") from exc

        if isinstance(data, list):
            first = data[0] if data else {}
            text = first.get("generated_text", "") if isinstance(first, dict) else ""
        elif isinstance(data, dict):
            text = data.get("generated_text", "")
        else:
            text = ""

        return AIResponse(
            content=text if isinstance(text, str) else "",
            provider=self.name,
            model=model,
            usage=TokenUsage(),
        )
