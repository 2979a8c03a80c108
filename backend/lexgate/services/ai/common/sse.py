"""Shared helpers for Server-Sent Events handling."""

from __future__ import annotations

import json
from typing import Any, AsyncIterable, AsyncIterator, Dict

DONE_SENTINEL = "[DONE]"


def sse_event(data_obj: Dict[str, Any]) -> bytes:
    return f"data: {json.dumps(data_obj, ensure_ascii=False)}\n\n".encode("utf-8")


async def iter_sse_data(lines: AsyncIterable[str]) -> AsyncIterator[str]:
    """Yield the payload of each ``data:`` line until ``[DONE]`` or end of stream."""
    async for raw in lines:
        line = raw.strip()
        if not line.startswith("data:"):
            continue
        data = line[5:].strip()
        if data == DONE_SENTINEL:
            return
        if data:
            yield data


def delta_content(data: str) -> str:
    """Extract ``choices[0].delta.content`` from an OpenAI-style chunk, '' if absent or malformed."""
    try:
        parsed = json.loads(data)
    except ValueError:
        return ""
    if not isinstance(parsed, dict):
        return ""
    choices = parsed.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return ""
    delta = choices[0].get("delta") or {}
    content = delta.get("content") if isinstance(delta, dict) else None
    return content if isinstance(content, str) else ""


__all__ = ["DONE_SENTINEL", "sse_event", "iter_sse_data", "delta_content"]
