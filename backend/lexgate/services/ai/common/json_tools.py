"""Tolerant JSON extraction from LLM responses (code fences, prose around the payload)."""

from __future__ import annotations

import json
import logging
import re

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*")
_CLOSERS = {"{": "}", "[": "]"}


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences such as ```json ... ```."""
    return _FENCE_RE.sub("", text or "").strip()


def _balanced_end(text: str, start: int) -> int | None:
    """Index just past the bracket that closes ``text[start]``, ignoring brackets inside strings."""
    opener = text[start]
    closer = _CLOSERS[opener]
    depth = 0
    in_string = escaped = False

    for pos in range(start, len(text)):
        ch = text[pos]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return pos + 1
    return None


def _loads_at(text: str, start: int) -> dict | list | None:
    end = _balanced_end(text, start)
    if end is None:
        return None
    try:
        return json.loads(text[start:end])
    except ValueError:
        return None


def extract_json(text: str) -> dict | list | None:
    """Return the first valid JSON object or array found in *text*.

    The whole fence-stripped reply is tried first; after that every ``{`` or
    ``[`` is tried as the start of a bracket-balanced payload. ``None`` when
    nothing parses.
    """
    if not text or not text.strip():
        return None

    body = strip_code_fences(text)
    try:
        return json.loads(body)
    except ValueError:
        pass

    for pos, ch in enumerate(body):
        if ch in _CLOSERS:
            parsed = _loads_at(body, pos)
            if parsed is not None:
                return parsed
    logger.debug("No JSON payload found in %d chars of model output", len(body))
    return None


def extract_json_object(text: str) -> dict | None:
    parsed = extract_json(text)
    return parsed if isinstance(parsed, dict) else None


def extract_json_array(text: str) -> list | None:
    """Return the first JSON array in *text*, skipping brackets that do not parse."""
    body = strip_code_fences(text)
    pos = body.find("[")
    while pos != -1:
        parsed = _loads_at(body, pos)
        if isinstance(parsed, list):
            return parsed
        pos = body.find("[", pos + 1)
    return None


def extract_string_list(text: str) -> list[str] | None:
    """Return the first JSON array in *text* as a list of non-empty strings."""
    items = extract_json_array(text)
    if items is None:
        return None
    return [str(item).strip() for item in items if str(item).strip()]
