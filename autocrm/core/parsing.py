"""
LLM Output Parsing
==================

Helpers for pulling structured JSON out of free-form model replies.

Models asked for "JSON only" still occasionally wrap the payload in markdown
fences, prepend a sentence, or nest it under an ``output`` key. These helpers
normalize all of those into the parsed object.
"""

import json
from typing import Any


def _strip_fences(text: str) -> str:
    if "```json" in text:
        return text.split("```json")[1].split("```")[0].strip()
    if "```" in text:
        return text.split("```")[1].split("```")[0].strip()
    return text


def _outermost_block(text: str) -> str:
    """Slice from the first opening bracket to the matching last closing one."""
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return text
    start = min(starts)
    closer = "}" if text[start] == "{" else "]"
    end = text.rfind(closer)
    if end <= start:
        return text
    return text[start:end + 1]


def extract_json(text: Any) -> Any:
    """
    Parse the JSON payload contained in a model reply.

    Args:
        text: Raw completion content

    Returns:
        The decoded JSON value (dict or list)

    Raises:
        ValueError: If no JSON document can be recovered
    """
    if not isinstance(text, str) or not text.strip():
        raise ValueError("Empty model output")

    candidate = _strip_fences(text.strip())
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        try:
            parsed = json.loads(_outermost_block(candidate))
        except json.JSONDecodeError as e:
            raise ValueError(f"Model output is not valid JSON: {e}") from e

    # Some chains wrap the real payload: {"output": "..."}
    if isinstance(parsed, dict) and set(parsed.keys()) == {"output"}:
        inner = parsed["output"]
        if isinstance(inner, str):
            return extract_json(inner)
        return inner

    return parsed
