"""Extract JSON payloads from free-form LLM responses.

Models are asked for bare JSON but routinely wrap it in markdown fences or
add a sentence of preamble.  These helpers strip the fence, locate the
outermost brace (or bracket) pair and parse what is inside.  Anything
else raises ``ValueError`` so callers can switch to their fallback.
"""

from __future__ import annotations

import json
import re
from typing import Any

_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)


def _strip_fence(response: str) -> str:
    text = response.strip()
    fence_match = _JSON_FENCE_RE.search(text)
    if fence_match:
        text = fence_match.group(1).strip()
    return text


def _slice_between(text: str, opener: str, closer: str) -> str:
    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end == -1 or end < start:
        raise ValueError(f"No {opener}...{closer} block found in LLM response")
    return text[start : end + 1]


def extract_json_object(response: str) -> dict[str, Any]:
    """Return the JSON object embedded in *response*.

    Parameters
    ----------
    response:
        Raw LLM response text.

    Returns
    -------
    dict
        The parsed object.

    Raises
    ------
    ValueError
        If no object can be located, the block is not valid JSON, or the
        decoded value is not a JSON object.  ``json.JSONDecodeError`` is a
        ``ValueError`` subclass so a single ``except ValueError`` covers all.
    """
    if not response:
        raise ValueError("Empty LLM response")
    payload = json.loads(_slice_between(_strip_fence(response), "{", "}"))
    if not isinstance(payload, dict):
        raise ValueError("LLM response JSON is not an object")
    return payload


def extract_json_array(response: str) -> list[Any]:
    """Return the JSON array embedded in *response* (same rules as objects)."""
    if not response:
        raise ValueError("Empty LLM response")
    payload = json.loads(_slice_between(_strip_fence(response), "[", "]"))
    if not isinstance(payload, list):
        raise ValueError("LLM response JSON is not an array")
    return payload
