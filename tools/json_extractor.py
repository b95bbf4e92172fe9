# tools/json_extractor.py
"""
VitaFlow — JSON Extraction
==========================
Generated text may wrap its JSON payload in markdown fences or prose.
`extract_json` tries, in order:

  1. direct json.loads
  2. a fenced ```json ... ``` block
  3. the first balanced {...} span (string-aware)
  4. the slice between the first '{' and the last '}'
  5. the slice between the first '[' and the last ']'

and raises MalformedResponse when none of them parse.
"""

import json
import re
from typing import Any, Optional

from tools.errors import MalformedResponse

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)\s*```", re.DOTALL)


def _try_load(candidate: Optional[str]) -> Any:
    if not candidate:
        return None
    try:
        return json.loads(candidate)
    except (json.JSONDecodeError, ValueError):
        return None


def first_balanced_object(text: str) -> Optional[str]:
    """Return the first {...} span whose braces balance, ignoring braces in strings."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        start = text.find("{", start + 1)
    return None


def _slice_between(text: str, opener: str, closer: str) -> Optional[str]:
    first = text.find(opener)
    last = text.rfind(closer)
    if first == -1 or last <= first:
        return None
    return text[first:last + 1]


def extract_json(text: str) -> Any:
    """
    Pull a JSON value out of generated text.

    Raises:
        MalformedResponse: if no strategy yields valid JSON.
    """
    raw = (text or "").strip()

    direct = (
        lambda: raw,
        lambda: next((m.group(1) for m in _FENCE_RE.finditer(raw)), None),
    )
    objects = (
        lambda: first_balanced_object(raw),
        lambda: _slice_between(raw, "{", "}"),
    )
    arrays = (lambda: _slice_between(raw, "[", "]"),)

    # arrays first when '[' opens the payload
    first_brace, first_bracket = raw.find("{"), raw.find("[")
    if first_bracket != -1 and (first_brace == -1 or first_bracket < first_brace):
        strategies = direct + arrays + objects
    else:
        strategies = direct + objects + arrays
    for strategy in strategies:
        parsed = _try_load(strategy())
        if parsed is not None:
            return parsed

    raise MalformedResponse(raw)


def extract_json_object(text: str) -> dict:
    """Like extract_json, but the payload must be a JSON object."""
    parsed = extract_json(text)
    if not isinstance(parsed, dict):
        raw = (text or "").strip()
        obj = _try_load(first_balanced_object(raw))
        if isinstance(obj, dict):
            return obj
        raise MalformedResponse(raw)
    return parsed


__all__ = ["extract_json", "extract_json_object", "first_balanced_object"]
