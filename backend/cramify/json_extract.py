"""
JSON extraction for Gemini responses.

Gemini is asked for "JSON only" but regularly answers with code fences, a
sentence of prose around the object, or string values holding raw LaTeX and
C++ with unescaped backslashes. ``extract_json`` pulls the outermost object
out of the text and walks a repair ladder, strictest first:

1. ``json.loads`` on the candidate as-is
2. ``json.loads`` after doubling backslashes that do not start a valid escape
3. ``json_repair.repair_json`` (trailing commas, unquoted keys, missing brackets)

The permissive rungs can rewrite content, so they only run when the stricter
ones fail.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict

from json_repair import repair_json

from .errors import MalformedResponse

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)
# A valid escape is consumed as a pair so "\\q" keeps its escaped backslash.
_BACKSLASH = re.compile(r'\\(["\\/bfnrtu])|\\')


def strip_code_fences(text: str) -> str:
    return _CODE_FENCE.sub("", text or "").strip()


def fix_invalid_backslashes(json_text: str) -> str:
    """Double every backslash that does not begin a JSON escape sequence."""

    def _replace(match: "re.Match[str]") -> str:
        if match.group(1) is not None:
            return match.group(0)
        return "\\\\"

    return _BACKSLASH.sub(_replace, json_text)


def find_json_candidate(text: str) -> str:
    """Return the substring from the first ``{`` to the last ``}`` inclusive."""
    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last == -1 or last < first:
        raise MalformedResponse("no JSON object found")
    return text[first : last + 1]


def extract_json(raw_text: str) -> Dict[str, Any]:
    """
    Parse the JSON object embedded in a model response.

    Args:
        raw_text: Text returned by the generation call

    Returns:
        Dict[str, Any]: The parsed object

    Raises:
        MalformedResponse: If no object boundaries exist or every repair fails
    """
    candidate = find_json_candidate(strip_code_fences(raw_text))

    try:
        return _as_object(json.loads(candidate))
    except json.JSONDecodeError as e:
        logger.debug("Strict JSON parse failed: %s", e)

    try:
        return _as_object(json.loads(fix_invalid_backslashes(candidate)))
    except json.JSONDecodeError as e:
        logger.debug("JSON parse after backslash fix failed: %s", e)

    try:
        repaired = repair_json(candidate)
        return _as_object(json.loads(repaired))
    except (json.JSONDecodeError, TypeError, ValueError) as e:
        raise MalformedResponse(f"AI response was not valid JSON: {e}") from e


def _as_object(value: Any) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise MalformedResponse("AI response JSON was not an object")
    return value
