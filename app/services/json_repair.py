"""Repair of loosely formatted JSON answers from the chat model."""

import json
import logging
from typing import Any

from app.core.errors import JsonExtractionError

logger = logging.getLogger(__name__)


def _strip_fences(text: str) -> str:
    return text.replace("```json", "").replace("```", "").strip()


def _unescape(text: str) -> str:
    return text.replace("\\n", "\n").replace('\\"', '"').replace("\\t", "\t")


def _slice_json(text: str) -> str:
    """Return the text from the first ``{``/``[`` to the last ``}``/``]``."""
    starts = [pos for pos in (text.find("{"), text.find("[")) if pos != -1]
    if not starts:
        raise JsonExtractionError("Could not find the start of the JSON in the response")

    end = max(text.rfind("}"), text.rfind("]"))
    start = min(starts)
    if end < start:
        raise JsonExtractionError("Could not find the end of the JSON in the response")

    return text[start : end + 1]


def _is_valid_json(text: str) -> bool:
    try:
        json.loads(text)
    except json.JSONDecodeError:
        return False
    return True


def clean_json_response(response: str) -> str:
    """Extract the JSON object or array embedded in a model answer.

    Markdown code fences are removed and everything before the first
    ``{``/``[`` and after the last ``}``/``]`` is dropped. Valid JSON is
    returned as found, escapes inside its strings included. Only when the
    slice does not decode are literal ``\\n``, ``\\"`` and ``\\t`` escapes
    turned into the real characters. An answer that is a single JSON
    string literal is decoded first.

    Args:
        response: Raw assistant message.

    Returns:
        The JSON text, ready for ``json.loads``.

    Raises:
        JsonExtractionError: If no JSON start or end character exists.
    """
    stripped = _strip_fences(response)

    if len(stripped) >= 2 and stripped[0] == stripped[-1] == '"':
        try:
            decoded = json.loads(stripped)
        except json.JSONDecodeError:
            decoded = None
        if isinstance(decoded, str):
            return clean_json_response(decoded)

    candidate = _slice_json(stripped)
    if _is_valid_json(candidate):
        return candidate

    return _slice_json(_unescape(stripped))


def parse_json_response(response: str) -> Any:
    """Clean a model answer and decode it.

    Raises:
        JsonExtractionError: If no JSON can be located.
        json.JSONDecodeError: If the located text is not valid JSON.
    """
    cleaned = clean_json_response(response)
    logger.debug(f"Cleaned JSON response: {cleaned[:200]}")
    return json.loads(cleaned)
