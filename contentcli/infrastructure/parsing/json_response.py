"""Extracts JSON payloads from free-form model output.

Models often wrap JSON in markdown fences or surround it with prose; this
module recovers the payload or returns None.
"""

import json
import logging
import re
from typing import Any, Optional

logger = logging.getLogger(__name__)

CODE_BLOCK_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")
CLOSING_BRACKETS = {"{": "}", "[": "]"}


def _outermost_span(text: str) -> Optional[str]:
    """Slice from the first opening bracket to the last matching closing one."""
    openings = [index for index in (text.find("{"), text.find("[")) if index != -1]
    if not openings:
        return None
    start = min(openings)
    end = text.rfind(CLOSING_BRACKETS[text[start]])
    if end < start:
        return None
    return text[start:end + 1]


def parse_json_response(text: Any) -> Optional[Any]:
    """Parses JSON out of a model response.

    A fenced code block is unwrapped first. If that is not JSON by itself,
    the outermost ``{...}`` or ``[...]`` is taken, whichever opens first.

    Returns:
        The decoded value, or None if the input is empty, not a string or
        not valid JSON.
    """
    if not text or not isinstance(text, str):
        return None

    candidate = text.strip()
    block = CODE_BLOCK_PATTERN.search(candidate)
    if block:
        candidate = block.group(1).strip()

    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        pass

    span = _outermost_span(candidate)
    if span is None:
        logger.debug(f"No JSON object or array found in response ({len(text)} chars)")
        return None
    try:
        return json.loads(span)
    except json.JSONDecodeError as e:
        logger.debug(f"Could not decode JSON from response ({len(text)} chars): {e}")
        return None
