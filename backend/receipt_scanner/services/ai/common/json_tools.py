"""JSON object extraction from free-form LLM responses."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

# Greedy: first "{" through last "}", across newlines.
_OBJECT_SPAN = re.compile(r"\{[\s\S]*\}")


def find_json_span(text: str) -> str | None:
    """Return the greedy ``{...}`` span of *text*, or ``None``."""
    if not text:
        return None
    match = _OBJECT_SPAN.search(text)
    return match.group(0) if match else None


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Decode the greedy ``{...}`` span of *text* as a JSON object.

    Markdown fences and prose around the object are ignored because only the
    span between the outermost braces is decoded. Returns ``None`` when there
    is no span or it does not decode to an object.
    """
    span = find_json_span(text)
    if span is None:
        return None

    try:
        decoded = json.loads(span)
    except (json.JSONDecodeError, ValueError) as exc:
        logger.debug("JSON span did not decode: %s", exc)
        return None

    if not isinstance(decoded, dict):
        return None
    return decoded
