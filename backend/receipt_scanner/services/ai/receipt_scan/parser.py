"""Two-tier parsing of a vision model's receipt description.

Tier 1 decodes the JSON object the prompt asks for. Tier 2 runs only when no
object decodes, and picks vendor, date and total out of labelled lines.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from ..common.json_tools import extract_json_object
from .contracts import ExtractionResult, ExtractionTier

logger = logging.getLogger(__name__)

# Leading bullets / markdown emphasis are tolerated before and after the label.
_PREFIX = r"^[ \t>*#\-•]*"
_SUFFIX = r"[ \t*]*:[ \t*]*"

_FALLBACK_PATTERNS: dict[str, re.Pattern[str]] = {
    "vendor": re.compile(_PREFIX + r"(?:vendor|store)" + _SUFFIX + r"(.+?)[ \t*]*$", re.IGNORECASE | re.MULTILINE),
    "date": re.compile(_PREFIX + r"date" + _SUFFIX + r"(.+?)[ \t*]*$", re.IGNORECASE | re.MULTILINE),
    "total": re.compile(_PREFIX + r"total" + _SUFFIX + r"[^\d\n]{0,3}?(\d[\d,]*(?:\.\d+)?)", re.IGNORECASE | re.MULTILINE),
}


def parse_response(raw_text: str) -> ExtractionResult:
    """Turn *raw_text* into candidate fields. Never raises."""
    text = raw_text or ""

    structured = extract_json_object(text)
    if structured is not None:
        logger.info("Receipt response parsed as JSON (%d keys)", len(structured))
        return ExtractionResult(tier=ExtractionTier.STRUCTURED, raw_text=text, fields=structured)

    logger.debug("No decodable JSON object in response; using labelled-line fallback")
    fields = _match_labelled_lines(text)
    if fields:
        logger.info("Receipt response parsed by fallback (%s)", ", ".join(sorted(fields)))
        return ExtractionResult(tier=ExtractionTier.FALLBACK, raw_text=text, fields=fields)

    logger.info("Receipt response yielded no fields")
    return ExtractionResult(tier=ExtractionTier.EMPTY, raw_text=text)


def _match_labelled_lines(text: str) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for key, pattern in _FALLBACK_PATTERNS.items():
        match = pattern.search(text)
        if match:
            value = match.group(1).strip()
            if value:
                fields[key] = value
    return fields
