"""Recover a JSON object from imperfect model output.

Models asked for "only JSON" still wrap it in markdown fences, add a
sentence before it, leave trailing commas, or emit typographic quotes. The
repair is a fixed sequence of small ``str -> str`` transforms followed by a
parse; if that parse fails, a second set of transforms is applied and the
text is parsed one more time.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable

from paperforge.errors import ResponseParseError

logger = logging.getLogger(__name__)

Transform = Callable[[str], str]

PARSE_ERROR_MESSAGE = (
    "Failed to parse AI response. Please try a different topic or word count."
)

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_TRAILING_COMMA_OBJ_RE = re.compile(r",\s*}")
_TRAILING_COMMA_ARR_RE = re.compile(r",\s*]")


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text)


def extract_outer_object(text: str) -> str:
    """Keep the span from the first ``{`` to the last ``}``, if there is one."""
    match = _OBJECT_RE.search(text)
    if match:
        return match.group().strip()
    return text.strip()


def strip_trailing_commas(text: str) -> str:
    text = _TRAILING_COMMA_OBJ_RE.sub("}", text)
    return _TRAILING_COMMA_ARR_RE.sub("]", text)


def normalize_smart_quotes(text: str) -> str:
    text = re.sub("[\u201c\u201d]", '"', text)
    return re.sub("[\u2018\u2019]", "'", text)


CLEANUP_PIPELINE: tuple[Transform, ...] = (
    strip_code_fences,
    extract_outer_object,
    strip_trailing_commas,
)

RELAXED_PIPELINE: tuple[Transform, ...] = (normalize_smart_quotes,)


def apply_pipeline(text: str, pipeline: tuple[Transform, ...]) -> str:
    for transform in pipeline:
        text = transform(text)
    return text


def parse_json_object(raw: str) -> dict[str, Any]:
    """Parse ``raw`` into a dict, raising :class:`ResponseParseError` if impossible."""
    text = apply_pipeline(raw, CLEANUP_PIPELINE)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as first_error:
        logger.warning("JSON parse failed (%s), retrying with relaxed cleanup", first_error)
        logger.debug("Raw text: %s", text[:1000])
        try:
            data = json.loads(apply_pipeline(text, RELAXED_PIPELINE))
        except json.JSONDecodeError as e:
            raise ResponseParseError(PARSE_ERROR_MESSAGE) from e

    if not isinstance(data, dict):
        raise ResponseParseError(PARSE_ERROR_MESSAGE)
    return data
