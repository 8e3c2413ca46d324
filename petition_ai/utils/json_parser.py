"""Tolerant JSON parsing for language-model output."""

import json
import re
from typing import Any, Dict, List, Union

from petition_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    return _FENCE_RE.sub("", text.strip()).strip()


def parse_json_safely(text: str) -> Union[Dict[str, Any], List[Any], None]:
    """Parse JSON from model output, handling common formatting issues.

    Handles:
    - Markdown code blocks (```json ... ```)
    - Prose before or after the JSON payload
    - Concatenated JSON objects (``{...}\\n{...}``), which are merged

    Args:
        text: The text containing JSON

    Returns:
        Parsed JSON value or None if nothing parseable was found
    """
    if not text:
        return None

    cleaned = strip_code_fences(text)

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        LOGGER.debug(f"Initial JSON parse failed: {e}, attempting repairs...")
        first_error = e

    values = _decode_all(cleaned)
    if values:
        if len(values) > 1:
            LOGGER.info(f"Parsed {len(values)} concatenated JSON values, merging")
        return _merge_json_values(values)

    LOGGER.warning(f"Failed to parse JSON: {first_error}")
    return None


def _decode_all(text: str) -> List[Any]:
    """Decode every top-level JSON object or array embedded in ``text``."""
    decoder = json.JSONDecoder()
    results = []
    idx = 0

    while idx < len(text):
        starts = [pos for pos in (text.find("{", idx), text.find("[", idx)) if pos != -1]
        if not starts:
            break
        start = min(starts)
        try:
            value, end = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            idx = start + 1
            continue
        results.append(value)
        idx = end

    return results


def _merge_json_values(values: List[Any]) -> Union[Dict[str, Any], List[Any]]:
    """Merge dicts key by key (lists concatenate) or flatten lists."""
    if len(values) == 1:
        return values[0]

    if all(isinstance(v, dict) for v in values):
        merged: Dict[str, Any] = {}
        for obj in values:
            for key, value in obj.items():
                existing = merged.get(key)
                if isinstance(existing, list) and isinstance(value, list):
                    merged[key] = existing + value
                elif isinstance(existing, dict) and isinstance(value, dict):
                    merged[key] = {**existing, **value}
                else:
                    merged[key] = value
        return merged

    if all(isinstance(v, list) for v in values):
        return [item for v in values for item in v]

    return values
