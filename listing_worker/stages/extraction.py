"""Best-effort structured-data extraction from stage output."""

import json
from collections.abc import Iterator
from typing import Any

from listing_worker.stages.models import RawTextPayload, StagePayload, StructuredPayload

RAW_TEXT_KEY = "rawText"


def extract(payload: StagePayload) -> dict[str, Any]:
    """Turn a stage payload into a dict. Never raises.

    Text is tried as a whole JSON document first, then the first balanced
    {...} block inside it. Text that yields no object is kept under the
    "rawText" key so later stages can still mine it.
    """
    if isinstance(payload, StructuredPayload):
        return payload.data
    text = payload.text if isinstance(payload, RawTextPayload) else str(payload)

    direct = _try_load_dict(_strip_code_fences(text))
    if direct is not None:
        return direct

    for candidate in _balanced_objects(text):
        parsed = _try_load_dict(candidate)
        if parsed is not None:
            return parsed

    return {RAW_TEXT_KEY: text}


def _strip_code_fences(raw: str) -> str:
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        lines = cleaned.splitlines()
        if lines and lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        cleaned = "\n".join(lines)
    return cleaned


def _try_load_dict(raw: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, RecursionError):
        return None
    if not isinstance(parsed, dict):
        return None
    return parsed


def _balanced_objects(text: str) -> Iterator[str]:
    """Yield each balanced {...} substring, scanning left to right.

    Braces inside JSON string literals are ignored.
    """
    start = text.find("{")
    while start != -1:
        end = _matching_brace(text, start)
        if end is not None:
            yield text[start : end + 1]
        start = text.find("{", start + 1)


def _matching_brace(text: str, start: int) -> int | None:
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return None
