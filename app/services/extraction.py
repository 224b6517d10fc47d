"""
app/services/extraction.py – salvage candidate lists from raw LLM text.

Structured output is requested on every generation call, but models still
wrap JSON in fences, prefix it with prose, or ignore the schema entirely.
These helpers recover what they can; the normalizer fills any gaps.
"""
from __future__ import annotations

import json
import re
from typing import Any, Optional

from app.services.normalizer import LengthBand

# Quoted strings may miss the band by a few characters and still be worth keeping.
_LENGTH_TOLERANCE = 5

_LABELS: dict[str, str] = {
    "headlines": "headline",
    "descriptions": "description",
    "paths": "path",
}


def extract_json_object(text: str) -> Optional[Any]:
    """Try to salvage a JSON object from markdown-wrapped or prefixed text."""
    if not text:
        return None

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    # Strip ```json ... ``` fences
    fence_match = re.search(r"```(?:json)?\s*(\{.*?\}|\[.*?\])\s*```", text, re.DOTALL)
    if fence_match:
        try:
            return json.loads(fence_match.group(1))
        except json.JSONDecodeError:
            pass

    # Find the first { … } block and try to parse it
    brace_match = re.search(r"(\{.*\})", text, re.DOTALL)
    if brace_match:
        try:
            return json.loads(brace_match.group(1))
        except json.JSONDecodeError:
            pass

    return None


def extract_candidates(text: str, field: str, band: LengthBand) -> list[str]:
    """
    Pull the `field` list (headlines, descriptions, paths) out of model output.

    Order of attempts:
      1. JSON object with a list under `field`.
      2. Quoted strings whose length is within a few characters of the band.
      3. Labelled lines such as ``Headline 3: ...``.
    Returns an empty list when nothing usable is found.
    """
    if not text:
        return []

    parsed = extract_json_object(text)
    if isinstance(parsed, dict):
        values = parsed.get(field)
        if isinstance(values, list):
            return [v for v in values if isinstance(v, str)]
    elif isinstance(parsed, list) and all(isinstance(v, str) for v in parsed):
        return list(parsed)

    low = max(band.min_length - _LENGTH_TOLERANCE, 1)
    high = band.max_length + _LENGTH_TOLERANCE
    quoted = [
        s
        for s in re.findall(r'"((?:[^"\\\n]|\\.)*)"', text)
        if low <= len(s) <= high
    ]
    if quoted:
        return quoted

    label = _LABELS.get(field, field.rstrip("s"))
    labelled = re.findall(
        rf"^\s*(?:[-*]\s*)?{label}\s*#?\d*\s*[:.)\-]\s*(.+?)\s*$",
        text,
        re.IGNORECASE | re.MULTILINE,
    )
    return [line.strip().strip('"').strip() for line in labelled if line.strip()]
