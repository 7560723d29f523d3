"""Lenient JSON parsing for model replies."""

import json
import re
from typing import Any, Dict, Optional

_FENCE_RE = re.compile(r"^```(?:json)?|```$", flags=re.IGNORECASE | re.MULTILINE)
_OBJECT_RE = re.compile(r"\{.*\}", re.S)


def strip_code_fences(s: str) -> str:
    s = (s or "").strip()
    return _FENCE_RE.sub("", s).strip()


def extract_json_object(s: str) -> Optional[Dict[str, Any]]:
    """Parse the largest ``{...}`` span embedded in ``s``, or None."""
    m = _OBJECT_RE.search(s or "")
    if not m:
        return None
    try:
        data = json.loads(m.group(0))
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def parse_json_object(s: str) -> Optional[Dict[str, Any]]:
    """Strict parse, then the embedded-object fallback. Returns None when both fail."""
    try:
        data = json.loads(s)
        if isinstance(data, dict):
            return data
    except (TypeError, ValueError):
        pass
    return extract_json_object(s)


def repair_json_object(s: str) -> Optional[Dict[str, Any]]:
    """Parse a JSON object from a model reply, fixing common formatting issues."""
    cleaned = strip_code_fences(s)
    data = parse_json_object(cleaned)
    if data is not None:
        return data

    # remove trailing commas before } or ]
    cleaned = re.sub(r",\s*([}\]])", r"\1", cleaned)
    return parse_json_object(cleaned)
