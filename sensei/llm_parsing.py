from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional

import jsonschema

from sensei.errors import ParseError
from sensei.schemas import GenerationResult

SECTIONS = ("html", "css", "js")

# The same shape is sent to Gemini as responseSchema in json mode.
CODE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "html": {"type": "string"},
        "css": {"type": "string"},
        "js": {"type": "string"},
    },
}

_VALIDATOR = jsonschema.Draft202012Validator(CODE_SCHEMA)


def _marker_re(tag: str) -> "re.Pattern[str]":
    # Markers must sit on their own (possibly indented) lines; inline mentions
    # such as "wrap it in HTML_START and HTML_END" are skipped.
    return re.compile(
        rf"^[^\S\n]*{tag}_START[^\S\n]*$(.*?)^[^\S\n]*{tag}_END[^\S\n]*$",
        re.DOTALL | re.MULTILINE,
    )


_MARKERS = {name: _marker_re(name.upper()) for name in SECTIONS}


def extract_marked_sections(text: str) -> GenerationResult:
    """Pull HTML/CSS/JS out of ``HTML_START ... HTML_END`` style blocks.

    The first block of each kind wins. A missing or unterminated block yields
    an empty string for that section; this never raises.
    """
    raw = text or ""
    found: Dict[str, str] = {}
    for name, pattern in _MARKERS.items():
        m = pattern.search(raw)
        found[name] = m.group(1).strip() if m else ""
    return GenerationResult(raw_text=raw, **found)


def _json_slice(text: str) -> Optional[str]:
    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last <= first:
        return None
    return text[first : last + 1]


def _schema_errors(obj: Any) -> List[str]:
    errors = []
    for err in _VALIDATOR.iter_errors(obj):
        loc = ".".join(str(p) for p in err.path) or "(root)"
        errors.append(f"{loc}: {err.message}")
    return errors


def extract_json_sections(text: str) -> GenerationResult:
    """Parse the object between the first ``{`` and the last ``}`` of ``text``.

    Raises ParseError when there is no object, it is not valid JSON, or a
    section is present but not a string. Absent sections become "".
    """
    raw = text or ""
    candidate = _json_slice(raw.strip())
    if candidate is None:
        raise ParseError(detail="No JSON object found in model response.")
    try:
        obj = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ParseError(detail=f"Invalid JSON in model response: {e}") from e

    errors = _schema_errors(obj)
    if errors:
        raise ParseError(detail="Model JSON did not match the expected shape: " + "; ".join(errors))

    return GenerationResult(
        raw_text=raw,
        **{name: (obj.get(name) or "").strip() for name in SECTIONS},
    )


def extract_sections(text: str, mode: str = "markers") -> GenerationResult:
    if mode == "json":
        return extract_json_sections(text)
    if mode == "markers":
        return extract_marked_sections(text)
    raise ValueError(f"unknown extraction mode: {mode!r}")
