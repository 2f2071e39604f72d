from __future__ import annotations

import copy
from typing import Any, Dict

from sensei.llm_parsing import CODE_SCHEMA

_RULES = """You are an expert frontend developer who builds modern, responsive UI with HTML, CSS and vanilla JavaScript.
Build only the frontend for the request below, even if it mentions a backend or a full-stack app.
- The HTML is inserted into the <body> of a preview page: no <!DOCTYPE>, <html>, <head> or <body> tags.
- Use Tailwind utility classes when the request asks for Tailwind or a modern look; otherwise write standard CSS.
- JavaScript must be plain ES6+ without frameworks and must only reference elements present in the HTML.
- If a section is not needed, leave it empty."""


def build_marker_prompt(prompt: str) -> str:
    return f"""{_RULES}
Answer with exactly three blocks, each marker on its own line, and nothing outside them.

User request: "{prompt}"

HTML_START
HTML_END

CSS_START
CSS_END

JS_START
JS_END
"""


def build_json_prompt(prompt: str) -> str:
    return f"""{_RULES}
Answer with one JSON object with the string fields "html", "css" and "js". No markdown, no commentary.

User request: "{prompt}"
"""


def build_prompt(prompt: str, mode: str) -> str:
    if mode == "json":
        return build_json_prompt(prompt)
    return build_marker_prompt(prompt)


def response_schema() -> Dict[str, Any]:
    """Gemini responseSchema for json mode (OpenAPI subset: uppercase types, explicit required)."""
    schema = copy.deepcopy(CODE_SCHEMA)
    schema["type"] = "OBJECT"
    for prop in schema["properties"].values():
        prop["type"] = "STRING"
    schema["required"] = ["html", "css", "js"]
    return schema
