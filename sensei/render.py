from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html", "xml"]),
    enable_async=False,
)

_CLOSE_TAG_RE = re.compile(r"</(script|style)", re.IGNORECASE)


def _guard(code: Optional[str]) -> str:
    # A literal </script> or </style> would end the wrapping element early.
    return _CLOSE_TAG_RE.sub(lambda m: "<\\/" + m.group(1), code or "")


def render_preview(html: Optional[str], css: Optional[str] = "", js: Optional[str] = "") -> str:
    """
    Build the standalone document shown in the preview iframe.
    Generated JS runs inside try/catch so a broken snippet reports its error
    in the page instead of leaving it blank.
    """
    html = html or ""
    return _env.get_template("preview.html").render(
        has_html=bool(html.strip()),
        html=html,
        css=_guard(css),
        js=_guard(js),
    )


SUGGESTIONS = (
    "build a calculator",
    "build a tic tac toe game",
    "create a responsive navigation bar with Tailwind CSS",
    "generate a simple HTML form with validation in JS",
)


def render_index(title: str = "Ask SenSei") -> str:
    return _env.get_template("index.html").render(title=title, suggestions=SUGGESTIONS)
