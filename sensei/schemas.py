from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


class GenerateRequest(BaseModel):
    # Optional here so a missing prompt becomes our 400, not a framework 422
    prompt: Optional[str] = Field(default=None, description="Natural-language description of the UI to build")


class GenerationResult(BaseModel):
    html: str = ""
    css: str = ""
    js: str = ""
    raw_text: str = ""

    @field_validator("html", "css", "js", "raw_text", mode="before")
    @classmethod
    def _never_none(cls, v: Any) -> Any:
        return "" if v is None else v

    def is_empty(self) -> bool:
        return not (self.html or self.css or self.js)

    def to_response(self) -> Dict[str, str]:
        """Wire shape of a successful /generate call."""
        return {"html": self.html, "css": self.css, "js": self.js, "text": self.raw_text}


class PreviewRequest(BaseModel):
    html: Optional[str] = ""
    css: Optional[str] = ""
    js: Optional[str] = ""
