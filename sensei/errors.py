from __future__ import annotations

from typing import Any, Dict, Optional

DETAIL_LIMIT = 400


def _truncate(text: str, limit: int = DETAIL_LIMIT) -> str:
    text = text or ""
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "..."


class GenerationError(Exception):
    """Base for every failure that ends a /generate request.

    ``status_code`` is the HTTP status the request boundary answers with;
    ``detail`` is the full diagnostic text, surfaced as ``fullError``.
    """

    status_code = 500
    public_message = "Failed to generate code."

    def __init__(self, message: Optional[str] = None, *, detail: Optional[str] = None):
        super().__init__(message or self.public_message)
        self.detail = detail

    def to_payload(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": str(self)}
        if self.detail:
            body["fullError"] = self.detail
        return body


class InvalidRequestError(GenerationError):
    """Missing prompt or malformed body."""

    status_code = 400
    public_message = "Prompt is required."


class ConfigurationError(GenerationError):
    public_message = "Server configuration error: API Key missing."


class UpstreamError(GenerationError):
    public_message = "Failed to generate code from Gemini API."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status: Optional[int] = None,
        detail: Optional[str] = None,
        transient: bool = False,
    ):
        self.status = status
        self.transient = transient
        if message is None:
            message = self.public_message
            if status is not None:
                message += f" Status: {status}."
            if detail:
                message += f" Details: {_truncate(detail)}"
        super().__init__(message, detail=detail)


class UpstreamTimeout(UpstreamError):
    public_message = (
        "The AI model took too long to respond. "
        "Try a shorter or simpler prompt and generate again."
    )

    def __init__(self, detail: Optional[str] = None):
        super().__init__(self.public_message, detail=detail, transient=True)


class ParseError(GenerationError):
    public_message = "Could not extract code from the model response."
