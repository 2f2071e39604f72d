"""Gemini generateContent over plain HTTPS.

Every failure surfaces as a GenerationError subclass; the HTTP layer decides
how it is shown to the user.
"""
from __future__ import annotations

import logging
import re
import time
from typing import Any, Callable, Dict, Optional

import requests

from sensei.config import Settings
from sensei.errors import ConfigurationError, InvalidRequestError, UpstreamError, UpstreamTimeout
from sensei.llm_parsing import extract_sections
from sensei.llm_prompts import build_prompt, response_schema
from sensei.retry import RetryLog, call_with_retry
from sensei.schemas import GenerationResult

log = logging.getLogger(__name__)

_KEY_RE = re.compile(r"([?&]key=)[^&\s'\"]+", re.IGNORECASE)


def _redact(text: str, api_key: str = "") -> str:
    """Strip the API key from transport error text before it reaches logs or clients."""
    text = _KEY_RE.sub(r"\1<redacted>", text or "")
    if api_key:
        text = text.replace(api_key, "<redacted>")
    return text


def status(settings: Settings) -> Dict[str, Any]:
    return {
        "provider": "gemini",
        "model": settings.model,
        "has_token": settings.has_api_key,
        "mode": settings.extraction_mode,
        "retry": settings.retry.model_dump(),
    }


def _generation_config(settings: Settings) -> Dict[str, Any]:
    cfg: Dict[str, Any] = {
        "temperature": settings.temperature,
        "maxOutputTokens": settings.max_output_tokens,
    }
    if settings.extraction_mode == "json":
        cfg["responseMimeType"] = "application/json"
        cfg["responseSchema"] = response_schema()
    return cfg


def _extract_gemini_text(payload: Dict[str, Any]) -> Optional[str]:
    """Join the text parts of the first candidate that has any."""
    for cand in payload.get("candidates") or []:
        content = cand.get("content") or {}
        texts = [p.get("text") for p in content.get("parts") or [] if isinstance(p.get("text"), str)]
        joined = "".join(texts)
        if joined.strip():
            return joined
    return None


def _call_gemini(prompt_text: str, settings: Settings) -> str:
    """One generateContent round trip; returns the model's raw text."""
    url = f"{settings.endpoint}/{settings.model}:generateContent"
    body = {
        "contents": [{"role": "user", "parts": [{"text": prompt_text}]}],
        "generationConfig": _generation_config(settings),
    }
    try:
        resp = requests.post(
            url,
            headers={"x-goog-api-key": settings.api_key},
            json=body,
            timeout=settings.timeout_secs,
        )
    except requests.Timeout as e:
        raise UpstreamTimeout(detail=_redact(str(e), settings.api_key)) from e
    except requests.ConnectionError as e:
        raise UpstreamError(detail="Connection error: " + _redact(str(e), settings.api_key), transient=True) from e
    except requests.RequestException as e:
        raise UpstreamError(detail=_redact(str(e), settings.api_key)) from e

    if resp.status_code != 200:
        try:
            msg = resp.text
        except Exception:
            msg = ""
        log.warning("Gemini HTTP %s: %s", resp.status_code, (msg or "")[:400])
        if resp.status_code == 504:
            raise UpstreamTimeout(detail=f"HTTP 504: {msg}")
        raise UpstreamError(status=resp.status_code, detail=msg or None)

    try:
        data = resp.json()
    except ValueError as e:
        raise UpstreamError(detail="Gemini returned a non-JSON body.") from e

    block = (data.get("promptFeedback") or {}).get("blockReason")
    if block:
        raise UpstreamError(detail=f"Prompt was blocked by the provider (reason: {block}).")

    text = _extract_gemini_text(data)
    if not text:
        cands = data.get("candidates") or [{}]
        reason = cands[0].get("finishReason") or "unknown"
        raise UpstreamError(detail=f"Gemini returned no text (finishReason: {reason}).")
    return text


def generate_code(
    prompt: Optional[str],
    settings: Settings,
    *,
    sleep: Callable[[float], None] = time.sleep,
    record: Optional[RetryLog] = None,
) -> GenerationResult:
    """Prompt in, extracted html/css/js out.

    Raises InvalidRequestError, ConfigurationError, UpstreamTimeout,
    UpstreamError or ParseError.
    """
    text = (prompt or "").strip()
    if not text:
        raise InvalidRequestError()
    if not settings.has_api_key:
        log.error("GEMINI_API_KEY is not configured")
        raise ConfigurationError()

    log.info("generate: mode=%s model=%s prompt=%r", settings.extraction_mode, settings.model, text[:120])
    model_prompt = build_prompt(text, settings.extraction_mode)
    started = time.time()
    raw = call_with_retry(
        lambda: _call_gemini(model_prompt, settings),
        settings.retry,
        sleep=sleep,
        record=record,
    )
    log.debug("generate: raw model text:\n%s", raw)

    result = extract_sections(raw, settings.extraction_mode)
    log.info(
        "generate: done in %dms html=%d css=%d js=%d",
        int((time.time() - started) * 1000),
        len(result.html),
        len(result.css),
        len(result.js),
    )
    if result.is_empty():
        log.warning("generate: model response contained no code sections")
    return result
