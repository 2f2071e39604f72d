from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Literal, Mapping, MutableMapping, Optional, Union

from dotenv import dotenv_values
from pydantic import BaseModel, Field

log = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_MODEL = "gemini-1.5-flash"
DEFAULT_ALLOW_ORIGINS = [
    "https://sensei-code.netlify.app",
    "http://localhost:5173",
]

# Every variable the app reads; nothing else is taken from .env
ENV_KEYS = (
    "GEMINI_API_KEY",
    "GEMINI_MODEL",
    "GEMINI_ENDPOINT",
    "LLM_TIMEOUT_SECS",
    "TEMPERATURE",
    "LLM_MAX_TOKENS",
    "EXTRACTION_MODE",
    "RETRY_MAX",
    "RETRY_BASE_DELAY",
    "RETRY_BACKOFF",
    "RETRY_MAX_DELAY",
    "ALLOW_ORIGINS",
    "LOG_LEVEL",
    "HOST",
    "PORT",
)

ExtractionMode = Literal["markers", "json"]
BackoffKind = Literal["fixed", "exponential"]


class RetryPolicy(BaseModel):
    """How many times a transient upstream failure is retried, and how long to wait.

    With ``backoff="exponential"`` the n-th retry (1-based) waits
    ``base_delay * factor ** (n - 1)`` seconds; ``fixed`` always waits
    ``base_delay``. Every wait is capped at ``max_delay``.
    """

    max_retries: int = Field(3, ge=0, le=10)
    base_delay: float = Field(1.0, ge=0)
    backoff: BackoffKind = "exponential"
    factor: float = Field(2.0, ge=1.0)
    max_delay: float = Field(8.0, ge=0)

    def delay_for(self, retry_number: int) -> float:
        if self.backoff == "fixed":
            delay = self.base_delay
        else:
            delay = self.base_delay * (self.factor ** max(0, retry_number - 1))
        return min(delay, self.max_delay)


class Settings(BaseModel):
    api_key: str = ""
    model: str = DEFAULT_MODEL
    endpoint: str = DEFAULT_ENDPOINT
    timeout_secs: float = Field(60.0, gt=0)
    temperature: float = 0.7
    max_output_tokens: int = 8192
    extraction_mode: ExtractionMode = "markers"
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    allowed_origins: List[str] = Field(default_factory=lambda: list(DEFAULT_ALLOW_ORIGINS))

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key.strip())

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        mode = env.get("EXTRACTION_MODE", "markers").strip().lower()
        if mode not in ("markers", "json"):
            log.warning("config: unknown EXTRACTION_MODE=%r; using markers", mode)
            mode = "markers"

        backoff = env.get("RETRY_BACKOFF", "exponential").strip().lower()
        if backoff not in ("fixed", "exponential"):
            log.warning("config: unknown RETRY_BACKOFF=%r; using exponential", backoff)
            backoff = "exponential"

        origins = [o.strip() for o in env.get("ALLOW_ORIGINS", "").split(",") if o.strip()]

        return cls(
            api_key=env.get("GEMINI_API_KEY", "").strip(),
            model=env.get("GEMINI_MODEL", DEFAULT_MODEL).strip() or DEFAULT_MODEL,
            endpoint=(env.get("GEMINI_ENDPOINT", DEFAULT_ENDPOINT).strip() or DEFAULT_ENDPOINT).rstrip("/"),
            timeout_secs=_float(env, "LLM_TIMEOUT_SECS", 60.0, positive=True),
            temperature=_float(env, "TEMPERATURE", 0.7),
            max_output_tokens=_int(env, "LLM_MAX_TOKENS", 8192),
            extraction_mode=mode,
            retry=RetryPolicy(
                max_retries=min(10, max(0, _int(env, "RETRY_MAX", 3))),
                base_delay=max(0.0, _float(env, "RETRY_BASE_DELAY", 1.0)),
                backoff=backoff,
                max_delay=max(0.0, _float(env, "RETRY_MAX_DELAY", 8.0)),
            ),
            allowed_origins=origins or list(DEFAULT_ALLOW_ORIGINS),
        )


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    try:
        return int(env.get(name, str(default)) or default)
    except ValueError:
        log.warning("config: %s is not an integer; using %s", name, default)
        return default


def _float(env: Mapping[str, str], name: str, default: float, positive: bool = False) -> float:
    try:
        value = float(env.get(name, str(default)) or default)
    except ValueError:
        log.warning("config: %s is not a number; using %s", name, default)
        return default
    if positive and value <= 0:
        log.warning("config: %s must be greater than 0; using %s", name, default)
        return default
    return value


def load_env_file(
    path: Union[str, Path] = ".env",
    environ: Optional[MutableMapping[str, str]] = None,
) -> List[str]:
    """Copy known settings from a .env file into ``environ`` (default os.environ).

    Variables already set in the environment win. Returns the names loaded.
    """
    env = os.environ if environ is None else environ
    path = Path(path)
    if not path.exists():
        return []
    try:
        values = dotenv_values(path)
    except (OSError, UnicodeDecodeError) as e:
        log.warning("config: could not read %s: %s", path, e)
        return []

    loaded = []
    for key, val in values.items():
        if key not in ENV_KEYS:
            log.debug("config: ignoring unknown %s from %s", key, path)
            continue
        if val is None or key in env:
            continue
        env[key] = val
        loaded.append(key)
    if loaded:
        log.info("config: loaded %s from %s", ", ".join(loaded), path)
    return loaded
