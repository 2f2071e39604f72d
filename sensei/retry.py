from __future__ import annotations

import logging
import re
import time
from typing import Callable, List, Optional, TypeVar

import requests

from sensei.config import RetryPolicy
from sensei.errors import UpstreamError

log = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_STATUSES = {429, 500, 502, 503, 504}
_TRANSIENT_RE = re.compile(r"overload|timeout|timed out|unavailable|\b503\b|try again", re.IGNORECASE)


def is_transient(exc: BaseException) -> bool:
    """True for upstream failures worth another attempt (timeouts, overload, 503-class).

    Local errors (bad arguments, bugs) are never retried, whatever their message says.
    """
    if isinstance(exc, UpstreamError):
        if exc.transient:
            return True
        if exc.status in TRANSIENT_STATUSES:
            return True
        return bool(_TRANSIENT_RE.search(f"{exc} {exc.detail or ''}"))
    if isinstance(exc, requests.RequestException):
        return bool(_TRANSIENT_RE.search(str(exc)))
    return False


class RetryLog:
    """What happened during one call_with_retry run; handy for logging and tests."""

    def __init__(self) -> None:
        self.attempts = 0
        self.delays: List[float] = []

    @property
    def retries(self) -> int:
        return len(self.delays)

    @property
    def total_delay(self) -> float:
        return sum(self.delays)


def call_with_retry(
    fn: Callable[[], T],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], None] = time.sleep,
    classify: Callable[[BaseException], bool] = is_transient,
    record: Optional[RetryLog] = None,
) -> T:
    """Run ``fn`` until it succeeds, fails non-transiently, or retries run out.

    A transient failure with retries left waits ``policy.delay_for(n)`` and
    tries again. Anything else re-raises the error from the last attempt.
    """
    rec = record if record is not None else RetryLog()
    while True:
        rec.attempts += 1
        try:
            result = fn()
        except Exception as e:
            if not classify(e):
                log.info("retry: attempt %d failed (not transient): %s", rec.attempts, e)
                raise
            if rec.retries >= policy.max_retries:
                log.warning("retry: giving up after %d attempts: %s", rec.attempts, e)
                raise
            delay = policy.delay_for(rec.retries + 1)
            log.warning(
                "retry: attempt %d failed (transient); waiting %.2fs before retry %d/%d: %s",
                rec.attempts,
                delay,
                rec.retries + 1,
                policy.max_retries,
                e,
            )
            rec.delays.append(delay)
            if delay > 0:
                sleep(delay)
            continue
        if rec.retries:
            log.info("retry: succeeded on attempt %d", rec.attempts)
        return result
