import pytest
import requests

from sensei.config import RetryPolicy
from sensei.errors import UpstreamError, UpstreamTimeout
from sensei.retry import RetryLog, call_with_retry, is_transient


class Flaky:
    """Fails with the given errors in order, then returns 'ok'."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


def test_two_transient_failures_then_success_uses_exponential_backoff():
    slept = []
    fn = Flaky(UpstreamError(status=503), UpstreamTimeout())
    rec = RetryLog()
    policy = RetryPolicy(max_retries=3, base_delay=1.0, backoff="exponential", factor=2.0)

    assert call_with_retry(fn, policy, sleep=slept.append, record=rec) == "ok"
    assert fn.calls == 3
    assert rec.retries == 2
    assert slept == [1.0, 2.0]
    assert rec.total_delay == pytest.approx(3.0)


def test_fixed_backoff_waits_the_same_each_time():
    slept = []
    fn = Flaky(UpstreamError(status=503), UpstreamError(status=503))
    policy = RetryPolicy(max_retries=2, base_delay=0.5, backoff="fixed")
    assert call_with_retry(fn, policy, sleep=slept.append) == "ok"
    assert slept == [0.5, 0.5]


def test_non_transient_error_fails_immediately():
    slept = []
    err = UpstreamError(status=400, detail="API key not valid")
    fn = Flaky(err)
    rec = RetryLog()
    with pytest.raises(UpstreamError) as exc:
        call_with_retry(fn, RetryPolicy(), sleep=slept.append, record=rec)
    assert exc.value is err
    assert fn.calls == 1
    assert rec.retries == 0
    assert slept == []


def test_exhausted_retries_raise_the_last_error():
    slept = []
    last = UpstreamTimeout(detail="third")
    fn = Flaky(UpstreamTimeout(detail="first"), UpstreamTimeout(detail="second"), last)
    with pytest.raises(UpstreamTimeout) as exc:
        call_with_retry(fn, RetryPolicy(max_retries=2), sleep=slept.append)
    assert exc.value is last
    assert fn.calls == 3
    assert slept == [1.0, 2.0]


def test_delay_is_capped():
    slept = []
    fn = Flaky(*[UpstreamError(status=503) for _ in range(3)])
    policy = RetryPolicy(max_retries=3, base_delay=2.0, factor=2.0, max_delay=3.0)
    call_with_retry(fn, policy, sleep=slept.append)
    assert slept == [2.0, 3.0, 3.0]


def test_zero_retries_means_single_attempt():
    fn = Flaky(UpstreamError(status=503))
    with pytest.raises(UpstreamError):
        call_with_retry(fn, RetryPolicy(max_retries=0), sleep=lambda s: None)
    assert fn.calls == 1


@pytest.mark.parametrize(
    "exc,expected",
    [
        (UpstreamTimeout(), True),
        (UpstreamError(status=503), True),
        (UpstreamError(status=429), True),
        (UpstreamError(detail="The model is overloaded. Please try again later."), True),
        (requests.ReadTimeout("read timed out"), True),
        (requests.RequestException("service unavailable"), True),
        (RuntimeError("socket timeout"), False),
        (ValueError("Attempted to set connect timeout to 0.0"), False),
        (UpstreamError(status=400, detail="API key not valid"), False),
        (UpstreamError(status=404, detail="model not found"), False),
        (ValueError("boom"), False),
    ],
)
def test_is_transient(exc, expected):
    assert is_transient(exc) is expected


def test_local_error_mentioning_timeout_is_not_retried():
    slept = []
    fn = Flaky(ValueError("timeout cannot be set to a value less than or equal to 0"))
    with pytest.raises(ValueError):
        call_with_retry(fn, RetryPolicy(), sleep=slept.append)
    assert fn.calls == 1
    assert slept == []
