import pytest
from pydantic import ValidationError

from sensei.config import DEFAULT_ALLOW_ORIGINS, RetryPolicy, Settings, load_env_file


def test_defaults_from_empty_env():
    s = Settings.from_env({})
    assert s.api_key == ""
    assert s.has_api_key is False
    assert s.model == "gemini-1.5-flash"
    assert s.extraction_mode == "markers"
    assert s.allowed_origins == DEFAULT_ALLOW_ORIGINS
    assert s.retry == RetryPolicy()


def test_env_values_are_parsed():
    s = Settings.from_env({
        "GEMINI_API_KEY": "  abc  ",
        "GEMINI_MODEL": "gemini-2.0-flash",
        "GEMINI_ENDPOINT": "http://localhost:9999/models/",
        "LLM_TIMEOUT_SECS": "15",
        "EXTRACTION_MODE": "JSON",
        "RETRY_MAX": "1",
        "RETRY_BASE_DELAY": "0.25",
        "RETRY_BACKOFF": "fixed",
        "ALLOW_ORIGINS": "https://a.example, https://b.example,",
    })
    assert s.api_key == "abc" and s.has_api_key
    assert s.model == "gemini-2.0-flash"
    assert s.endpoint == "http://localhost:9999/models"
    assert s.timeout_secs == 15.0
    assert s.extraction_mode == "json"
    assert s.retry.max_retries == 1
    assert s.retry.backoff == "fixed"
    assert s.retry.delay_for(1) == s.retry.delay_for(2) == 0.25
    assert s.allowed_origins == ["https://a.example", "https://b.example"]


def test_bad_values_fall_back_to_defaults():
    s = Settings.from_env({
        "LLM_TIMEOUT_SECS": "soon",
        "RETRY_MAX": "many",
        "EXTRACTION_MODE": "xml",
        "RETRY_BACKOFF": "random",
    })
    assert s.timeout_secs == 60.0
    assert s.retry.max_retries == 3
    assert s.extraction_mode == "markers"
    assert s.retry.backoff == "exponential"


def test_exponential_delays():
    p = RetryPolicy(base_delay=1.0, factor=2.0, max_delay=8.0)
    assert [p.delay_for(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 8.0, 8.0]


@pytest.mark.parametrize("raw", ["0", "-5", "0.0"])
def test_non_positive_timeout_falls_back_to_default(raw):
    assert Settings.from_env({"LLM_TIMEOUT_SECS": raw}).timeout_secs == 60.0


@pytest.mark.parametrize("value", [0, -1.5])
def test_settings_reject_non_positive_timeout(value):
    with pytest.raises(ValidationError):
        Settings(timeout_secs=value)


def test_load_env_file_takes_only_known_unset_keys(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# local dev\n"
        "GEMINI_API_KEY='from-file'\n"
        "EXTRACTION_MODE=json\n"
        "AWS_SECRET_ACCESS_KEY=nope\n"
        "GEMINI_MODEL=file-model\n",
        encoding="utf-8",
    )
    environ = {"GEMINI_MODEL": "env-model"}

    loaded = load_env_file(env_file, environ)

    assert sorted(loaded) == ["EXTRACTION_MODE", "GEMINI_API_KEY"]
    assert environ == {
        "GEMINI_MODEL": "env-model",
        "GEMINI_API_KEY": "from-file",
        "EXTRACTION_MODE": "json",
    }
    s = Settings.from_env(environ)
    assert s.api_key == "from-file"
    assert s.extraction_mode == "json"


def test_load_env_file_missing_file_is_a_no_op(tmp_path):
    environ = {}
    assert load_env_file(tmp_path / "absent.env", environ) == []
    assert environ == {}
