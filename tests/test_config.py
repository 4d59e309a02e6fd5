# tests/test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from sub_api.config import DEFAULT_BASE_URLS, Settings

_VARS = (
    "SUBAPI_PROVIDER",
    "SUBAPI_API_KEY",
    "GEMINI_API_KEY",
    "OPENAI_API_KEY",
    "SUBAPI_BASE_URL",
    "SUBAPI_MODEL",
    "SUBAPI_ENABLED",
    "SUBAPI_DATA_DIR",
    "SUBAPI_TASKS_PATH",
    "SUBAPI_RENDER_LIMIT",
    "SUBAPI_CONNECT_TIMEOUT_SECONDS",
    "SUBAPI_READ_TIMEOUT_SECONDS",
    "SUBAPI_HTTP_REFERER",
    "SUBAPI_APP_NAME",
    "SUBAPI_RESULTS_PATH",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    s = Settings.from_env()
    assert s.provider == "gemini"
    assert s.api_key is None
    assert s.base_url == DEFAULT_BASE_URLS["gemini"]
    assert s.model_name == "gemini-2.0-flash"
    assert s.enabled is True
    assert s.render_limit == 7
    assert s.tasks_path == Path(".local/sub_api") / "tasks.json"


def test_overrides_and_fallbacks(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("SUBAPI_PROVIDER", "OpenAI")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("SUBAPI_ENABLED", "off")
    monkeypatch.setenv("SUBAPI_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("SUBAPI_RENDER_LIMIT", "0")
    monkeypatch.setenv("SUBAPI_CONNECT_TIMEOUT_SECONDS", "30")
    monkeypatch.setenv("SUBAPI_READ_TIMEOUT_SECONDS", "oops")

    s = Settings.from_env()
    assert s.provider == "openai"
    assert s.api_key == "sk-test"
    assert s.base_url == DEFAULT_BASE_URLS["openai"]
    assert s.enabled is False
    assert s.results_path == tmp_path / "results.json"
    assert s.render_limit == 1
    # read timeout never drops below connect timeout
    assert s.read_timeout == 60.0
    assert s.connect_timeout == 30.0


def test_unknown_provider_falls_back_to_gemini(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SUBAPI_PROVIDER", "nope")
    monkeypatch.setenv("SUBAPI_API_KEY", "k")
    monkeypatch.setenv("GEMINI_API_KEY", "other")
    monkeypatch.setenv("SUBAPI_HTTP_REFERER", "https://example.org")

    s = Settings.from_env()
    assert s.provider == "gemini"
    assert s.api_key == "k"
    assert s.extra_headers == {"HTTP-Referer": "https://example.org", "X-Title": "sub-api"}
