from __future__ import annotations

import pytest
import requests

from media_insights_agent.common.errors import ErrCode, ProviderError, RateLimited, SizeLimitExceeded
from media_insights_agent.llm.base import LLMResult
from media_insights_agent.llm.openai_compat import (
    OpenAICompatConfig,
    OpenAICompatProvider,
    is_size_limit_message,
)
from media_insights_agent.llm.orchestrator import LLMOrchestrator, parse_json_object


class _FlakyProvider:
    def __init__(self, failures: list[Exception], text: str = "ok") -> None:
        self.failures = list(failures)
        self.text = text
        self.calls = 0

    def complete_text(self, *, system, user, temperature=None, max_tokens=None) -> LLMResult:
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return LLMResult(text=f"  {self.text}  ")

    def complete_vision(self, *, system, prompt, images_png_b64, max_tokens=None) -> LLMResult:
        return self.complete_text(system=system, user=prompt)


def test_rate_limited_is_retried_with_linear_backoff() -> None:
    sleeps: list[float] = []
    provider = _FlakyProvider([RateLimited(), RateLimited()])
    llm = LLMOrchestrator(provider, retries=3, backoff_ms=5000, sleep=sleeps.append)

    assert llm.complete_text(system="s", user="u") == "ok"
    assert provider.calls == 3
    assert sleeps == [5.0, 10.0]


def test_retries_exhausted_raises_provider_error() -> None:
    provider = _FlakyProvider([RateLimited()] * 5)
    llm = LLMOrchestrator(provider, retries=2, backoff_ms=1, sleep=lambda _s: None)

    with pytest.raises(ProviderError) as e:
        llm.complete_text(system="s", user="u")
    assert e.value.message == "LLM не ответил после ретраев"
    assert e.value.details["attempts"] == 3
    assert provider.calls == 3


def test_non_retryable_errors_are_not_retried() -> None:
    provider = _FlakyProvider([SizeLimitExceeded(30 * 1024 * 1024)])
    llm = LLMOrchestrator(provider, retries=3, backoff_ms=1, sleep=lambda _s: None)
    with pytest.raises(SizeLimitExceeded):
        llm.complete_text(system="s", user="u")
    assert provider.calls == 1


def test_parse_json_object_accepts_fenced_block() -> None:
    assert parse_json_object('Aqui:\n```json\n{"a": 1}\n```') == {"a": 1}
    assert parse_json_object('{"b": [1]}') == {"b": [1]}
    with pytest.raises(ProviderError):
        parse_json_object("[1, 2]")
    with pytest.raises(ProviderError):
        parse_json_object("sem json")


class _Resp:
    def __init__(self, status_code: int, *, text: str = "", data: dict | None = None) -> None:
        self.status_code = status_code
        self.text = text
        self._data = data

    def json(self) -> dict:
        if self._data is None:
            raise ValueError("no json")
        return self._data


def _provider() -> OpenAICompatProvider:
    return OpenAICompatProvider(OpenAICompatConfig(api_base="https://llm.local/v1", api_key="sk-test-123456"))


@pytest.mark.parametrize(
    ("resp", "exc_type", "retryable"),
    [
        (_Resp(429, text="Rate limit reached"), RateLimited, True),
        (_Resp(413, text="Request Entity Too Large"), SizeLimitExceeded, False),
        (_Resp(400, text="Maximum content size limit (26214400) exceeded"), SizeLimitExceeded, False),
        (_Resp(503, text="upstream"), ProviderError, True),
        (_Resp(401, text="bad key"), ProviderError, False),
    ],
)
def test_http_errors_are_classified(monkeypatch, resp, exc_type, retryable) -> None:
    monkeypatch.setattr("media_insights_agent.llm.openai_compat.requests.post", lambda *a, **k: resp)
    with pytest.raises(exc_type) as e:
        _provider().complete_text(system="s", user="u")
    assert e.value.retryable is retryable


def test_network_error_is_retryable(monkeypatch) -> None:
    def _boom(*a, **k):
        raise requests.ConnectionError("reset by peer")

    monkeypatch.setattr("media_insights_agent.llm.openai_compat.requests.post", _boom)
    with pytest.raises(ProviderError) as e:
        _provider().complete_text(system="s", user="u")
    assert e.value.retryable is True
    assert e.value.code == ErrCode.LLM_PROVIDER_ERROR


def test_vision_payload_uses_data_urls(monkeypatch) -> None:
    captured: dict = {}

    def _post(url, headers, json, timeout):
        captured.update(url=url, body=json)
        return _Resp(200, data={"choices": [{"message": {"content": " texto "}}]})

    monkeypatch.setattr("media_insights_agent.llm.openai_compat.requests.post", _post)
    res = _provider().complete_vision(system="s", prompt="p", images_png_b64=["AAA", "BBB"], max_tokens=4096)

    assert res.text == "texto"
    assert captured["url"] == "https://llm.local/v1/chat/completions"
    body = captured["body"]
    assert body["temperature"] == 0
    assert body["max_tokens"] == 4096
    parts = body["messages"][1]["content"]
    assert parts[0] == {"type": "text", "text": "p"}
    assert parts[1]["image_url"]["url"] == "data:image/png;base64,AAA"


def test_size_limit_markers() -> None:
    assert is_size_limit_message("File too large, max 25MB")
    assert not is_size_limit_message("invalid model")
