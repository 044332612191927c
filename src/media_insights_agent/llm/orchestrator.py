"""
Оркестратор вызовов LLM: ретраи, разбор JSON, единая обработка ошибок.

Важная идея: здесь нет логики провайдера, только orchestration.
Повторяются только ошибки с retryable=True (429/5xx/сеть),
пауза растёт линейно: attempt * backoff.
"""

from __future__ import annotations

import json
import re
import time
from collections.abc import Callable
from typing import Any, TypeVar

from media_insights_agent.common.config import Settings, get_settings
from media_insights_agent.common.errors import ErrCode, ProviderError, RateLimited
from media_insights_agent.common.logging import get_llm_logger
from media_insights_agent.common.metrics import LLM_RETRIES_TOTAL

from .base import LLMProvider

log = get_llm_logger()

T = TypeVar("T")

_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)


class LLMOrchestrator:
    def __init__(
        self,
        provider: LLMProvider,
        *,
        retries: int | None = None,
        backoff_ms: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
        settings: Settings | None = None,
    ) -> None:
        s = settings or get_settings()
        self.provider = provider
        self.retries = int(s.llm_retries if retries is None else retries)
        self.backoff_ms = int(s.llm_retry_backoff_ms if backoff_ms is None else backoff_ms)
        self._sleep = sleep

    def _retry(self, fn: Callable[..., T], **kwargs: Any) -> T:
        attempt = 0
        while True:
            try:
                return fn(**kwargs)
            except ProviderError as e:
                if not e.retryable or attempt >= self.retries:
                    if e.retryable:
                        raise ProviderError(
                            e.code,
                            "LLM не ответил после ретраев",
                            {"err": e.message, "attempts": attempt + 1},
                        ) from e
                    raise
                attempt += 1
                reason = "rate_limited" if isinstance(e, RateLimited) else "provider_error"
                LLM_RETRIES_TOTAL.labels(reason=reason).inc()
                wait_s = attempt * self.backoff_ms / 1000.0
                log.warning(
                    "llm_retry",
                    extra={"payload": {"attempt": attempt, "wait_s": wait_s, "reason": reason}},
                )
                self._sleep(wait_s)

    def complete_text(
        self,
        *,
        system: str,
        user: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        res = self._retry(
            self.provider.complete_text,
            system=system,
            user=user,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return (res.text or "").strip()

    def complete_vision(
        self,
        *,
        system: str,
        prompt: str,
        images_png_b64: list[str],
        max_tokens: int | None = None,
    ) -> str:
        res = self._retry(
            self.provider.complete_vision,
            system=system,
            prompt=prompt,
            images_png_b64=images_png_b64,
            max_tokens=max_tokens,
        )
        return (res.text or "").strip()

    def complete_json(self, *, system: str, user: str, temperature: float | None = None) -> dict:
        """Возвращает распарсенный JSON-объект (допускается обёртка ```json)."""
        text = self.complete_text(system=system, user=user, temperature=temperature)
        return parse_json_object(text)


def parse_json_object(text: str) -> dict:
    raw = (text or "").strip()
    fenced = _JSON_FENCE_RE.search(raw)
    if fenced:
        raw = fenced.group(1)
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise ProviderError(
            ErrCode.LLM_PROVIDER_ERROR,
            "LLM вернул невалидный JSON",
            {"err": str(e), "text_head": raw[:500]},
        ) from e
    if not isinstance(data, dict):
        raise ProviderError(
            ErrCode.LLM_PROVIDER_ERROR,
            "LLM вернул JSON не-объект",
            {"text_head": raw[:500]},
        )
    return data
