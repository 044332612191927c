"""
Провайдер LLM через OpenAI-compatible endpoint.

Назначение:
- /chat/completions (текст и vision с image_url частями)
- классификация HTTP-ошибок в типизированные исключения
  (RateLimited / SizeLimitExceeded / ProviderError)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import requests

from media_insights_agent.common.config import Settings, get_settings
from media_insights_agent.common.errors import (
    ErrCode,
    ProviderError,
    RateLimited,
    SizeLimitExceeded,
)

from .base import LLMResult

log = logging.getLogger(__name__)

# Формулировки, по которым провайдеры сообщают о превышении размера payload
_SIZE_LIMIT_MARKERS = (
    "maximum content size",
    "file too large",
    "size limit",
    "26214400",
    "request entity too large",
)


def is_size_limit_message(text: str) -> bool:
    lowered = (text or "").lower()
    return any(marker in lowered for marker in _SIZE_LIMIT_MARKERS)


def raise_for_provider_response(
    resp: requests.Response,
    *,
    code: str,
    payload_size: int | None = None,
    payload_path: str | None = None,
) -> None:
    """
    Переводит HTTP-ответ с ошибкой в типизированное исключение.
    """
    if resp.status_code < 400:
        return
    text_head = (resp.text or "")[:500]
    details = {"status": resp.status_code, "text_head": text_head}

    if resp.status_code == 429:
        raise RateLimited(details=details)
    if resp.status_code == 413 or (resp.status_code == 400 and is_size_limit_message(text_head)):
        raise SizeLimitExceeded(payload_size or 0, path=payload_path)
    raise ProviderError(
        code,
        "Провайдер вернул ошибку",
        details,
        retryable=resp.status_code >= 500,
    )


def post_json(url: str, *, headers: dict, json_body: dict, timeout_s: int, code: str) -> dict:
    try:
        resp = requests.post(url, headers=headers, json=json_body, timeout=timeout_s)
    except requests.RequestException as e:
        log.error("llm_http_error", extra={"payload": {"err": str(e)[:300]}})
        raise ProviderError(code, "Ошибка HTTP при вызове провайдера", {"err": str(e)}, retryable=True) from e

    raise_for_provider_response(resp, code=code)
    try:
        return resp.json()
    except ValueError as e:
        raise ProviderError(
            code,
            "Провайдер вернул невалидный JSON",
            {"err": str(e), "text_head": resp.text[:500]},
        ) from e


@dataclass
class OpenAICompatConfig:
    """Настройки OpenAI-compatible API."""

    api_base: str
    api_key: str
    model: str = "gpt-4o-mini"
    vision_model: str = "gpt-4o-mini"
    timeout_s: int = 120


class OpenAICompatProvider:
    """Провайдер LLM через OpenAI-compatible endpoint."""

    def __init__(self, cfg: OpenAICompatConfig) -> None:
        if not cfg.api_base:
            raise ProviderError(ErrCode.LLM_PROVIDER_ERROR, "OPENAI_API_BASE не задан")
        self.cfg = cfg

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> OpenAICompatProvider:
        s = settings or get_settings()
        return cls(
            OpenAICompatConfig(
                api_base=s.openai_api_base or "",
                api_key=s.openai_api_key or "",
                model=s.llm_model_id,
                vision_model=s.llm_vision_model_id,
                timeout_s=int(s.llm_request_timeout_sec),
            )
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.cfg.api_key}",
            "Content-Type": "application/json",
        }

    def _chat(self, payload: dict) -> LLMResult:
        url = self.cfg.api_base.rstrip("/") + "/chat/completions"
        data = post_json(
            url,
            headers=self._headers(),
            json_body=payload,
            timeout_s=self.cfg.timeout_s,
            code=ErrCode.LLM_PROVIDER_ERROR,
        )
        try:
            text = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(
                ErrCode.LLM_PROVIDER_ERROR,
                "Не удалось извлечь текст из ответа LLM",
                {"err": str(e), "data_head": str(data)[:500]},
            ) from e
        return LLMResult(text=text.strip(), model=payload.get("model"), usage=data.get("usage"))

    def complete_text(
        self,
        *,
        system: str,
        user: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResult:
        payload: dict = {
            "model": self.cfg.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": 0.2 if temperature is None else temperature,
        }
        if max_tokens:
            payload["max_tokens"] = max_tokens
        return self._chat(payload)

    def complete_vision(
        self,
        *,
        system: str,
        prompt: str,
        images_png_b64: list[str],
        max_tokens: int | None = None,
    ) -> LLMResult:
        content: list[dict] = [{"type": "text", "text": prompt}]
        for b64 in images_png_b64:
            content.append(
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:image/png;base64,{b64}", "detail": "high"},
                }
            )
        payload: dict = {
            "model": self.cfg.vision_model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": content},
            ],
            "temperature": 0,
        }
        if max_tokens:
            payload["max_tokens"] = max_tokens
        return self._chat(payload)
