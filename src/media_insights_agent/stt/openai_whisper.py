"""
STT через OpenAI-compatible /audio/transcriptions.

- фиксированный язык (STT_LANGUAGE) и response_format=text
- 413 / формулировки о размере -> SizeLimitExceeded с реальным размером файла
- 429 -> RateLimited
"""

from __future__ import annotations

import os
from pathlib import Path

import requests

from media_insights_agent.common.config import Settings, get_settings
from media_insights_agent.common.errors import ErrCode, ProviderError, SizeLimitExceeded
from media_insights_agent.common.logging import get_project_logger
from media_insights_agent.llm.openai_compat import is_size_limit_message, raise_for_provider_response

from .base import STTResult

log = get_project_logger()


class OpenAIWhisperProvider:
    def __init__(
        self,
        *,
        api_base: str,
        api_key: str,
        model: str = "whisper-1",
        language: str = "pt",
        timeout_s: int = 600,
    ) -> None:
        self.api_base = api_base
        self.api_key = api_key
        self.model = model
        self.language = language
        self.timeout_s = timeout_s

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> OpenAIWhisperProvider:
        s = settings or get_settings()
        return cls(
            api_base=s.openai_api_base,
            api_key=s.openai_api_key or "",
            model=s.stt_model_id,
            language=s.stt_language,
            timeout_s=s.stt_request_timeout_sec,
        )

    def transcribe_file(self, path: str) -> STTResult:
        size = os.path.getsize(path)
        url = self.api_base.rstrip("/") + "/audio/transcriptions"
        try:
            with open(path, "rb") as f:
                resp = requests.post(
                    url,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    data={
                        "model": self.model,
                        "language": self.language,
                        "response_format": "text",
                    },
                    files={"file": (Path(path).name, f)},
                    timeout=self.timeout_s,
                )
        except requests.RequestException as e:
            # Обрыв соединения на большом upload тоже означает превышение размера
            if is_size_limit_message(str(e)):
                raise SizeLimitExceeded(size, path=path) from e
            log.error("stt_http_error", extra={"payload": {"path": path, "err": str(e)[:300]}})
            raise ProviderError(
                ErrCode.STT_PROVIDER_ERROR,
                "Ошибка HTTP при вызове STT",
                {"err": str(e)},
                retryable=True,
            ) from e

        raise_for_provider_response(
            resp,
            code=ErrCode.STT_PROVIDER_ERROR,
            payload_size=size,
            payload_path=path,
        )
        return STTResult(text=(resp.text or "").strip())
