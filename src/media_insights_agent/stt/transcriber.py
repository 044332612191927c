"""
Адаптер транскрибации: части аудио -> один текст.

Правила:
- части обрабатываются строго по порядку, тексты trim + join(" ")
- SizeLimitExceeded не повторяется: пробрасывается с размером конкретной части
- пустой итог -> EmptyResultError (пустой транскрипт не сохраняется как completed)
"""

from __future__ import annotations

import os

from media_insights_agent.common.errors import EmptyResultError, SizeLimitExceeded
from media_insights_agent.common.logging import get_project_logger
from media_insights_agent.common.metrics import STT_CHUNKS_TOTAL

from .base import STTProvider

log = get_project_logger()


class Transcriber:
    def __init__(self, provider: STTProvider) -> None:
        self.provider = provider

    def transcribe(self, chunk_paths: list[str]) -> str:
        parts: list[str] = []
        total = len(chunk_paths)
        for idx, path in enumerate(chunk_paths):
            try:
                res = self.provider.transcribe_file(path)
            except SizeLimitExceeded as e:
                STT_CHUNKS_TOTAL.labels(result="failed").inc()
                size = os.path.getsize(path) if os.path.exists(path) else e.size_bytes
                log.error(
                    "stt_chunk_too_large",
                    extra={"payload": {"path": path, "size_bytes": size, "index": idx}},
                )
                raise SizeLimitExceeded(size, path=path) from e
            except Exception:
                STT_CHUNKS_TOTAL.labels(result="failed").inc()
                raise

            STT_CHUNKS_TOTAL.labels(result="ok").inc()
            text = (res.text or "").strip()
            log.info(
                "stt_chunk_done",
                extra={"payload": {"index": idx + 1, "total": total, "chars": len(text)}},
            )
            if text:
                parts.append(text)

        transcript = " ".join(parts).strip()
        if not transcript:
            raise EmptyResultError(
                "Транскрипция вернула пустой текст",
                {"chunks": total},
            )
        return transcript
