"""
Диспетчер задач.

Назначение:
- сопоставление типа нагрузки с обработчиком (исчерпывающий match)
- запуск синхронного обработчика вне event loop (asyncio.to_thread)
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, assert_never

from media_insights_agent.domain.jobs import JobPayload, PdfJob, ScormJob, UploadJob, UrlJob

HandlerResult = dict[str, Any]


@dataclass(frozen=True)
class JobHandlers:
    upload: Callable[[UploadJob], HandlerResult]
    url: Callable[[UrlJob], HandlerResult]
    pdf: Callable[[PdfJob], HandlerResult]
    scorm: Callable[[ScormJob], HandlerResult]


class JobDispatcher:
    def __init__(self, handlers: JobHandlers) -> None:
        self.handlers = handlers

    def run_sync(self, payload: JobPayload) -> HandlerResult:
        if isinstance(payload, UploadJob):
            return self.handlers.upload(payload)
        if isinstance(payload, UrlJob):
            return self.handlers.url(payload)
        if isinstance(payload, PdfJob):
            return self.handlers.pdf(payload)
        if isinstance(payload, ScormJob):
            return self.handlers.scorm(payload)
        assert_never(payload)

    async def dispatch(self, payload: JobPayload) -> HandlerResult:
        return await asyncio.to_thread(self.run_sync, payload)
