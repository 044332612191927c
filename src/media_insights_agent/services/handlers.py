"""
Сборка диспетчера задач из обработчиков сервисного слоя.
"""

from __future__ import annotations

from functools import partial

from media_insights_agent.queue.dispatcher import JobDispatcher, JobHandlers

from .context import ServiceContext
from .media_job import handle_upload, handle_url
from .pdf_job import handle_pdf
from .scorm_job import handle_scorm


def build_dispatcher(ctx: ServiceContext) -> JobDispatcher:
    return JobDispatcher(
        JobHandlers(
            upload=partial(handle_upload, ctx),
            url=partial(handle_url, ctx),
            pdf=partial(handle_pdf, ctx),
            scorm=partial(handle_scorm, ctx),
        )
    )
