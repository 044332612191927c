"""
Фоновая job очистки очереди.

Назначение:
- периодически удалять завершённые задачи старше QUEUE_CLEANUP_OLDER_THAN_HOURS
"""

from __future__ import annotations

import asyncio

from media_insights_agent.common.config import Settings, get_settings
from media_insights_agent.common.logging import get_project_logger
from media_insights_agent.queue.base import JobQueue

log = get_project_logger()


def run(queue: JobQueue, *, older_than_hours: float) -> int:
    removed = queue.cleanup(older_than_hours)
    log.info(
        "queue_cleanup_job_finished",
        extra={"payload": {"removed": removed, "older_than_hours": older_than_hours}},
    )
    return removed


async def run_forever(queue: JobQueue, settings: Settings | None = None) -> None:
    """
    Цикл очистки до отмены задачи (остановка приложения).
    """
    s = settings or get_settings()
    interval = max(1, int(s.queue_cleanup_interval_sec))
    log.info("queue_cleanup_job_started", extra={"payload": {"interval_sec": interval}})
    while True:
        await asyncio.sleep(interval)
        try:
            run(queue, older_than_hours=s.queue_cleanup_older_than_hours)
        except Exception as e:
            log.error("queue_cleanup_job_failed", extra={"payload": {"err": str(e)[:300]}})
