"""
In-memory очередь задач (один потребитель, много производителей).

Назначение:
- FIFO по статусу pending (поиск первого pending, не pop)
- не больше одной задачи в processing в любой момент
- состояние меняется только в потоке event loop (append + переходы статусов)

Не durable: после рестарта процесса очередь пуста.
"""

from __future__ import annotations

import asyncio
import time
from datetime import timedelta
from typing import Any

from media_insights_agent.common.ids import new_job_id
from media_insights_agent.common.logging import get_project_logger
from media_insights_agent.common.metrics import record_job_finished
from media_insights_agent.common.time import iso_or_none, utc_now
from media_insights_agent.domain.enums import JobStatus
from media_insights_agent.domain.jobs import Job, JobPayload, JobStatusView
from media_insights_agent.domain.state_machine import mark_completed, mark_error, mark_processing

from .dispatcher import JobDispatcher

log = get_project_logger()


class InMemoryJobQueue:
    def __init__(self, dispatcher: JobDispatcher, *, cooldown_sec: float = 0.0) -> None:
        self._dispatcher = dispatcher
        self._cooldown_sec = max(0.0, float(cooldown_sec))
        self._jobs: list[Job] = []
        self._current: Job | None = None
        self._consumer: asyncio.Task | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    def start(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """
        Привязывает очередь к event loop и запускает потребителя,
        если задачи были приняты до появления loop.
        """
        self._loop = loop or asyncio.get_running_loop()
        if self._running_loop() is self._loop:
            self._ensure_consumer()
        else:
            self._loop.call_soon_threadsafe(self._ensure_consumer)

    # =========================================================================
    # ПРИЁМ ЗАДАЧ
    # =========================================================================
    def add_job(self, payload: JobPayload, *, job_id: str | None = None) -> str:
        """
        Добавляет задачу в конец очереди и, если потребитель простаивает,
        планирует его запуск на следующей итерации event loop.

        Вызов из чужого потока передаётся в поток привязанного loop.
        Без loop задача остаётся pending до вызова start().
        """
        job = Job(id=job_id or new_job_id(), payload=payload)
        running = self._running_loop()
        if running is not None and (self._loop is None or self._loop.is_closed()):
            self._loop = running
        loop = self._loop
        if loop is not None and running is not loop and not loop.is_closed():
            loop.call_soon_threadsafe(self._accept, job)
        else:
            self._accept(job)
        return job.id

    def _accept(self, job: Job) -> None:
        self._jobs.append(job)
        log.info(
            "job_enqueued",
            extra={"payload": {"job_id": job.id, "job_type": job.type.value}},
        )
        self._ensure_consumer()

    @staticmethod
    def _running_loop() -> asyncio.AbstractEventLoop | None:
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def _ensure_consumer(self) -> None:
        if self._consumer is not None and not self._consumer.done():
            return
        loop = self._running_loop()
        if loop is None:
            log.info("job_consumer_deferred", extra={"payload": {"pending": self._pending_count()}})
            return
        self._consumer = loop.create_task(self._consume(), name="job-queue-consumer")

    # =========================================================================
    # ПОТРЕБИТЕЛЬ
    # =========================================================================
    def _pending_count(self) -> int:
        return sum(1 for job in self._jobs if job.status is JobStatus.pending)

    def _next_pending(self) -> Job | None:
        for job in self._jobs:
            if job.status is JobStatus.pending:
                return job
        return None

    async def _consume(self) -> None:
        while True:
            job = self._next_pending()
            if job is None:
                return
            await self._process(job)
            if self._cooldown_sec and self._next_pending() is not None:
                await asyncio.sleep(self._cooldown_sec)

    async def _process(self, job: Job) -> None:
        mark_processing(job)
        self._current = job
        started = time.perf_counter()
        log.info(
            "job_started",
            extra={"payload": {"job_id": job.id, "job_type": job.type.value}},
        )
        try:
            result = await self._dispatcher.dispatch(job.payload)
        except Exception as e:
            message = getattr(e, "message", None) or str(e) or type(e).__name__
            mark_error(job, message)
            log.error(
                "job_failed",
                extra={
                    "payload": {
                        "job_id": job.id,
                        "job_type": job.type.value,
                        "err": message[:500],
                        "err_type": type(e).__name__,
                    }
                },
            )
        else:
            mark_completed(job, result)
            log.info(
                "job_completed",
                extra={"payload": {"job_id": job.id, "job_type": job.type.value}},
            )
        finally:
            self._current = None
        try:
            record_job_finished(
                job_type=job.type.value,
                status=job.status.value,
                duration_ms=(time.perf_counter() - started) * 1000,
            )
        except Exception as e:
            log.warning(
                "job_metrics_failed",
                extra={"payload": {"job_id": job.id, "err": str(e)[:200]}},
            )

    async def wait_idle(self) -> None:
        """
        Ждёт, пока потребитель обработает все pending задачи.
        """
        while self._consumer is not None and not self._consumer.done():
            await asyncio.shield(self._consumer)

    # =========================================================================
    # СТАТУСЫ
    # =========================================================================
    def get_job_status(self, job_id: str) -> JobStatusView | None:
        for job in self._jobs:
            if job.id == job_id:
                return JobStatusView.from_job(job)
        return None

    def get_all_jobs_status(self) -> list[JobStatusView]:
        return [JobStatusView.from_job(job) for job in self._jobs]

    def get_queue_info(self) -> dict[str, Any]:
        counts = {status.value: 0 for status in JobStatus}
        for job in self._jobs:
            counts[job.status.value] += 1
        current = self._current
        return {
            "total": len(self._jobs),
            **counts,
            "current_job": (
                {
                    "id": current.id,
                    "type": current.type.value,
                    "started_at": iso_or_none(current.started_at),
                }
                if current is not None
                else None
            ),
        }

    def cleanup(self, older_than_hours: float = 24) -> int:
        """
        Удаляет завершённые задачи старше cutoff. pending/processing не трогаются.
        """
        cutoff = utc_now() - timedelta(hours=float(older_than_hours))
        kept: list[Job] = []
        removed = 0
        for job in self._jobs:
            if job.is_terminal and job.completed_at is not None and job.completed_at < cutoff:
                removed += 1
                continue
            kept.append(job)
        self._jobs[:] = kept
        if removed:
            log.info(
                "queue_cleanup",
                extra={"payload": {"removed": removed, "older_than_hours": older_than_hours}},
            )
        return removed
